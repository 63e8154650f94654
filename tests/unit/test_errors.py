"""Error kind to HTTP status mapping."""

import pytest

from wadzzo.errors import STATUS_CODES, AppError, ErrorKind


@pytest.mark.parametrize(
    ("kind", "status"),
    [
        (ErrorKind.UNAUTHENTICATED, 401),
        (ErrorKind.FORBIDDEN, 403),
        (ErrorKind.VALIDATION, 400),
        (ErrorKind.NOT_FOUND, 404),
        (ErrorKind.LIMIT_REACHED, 422),
        (ErrorKind.ALREADY_JOINED, 422),
        (ErrorKind.OWN_BOUNTY, 422),
    ],
)
def test_status_code(kind: ErrorKind, status: int) -> None:
    assert AppError(kind, "x").status_code == status


def test_every_kind_has_a_status() -> None:
    assert set(STATUS_CODES) == set(ErrorKind)


def test_message_is_exception_text() -> None:
    err = AppError(ErrorKind.NOT_FOUND, "Bounty not found")
    assert str(err) == "Bounty not found"
    assert err.kind is ErrorKind.NOT_FOUND
