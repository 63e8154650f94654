"""Application error kinds shared by every business handler.

Each kind maps to exactly one HTTP status. Handlers raise ``AppError`` and the
global exception handler renders ``{"success": false, "data": ..., "kind": ...}``.
"""

from __future__ import annotations

import enum


class ErrorKind(str, enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    LIMIT_REACHED = "limit_reached"
    ALREADY_JOINED = "already_joined"
    OWN_BOUNTY = "own_bounty"


STATUS_CODES: dict[ErrorKind, int] = {
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.LIMIT_REACHED: 422,
    ErrorKind.ALREADY_JOINED: 422,
    ErrorKind.OWN_BOUNTY: 422,
}


class AppError(Exception):
    """A terminal, non-retryable rejection of a request."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    @property
    def status_code(self) -> int:
        return STATUS_CODES[self.kind]
