"""Payout list schemas."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from pydantic import BaseModel, TypeAdapter, field_validator
from stellar_sdk import StrKey

STROOP = Decimal("0.0000001")


class Payout(BaseModel):
    """One recipient of a reward distribution."""

    pubkey: str
    amount: Decimal

    @field_validator("pubkey")
    @classmethod
    def _check_pubkey(cls, value: str) -> str:
        if not StrKey.is_valid_ed25519_public_key(value):
            raise ValueError("not a valid Stellar public key")
        return value

    @field_validator("amount", mode="before")
    @classmethod
    def _check_amount(cls, value: object) -> Decimal:
        try:
            amount = Decimal(str(value))
        except InvalidOperation as e:
            raise ValueError("amount is not a number") from e
        if not amount.is_finite() or amount < 0:
            raise ValueError("amount must be a non-negative number")
        quantized = amount.quantize(STROOP)
        if quantized != amount:
            raise ValueError("amount has more than 7 decimal places")
        return quantized

    @property
    def ledger_amount(self) -> str:
        """Amount as the 7-decimal string the ledger expects."""
        return format(self.amount, "f")


PayoutList = TypeAdapter(list[Payout])


def parse_payouts(data: object) -> list[Payout]:
    """Validate a stored or submitted ``[{pubkey, amount}]`` list."""
    return PayoutList.validate_python(data)
