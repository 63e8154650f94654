"""Ledger access for reward payouts.

``LedgerSubmitter`` is the capability the distribution code needs from the
Stellar network; ``HorizonLedger`` provides it over Horizon. Tests inject a
fake.
"""

from __future__ import annotations

from typing import Any, Protocol

from stellar_sdk import Account, Asset, ServerAsync, TransactionEnvelope
from stellar_sdk.client.aiohttp_client import AiohttpClient
from stellar_sdk.exceptions import NotFoundError


class LedgerSubmitter(Protocol):
    async def load_account(self, account_id: str) -> Account:
        """Current sequence number of ``account_id``."""
        ...

    async def has_trustline(self, account_id: str, asset: Asset) -> bool:
        """Whether ``account_id`` exists and trusts ``asset``."""
        ...

    async def submit(self, envelope: TransactionEnvelope) -> dict[str, Any]:
        """Submit a signed transaction. Raises on rejection."""
        ...


class HorizonLedger:
    """LedgerSubmitter backed by a Horizon server."""

    def __init__(self, horizon_url: str) -> None:
        self.server = ServerAsync(horizon_url=horizon_url, client=AiohttpClient())

    async def load_account(self, account_id: str) -> Account:
        return await self.server.load_account(account_id)

    async def has_trustline(self, account_id: str, asset: Asset) -> bool:
        try:
            record = await self.server.accounts().account_id(account_id).call()
        except NotFoundError:
            return False
        return any(
            balance.get("asset_type") in ("credit_alphanum4", "credit_alphanum12")
            and balance.get("asset_code") == asset.code
            and balance.get("asset_issuer") == asset.issuer
            for balance in record.get("balances", [])
        )

    async def submit(self, envelope: TransactionEnvelope) -> dict[str, Any]:
        return await self.server.submit_transaction(envelope)

    async def close(self) -> None:
        await self.server.close()
