"""Batched platform-asset payouts signed by the custodial distributor key.

One call builds one transaction: a payment per recipient that trusts the
platform asset, a claimable balance for recipients that do not. The ledger
applies the whole transaction or none of it.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import structlog
from stellar_sdk import Asset, Claimant, Keypair, TransactionBuilder

from wadzzo.config import Settings
from wadzzo.rewards.ledger import LedgerSubmitter
from wadzzo.rewards.schemas import Payout

logger = structlog.get_logger()


@dataclass(frozen=True)
class DistributorConfig:
    keypair: Keypair
    asset: Asset
    network_passphrase: str
    base_fee: int = 100
    timeout_seconds: int = 180

    @classmethod
    def from_settings(cls, settings: Settings) -> DistributorConfig:
        if not settings.distributor_secret or not settings.platform_asset_issuer:
            msg = "WADZZO_DISTRIBUTOR_SECRET and WADZZO_PLATFORM_ASSET_ISSUER must be set"
            raise RuntimeError(msg)
        return cls(
            keypair=Keypair.from_secret(settings.distributor_secret),
            asset=Asset(settings.platform_asset_code, settings.platform_asset_issuer),
            network_passphrase=settings.stellar_network_passphrase,
            base_fee=settings.stellar_base_fee,
            timeout_seconds=settings.stellar_tx_timeout_seconds,
        )


async def distribute(
    payouts: Sequence[Payout],
    ledger: LedgerSubmitter,
    config: DistributorConfig,
) -> dict[str, Any] | None:
    """Pay every recipient in a single signed transaction.

    Zero amounts are skipped. Returns the ledger's submission result, or None
    when no recipient had anything to receive.

    Raises:
        Whatever the ledger raises on rejection (bad sequence, underfunded, network).
    """
    source = await ledger.load_account(config.keypair.public_key)
    builder = TransactionBuilder(
        source_account=source,
        network_passphrase=config.network_passphrase,
        base_fee=config.base_fee,
    )

    operations = 0
    for payout in payouts:
        if payout.amount == 0:
            logger.info("payout_skipped_zero_amount", pubkey=payout.pubkey)
            continue

        if await ledger.has_trustline(payout.pubkey, config.asset):
            builder.append_payment_op(
                destination=payout.pubkey,
                asset=config.asset,
                amount=payout.ledger_amount,
            )
        else:
            builder.append_create_claimable_balance_op(
                asset=config.asset,
                amount=payout.ledger_amount,
                claimants=[Claimant(destination=payout.pubkey)],
            )
        operations += 1

    if operations == 0:
        logger.info("payout_batch_empty", recipients=len(payouts))
        return None

    envelope = builder.set_timeout(config.timeout_seconds).build()
    envelope.sign(config.keypair)

    logger.info("payout_batch_submitting", operations=operations, sequence=envelope.transaction.sequence)
    result = await ledger.submit(envelope)
    logger.info("payout_batch_submitted", operations=operations, tx_hash=result.get("hash"))
    return result
