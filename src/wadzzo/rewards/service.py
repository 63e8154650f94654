"""Reward distribution workflow.

Rules:
- A stored distribution is paid out in batches of at most ``max_operations_per_tx``
- Blocked wallets are never paid
- Progress (``completed_users``) is committed after every successful batch,
  so a rerun resumes where the last one stopped
- A failed batch is retried; after ``max_errors`` failures the run stops
- A finished distribution is marked ``is_distributed`` and never paid twice
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from arq import create_pool
from arq.connections import RedisSettings
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wadzzo.db.models import BlockedWallet, RewardDistribution
from wadzzo.rewards.distributor import DistributorConfig, distribute
from wadzzo.rewards.ledger import LedgerSubmitter
from wadzzo.rewards.schemas import Payout, parse_payouts

logger = logging.getLogger(__name__)


class DistributionError(Exception):
    """A distribution run could not complete."""


@dataclass
class DistributionReport:
    reward_id: str
    message: str
    eligible: int = 0
    distributed: int = 0


async def create_reward_distribution(
    db: AsyncSession,
    payouts: list[Payout],
) -> RewardDistribution:
    """Store a payout list for the worker to distribute."""
    reward = RewardDistribution(
        data=[{"pubkey": p.pubkey, "amount": p.ledger_amount} for p in payouts],
        total_balance=sum((p.amount for p in payouts), start=0),
        completed_users=[],
    )
    db.add(reward)
    await db.flush()
    return reward


async def get_blocked_wallets(db: AsyncSession) -> set[str]:
    result = await db.execute(select(BlockedWallet.wallet_address))
    return {row[0] for row in result}


def _batch_error(batch: list[Payout], error: str) -> dict[str, Any]:
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "batch_size": len(batch),
        "batch_users": [p.pubkey for p in batch],
        "error": error,
    }


async def _save_progress(
    db: AsyncSession,
    reward: RewardDistribution,
    completed: list[str],
    last_error: Any | None,
) -> None:
    reward.completed_users = list(completed)
    reward.last_error = last_error
    reward.last_updated_at = datetime.now(timezone.utc)
    await db.commit()


async def _mark_completed(db: AsyncSession, reward: RewardDistribution, completed: list[str]) -> None:
    now = datetime.now(timezone.utc)
    reward.is_distributed = True
    reward.completed_users = list(completed)
    reward.rewarded_at = now
    reward.last_updated_at = now
    await db.commit()


async def run_distribution(
    db: AsyncSession,
    reward_id: str,
    ledger: LedgerSubmitter,
    config: DistributorConfig,
    max_operations_per_tx: int = 100,
    max_errors: int = 3,
) -> DistributionReport:
    """Pay out a stored reward distribution, committing progress batch by batch."""
    reward = await db.get(RewardDistribution, reward_id)
    if reward is None:
        raise DistributionError(f"Reward with ID {reward_id} not found")

    if reward.is_distributed:
        logger.info("Reward %s already distributed, skipping", reward_id)
        return DistributionReport(reward_id, "Already distributed")

    try:
        payouts = parse_payouts(reward.data)
    except ValidationError as e:
        raise DistributionError(f"No valid data found for reward {reward_id}") from e

    blocked = await get_blocked_wallets(db)
    eligible = [p for p in payouts if p.pubkey not in blocked]
    completed = list(reward.completed_users or [])

    if not eligible:
        logger.info("No eligible users for reward %s", reward_id)
        await _mark_completed(db, reward, completed)
        return DistributionReport(reward_id, "No eligible users")

    done = set(completed)
    remaining = [p for p in eligible if p.pubkey not in done]
    errors: list[dict[str, Any]] = []

    while remaining:
        if len(errors) >= max_errors:
            await _save_progress(db, reward, completed, list(errors))
            logger.error("Reward %s stopped after %d failed batches", reward_id, len(errors))
            raise DistributionError("Too many errors encountered during distribution")

        batch = remaining[:max_operations_per_tx]
        logger.info(
            "Reward %s: submitting batch of %d (%d/%d)",
            reward_id, len(batch), len(completed) + len(batch), len(eligible),
        )
        try:
            result = await distribute(batch, ledger, config)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Reward %s: batch failed: %s", reward_id, exc)
            errors.append(_batch_error(batch, str(exc)))
            await _save_progress(db, reward, completed, list(errors))
            continue

        if result is not None and result.get("successful") is False:
            errors.append(_batch_error(batch, "Transaction was not successful"))
            await _save_progress(db, reward, completed, list(errors))
            continue

        completed.extend(p.pubkey for p in batch)
        remaining = remaining[len(batch):]
        await _save_progress(db, reward, completed, None)

    await _mark_completed(db, reward, completed)
    logger.info("Reward %s distributed to %d/%d users", reward_id, len(completed), len(eligible))
    return DistributionReport(
        reward_id,
        "Distributed",
        eligible=len(eligible),
        distributed=len(completed),
    )


async def enqueue_distribution(reward_id: str, redis_url: str) -> None:
    """Queue ``distribute_reward`` on the reward worker. The job id dedupes repeat requests."""
    pool = await create_pool(RedisSettings.from_dsn(redis_url))
    try:
        await pool.enqueue_job("distribute_reward", reward_id, _job_id=f"distribute:{reward_id}")
    finally:
        await pool.aclose()
    logger.info("Reward %s queued for distribution", reward_id)
