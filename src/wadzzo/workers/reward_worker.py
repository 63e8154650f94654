"""arq worker that pays out stored reward distributions.

Run with: arq wadzzo.workers.settings.WorkerSettings
"""

from __future__ import annotations

import logging

from arq.connections import RedisSettings
from arq.worker import Retry

from wadzzo.config import get_settings
from wadzzo.database import close_db, init_db, session_scope
from wadzzo.middleware.logging import setup_logging
from wadzzo.rewards.distributor import DistributorConfig
from wadzzo.rewards.ledger import HorizonLedger
from wadzzo.rewards.service import DistributionError, run_distribution

logger = logging.getLogger(__name__)

MAX_TRIES = 3


async def startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Open the database and Horizon connections."""
    settings = get_settings()
    setup_logging(settings)
    await init_db(settings.database_url)

    ctx["ledger"] = HorizonLedger(settings.stellar_horizon_url)
    ctx["distributor"] = DistributorConfig.from_settings(settings)
    logger.info("Reward worker started (horizon=%s)", settings.stellar_horizon_url)


async def shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    """Clean up on worker shutdown."""
    ledger: HorizonLedger | None = ctx.get("ledger")
    if ledger:
        await ledger.close()
    await close_db()
    logger.info("Reward worker shut down")


async def distribute_reward(ctx: dict, reward_id: str) -> str:  # type: ignore[type-arg]
    """Pay out one reward distribution, retrying the whole run on failure.

    Progress is committed per batch, so a retry only pays the users that are
    still missing.
    """
    settings = get_settings()
    job_try: int = ctx.get("job_try", 1)

    try:
        async with session_scope() as db:
            report = await run_distribution(
                db,
                reward_id,
                ctx["ledger"],
                ctx["distributor"],
                max_operations_per_tx=settings.max_operations_per_tx,
                max_errors=settings.distribution_max_errors,
            )
    except DistributionError as exc:
        if job_try < MAX_TRIES:
            logger.warning("Reward %s attempt %d failed: %s; retrying", reward_id, job_try, exc)
            raise Retry(defer=job_try * 10) from exc
        logger.error("Reward %s failed after %d attempts: %s", reward_id, job_try, exc)
        raise

    logger.info("Reward %s: %s (%d/%d)", reward_id, report.message, report.distributed, report.eligible)
    return report.message


class WorkerSettings:
    """arq worker settings for reward distribution."""

    functions = [distribute_reward]
    on_startup = startup
    on_shutdown = shutdown
    max_tries = MAX_TRIES
    max_jobs = 1
    job_timeout = 600
    redis_settings = RedisSettings.from_dsn(get_settings().arq_redis_url)
