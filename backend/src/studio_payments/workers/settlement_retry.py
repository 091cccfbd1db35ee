"""Settlement retry worker.

Re-settles payment events that were recorded but not applied:
1. Events whose settlement failed (``settlement_status == failed``)
2. Events still pending well after they were recorded (the process stopped
   between recording the event and settling it)

Events that reached ``settlement_max_attempts`` are left for manual review
through ``POST /v1/payments/{event_id}/settle``.

Usage:
    arq studio_payments.workers.settlement_retry.WorkerSettings
"""
from datetime import datetime, timedelta

import structlog
from arq import cron
from arq.connections import RedisSettings
from sqlalchemy.ext.asyncio import async_sessionmaker

from studio_payments.config import settings
from studio_payments.database import AsyncSessionLocal
from studio_payments.services.ledger_service import LedgerService
from studio_payments.services.settlement_service import SettlementOutcome, SettlementService

logger = structlog.get_logger(__name__)

# Pending events younger than this may still be settling in the webhook request
PENDING_GRACE_PERIOD = timedelta(minutes=5)


async def process_settlement_retries(session_factory: async_sessionmaker = AsyncSessionLocal) -> dict[str, int]:
    """
    Retry settlement for every retryable event, one transaction per event.

    Args:
        session_factory: Session factory (the application's by default)

    Returns:
        Dict with counts of processed events
    """
    async with session_factory() as db:
        events = await LedgerService(db).list_retryable_events(
            max_attempts=settings.settlement_max_attempts,
            recorded_before=datetime.utcnow() - PENDING_GRACE_PERIOD,
        )
        event_ids = [event.id for event in events]

        logger.info("settlement_retry_started", events_count=len(event_ids))

        counts = {"applied": 0, "skipped": 0, "failed": 0}
        settlement = SettlementService(db)

        for event_id in event_ids:
            try:
                outcome = await settlement.settle_event(event_id)
                await db.commit()
            except Exception as e:
                await db.rollback()
                counts["failed"] += 1
                logger.exception("settlement_retry_error", event_id=event_id, exc_info=e)
                await settlement.record_failure(event_id, str(e))
                await db.commit()
                continue

            if outcome in (SettlementOutcome.APPLIED, SettlementOutcome.ALREADY_APPLIED):
                counts["applied"] += 1
            else:
                counts["skipped"] += 1

        logger.info("settlement_retry_completed", **counts)
        return counts


async def retry_failed_settlements(ctx: dict) -> dict[str, int]:
    """
    ARQ task wrapping ``process_settlement_retries``.

    Args:
        ctx: ARQ context (contains job info)

    Returns:
        Dict with counts of processed events
    """
    return await process_settlement_retries()


class WorkerSettings:
    """
    ARQ worker settings for settlement retries.

    Schedule:
    - Retry: every 15 minutes
    """

    functions = [retry_failed_settlements]

    cron_jobs = [
        cron(retry_failed_settlements, minute={0, 15, 30, 45}, timeout=600),
    ]

    redis_settings = RedisSettings.from_dsn(str(settings.arq_redis_url))
