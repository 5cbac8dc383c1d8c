import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from celery import Celery
from autoquote.core.config import settings

logger = logging.getLogger(__name__)

celery_app = Celery(
    "worker",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_BACKEND,
)
celery_app.conf.task_routes = {"autoquote.services.tasks.repair_quote_totals": {"queue": "repair"}}


async def repair_quote_totals_async(batch_size: Optional[int] = None, days: Optional[int] = None) -> dict:
    from autoquote.db.session import AsyncSessionLocal, AsyncSourceSession
    from autoquote.services.repair import run_repair

    since = None
    if days:
        since = datetime.now(timezone.utc) - timedelta(days=days)

    async with AsyncSessionLocal() as db, AsyncSourceSession() as source_db:
        report = await run_repair(db, source_db, batch_size=batch_size, since=since)
    return report.model_dump()


@celery_app.task(bind=True, max_retries=3)
def repair_quote_totals(self, batch_size: Optional[int] = None, days: Optional[int] = None):
    import asyncio

    try:
        return asyncio.run(repair_quote_totals_async(batch_size, days or settings.REPAIR_LOOKBACK_DAYS))
    except Exception as e:
        logger.error(f"Quote totals repair failed: {e}")
        retry_kwargs = {"countdown": 2 ** self.request.retries}
        raise self.retry(exc=e, **retry_kwargs)
