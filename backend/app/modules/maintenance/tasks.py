"""
Celery tasks for maintenance billing

Beat runs the overdue sweep periodically so bills flip to overdue even
when nobody lists them.
"""
import asyncio

from celery import Task

from app.core.celery_app import celery_app
from app.core.database import AsyncSessionLocal, close_db
from app.core.logging_config import logger
from app.services.maintenance_service import maintenance_service


class MaintenanceTask(Task):
    """Celery task with async support"""
    abstract = True

    def run_async(self, coro):
        """Run async coroutine in sync context"""
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            return loop.run_until_complete(_run_and_release(coro))
        finally:
            loop.close()


async def _run_and_release(coro):
    # Pooled connections are bound to this loop, which closes after the run
    try:
        return await coro
    finally:
        await close_db()


async def _async_mark_overdue_bills() -> int:
    async with AsyncSessionLocal() as db:
        try:
            count = await maintenance_service.mark_overdue_bills(db)
            await db.commit()
            return count
        except Exception:
            await db.rollback()
            raise


@celery_app.task(bind=True, base=MaintenanceTask, max_retries=3, default_retry_delay=60)
def mark_overdue_bills_task(self):
    """Flip unpaid bills past their due date to overdue"""
    try:
        count = self.run_async(_async_mark_overdue_bills())
    except Exception as exc:
        logger.error(f"[Maintenance] Overdue sweep failed: {exc}", exc_info=True)
        raise self.retry(exc=exc)

    logger.info(f"[Maintenance] Overdue sweep complete: {count} bills updated")
    return {"updated": count}
