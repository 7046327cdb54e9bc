# edustack/services/term_scheduler.py - Daily term status sweep
from typing import Dict, Optional
import asyncio
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from edustack.core.config import settings
from edustack.core.db import db_manager
from edustack.services.academic_service import AcademicService

logger = logging.getLogger(__name__)

DAILY_JOB_ID = "term_status_daily"
STARTUP_JOB_ID = "term_status_startup"

term_scheduler = AsyncIOScheduler(timezone="UTC")


def run_term_reconciliation() -> Dict[str, int]:
    """Run one sweep in its own session and transaction"""
    with db_manager.transaction() as session:
        return AcademicService(session).reconcile_term_status()


async def reconcile_terms_job() -> Optional[Dict[str, int]]:
    """Scheduled entry point; a failed run is logged and waits for the next slot"""
    try:
        result = await asyncio.to_thread(run_term_reconciliation)
    except Exception as e:
        logger.error(f"Term status reconciliation failed: {e}")
        return None
    logger.info(f"Term status reconciled: {result['activated']} activated, {result['deactivated']} deactivated")
    return result


def start_term_scheduler(scheduler: AsyncIOScheduler = term_scheduler, hour: Optional[int] = None) -> None:
    """
    Keep AcademicTerm.is_active in line with the calendar.

    Sweeps once right away and then every day at TERM_RECONCILE_HOUR (UTC).
    """
    hour = settings.TERM_RECONCILE_HOUR if hour is None else hour
    if not scheduler.running:
        scheduler.start()
    scheduler.add_job(
        reconcile_terms_job,
        CronTrigger(hour=hour, minute=0, timezone="UTC"),
        id=DAILY_JOB_ID,
        replace_existing=True,
    )
    # No trigger: runs once, now
    scheduler.add_job(reconcile_terms_job, id=STARTUP_JOB_ID, replace_existing=True)
    logger.info(f"Term status scheduler started (daily at {hour:02d}:00 UTC)")


def stop_term_scheduler(scheduler: AsyncIOScheduler = term_scheduler) -> None:
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Term status scheduler stopped")
