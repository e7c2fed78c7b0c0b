"""
Scheduler Service
Background pacing alerts and the daily logging reminder, using APScheduler
"""
import asyncio
import logging
from datetime import datetime
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from expenso.core.config import settings
from expenso.core.errors import InvalidBudgetError, StoreError
from expenso.db.dynamo import TransactionStore
from expenso.utils.advisory_service import AdvisoryService
from expenso.utils.notifications import AlertRegistry

logger = logging.getLogger(__name__)

PACING_JOB_ID = "weekly_pacing_alerts"
REMINDER_JOB_ID = "daily_logging_reminder"

scheduler: Optional[AsyncIOScheduler] = None


async def run_pacing_alerts(
    registry: AlertRegistry,
    store: TransactionStore,
    service: AdvisoryService,
) -> int:
    """Check every subscriber's weekly pace; returns how many alerts went out."""
    sent = 0
    for sub in registry.all():
        try:
            transactions = await asyncio.to_thread(store.list_by_user, sub.user_id)
            insight = await service.get_pacing_insight(transactions, sub.weekly_budget, sub.config)
        except (StoreError, InvalidBudgetError) as e:
            logger.error(f"Pacing check skipped for user {sub.user_id}: {e}")
            continue
        except Exception:
            logger.exception(f"Pacing check failed for user {sub.user_id}")
            continue

        if insight:
            sub.bridge.notify("Budget Alert", insight)
            sent += 1
    logger.info(f"Pacing alerts job finished: {sent} alert(s) for {len(registry.all())} subscriber(s)")
    return sent


def run_daily_reminders(registry: AlertRegistry, now: Optional[datetime] = None) -> int:
    now = now or datetime.now()
    return sum(1 for sub in registry.all() if sub.bridge.maybe_send_daily_reminder(now))


def start_scheduler(registry: AlertRegistry, store: TransactionStore, service: AdvisoryService):
    """Start the background scheduler"""
    global scheduler

    if scheduler is not None:
        logger.warning("Scheduler is already running")
        return

    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        run_pacing_alerts,
        args=[registry, store, service],
        trigger=IntervalTrigger(minutes=settings.PACING_CHECK_INTERVAL_MINUTES),
        id=PACING_JOB_ID,
        name="Weekly pacing alerts",
        replace_existing=True,
    )
    scheduler.add_job(
        run_daily_reminders,
        args=[registry],
        trigger=CronTrigger(minute=0),
        id=REMINDER_JOB_ID,
        name="Daily logging reminder",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(
        f"Scheduler started: pacing every {settings.PACING_CHECK_INTERVAL_MINUTES} min, "
        f"reminder from {settings.REMINDER_HOUR}:00"
    )


def stop_scheduler():
    """Stop the background scheduler"""
    global scheduler

    if scheduler is not None:
        scheduler.shutdown(wait=False)
        scheduler = None
        logger.info("Scheduler stopped")


def get_scheduler_status():
    """Get current scheduler status"""
    if scheduler is None:
        return {"running": False}

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run": str(job.next_run_time) if job.next_run_time else None
        })

    return {
        "running": scheduler.running,
        "jobs": jobs
    }
