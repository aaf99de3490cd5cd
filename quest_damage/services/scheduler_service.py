"""
Background scheduler for automatic damage tracking
Handles:
- Periodic damage calculation for overdue quests
- Daily cleanup of trackers for finished quests
"""

import logging
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from quest_damage.services.damage_tracking_service import DamageTrackingService

logger = logging.getLogger("quest_damage.scheduler")


def run_damage_check(tracking_service: DamageTrackingService) -> None:
    """Job: calculate and apply damage for all active quests"""
    try:
        result = tracking_service.calculate_and_apply_damage()
        if result.error:
            logger.warning(f"Damage check finished with error: {result.error}")
        if result.total_damage > 0:
            logger.info(f"Damage check applied {result.total_damage} damage for missed quests")
        else:
            logger.info("Damage check: all quests are up to date")
    except Exception as e:
        logger.error(f"Scheduler Error (Damage Check): {e}")


def run_tracker_cleanup(tracking_service: DamageTrackingService) -> None:
    """Job: remove trackers of finished quests"""
    try:
        removed = tracking_service.cleanup_finished_entities()
        logger.info(f"Tracker cleanup finished: {removed} removed")
    except Exception as e:
        logger.error(f"Scheduler Error (Cleanup): {e}")


def create_scheduler(
    tracking_service: DamageTrackingService,
    check_interval_minutes: int,
    cleanup_hour: int
) -> BackgroundScheduler:
    """Build a scheduler with the damage check and cleanup jobs registered"""
    scheduler = BackgroundScheduler()

    scheduler.add_job(
        run_damage_check,
        IntervalTrigger(minutes=check_interval_minutes),
        args=[tracking_service],
        id='damage_check',
        replace_existing=True,
        max_instances=1,
        coalesce=True
    )

    scheduler.add_job(
        run_tracker_cleanup,
        CronTrigger(hour=cleanup_hour, minute=0),
        args=[tracking_service],
        id='tracker_cleanup',
        replace_existing=True
    )

    return scheduler


def start_scheduler(scheduler: BackgroundScheduler) -> None:
    """Start the background scheduler"""
    if not scheduler.running:
        scheduler.start()
        logger.info("Damage tracking scheduler started")
        logger.info(f"Scheduled jobs: {[job.id for job in scheduler.get_jobs()]}")


def stop_scheduler(scheduler: BackgroundScheduler) -> None:
    """Stop the background scheduler"""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Damage tracking scheduler stopped")
