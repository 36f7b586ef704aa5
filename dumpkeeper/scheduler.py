"""
APScheduler configuration for running the agent as a foreground service.

An alternative to a system crontab entry: one cron-triggered job that runs
a full backup, never overlapping with itself.
"""

import logging

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

from dumpkeeper.backup.executor import execute_backup

logger = logging.getLogger(__name__)

BACKUP_JOB_ID = 'backup'

# Global scheduler instance
scheduler = None


def init_scheduler(config, cron: str = None):
    """
    Initialize and configure APScheduler.

    Args:
        config: Config instance passed to every run
        cron: Crontab expression (defaults to config.schedule_cron)

    Returns:
        The scheduler instance

    Raises:
        ValueError: If the cron expression is invalid
    """
    global scheduler

    if scheduler is not None:
        return scheduler

    cron = cron or config.schedule_cron
    trigger = CronTrigger.from_crontab(cron, timezone=config.schedule_timezone)

    job_defaults = {
        'coalesce': True,  # Combine missed runs into one
        'max_instances': 1,  # Never overlap with a run still in progress
        'misfire_grace_time': 300
    }

    scheduler = BlockingScheduler(job_defaults=job_defaults, timezone=config.schedule_timezone)

    scheduler.add_job(
        func=_execute_backup_wrapper,
        args=[config],
        trigger=trigger,
        id=BACKUP_JOB_ID,
        name=f"Backup: {config.hostname}",
        replace_existing=True
    )

    logger.info(f"Scheduled backup for {config.hostname} ({cron}, {config.schedule_timezone})")
    return scheduler


def start_scheduler():
    """
    Start the scheduler. Blocks until stop_scheduler() or an interrupt.
    """
    global scheduler

    if scheduler is None:
        raise RuntimeError("Scheduler not initialized. Call init_scheduler() first.")

    if not scheduler.running:
        scheduler.start()


def stop_scheduler():
    """Stop the APScheduler."""
    global scheduler

    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")


def _execute_backup_wrapper(config) -> int:
    """
    Run one backup from the scheduler thread.

    Unexpected exceptions are logged so the scheduler keeps its next slot.
    """
    try:
        status = execute_backup(config)
        logger.debug(f"Scheduled backup finished with exit status {status}")
        return status
    except Exception as e:
        logger.exception(f"ERROR: scheduled backup crashed: {e}")
        return 1
