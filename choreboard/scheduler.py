"""
Background job scheduler using APScheduler.

This module sets up and manages the background scheduler for ChoreBoard:
periodic maintenance jobs (overdue marking, points audit) and one-off
jobs such as proof photo uploads.
"""

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
import logging
import atexit

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = BackgroundScheduler()


def with_app_context(app, func):
    """Wrap a job function to run within the Flask app context."""
    def wrapper(*args, **kwargs):
        with app.app_context():
            return func(*args, **kwargs)
    wrapper.__name__ = func.__name__
    return wrapper


def init_scheduler(app):
    """
    Initialize and start the background scheduler.

    Args:
        app: Flask application instance
    """
    if not app.config.get('SCHEDULER_ENABLED', True):
        logger.info("Background scheduler disabled via configuration")
        return

    # Don't run scheduler in testing mode
    if app.config.get('TESTING', False):
        logger.info("Background scheduler disabled in testing mode")
        return

    if scheduler.running:
        logger.debug("Background scheduler already running")
        return

    from choreboard.jobs.overdue_assignments import mark_overdue_assignments
    from choreboard.jobs.points_audit import audit_points_balances

    timezone = app.config.get('SCHEDULER_TIMEZONE', 'UTC')

    # Mark overdue assignments hourly at :05
    scheduler.add_job(
        with_app_context(app, mark_overdue_assignments),
        trigger=CronTrigger(minute=5, timezone=timezone),
        id='mark_overdue_assignments',
        name='Mark overdue task assignments',
        replace_existing=True
    )

    # Audit points balances nightly at 02:00
    scheduler.add_job(
        with_app_context(app, audit_points_balances),
        trigger=CronTrigger(hour=2, minute=0, timezone=timezone),
        id='audit_points_balances',
        name='Audit user points balances',
        replace_existing=True
    )

    scheduler.start()
    logger.info("Background scheduler started with %d jobs", len(scheduler.get_jobs()))

    atexit.register(shutdown_scheduler)


def shutdown_scheduler():
    """Shutdown the background scheduler gracefully."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Background scheduler stopped")


def get_scheduler():
    """
    Get the scheduler instance.

    Returns:
        BackgroundScheduler: The scheduler instance
    """
    return scheduler


def get_job_status():
    """
    Get status of all scheduled jobs.

    Returns:
        list: List of job status dictionaries
    """
    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            'id': job.id,
            'name': job.name,
            'next_run': job.next_run_time.isoformat() if job.next_run_time else None,
            'trigger': str(job.trigger)
        })
    return jobs
