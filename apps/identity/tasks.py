"""Celery tasks for Identity app."""
from celery import shared_task
from . import services


@shared_task(name='apps.identity.tasks.clear_expired_sessions')
def clear_expired_sessions():
    """
    Run nightly to drop expired rows from the session table.
    Scheduled in config.celery's beat schedule.
    """
    services.clear_expired_sessions()
    return "Cleared expired sessions"
