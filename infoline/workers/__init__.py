"""Celery workers for InfoLine."""

from infoline.workers.notification_tasks import celery_app, deliver_notification

__all__ = [
    "celery_app",
    "deliver_notification",
]
