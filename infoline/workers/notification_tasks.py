"""Celery tasks for notification delivery.

Used when ``notification_transport`` is ``queue``: the API hands messages
to the broker and a worker stores and forwards them.
"""

from typing import Optional, Dict, Any
from uuid import UUID
import logging

from celery import Celery, shared_task
from sqlalchemy.exc import SQLAlchemyError

from infoline.core.config import get_settings
from infoline.core.logger import configure_from_settings

logger = logging.getLogger(__name__)
settings = get_settings()

celery_app = Celery(
    'infoline',
    broker=settings.celery_broker,
    backend=settings.celery_backend,
)

celery_app.conf.update(
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,
    task_routes={
        'infoline.workers.notification_tasks.deliver_notification': {'queue': 'notifications'},
    },
    task_default_queue='default',
)


@celery_app.on_after_configure.connect
def _setup_logging(sender, **kwargs):
    configure_from_settings(settings)


@shared_task(bind=True, max_retries=3, default_retry_delay=30)
def deliver_notification(
    self,
    recipient_id: str,
    title: str,
    message: str,
    link: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Store an in-app notification and forward it to the webhook.

    Args:
        recipient_id: User to notify
        title: Notification title
        message: Notification text
        link: Path of the related page

    Returns:
        Dict with the notification id
    """
    from infoline.db.session import SessionLocal
    from infoline.services.notifications import deliver

    db = SessionLocal()
    try:
        notification = deliver(db, UUID(recipient_id), title, message, link, settings=settings)
        return {"status": "delivered", "notification_id": str(notification.id)}
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Storing notification for {recipient_id} failed: {e}")
        raise self.retry(exc=e)
    finally:
        db.close()
