"""Notifications for data entry workflow events.

Handles:
- In-app notifications (stored per user, read from the dashboard)
- Optional webhook forwarding to an external system
- Notifier implementations consumed by ``TransitionGuard``

Delivery is best-effort: a failed notification never undoes the transition
that caused it.
"""

import json
import logging
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID

import httpx
from jinja2 import Template
from sqlalchemy.orm import Session

from infoline.core.approval.records import utcnow
from infoline.core.config import Settings, get_settings
from infoline.db.models import Notification, NotificationType

logger = logging.getLogger(__name__)


class NotificationService:
    """In-app notification store for one database session."""

    def __init__(self, db: Session):
        self.db = db

    def create(
        self,
        user_id: UUID,
        title: str,
        message: str,
        *,
        type: NotificationType = NotificationType.INFO,
        entity_type: Optional[str] = None,
        entity_id: Optional[UUID] = None,
        action_url: Optional[str] = None,
    ) -> Notification:
        notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            type=type.value,
            entity_type=entity_type,
            entity_id=entity_id,
            action_url=action_url,
            is_read=False,
        )
        self.db.add(notification)
        self.db.flush()
        return notification

    def list_for_user(
        self,
        user_id: UUID,
        *,
        is_read: Optional[bool] = None,
        type: Optional[str] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[UUID] = None,
        limit: int = 50,
    ) -> List[Notification]:
        """Notifications of a user, newest first."""
        q = self.db.query(Notification).filter(Notification.user_id == user_id)
        if is_read is not None:
            q = q.filter(Notification.is_read.is_(is_read))
        if type:
            q = q.filter(Notification.type == type)
        if entity_type:
            q = q.filter(Notification.entity_type == entity_type)
        if entity_id:
            q = q.filter(Notification.entity_id == entity_id)
        return q.order_by(Notification.created_at.desc()).limit(limit).all()

    def unread_count(self, user_id: UUID) -> int:
        return self.db.query(Notification).filter(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        ).count()

    def mark_read(self, notification_id: UUID, user_id: UUID) -> bool:
        """Mark one of the user's notifications as read. False if not found."""
        notification = self._get_owned(notification_id, user_id)
        if notification is None:
            return False
        notification.is_read = True
        self.db.flush()
        return True

    def mark_all_read(self, user_id: UUID) -> int:
        """Mark every unread notification of the user as read; returns how many."""
        count = self.db.query(Notification).filter(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        ).update({Notification.is_read: True}, synchronize_session=False)
        self.db.flush()
        return count

    def delete(self, notification_id: UUID, user_id: UUID) -> bool:
        notification = self._get_owned(notification_id, user_id)
        if notification is None:
            return False
        self.db.delete(notification)
        self.db.flush()
        return True

    def _get_owned(self, notification_id: UUID, user_id: UUID) -> Optional[Notification]:
        return self.db.query(Notification).filter(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        ).first()


def _notification_type(title: str) -> NotificationType:
    lowered = title.lower()
    if "rejected" in lowered:
        return NotificationType.WARNING
    if "approved" in lowered:
        return NotificationType.SUCCESS
    return NotificationType.INFO


def build_webhook_payload(context: Dict[str, Any], template: Optional[str] = None) -> Dict[str, Any]:
    """Render the webhook body, falling back to the default shape if the template fails."""
    if template:
        try:
            return json.loads(Template(template).render(**context))
        except Exception as e:
            logger.warning(f"Failed to render webhook template: {e}")
    return {
        "event": "notification",
        "timestamp": utcnow().isoformat(),
        "data": context,
    }


def send_webhook(url: str, payload: Dict[str, Any], timeout: float) -> None:
    """POST a payload to the configured webhook."""
    response = httpx.post(url, json=payload, headers={"Content-Type": "application/json"}, timeout=timeout)
    response.raise_for_status()


def deliver(
    db: Session,
    recipient_id: UUID,
    title: str,
    message: str,
    link: Optional[str] = None,
    *,
    settings: Optional[Settings] = None,
) -> Notification:
    """
    Store an in-app notification and forward it to the webhook, if any.

    The in-app notification is committed before the webhook is called; a
    webhook failure is logged and does not remove it.
    """
    settings = settings or get_settings()
    notification = NotificationService(db).create(
        recipient_id,
        title,
        message,
        type=_notification_type(title),
        action_url=link,
    )
    db.commit()

    if settings.notification_webhook_url:
        context = {
            "recipient_id": str(recipient_id),
            "title": title,
            "message": message,
            "link": f"{settings.app_url.rstrip('/')}{link}" if link else None,
        }
        payload = build_webhook_payload(context, settings.notification_webhook_template)
        try:
            send_webhook(settings.notification_webhook_url, payload, settings.webhook_timeout)
        except httpx.HTTPError:
            logger.exception(f"Failed to send webhook to {settings.notification_webhook_url}")

    return notification


class InAppNotifier:
    """Delivers in the calling process, using its own database session."""

    def __init__(self, session_factory: Callable[[], Session], settings: Optional[Settings] = None):
        self.session_factory = session_factory
        self.settings = settings

    def send(self, recipient_id: UUID, title: str, message: str, link: Optional[str] = None) -> None:
        db = self.session_factory()
        try:
            deliver(db, recipient_id, title, message, link, settings=self.settings)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()


class QueuedNotifier:
    """Hands each message to the ``deliver_notification`` Celery task."""

    def __init__(self, task=None):
        if task is None:
            from infoline.workers.notification_tasks import deliver_notification
            task = deliver_notification
        self.task = task

    def send(self, recipient_id: UUID, title: str, message: str, link: Optional[str] = None) -> None:
        self.task.delay(str(recipient_id), title, message, link)


class DeferredNotifier:
    """
    Buffers messages until ``flush()`` is called.

    Request handlers flush after their database commit succeeds, so nobody
    is told about a change that was rolled back.
    """

    def __init__(self, inner):
        self.inner = inner
        self.pending: List[tuple] = []

    def send(self, recipient_id: UUID, title: str, message: str, link: Optional[str] = None) -> None:
        self.pending.append((recipient_id, title, message, link))

    def flush(self) -> int:
        """Send buffered messages; returns how many were delivered."""
        pending, self.pending = self.pending, []
        sent = 0
        for recipient_id, title, message, link in pending:
            try:
                self.inner.send(recipient_id, title, message, link)
                sent += 1
            except Exception as e:
                logger.warning(f"Notification to {recipient_id} failed: {e}")
        return sent

    def discard(self) -> None:
        self.pending = []


def build_notifier(settings: Settings, session_factory: Callable[[], Session]):
    """Notifier for the configured transport, or None when disabled."""
    transport = settings.notification_transport.lower()
    if transport == "disabled":
        return None
    if transport == "queue":
        return QueuedNotifier()
    if transport == "inline":
        return InAppNotifier(session_factory, settings)
    raise ValueError(f"Unknown notification transport: {settings.notification_transport}")
