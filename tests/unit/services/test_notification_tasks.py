"""Tests for the notification Celery task and database seeding."""

from unittest.mock import patch

from infoline.db.models import Notification, Role
from infoline.db.seed import seed_default_roles, seed_superadmin
from infoline.workers.notification_tasks import celery_app, deliver_notification

from tests.factories import create_user


class TestDeliverNotificationTask:

    def test_routed_to_notifications_queue(self):
        routes = celery_app.conf.task_routes
        assert routes["infoline.workers.notification_tasks.deliver_notification"] == {"queue": "notifications"}

    def test_stores_notification(self, db_session, session_factory):
        user = create_user(db_session)
        db_session.commit()

        with patch("infoline.db.session.SessionLocal", session_factory):
            result = deliver_notification.apply(
                args=[str(user.id), "Data entry submitted", "Waiting for review", "/data-entries/1"],
            ).get()

        assert result["status"] == "delivered"
        stored = db_session.query(Notification).filter(Notification.user_id == user.id).one()
        assert str(stored.id) == result["notification_id"]
        assert stored.action_url == "/data-entries/1"


class TestSeed:

    def test_default_roles_idempotent(self, db_session):
        first = seed_default_roles(db_session)
        second = seed_default_roles(db_session)

        assert set(first) == {"superadmin", "regionadmin", "sectoradmin", "schooladmin"}
        assert {name: role.id for name, role in first.items()} == {name: role.id for name, role in second.items()}
        assert db_session.query(Role).count() == 4

    def test_superadmin(self, db_session):
        admin = seed_superadmin(db_session, "admin@infoline.example", "Admin")

        assert admin.role.permissions == ["*:*"]
        assert seed_superadmin(db_session, "admin@infoline.example").id == admin.id
