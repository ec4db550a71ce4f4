"""SQLAlchemy repositories against a real (SQLite) database."""

import uuid
from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError, IntegrityError, TimeoutError as PoolTimeoutError

from infoline.core.approval import (
    DataEntryRecord,
    EntryStatus,
    EntryTransition,
    HistoryRecord,
    InvalidTransitionError,
    PersistenceError,
    TransitionGuard,
    TransitionTimeoutError,
)
from infoline.core.approval.ports import EntryQuery
from infoline.core.approval.records import utcnow
from infoline.db.models import DataEntry
from infoline.db.repositories import (
    RoleAuthorizer,
    SqlColumnSource,
    SqlEntryRepository,
    SqlHistoryRepository,
    store_errors,
)

from tests.factories import create_category, create_entry, create_school, create_user


pytestmark = pytest.mark.integration


@pytest.fixture
def seeded(db_session):
    school = create_school(db_session)
    category = create_category(db_session, columns=[
        {"name": "B", "type": "text"},
        {"name": "A", "type": "number", "is_required": True},
    ])
    creator = create_user(db_session, role_name="schooladmin", school=school)
    reviewer = create_user(db_session, role_name="sectoradmin", sector=school.sector)
    db_session.commit()
    return school, category, creator, reviewer


def make_history(entry_id, actor_id, status):
    return HistoryRecord(
        id=uuid.uuid4(),
        entry_id=entry_id,
        changed_by=actor_id,
        data={"x": 1},
        status=status,
        changed_at=utcnow(),
    )


class TestStoreErrors:

    def test_statement_timeout(self):
        db = MagicMock()
        orig = Exception("canceling statement due to statement timeout")
        orig.pgcode = "57014"

        with pytest.raises(TransitionTimeoutError):
            with store_errors(db, "Updating entry"):
                raise OperationalError("UPDATE ...", {}, orig)

        db.rollback.assert_called_once()

    def test_pool_timeout(self):
        with pytest.raises(TransitionTimeoutError):
            with store_errors(MagicMock(), "Reading entry"):
                raise PoolTimeoutError("QueuePool limit reached")

    def test_connection_lost(self):
        with pytest.raises(PersistenceError) as exc_info:
            with store_errors(MagicMock(), "Reading entry"):
                raise OperationalError("SELECT 1", {}, Exception("server closed the connection"))
        assert "database unavailable" in str(exc_info.value)

    def test_other_database_errors(self):
        with pytest.raises(PersistenceError):
            with store_errors(MagicMock(), "Creating entry"):
                raise IntegrityError("INSERT ...", {}, Exception("duplicate"))


class TestSqlEntryRepository:

    def test_read_missing(self, db_session):
        assert SqlEntryRepository(db_session).read_entry(uuid.uuid4()) is None

    def test_create_and_read(self, db_session, seeded):
        school, category, creator, _ = seeded
        repo = SqlEntryRepository(db_session)
        now = utcnow()
        record = DataEntryRecord(
            id=uuid.uuid4(), category_id=category.id, school_id=school.id,
            created_by=creator.id, data={"a": 1}, created_at=now, updated_at=now,
        )

        repo.create_entry(record)

        stored = repo.read_entry(record.id)
        assert stored.status == EntryStatus.DRAFT
        assert stored.data == {"a": 1}

    def test_one_open_entry_per_pair(self, db_session, seeded):
        """The partial unique index refuses a second open entry."""
        school, category, creator, _ = seeded
        create_entry(db_session, category=category, school=school, created_by=creator)
        db_session.commit()

        duplicate = DataEntryRecord(
            id=uuid.uuid4(), category_id=category.id, school_id=school.id, created_by=creator.id,
        )
        with pytest.raises(InvalidTransitionError):
            SqlEntryRepository(db_session).create_entry(duplicate)

    def test_terminal_entries_do_not_block(self, db_session, seeded):
        school, category, creator, _ = seeded
        create_entry(db_session, category=category, school=school, created_by=creator, status="approved")
        create_entry(db_session, category=category, school=school, created_by=creator, status="rejected")
        db_session.commit()

        record = DataEntryRecord(
            id=uuid.uuid4(), category_id=category.id, school_id=school.id, created_by=creator.id,
        )
        SqlEntryRepository(db_session).create_entry(record)

    def test_compare_and_swap(self, db_session, seeded):
        school, category, creator, reviewer = seeded
        entry = create_entry(db_session, category=category, school=school, created_by=creator, status="submitted")
        db_session.commit()
        repo = SqlEntryRepository(db_session)
        now = utcnow()

        assert repo.compare_and_swap(
            entry.id, EntryStatus.SUBMITTED,
            {"status": EntryStatus.APPROVED, "approved_by": reviewer.id, "approved_at": now},
        )
        assert not repo.compare_and_swap(
            entry.id, EntryStatus.SUBMITTED,
            {"status": EntryStatus.REJECTED, "rejection_reason": "late"},
        )

        stored = repo.read_entry(entry.id)
        assert stored.status == EntryStatus.APPROVED
        assert stored.approved_by == reviewer.id
        assert stored.rejection_reason is None

    def test_list_and_count(self, db_session, seeded):
        school, category, creator, _ = seeded
        other = create_school(db_session, sector=school.sector)
        now = utcnow()
        late = create_entry(db_session, category=category, school=school, created_by=creator,
                            status="submitted", submitted_at=now)
        early = create_entry(db_session, category=category, school=other, created_by=creator,
                             status="submitted", submitted_at=now - timedelta(days=1))
        create_entry(db_session, category=category, school=other, created_by=creator, status="approved")
        db_session.commit()
        repo = SqlEntryRepository(db_session)

        pending, total = repo.list_entries(EntryQuery(statuses=[EntryStatus.SUBMITTED], oldest_first=True))
        scoped, scoped_total = repo.list_entries(EntryQuery(school_ids=[school.id]))
        none, none_total = repo.list_entries(EntryQuery(school_ids=[]))

        assert total == 2
        assert [e.id for e in pending] == [early.id, late.id]
        assert scoped_total == 1 and scoped[0].id == late.id
        assert none_total == 0 and none == []
        assert repo.count_by_status(category_id=category.id) == {
            EntryStatus.SUBMITTED: 2, EntryStatus.APPROVED: 1,
        }


class TestSqlHistoryRepository:

    def test_sequence_and_order(self, db_session, seeded):
        school, category, creator, reviewer = seeded
        entry = create_entry(db_session, category=category, school=school, created_by=creator)
        db_session.commit()
        repo = SqlHistoryRepository(db_session)

        first = repo.insert_history(make_history(entry.id, creator.id, EntryStatus.SUBMITTED))
        second = repo.insert_history(make_history(entry.id, reviewer.id, EntryStatus.APPROVED))

        assert (first.sequence, second.sequence) == (1, 2)
        rows = repo.list_history(entry.id)
        assert [r.sequence for r in rows] == [2, 1]
        assert rows[0].changed_by == reviewer.id
        assert rows[1].data == {"x": 1}


class TestRoleAuthorizer:

    def test_capability_follows_permission_and_scope(self, db_session, seeded):
        school, _, creator, reviewer = seeded
        far_reviewer = create_user(db_session, role_name="sectoradmin", sector=create_school(db_session).sector)
        inactive = create_user(db_session, role_name="superadmin", is_active=False)
        db_session.commit()
        authorizer = RoleAuthorizer(db_session)

        assert authorizer.has_approval_capability(reviewer.id, school.id)
        assert not authorizer.has_approval_capability(creator.id, school.id)
        assert not authorizer.has_approval_capability(far_reviewer.id, school.id)
        assert not authorizer.has_approval_capability(inactive.id, school.id)
        assert not authorizer.has_approval_capability(uuid.uuid4(), school.id)

    def test_approver_ids(self, db_session, seeded):
        school, _, _, reviewer = seeded
        assert RoleAuthorizer(db_session).approver_ids(school.id) == [reviewer.id]
        assert RoleAuthorizer(db_session).approver_ids(uuid.uuid4()) == []


class TestSqlColumnSource:

    def test_columns_in_order(self, db_session, seeded):
        _, category, _, _ = seeded
        columns = SqlColumnSource(db_session).columns_for(category.id)
        assert [c.name for c in columns] == ["B", "A"]
        assert columns[1].required


class TestGuardWithDatabase:

    def test_history_failure_restores_row(self, db_session, seeded):
        """The compensating write puts the row back as it was."""
        school, category, creator, reviewer = seeded
        entry = create_entry(db_session, category=category, school=school, created_by=creator, status="submitted")
        db_session.commit()
        guard = TransitionGuard(
            SqlEntryRepository(db_session),
            SqlHistoryRepository(db_session),
            RoleAuthorizer(db_session),
        )

        with patch.object(SqlHistoryRepository, "insert_history", side_effect=PersistenceError("disk full")):
            with pytest.raises(PersistenceError):
                guard.approve(entry.id, reviewer.id)

        db_session.expire_all()
        row = db_session.get(DataEntry, entry.id)
        assert row.status == "submitted"
        assert row.approved_by is None
        assert row.approved_at is None
        assert guard.history(entry.id) == []

    def test_approve_records_history(self, db_session, seeded):
        school, category, creator, reviewer = seeded
        entry = create_entry(db_session, category=category, school=school, created_by=creator, status="submitted")
        db_session.commit()
        guard = TransitionGuard(
            SqlEntryRepository(db_session),
            SqlHistoryRepository(db_session),
            RoleAuthorizer(db_session),
        )

        guard.approve(entry.id, reviewer.id, comment="ok")

        rows = guard.history(entry.id)
        assert len(rows) == 1
        assert rows[0].transition == EntryTransition.APPROVE
        assert rows[0].previous_status == EntryStatus.SUBMITTED
