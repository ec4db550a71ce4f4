"""End-to-end data entry workflow through the HTTP API.

Notifications go through the real in-app notifier, so the creator's inbox
is checked at the end of each flow.
"""

import pytest
from fastapi.testclient import TestClient

from infoline.core.config import Settings
from infoline.services.notifications import DeferredNotifier, InAppNotifier

from tests.factories import (
    auth_headers,
    column_ids,
    create_category,
    create_school,
    create_sector,
    create_user,
)


pytestmark = pytest.mark.integration


@pytest.fixture
def flow_client(db_session, session_factory):
    from infoline.api.deps import get_db, get_notifier
    from infoline.api.main import app

    settings = Settings(_env_file=None, database_url="sqlite://")
    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[get_notifier] = lambda: DeferredNotifier(InAppNotifier(session_factory, settings))
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def people(db_session):
    sector = create_sector(db_session)
    school = create_school(db_session, sector=sector)
    category = create_category(db_session)
    school_admin = create_user(db_session, role_name="schooladmin", school=school)
    reviewer = create_user(db_session, role_name="sectoradmin", sector=sector)
    db_session.commit()
    return school, category, school_admin, reviewer


class TestDataEntryFlow:

    def test_draft_submit_approve(self, flow_client: TestClient, people):
        school, category, school_admin, reviewer = people
        pupils = column_ids(category)["Pupils"]
        admin = auth_headers(school_admin)
        review = auth_headers(reviewer)

        created = flow_client.post(
            "/api/data-entries", json={"category_id": str(category.id), "data": {}}, headers=admin,
        )
        assert created.status_code == 201
        entry_id = created.json()["id"]

        assert flow_client.post(f"/api/data-entries/{entry_id}/submit", headers=admin).status_code == 422

        updated = flow_client.put(f"/api/data-entries/{entry_id}", json={"data": {pupils: 512}}, headers=admin)
        assert updated.status_code == 200

        submitted = flow_client.post(f"/api/data-entries/{entry_id}/submit", headers=admin)
        assert submitted.status_code == 200

        reviewer_inbox = flow_client.get("/api/notifications", headers=review).json()
        assert [n["title"] for n in reviewer_inbox] == ["Data entry submitted"]
        assert reviewer_inbox[0]["action_url"] == f"/data-entries/{entry_id}"

        pending = flow_client.get("/api/approvals/pending", headers=review).json()
        assert [item["id"] for item in pending["items"]] == [entry_id]

        approved = flow_client.post(f"/api/approvals/{entry_id}/approve", json={"comment": "Thanks"}, headers=review)
        assert approved.status_code == 200
        assert approved.json()["status"] == "approved"

        history = flow_client.get(f"/api/data-entries/{entry_id}/history", headers=admin).json()
        assert [h["status"] for h in history] == ["approved", "submitted"]
        assert [h["sequence"] for h in history] == [2, 1]
        assert history[1]["data"] == {pupils: 512}

        inbox = flow_client.get("/api/notifications", headers=admin).json()
        assert inbox[0]["title"] == "Data entry approved"
        assert inbox[0]["type"] == "success"

        assert flow_client.get("/api/approvals/pending", headers=review).json()["total"] == 0

        # An approved entry is final, but the pair is open for a new draft
        assert flow_client.post(f"/api/data-entries/{entry_id}/submit", headers=admin).status_code == 409
        again = flow_client.post(
            "/api/data-entries", json={"category_id": str(category.id)}, headers=admin,
        )
        assert again.status_code == 201

    def test_reject_flow(self, flow_client: TestClient, people):
        school, category, school_admin, reviewer = people
        pupils = column_ids(category)["Pupils"]
        admin = auth_headers(school_admin)
        review = auth_headers(reviewer)

        entry_id = flow_client.post(
            "/api/data-entries", json={"category_id": str(category.id), "data": {pupils: 7}}, headers=admin,
        ).json()["id"]
        flow_client.post(f"/api/data-entries/{entry_id}/submit", headers=admin)

        rejected = flow_client.post(
            f"/api/approvals/{entry_id}/reject", json={"reason": "Count looks too low"}, headers=review,
        )
        assert rejected.status_code == 200

        inbox = flow_client.get("/api/notifications", headers=admin).json()
        assert inbox[0]["title"] == "Data entry rejected"
        assert "Count looks too low" in inbox[0]["message"]
        assert inbox[0]["type"] == "warning"

        transitions = flow_client.get(f"/api/data-entries/{entry_id}/transitions", headers=review).json()
        assert transitions == {"entry_id": entry_id, "status": "rejected", "available": []}

        report = flow_client.get(
            "/api/reports/completion", params={"category_id": str(category.id)}, headers=review,
        ).json()
        assert report["counts"]["rejected"] == 1
        assert report["completion_rate"] == 0.0
