"""Tests for the data entry endpoints."""

from uuid import uuid4

from fastapi.testclient import TestClient

from tests.factories import auth_headers, create_entry


def create_draft(client, world, data=None, user=None):
    user = user or world.school_admin
    return client.post(
        "/api/data-entries",
        json={"category_id": str(world.category.id), "data": data or {}},
        headers=auth_headers(user),
    )


class TestCreateEntry:

    def test_create_draft(self, client: TestClient, world):
        """School admins start drafts for their own school."""
        pupils = world.columns["Pupils"]

        response = create_draft(client, world, {pupils: "120"})

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "draft"
        assert body["school_id"] == str(world.school.id)
        assert body["created_by"] == str(world.school_admin.id)
        assert body["data"] == {pupils: 120}

    def test_requires_authentication(self, client: TestClient, world):
        response = client.post("/api/data-entries", json={"category_id": str(world.category.id)})
        assert response.status_code == 401

    def test_invalid_token(self, client: TestClient, world):
        response = client.get("/api/data-entries", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_reviewers_cannot_create(self, client: TestClient, world):
        response = create_draft(client, world, user=world.sector_admin)
        assert response.status_code == 403

    def test_global_user_must_name_school(self, client: TestClient, world):
        response = create_draft(client, world, user=world.superadmin)
        assert response.status_code == 400

    def test_school_outside_scope(self, client: TestClient, world):
        response = client.post(
            "/api/data-entries",
            json={"category_id": str(world.category.id), "school_id": str(world.neighbour.id)},
            headers=auth_headers(world.school_admin),
        )
        assert response.status_code == 403

    def test_unknown_category(self, client: TestClient, world):
        response = client.post(
            "/api/data-entries",
            json={"category_id": str(uuid4())},
            headers=auth_headers(world.school_admin),
        )
        assert response.status_code == 404

    def test_invalid_values(self, client: TestClient, world):
        response = create_draft(client, world, {world.columns["Shift"]: "three"})

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["error"] == "DataValidationError"
        assert world.columns["Shift"] in detail["errors"]

    def test_second_open_entry_conflicts(self, client: TestClient, world):
        assert create_draft(client, world).status_code == 201

        response = create_draft(client, world)

        assert response.status_code == 409
        assert response.json()["detail"]["error"] == "InvalidTransitionError"


class TestReadAndUpdate:

    def test_get_entry(self, client: TestClient, world):
        entry_id = create_draft(client, world).json()["id"]

        response = client.get(f"/api/data-entries/{entry_id}", headers=auth_headers(world.sector_admin))

        assert response.status_code == 200
        assert response.json()["id"] == entry_id

    def test_get_entry_outside_scope(self, client: TestClient, world):
        entry_id = create_draft(client, world).json()["id"]

        response = client.get(f"/api/data-entries/{entry_id}", headers=auth_headers(world.neighbour_admin))

        assert response.status_code == 403

    def test_get_missing_entry(self, client: TestClient, world):
        response = client.get(f"/api/data-entries/{uuid4()}", headers=auth_headers(world.school_admin))
        assert response.status_code == 404

    def test_update_draft(self, client: TestClient, world):
        pupils = world.columns["Pupils"]
        entry_id = create_draft(client, world, {pupils: 1}).json()["id"]

        response = client.put(
            f"/api/data-entries/{entry_id}",
            json={"data": {pupils: 2}},
            headers=auth_headers(world.school_admin),
        )

        assert response.status_code == 200
        assert response.json()["data"] == {pupils: 2}

    def test_update_submitted_entry_conflicts(self, client: TestClient, world, db_session):
        entry = create_entry(
            db_session, category=world.category, school=world.school,
            created_by=world.school_admin, status="submitted",
        )
        db_session.commit()

        response = client.put(
            f"/api/data-entries/{entry.id}",
            json={"data": {}},
            headers=auth_headers(world.school_admin),
        )

        assert response.status_code == 409
        assert response.json()["detail"]["current_status"] == "submitted"

    def test_list_is_scoped(self, client: TestClient, world, db_session):
        create_draft(client, world)
        create_entry(db_session, category=world.category, school=world.far_school, created_by=world.superadmin)
        db_session.commit()

        mine = client.get("/api/data-entries", headers=auth_headers(world.school_admin)).json()
        everything = client.get("/api/data-entries", headers=auth_headers(world.superadmin)).json()

        assert mine["total"] == 1
        assert everything["total"] == 2
        assert everything["pages"] == 1

    def test_list_by_status(self, client: TestClient, world, db_session):
        create_draft(client, world)
        create_entry(
            db_session, category=world.category, school=world.neighbour,
            created_by=world.neighbour_admin, status="approved",
        )
        db_session.commit()

        response = client.get(
            "/api/data-entries",
            params={"status": "approved"},
            headers=auth_headers(world.sector_admin),
        )

        assert response.status_code == 200
        assert [item["status"] for item in response.json()["items"]] == ["approved"]


class TestSubmit:

    def test_submit_draft(self, client: TestClient, world, notifier):
        """Submitting records history and tells the reviewers."""
        entry_id = create_draft(client, world, {world.columns["Pupils"]: 300}).json()["id"]

        response = client.post(f"/api/data-entries/{entry_id}/submit", headers=auth_headers(world.school_admin))

        assert response.status_code == 200
        assert response.json()["status"] == "submitted"
        assert response.json()["submitted_at"] is not None

        recipients = {sent[0] for sent in notifier.sent}
        assert recipients == {world.sector_admin.id, world.superadmin.id}

        history = client.get(
            f"/api/data-entries/{entry_id}/history", headers=auth_headers(world.school_admin),
        ).json()
        assert len(history) == 1
        assert history[0]["status"] == "submitted"
        assert history[0]["previous_status"] == "draft"
        assert history[0]["transition"] == "submit"
        assert history[0]["sequence"] == 1

    def test_submit_incomplete(self, client: TestClient, world, notifier):
        entry_id = create_draft(client, world).json()["id"]

        response = client.post(f"/api/data-entries/{entry_id}/submit", headers=auth_headers(world.school_admin))

        assert response.status_code == 422
        assert world.columns["Pupils"] in response.json()["detail"]["errors"]
        assert notifier.sent == []

    def test_submit_twice(self, client: TestClient, world):
        entry_id = create_draft(client, world, {world.columns["Pupils"]: 3}).json()["id"]
        headers = auth_headers(world.school_admin)
        client.post(f"/api/data-entries/{entry_id}/submit", headers=headers)

        response = client.post(f"/api/data-entries/{entry_id}/submit", headers=headers)

        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["current_status"] == "submitted"
        assert detail["transition"] == "submit"
        assert detail["entry_id"] == entry_id

    def test_available_transitions(self, client: TestClient, world):
        entry_id = create_draft(client, world, {world.columns["Pupils"]: 3}).json()["id"]

        creator_view = client.get(
            f"/api/data-entries/{entry_id}/transitions", headers=auth_headers(world.school_admin),
        ).json()
        reviewer_view = client.get(
            f"/api/data-entries/{entry_id}/transitions", headers=auth_headers(world.sector_admin),
        ).json()

        assert creator_view == {"entry_id": entry_id, "status": "draft", "available": ["submit"]}
        assert reviewer_view["available"] == []
