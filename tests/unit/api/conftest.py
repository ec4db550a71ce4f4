"""Fixtures for API tests: a small hierarchy with one user per role."""

from types import SimpleNamespace

import pytest

from tests.factories import (
    create_category,
    create_school,
    create_sector,
    create_user,
    column_ids,
)


@pytest.fixture
def world(db_session):
    """Two schools in one sector, one school elsewhere, and their users.

    Everything is committed: request handlers roll the session back on
    failure.
    """
    sector = create_sector(db_session)
    school = create_school(db_session, sector=sector)
    neighbour = create_school(db_session, sector=sector)
    far_school = create_school(db_session)
    category = create_category(db_session, columns=[
        {"name": "Pupils", "type": "number", "is_required": True},
        {"name": "Shift", "type": "select", "options": ["one", "two"]},
    ])

    ns = SimpleNamespace(
        sector=sector,
        school=school,
        neighbour=neighbour,
        far_school=far_school,
        category=category,
        school_admin=create_user(db_session, role_name="schooladmin", school=school),
        neighbour_admin=create_user(db_session, role_name="schooladmin", school=neighbour),
        sector_admin=create_user(db_session, role_name="sectoradmin", sector=sector),
        far_sector_admin=create_user(db_session, role_name="sectoradmin", sector=far_school.sector),
        superadmin=create_user(db_session, role_name="superadmin"),
    )
    ns.columns = column_ids(category)
    db_session.commit()
    return ns
