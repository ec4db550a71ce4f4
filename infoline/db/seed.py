"""Database seeding for InfoLine.

Creates the default roles and a first superadmin profile.
"""

import uuid
from typing import Optional

from sqlalchemy.orm import Session

from infoline.db.models import Role, User
from infoline.core.rbac.roles import DEFAULT_ROLES


def seed_default_roles(db: Session) -> dict[str, Role]:
    """
    Create the default roles.

    Idempotent: roles that already exist are returned unchanged.

    Returns:
        Dict mapping role name to Role object
    """
    roles = {}

    for name, role_config in DEFAULT_ROLES.items():
        existing = get_role_by_name(db, name)
        if existing:
            roles[name] = existing
            continue

        role = Role(
            id=uuid.uuid4(),
            name=name,
            description=role_config["description"],
            permissions=role_config["permissions"],
            is_system=role_config["is_system"],
        )
        db.add(role)
        roles[name] = role

    db.flush()
    return roles


def seed_superadmin(db: Session, email: str, full_name: Optional[str] = None) -> User:
    """Create the superadmin profile for an auth-provider account, if missing."""
    existing = db.query(User).filter(User.email == email).first()
    if existing:
        return existing

    role = seed_default_roles(db)["superadmin"]
    user = User(id=uuid.uuid4(), email=email, full_name=full_name, role_id=role.id)
    db.add(user)
    db.flush()
    return user


def get_role_by_name(db: Session, name: str) -> Optional[Role]:
    return db.query(Role).filter(Role.name == name).first()


# CLI script for seeding
if __name__ == "__main__":
    import sys
    from infoline.db.session import SessionLocal

    db = SessionLocal()
    try:
        roles = seed_default_roles(db)
        print(f"Roles: {', '.join(sorted(roles))}")
        if len(sys.argv) > 1:
            admin = seed_superadmin(db, sys.argv[1])
            print(f"Superadmin: {admin.email} (ID: {admin.id})")
        db.commit()
    finally:
        db.close()
