"""Default role definitions for InfoLine.

Defines the 4 standard roles with their permission sets:
1. superadmin - Full system access
2. regionadmin - Manages a region; reviews entries of its schools
3. sectoradmin - Reviews entries of the schools in its sector
4. schooladmin - Fills in and submits entries for one school
"""

from typing import Dict, List
from .permissions import Resource, Action, Permission


def _build_permissions(*perms: tuple) -> List[str]:
    """Build permission strings from (Resource, Action) tuples."""
    return [str(Permission(r, a)) for r, a in perms]


SUPERADMIN_PERMISSIONS = [
    "*:*"  # Global wildcard - all permissions
]

_REVIEWER_PERMISSIONS = (
    (Resource.SCHOOLS, Action.READ),
    (Resource.SCHOOLS, Action.LIST),
    (Resource.CATEGORIES, Action.READ),
    (Resource.CATEGORIES, Action.LIST),
    (Resource.DATA_ENTRIES, Action.READ),
    (Resource.DATA_ENTRIES, Action.LIST),
    (Resource.DATA_ENTRIES, Action.APPROVE),
    (Resource.REPORTS, Action.READ),
    (Resource.NOTIFICATIONS, Action.READ),
    (Resource.NOTIFICATIONS, Action.LIST),
    (Resource.NOTIFICATIONS, Action.UPDATE),
    (Resource.NOTIFICATIONS, Action.DELETE),
)

REGIONADMIN_PERMISSIONS = _build_permissions(
    *_REVIEWER_PERMISSIONS,
    (Resource.SECTORS, Action.CREATE),
    (Resource.SECTORS, Action.READ),
    (Resource.SECTORS, Action.UPDATE),
    (Resource.SECTORS, Action.LIST),
    (Resource.SCHOOLS, Action.CREATE),
    (Resource.SCHOOLS, Action.UPDATE),
    (Resource.USERS, Action.READ),
    (Resource.USERS, Action.LIST),
)

SECTORADMIN_PERMISSIONS = _build_permissions(
    *_REVIEWER_PERMISSIONS,
    (Resource.SECTORS, Action.READ),
)

SCHOOLADMIN_PERMISSIONS = _build_permissions(
    (Resource.SCHOOLS, Action.READ),
    (Resource.CATEGORIES, Action.READ),
    (Resource.CATEGORIES, Action.LIST),
    (Resource.DATA_ENTRIES, Action.CREATE),
    (Resource.DATA_ENTRIES, Action.READ),
    (Resource.DATA_ENTRIES, Action.UPDATE),
    (Resource.DATA_ENTRIES, Action.LIST),
    (Resource.DATA_ENTRIES, Action.SUBMIT),
    (Resource.NOTIFICATIONS, Action.READ),
    (Resource.NOTIFICATIONS, Action.LIST),
    (Resource.NOTIFICATIONS, Action.UPDATE),
    (Resource.NOTIFICATIONS, Action.DELETE),
)


DEFAULT_ROLES: Dict[str, Dict] = {
    "superadmin": {
        "description": "Full system access",
        "permissions": SUPERADMIN_PERMISSIONS,
        "is_system": True,
    },
    "regionadmin": {
        "description": "Region administrator; reviews entries of the region's schools",
        "permissions": REGIONADMIN_PERMISSIONS,
        "is_system": True,
    },
    "sectoradmin": {
        "description": "Sector administrator; reviews entries of the sector's schools",
        "permissions": SECTORADMIN_PERMISSIONS,
        "is_system": True,
    },
    "schooladmin": {
        "description": "School administrator; fills in and submits data entries",
        "permissions": SCHOOLADMIN_PERMISSIONS,
        "is_system": True,
    },
}


def get_role_permissions(role_name: str) -> List[str]:
    """Get permissions for a default role by name."""
    role = DEFAULT_ROLES.get(role_name.lower())
    if role:
        return role["permissions"]
    return []
