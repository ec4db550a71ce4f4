"""Permission model for InfoLine RBAC.

Permission string format: "resource:action"
Examples:
  - data_entries:submit
  - data_entries:approve
  - reports:read
"""

from enum import Enum
from typing import NamedTuple, FrozenSet


class Resource(str, Enum):
    """Resources that can be protected by permissions."""

    # Administrative hierarchy
    REGIONS = "regions"
    SECTORS = "sectors"
    SCHOOLS = "schools"

    # Data collection
    CATEGORIES = "categories"       # Categories and their columns
    DATA_ENTRIES = "data_entries"   # School submissions

    NOTIFICATIONS = "notifications"
    REPORTS = "reports"

    # User management
    USERS = "users"
    ROLES = "roles"


class Action(str, Enum):
    """Actions that can be performed on resources."""

    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    LIST = "list"

    SUBMIT = "submit"
    APPROVE = "approve"             # Approve or reject submitted entries
    MANAGE = "manage"


class Permission(NamedTuple):
    """A permission is a combination of resource and action."""
    resource: Resource
    action: Action

    def __str__(self) -> str:
        return f"{self.resource.value}:{self.action.value}"

    @classmethod
    def from_string(cls, perm_str: str) -> "Permission":
        """Parse a permission string like 'data_entries:read'."""
        parts = perm_str.split(":")
        if len(parts) != 2:
            raise ValueError(f"Invalid permission format: {perm_str}")
        return cls(Resource(parts[0]), Action(parts[1]))


_CRUD = frozenset([Action.CREATE, Action.READ, Action.UPDATE, Action.DELETE, Action.LIST])

PERMISSION_MATRIX: dict[Resource, FrozenSet[Action]] = {
    Resource.REGIONS: _CRUD,
    Resource.SECTORS: _CRUD,
    Resource.SCHOOLS: _CRUD,
    Resource.CATEGORIES: _CRUD,
    Resource.DATA_ENTRIES: frozenset([
        Action.CREATE, Action.READ, Action.UPDATE, Action.LIST,
        Action.SUBMIT, Action.APPROVE,
    ]),
    Resource.NOTIFICATIONS: frozenset([Action.READ, Action.LIST, Action.UPDATE, Action.DELETE]),
    Resource.REPORTS: frozenset([Action.READ]),
    Resource.USERS: _CRUD | {Action.MANAGE},
    Resource.ROLES: _CRUD | {Action.MANAGE},
}

PERMISSION_DEFINITIONS: dict[str, Permission] = {
    str(Permission(resource, action)): Permission(resource, action)
    for resource, actions in PERMISSION_MATRIX.items()
    for action in actions
}


def is_valid_permission(perm_str: str) -> bool:
    """Check if a permission string is valid (wildcards included)."""
    if perm_str == "*:*":
        return True
    if perm_str.endswith(":*"):
        return perm_str[:-2] in {r.value for r in Resource}
    return perm_str in PERMISSION_DEFINITIONS


def get_all_permissions() -> list[str]:
    """Get all valid permission strings."""
    return sorted(PERMISSION_DEFINITIONS.keys())
