"""RBAC (Role-Based Access Control) module for InfoLine.

This module defines the permission model, role definitions, and access control utilities.
"""

from .permissions import Permission, Resource, Action, PERMISSION_DEFINITIONS
from .checker import PermissionChecker, has_permission, scope_covers, require_permission
from .roles import DEFAULT_ROLES

__all__ = [
    "Permission",
    "Resource",
    "Action",
    "PERMISSION_DEFINITIONS",
    "PermissionChecker",
    "has_permission",
    "scope_covers",
    "require_permission",
    "DEFAULT_ROLES",
]
