"""Permission checking utilities for InfoLine.

Permissions come from the user's role. Scope comes from the user row: a
user bound to a region, sector or school only acts on schools inside it.
"""

from functools import wraps
from typing import Callable, Iterable, Optional, Union
from uuid import UUID

from fastapi import HTTPException, status

from .permissions import Permission

PermissionLike = Union[str, Permission]


def _as_string(permission: PermissionLike) -> str:
    return str(permission) if isinstance(permission, Permission) else permission


class PermissionChecker:
    """Answers permission questions for one role's permission list.

    ``resource:*`` grants every action on a resource and ``*:*`` grants
    everything.
    """

    def __init__(self, user_permissions: Iterable[str]):
        self.permissions = frozenset(user_permissions)

    def has_permission(self, permission: PermissionLike) -> bool:
        wanted = _as_string(permission)
        if "*:*" in self.permissions or wanted in self.permissions:
            return True
        resource, sep, _ = wanted.partition(":")
        return bool(sep) and f"{resource}:*" in self.permissions

    def check(self, permissions: Iterable[PermissionLike], *, require_all: bool = False) -> bool:
        """True if any (or, with ``require_all``, every) permission is held."""
        results = (self.has_permission(p) for p in permissions)
        return all(results) if require_all else any(results)


def has_permission(user, permission: PermissionLike) -> bool:
    """Check a permission for an active user with a role."""
    if not user or not user.role or not user.is_active:
        return False
    return PermissionChecker(user.role.permissions or []).has_permission(permission)


def scope_covers(
    user,
    *,
    school_id: Optional[UUID] = None,
    sector_id: Optional[UUID] = None,
    region_id: Optional[UUID] = None,
) -> bool:
    """
    Check if a school (given by its id, sector and region) is inside the user's scope.

    Users without any scope binding are global.
    """
    if user.school_id is not None:
        return school_id is not None and user.school_id == school_id
    if user.sector_id is not None:
        return sector_id is not None and user.sector_id == sector_id
    if user.region_id is not None:
        return region_id is not None and user.region_id == region_id
    return True


def require_permission(*permissions: PermissionLike, require_all: bool = False):
    """
    Decorator factory for FastAPI endpoints requiring specific permissions.

    Args:
        permissions: One or more permission strings or Permission objects
        require_all: If True, user must have ALL permissions. Default: any one.

    Usage:
        @router.post("/data-entries/{id}/submit")
        @require_permission("data_entries:submit")
        async def submit_entry(id: UUID, current_user: User = Depends(get_current_user)):
            ...
    """
    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            current_user = kwargs.get("current_user")
            if not current_user:
                raise HTTPException(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    detail="Authentication required"
                )

            if not current_user.role:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="User has no assigned role"
                )

            perm_strs = [_as_string(p) for p in permissions]
            checker = PermissionChecker(current_user.role.permissions or [])
            if not checker.check(perm_strs, require_all=require_all):
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"Insufficient permissions. Required: {', '.join(perm_strs)}"
                )

            return await func(*args, **kwargs)

        return wrapper
    return decorator
