from typing import Generator, List, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from infoline.core.approval import TransitionGuard
from infoline.core.config import get_settings
from infoline.core.entries import EntryStore
from infoline.core.rbac import scope_covers
from infoline.core.security import decode_token
from infoline.db.models import School, User
from infoline.db.repositories import (
    RoleAuthorizer,
    SqlColumnSource,
    SqlEntryRepository,
    SqlHistoryRepository,
)
from infoline.db.session import SessionLocal
from infoline.services.notifications import DeferredNotifier, build_notifier

# Tokens are issued by the hosted auth provider
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/v1/token", auto_error=False)


def get_db() -> Generator:
    """Database session dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_user(
    db: Session = Depends(get_db),
    token: str = Depends(oauth2_scheme),
) -> User:
    """Get current authenticated user from the bearer token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if token:
        user_id = decode_token(token)
        if user_id:
            user = db.query(User).filter(User.id == user_id).first()
            if user and user.is_active:
                return user

    raise credentials_exception


def get_notifier() -> Optional[DeferredNotifier]:
    """Per-request notifier; routers flush it after their commit."""
    inner = build_notifier(get_settings(), SessionLocal)
    return DeferredNotifier(inner) if inner is not None else None


def get_entry_store(db: Session = Depends(get_db)) -> EntryStore:
    return EntryStore(SqlEntryRepository(db), SqlColumnSource(db))


def get_transition_guard(
    db: Session = Depends(get_db),
    notifier: Optional[DeferredNotifier] = Depends(get_notifier),
) -> TransitionGuard:
    settings = get_settings()
    return TransitionGuard(
        SqlEntryRepository(db),
        SqlHistoryRepository(db),
        RoleAuthorizer(db),
        notifier=notifier,
        columns=SqlColumnSource(db),
        max_retries=settings.transition_max_retries,
        retry_delay=settings.transition_retry_delay,
        timeout=settings.request_timeout_seconds,
    )


def scoped_school_ids(db: Session, user: User) -> Optional[List[UUID]]:
    """Schools inside the user's scope, or None when the user is global."""
    if user.school_id is not None:
        return [user.school_id]
    if user.sector_id is not None:
        return [s.id for s in db.query(School.id).filter(School.sector_id == user.sector_id)]
    if user.region_id is not None:
        return [s.id for s in db.query(School.id).filter(School.region_id == user.region_id)]
    return None


def ensure_school_access(db: Session, user: User, school_id: UUID) -> School:
    """Load a school the user may act on; 404 if missing, 403 if outside scope."""
    school = db.get(School, school_id)
    if school is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="School not found")
    if not scope_covers(user, school_id=school.id, sector_id=school.sector_id, region_id=school.region_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="School is outside your scope")
    return school
