"""Reporting endpoints."""

from typing import Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from infoline.api.deps import get_db, get_current_user, get_entry_store, ensure_school_access, scoped_school_ids
from infoline.api.errors import http_error
from infoline.core.approval import WorkflowError
from infoline.core.entries import EntryStore
from infoline.core.rbac import require_permission
from infoline.db.models import User

router = APIRouter(prefix="/reports", tags=["reports"])


class CompletionReport(BaseModel):
    category_id: Optional[UUID] = None
    school_id: Optional[UUID] = None
    counts: Dict[str, int]
    completion_rate: float  # share of entries that are approved


@router.get("/completion", response_model=CompletionReport)
@require_permission("reports:read")
async def completion_report(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    store: EntryStore = Depends(get_entry_store),
    category_id: Optional[UUID] = None,
    school_id: Optional[UUID] = None,
):
    """Entry counts per status for a category and/or school, within the user's scope."""
    school_ids = None
    if school_id is not None:
        ensure_school_access(db, current_user, school_id)
    else:
        school_ids = scoped_school_ids(db, current_user)

    try:
        counts = store.status_summary(category_id=category_id, school_id=school_id, school_ids=school_ids)
    except WorkflowError as e:
        raise http_error(e)

    total = counts["total"]
    return CompletionReport(
        category_id=category_id,
        school_id=school_id,
        counts=counts,
        completion_rate=round(counts["approved"] / total, 4) if total else 0.0,
    )
