"""Review API endpoints: pending queue, approve and reject."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from infoline.api.deps import get_db, get_current_user, get_entry_store, get_transition_guard, scoped_school_ids
from infoline.api.errors import http_error
from infoline.api.routers.data_entries import entry_response, finish
from infoline.api.schemas.common import PaginatedResponse
from infoline.api.schemas.entries import (
    DataEntryResponse,
    ApproveRequest,
    RejectRequest,
    BatchApproveRequest,
    BatchRejectRequest,
    BatchResponse,
)
from infoline.core.approval import TransitionGuard, WorkflowError
from infoline.core.entries import EntryStore
from infoline.core.rbac import require_permission
from infoline.db.models import User

router = APIRouter(prefix="/approvals", tags=["approvals"])


@router.get("/pending", response_model=PaginatedResponse[DataEntryResponse])
@require_permission("data_entries:approve")
async def list_pending_approvals(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    store: EntryStore = Depends(get_entry_store),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    category_id: Optional[UUID] = None,
    school_id: Optional[UUID] = None,
):
    """Submitted entries awaiting review, oldest first."""
    try:
        items, total = store.list_pending(
            category_id=category_id,
            school_id=school_id,
            school_ids=scoped_school_ids(db, current_user),
            limit=per_page,
            offset=(page - 1) * per_page,
        )
    except WorkflowError as e:
        raise http_error(e)

    return PaginatedResponse.create(
        items=[entry_response(item) for item in items],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.post("/{entry_id}/approve", response_model=DataEntryResponse)
@require_permission("data_entries:approve")
async def approve_entry(
    entry_id: UUID,
    body: ApproveRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    guard: TransitionGuard = Depends(get_transition_guard),
):
    try:
        entry = await run_in_threadpool(guard.approve, entry_id, current_user.id, body.comment)
        await finish(db, guard)
    except WorkflowError as e:
        db.rollback()
        raise http_error(e)

    return entry_response(entry)


@router.post("/{entry_id}/reject", response_model=DataEntryResponse)
@require_permission("data_entries:approve")
async def reject_entry(
    entry_id: UUID,
    body: RejectRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    guard: TransitionGuard = Depends(get_transition_guard),
):
    """Reject a submitted entry. A reason is required."""
    try:
        entry = await run_in_threadpool(guard.reject, entry_id, current_user.id, body.reason)
        await finish(db, guard)
    except WorkflowError as e:
        db.rollback()
        raise http_error(e)

    return entry_response(entry)


@router.post("/batch/approve", response_model=BatchResponse)
@require_permission("data_entries:approve")
async def batch_approve(
    body: BatchApproveRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    guard: TransitionGuard = Depends(get_transition_guard),
):
    """Approve several entries; failures are reported per entry."""
    results = await run_in_threadpool(guard.batch_approve, body.entry_ids, current_user.id, body.comment)
    await finish(db, guard)
    return BatchResponse(**results)


@router.post("/batch/reject", response_model=BatchResponse)
@require_permission("data_entries:approve")
async def batch_reject(
    body: BatchRejectRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    guard: TransitionGuard = Depends(get_transition_guard),
):
    """Reject several entries with one reason; a blank reason refuses the whole batch."""
    try:
        results = await run_in_threadpool(guard.batch_reject, body.entry_ids, current_user.id, body.reason)
    except WorkflowError as e:
        db.rollback()
        raise http_error(e)
    await finish(db, guard)
    return BatchResponse(**results)
