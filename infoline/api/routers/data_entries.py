"""Data entry API endpoints: drafts, submission and history."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status, Query
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from infoline.api.deps import (
    get_db,
    get_current_user,
    get_entry_store,
    get_transition_guard,
    scoped_school_ids,
    ensure_school_access,
)
from infoline.api.errors import http_error
from infoline.api.schemas.common import PaginatedResponse
from infoline.api.schemas.entries import (
    DataEntryCreate,
    DataEntryUpdate,
    DataEntryResponse,
    HistoryResponse,
    TransitionsResponse,
)
from infoline.core.approval import TransitionGuard, WorkflowError, EntryStatus, DataEntryRecord, HistoryRecord
from infoline.core.entries import EntryStore
from infoline.core.rbac import require_permission
from infoline.db.models import Category, User

router = APIRouter(prefix="/data-entries", tags=["data-entries"])


def entry_response(record: DataEntryRecord) -> DataEntryResponse:
    return DataEntryResponse(**record.to_dict())


def history_response(record: HistoryRecord) -> HistoryResponse:
    return HistoryResponse(
        id=record.id,
        sequence=record.sequence,
        status=record.status.value,
        previous_status=record.previous_status.value if record.previous_status else None,
        transition=record.transition.value if record.transition else None,
        changed_by=record.changed_by,
        changed_at=record.changed_at,
        comment=record.comment,
        data=record.data,
    )


def load_entry(db: Session, store: EntryStore, user: User, entry_id: UUID) -> DataEntryRecord:
    """Fetch an entry the user may see."""
    try:
        entry = store.get(entry_id)
    except WorkflowError as e:
        raise http_error(e)
    ensure_school_access(db, user, entry.school_id)
    return entry


async def finish(db: Session, guard: Optional[TransitionGuard] = None) -> None:
    """Commit the request and release buffered notifications.

    Delivery may call a webhook, so the flush runs in the threadpool.
    """
    db.commit()
    if guard is not None and guard.notifier is not None:
        await run_in_threadpool(guard.notifier.flush)


@router.post("", response_model=DataEntryResponse, status_code=status.HTTP_201_CREATED)
@require_permission("data_entries:create")
async def create_entry(
    body: DataEntryCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    store: EntryStore = Depends(get_entry_store),
):
    """Start a draft for one of the user's schools."""
    school_id = body.school_id or current_user.school_id
    if school_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="school_id is required")
    ensure_school_access(db, current_user, school_id)
    if db.get(Category, body.category_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")

    try:
        entry = store.create_draft(body.category_id, school_id, current_user.id, body.data)
        db.commit()
    except WorkflowError as e:
        db.rollback()
        raise http_error(e)

    return entry_response(entry)


@router.get("", response_model=PaginatedResponse[DataEntryResponse])
@require_permission("data_entries:list")
async def list_entries(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    store: EntryStore = Depends(get_entry_store),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    category_id: Optional[UUID] = None,
    school_id: Optional[UUID] = None,
    status_filter: Optional[List[EntryStatus]] = Query(None, alias="status"),
):
    """List entries inside the user's scope, newest first."""
    try:
        items, total = store.list(
            category_id=category_id,
            school_id=school_id,
            school_ids=scoped_school_ids(db, current_user),
            statuses=status_filter,
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


@router.get("/{entry_id}", response_model=DataEntryResponse)
@require_permission("data_entries:read")
async def get_entry(
    entry_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    store: EntryStore = Depends(get_entry_store),
):
    return entry_response(load_entry(db, store, current_user, entry_id))


@router.put("/{entry_id}", response_model=DataEntryResponse)
@require_permission("data_entries:update")
async def update_entry(
    entry_id: UUID,
    body: DataEntryUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    store: EntryStore = Depends(get_entry_store),
):
    """Replace the values of a draft."""
    load_entry(db, store, current_user, entry_id)
    try:
        entry = store.update_draft(entry_id, current_user.id, body.data)
        db.commit()
    except WorkflowError as e:
        db.rollback()
        raise http_error(e)

    return entry_response(entry)


@router.post("/{entry_id}/submit", response_model=DataEntryResponse)
@require_permission("data_entries:submit")
async def submit_entry(
    entry_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    guard: TransitionGuard = Depends(get_transition_guard),
):
    """Send a draft for review."""
    try:
        entry = await run_in_threadpool(guard.submit, entry_id, current_user.id)
        await finish(db, guard)
    except WorkflowError as e:
        db.rollback()
        raise http_error(e)

    return entry_response(entry)


@router.get("/{entry_id}/history", response_model=List[HistoryResponse])
@require_permission("data_entries:read")
async def get_entry_history(
    entry_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    store: EntryStore = Depends(get_entry_store),
    guard: TransitionGuard = Depends(get_transition_guard),
):
    """Status changes of an entry, newest first."""
    load_entry(db, store, current_user, entry_id)
    try:
        return [history_response(h) for h in guard.history(entry_id)]
    except WorkflowError as e:
        raise http_error(e)


@router.get("/{entry_id}/transitions", response_model=TransitionsResponse)
@require_permission("data_entries:read")
async def get_available_transitions(
    entry_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    store: EntryStore = Depends(get_entry_store),
    guard: TransitionGuard = Depends(get_transition_guard),
):
    """What the user can do with the entry right now."""
    entry = load_entry(db, store, current_user, entry_id)
    try:
        available = guard.available_transitions(entry_id, current_user.id)
    except WorkflowError as e:
        raise http_error(e)

    return TransitionsResponse(
        entry_id=entry_id,
        status=entry.status.value,
        available=[t.value for t in available],
    )
