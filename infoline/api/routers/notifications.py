"""In-app notification endpoints for the current user."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from infoline.api.deps import get_db, get_current_user
from infoline.core.rbac import require_permission
from infoline.db.models import User
from infoline.services.notifications import NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"])


class NotificationResponse(BaseModel):
    id: UUID
    title: str
    message: str
    type: str
    is_read: bool
    entity_type: Optional[str]
    entity_id: Optional[UUID]
    action_url: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class UnreadCountResponse(BaseModel):
    unread: int


class MarkAllReadResponse(BaseModel):
    updated: int


@router.get("", response_model=List[NotificationResponse])
@require_permission("notifications:list")
async def list_notifications(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    is_read: Optional[bool] = None,
    type: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[UUID] = None,
    limit: int = Query(50, ge=1, le=200),
):
    return NotificationService(db).list_for_user(
        current_user.id,
        is_read=is_read,
        type=type,
        entity_type=entity_type,
        entity_id=entity_id,
        limit=limit,
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
@require_permission("notifications:read")
async def unread_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return UnreadCountResponse(unread=NotificationService(db).unread_count(current_user.id))


@router.post("/read-all", response_model=MarkAllReadResponse)
@require_permission("notifications:update")
async def mark_all_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    updated = NotificationService(db).mark_all_read(current_user.id)
    db.commit()
    return MarkAllReadResponse(updated=updated)


@router.post("/{notification_id}/read", status_code=status.HTTP_204_NO_CONTENT)
@require_permission("notifications:update")
async def mark_read(
    notification_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not NotificationService(db).mark_read(notification_id, current_user.id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    db.commit()


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
@require_permission("notifications:delete")
async def delete_notification(
    notification_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not NotificationService(db).delete(notification_id, current_user.id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    db.commit()
