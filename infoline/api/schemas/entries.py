"""Data entry request and response schemas."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class DataEntryCreate(BaseModel):
    category_id: UUID
    school_id: Optional[UUID] = None  # defaults to the user's school
    data: Dict[str, Any] = Field(default_factory=dict)


class DataEntryUpdate(BaseModel):
    data: Dict[str, Any]


class DataEntryResponse(BaseModel):
    id: UUID
    category_id: UUID
    school_id: UUID
    created_by: UUID
    data: Dict[str, Any]
    status: str
    submitted_at: Optional[datetime] = None
    approved_by: Optional[UUID] = None
    approved_at: Optional[datetime] = None
    approval_comment: Optional[str] = None
    rejected_by: Optional[UUID] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class HistoryResponse(BaseModel):
    id: UUID
    sequence: int
    status: str
    previous_status: Optional[str] = None
    transition: Optional[str] = None
    changed_by: UUID
    changed_at: datetime
    comment: Optional[str] = None
    data: Dict[str, Any]

    class Config:
        from_attributes = True


class TransitionsResponse(BaseModel):
    entry_id: UUID
    status: str
    available: List[str]


class ApproveRequest(BaseModel):
    comment: Optional[str] = None


class RejectRequest(BaseModel):
    reason: str


class BatchApproveRequest(BaseModel):
    entry_ids: List[UUID] = Field(..., min_length=1, max_length=100)
    comment: Optional[str] = None


class BatchRejectRequest(BaseModel):
    entry_ids: List[UUID] = Field(..., min_length=1, max_length=100)
    reason: str


class BatchResponse(BaseModel):
    approved: List[str] = []
    rejected: List[str] = []
    failed: List[dict] = []
