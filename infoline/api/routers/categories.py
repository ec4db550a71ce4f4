"""Category and column definition endpoints."""

from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from infoline.api.deps import get_db, get_current_user
from infoline.core.payload import ColumnKind
from infoline.core.rbac import require_permission
from infoline.db.models import Category, CategoryColumn, User

router = APIRouter(prefix="/categories", tags=["categories"])


# Schemas
class ColumnCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    type: ColumnKind
    is_required: bool = False
    options: List[Any] = Field(default_factory=list)
    order_index: Optional[int] = None

    @field_validator("options")
    @classmethod
    def options_are_values(cls, v):
        for option in v:
            if isinstance(option, dict) and "value" not in option and "label" not in option:
                raise ValueError("option objects need a 'value' or 'label'")
        return v


class ColumnResponse(BaseModel):
    id: UUID
    name: str
    type: str
    is_required: bool
    options: List[Any]
    order_index: int

    class Config:
        from_attributes = True


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    deadline: Optional[datetime] = None
    columns: List[ColumnCreate] = Field(default_factory=list)


class CategoryResponse(BaseModel):
    id: UUID
    name: str
    description: Optional[str]
    status: str
    deadline: Optional[datetime]
    created_at: datetime
    columns: List[ColumnResponse] = []

    class Config:
        from_attributes = True


def _add_column(db: Session, category: Category, body: ColumnCreate, default_index: int) -> CategoryColumn:
    if body.type == ColumnKind.SELECT and not body.options:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Select column '{body.name}' needs options",
        )
    column = CategoryColumn(
        category_id=category.id,
        name=body.name,
        type=body.type.value,
        is_required=body.is_required,
        options=body.options,
        order_index=body.order_index if body.order_index is not None else default_index,
    )
    db.add(column)
    return column


# Endpoints
@router.get("", response_model=List[CategoryResponse])
@require_permission("categories:list")
async def list_categories(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    include_archived: bool = False,
):
    query = db.query(Category)
    if not include_archived:
        query = query.filter(Category.status == "active")
    return query.order_by(Category.name).all()


@router.get("/{category_id}", response_model=CategoryResponse)
@require_permission("categories:read")
async def get_category(
    category_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    category = db.get(Category, category_id)
    if not category:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return category


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
@require_permission("categories:create")
async def create_category(
    body: CategoryCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    category = Category(name=body.name, description=body.description, deadline=body.deadline)
    db.add(category)
    try:
        db.flush()
        for index, column in enumerate(body.columns):
            _add_column(db, category, column, index)
        db.commit()
    except HTTPException:
        db.rollback()
        raise
    db.refresh(category)
    return category


@router.post("/{category_id}/columns", response_model=ColumnResponse, status_code=status.HTTP_201_CREATED)
@require_permission("categories:update")
async def add_column(
    category_id: UUID,
    body: ColumnCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    category = db.get(Category, category_id)
    if not category:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")

    column = _add_column(db, category, body, len(category.columns))
    db.commit()
    db.refresh(column)
    return column
