"""
Users API

Admin listing of society members with pagination, search and role filter.
The front end uses `?role=resident` to fill resident pickers.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, or_
from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime

from app.core.database import get_db
from app.models.user import User, UserRole
from app.modules.auth.dependencies import get_current_admin
from app.utils.pagination import paginate

router = APIRouter()


def _escape_like(value: str) -> str:
    """Match % and _ literally in ILIKE patterns"""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class UserListItem(BaseModel):
    """User item in list response"""
    id: str
    full_name: str
    email: str
    phone_no: Optional[str] = None
    wing: Optional[str] = None
    flat_no: Optional[str] = None
    role: UserRole
    is_active: bool
    is_verified: bool
    created_at: datetime
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True


class PaginatedUsersResponse(BaseModel):
    """Paginated users response"""
    success: bool = True
    items: List[UserListItem]
    total: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool


@router.get("", response_model=PaginatedUsersResponse)
async def list_users(
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
    search: Optional[str] = Query(None, description="Search by name, email, wing or flat number"),
    role: Optional[UserRole] = Query(None, description="Filter by role"),
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """List society members (admin only)"""
    query = select(User)

    if search:
        term = f"%{_escape_like(search.strip())}%"
        query = query.where(or_(
            User.full_name.ilike(term, escape="\\"),
            User.email.ilike(term, escape="\\"),
            User.wing.ilike(term, escape="\\"),
            User.flat_no.ilike(term, escape="\\"),
        ))

    if role:
        query = query.where(User.role == role)

    query = query.order_by(User.wing, User.flat_no, User.full_name)

    result = await paginate(db, query, page=page, page_size=page_size)
    result["items"] = [UserListItem.model_validate(u) for u in result["items"]]
    return result
