from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from app.models.notice import NoticeCategory, NoticePriority
from app.schemas.common import UserRef


class NoticeCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)
    category: NoticeCategory = NoticeCategory.GENERAL
    priority: NoticePriority = NoticePriority.MEDIUM
    is_active: bool = True


class NoticeUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    content: Optional[str] = Field(None, min_length=1)
    category: Optional[NoticeCategory] = None
    priority: Optional[NoticePriority] = None
    is_active: Optional[bool] = None


class NoticeResponse(BaseModel):
    id: str
    title: str
    content: str
    category: NoticeCategory
    priority: NoticePriority
    is_active: bool
    created_by: Optional[UserRef] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
