from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime

from app.schemas.common import ImageInfo, UserRef


class CommentCreate(BaseModel):
    text: str = Field(..., max_length=2000)

    @field_validator('text')
    @classmethod
    def not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Comment text is required")
        return v


class CommentResponse(BaseModel):
    id: str
    user: Optional[UserRef] = None
    text: str
    created_at: datetime

    class Config:
        from_attributes = True


class MemoryPostResponse(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    images: List[ImageInfo] = []
    event_date: Optional[datetime] = None
    posted_by: Optional[UserRef] = None
    likes: List[UserRef] = []
    like_count: int = 0
    comments: List[CommentResponse] = []
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
