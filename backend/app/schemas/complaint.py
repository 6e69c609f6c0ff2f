from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from app.models.complaint import ComplaintCategory, ComplaintStatus
from app.schemas.common import ImageInfo


# Fields a resident may change on their own pending complaint
RESIDENT_EDITABLE_FIELDS = {"title", "description", "category"}


class ComplaintRaiser(BaseModel):
    id: str
    full_name: str
    wing: Optional[str] = None
    flat_no: Optional[str] = None
    phone_no: Optional[str] = None

    class Config:
        from_attributes = True


class ComplaintUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    category: Optional[ComplaintCategory] = None
    status: Optional[ComplaintStatus] = None
    admin_comments: Optional[str] = None


class ComplaintResponse(BaseModel):
    id: str
    title: str
    description: str
    category: ComplaintCategory
    images: List[ImageInfo] = []
    status: ComplaintStatus
    raised_by: Optional[ComplaintRaiser] = None
    wing: Optional[str] = None
    flat_no: Optional[str] = None
    admin_comments: Optional[str] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
