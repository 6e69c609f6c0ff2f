from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime

from app.models.flat import FlatStatus
from app.schemas.common import ResidentContact, normalize_wing, strip_required


class FlatCreate(BaseModel):
    wing: str = Field(..., min_length=1, max_length=10)
    flat_no: str = Field(..., min_length=1, max_length=20)
    status: FlatStatus = FlatStatus.VACANT
    owner_name: str = ""
    resident_id: Optional[str] = None
    is_tenant: bool = False

    @field_validator('wing')
    @classmethod
    def uppercase_wing(cls, v: str) -> str:
        return normalize_wing(strip_required(v))

    @field_validator('flat_no')
    @classmethod
    def strip_flat_no(cls, v: str) -> str:
        return strip_required(v)


class FlatUpdate(BaseModel):
    wing: Optional[str] = Field(None, min_length=1, max_length=10)
    flat_no: Optional[str] = Field(None, min_length=1, max_length=20)
    status: Optional[FlatStatus] = None
    owner_name: Optional[str] = None
    resident_id: Optional[str] = None
    is_tenant: Optional[bool] = None

    @field_validator('wing')
    @classmethod
    def uppercase_wing(cls, v: Optional[str]) -> Optional[str]:
        return normalize_wing(strip_required(v))

    @field_validator('flat_no')
    @classmethod
    def strip_flat_no(cls, v: Optional[str]) -> Optional[str]:
        return strip_required(v)


class FlatResponse(BaseModel):
    id: str
    wing: str
    flat_no: str
    status: FlatStatus
    owner_name: str
    is_tenant: bool
    resident: Optional[ResidentContact] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
