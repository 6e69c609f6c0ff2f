from pydantic import BaseModel
from typing import Optional


class UserRef(BaseModel):
    """Minimal populated user reference"""
    id: str
    full_name: str

    class Config:
        from_attributes = True


class ResidentContact(UserRef):
    """Populated user with contact details"""
    email: Optional[str] = None
    phone_no: Optional[str] = None

    class Config:
        from_attributes = True


class ImageInfo(BaseModel):
    """Uploaded image stored in object storage"""
    url: str
    public_id: str


def normalize_wing(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip().upper()


def strip_required(value: Optional[str]) -> Optional[str]:
    """Strip surrounding whitespace; whitespace-only values are rejected"""
    if value is None:
        return None
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value
