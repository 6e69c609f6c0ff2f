from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Any, Dict
from datetime import datetime, timezone

from app.models.maintenance import BillStatus, PaymentStatus
from app.schemas.common import normalize_wing, strip_required


def _naive_utc(value: Any) -> Any:
    """Accept YYYY-MM-DD and aware datetimes; store naive UTC"""
    if isinstance(value, str) and len(value) == 10:
        value = f"{value}T00:00:00"
    if isinstance(value, datetime) and value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class MaintenanceCreate(BaseModel):
    wing: str = Field(..., min_length=1, max_length=10)
    flat_no: str = Field(..., min_length=1, max_length=20)
    amount: float = Field(..., gt=0)
    month: str = Field(..., min_length=1, max_length=20)
    year: int = Field(..., ge=2000, le=2100)
    due_date: datetime

    @field_validator('wing')
    @classmethod
    def uppercase_wing(cls, v: str) -> str:
        return normalize_wing(strip_required(v))

    @field_validator('flat_no', 'month')
    @classmethod
    def strip_text(cls, v: str) -> str:
        return strip_required(v)

    @field_validator('due_date', mode='before')
    @classmethod
    def parse_due_date(cls, v: Any) -> Any:
        return _naive_utc(v)

    @field_validator('due_date')
    @classmethod
    def drop_tz(cls, v: datetime) -> datetime:
        return _naive_utc(v)


class MaintenanceBulkCreate(BaseModel):
    bills: List[MaintenanceCreate]


class MaintenanceUpdate(BaseModel):
    amount: Optional[float] = Field(None, gt=0)
    month: Optional[str] = Field(None, min_length=1, max_length=20)
    year: Optional[int] = Field(None, ge=2000, le=2100)
    due_date: Optional[datetime] = None
    status: Optional[BillStatus] = None
    payment_status: Optional[PaymentStatus] = None

    @field_validator('month')
    @classmethod
    def strip_month(cls, v: Optional[str]) -> Optional[str]:
        return strip_required(v)

    @field_validator('due_date', mode='before')
    @classmethod
    def parse_due_date(cls, v: Any) -> Any:
        return _naive_utc(v)

    @field_validator('due_date')
    @classmethod
    def drop_tz(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _naive_utc(v)


class BillResident(BaseModel):
    id: str
    full_name: str
    email: str
    phone_no: Optional[str] = None
    wing: Optional[str] = None
    flat_no: Optional[str] = None

    class Config:
        from_attributes = True


class MaintenanceResponse(BaseModel):
    id: str
    resident: Optional[BillResident] = None
    wing: str
    flat_no: str
    amount: float
    month: str
    year: int
    due_date: datetime
    status: BillStatus
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    payment_date: Optional[datetime] = None
    payment_status: PaymentStatus
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class VerifyPaymentRequest(BaseModel):
    razorpay_payment_id: str = Field(..., min_length=1)
    razorpay_order_id: Optional[str] = None
    razorpay_signature: Optional[str] = None


class OrderResponse(BaseModel):
    """Gateway order handed to the checkout widget"""
    id: str
    amount: int
    currency: str
    receipt: Optional[str] = None
    status: Optional[str] = None
    created_at: Optional[int] = None
    notes: Dict[str, Any] = {}
    key_id: str


class PaymentSummary(BaseModel):
    maintenance_id: str
    status: BillStatus
    payment_status: PaymentStatus
    razorpay_payment_id: Optional[str] = None
    razorpay_order_id: Optional[str] = None
    payment_date: Optional[datetime] = None
    amount: float
