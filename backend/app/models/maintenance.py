from sqlalchemy import (
    Column, String, DateTime, Enum as SQLEnum, ForeignKey, Integer, Float, JSON, UniqueConstraint
)
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from app.core.database import Base
from app.core.types import GUID, generate_uuid


class BillStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


class PaymentStatus(str, enum.Enum):
    """Gateway-side payment state"""
    PENDING = "pending"
    AUTHORIZED = "authorized"
    CAPTURED = "captured"
    FAILED = "failed"


class MaintenanceBill(Base):
    """Monthly maintenance charge for a flat's resident"""
    __tablename__ = "maintenance_bills"
    __table_args__ = (
        UniqueConstraint("wing", "flat_no", "month", "year", name="uq_maintenance_flat_period"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    resident_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    wing = Column(String(10), nullable=False)
    flat_no = Column(String(20), nullable=False)

    amount = Column(Float, nullable=False)  # Rupees
    month = Column(String(20), nullable=False)
    year = Column(Integer, nullable=False)
    due_date = Column(DateTime, nullable=False, index=True)
    status = Column(SQLEnum(BillStatus), default=BillStatus.PENDING, nullable=False, index=True)

    # Razorpay
    razorpay_order_id = Column(String(100), nullable=True, index=True)
    razorpay_payment_id = Column(String(100), nullable=True)
    razorpay_order_details = Column(JSON, nullable=True)
    payment_date = Column(DateTime, nullable=True)
    payment_status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    resident = relationship("User", back_populates="maintenance_bills", lazy="selectin")

    @property
    def amount_paise(self) -> int:
        return int(round(self.amount * 100))

    @property
    def is_paid(self) -> bool:
        return self.status == BillStatus.PAID

    def __repr__(self):
        return f"<MaintenanceBill {self.wing}-{self.flat_no} {self.month}/{self.year} {self.status}>"
