from sqlalchemy import Column, String, Boolean, DateTime, Enum as SQLEnum, Integer
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from app.core.database import Base
from app.core.types import GUID, generate_uuid


class UserRole(str, enum.Enum):
    """User roles"""
    RESIDENT = "resident"
    ADMIN = "admin"


class User(Base):
    """Society member (resident or admin)"""
    __tablename__ = "users"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    phone_no = Column(String(20), nullable=True)

    # Residence (required for residents, optional for admins)
    wing = Column(String(10), nullable=True, index=True)
    flat_no = Column(String(20), nullable=True, index=True)

    role = Column(SQLEnum(UserRole), default=UserRole.RESIDENT, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)

    # Email OTP verification (only the hash is stored)
    otp_hash = Column(String(64), nullable=True)
    otp_expires_at = Column(DateTime, nullable=True)
    otp_attempts = Column(Integer, default=0, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login = Column(DateTime, nullable=True)

    # Relationships
    complaints = relationship("Complaint", back_populates="raised_by", cascade="all, delete-orphan")
    maintenance_bills = relationship("MaintenanceBill", back_populates="resident", cascade="all, delete-orphan")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def __repr__(self):
        return f"<User {self.email}>"
