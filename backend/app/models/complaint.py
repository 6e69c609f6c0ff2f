from sqlalchemy import Column, String, DateTime, Enum as SQLEnum, ForeignKey, Text, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from app.core.database import Base
from app.core.types import GUID, generate_uuid


class ComplaintCategory(str, enum.Enum):
    PLUMBING = "plumbing"
    ELECTRICAL = "electrical"
    CLEANING = "cleaning"
    SECURITY = "security"
    OTHER = "other"


class ComplaintStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    RESOLVED = "resolved"
    REJECTED = "rejected"


class Complaint(Base):
    """Resident complaint with optional photos"""
    __tablename__ = "complaints"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(SQLEnum(ComplaintCategory), nullable=False)
    images = Column(JSON, default=list, nullable=False)  # [{"url", "public_id"}]
    status = Column(SQLEnum(ComplaintStatus), default=ComplaintStatus.PENDING, nullable=False, index=True)

    raised_by_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    wing = Column(String(10), nullable=True)
    flat_no = Column(String(20), nullable=True)

    admin_comments = Column(Text, nullable=True)
    resolved_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    raised_by = relationship("User", back_populates="complaints", lazy="selectin")

    def __repr__(self):
        return f"<Complaint {self.title} ({self.status})>"
