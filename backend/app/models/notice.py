from sqlalchemy import Column, String, Boolean, DateTime, Enum as SQLEnum, ForeignKey, Text
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from app.core.database import Base
from app.core.types import GUID, generate_uuid


class NoticeCategory(str, enum.Enum):
    GENERAL = "general"
    MAINTENANCE = "maintenance"
    EVENT = "event"
    EMERGENCY = "emergency"


class NoticePriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Notice(Base):
    """Notice board entry"""
    __tablename__ = "notices"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    category = Column(SQLEnum(NoticeCategory), default=NoticeCategory.GENERAL, nullable=False)
    priority = Column(SQLEnum(NoticePriority), default=NoticePriority.MEDIUM, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_by_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    created_by = relationship("User", lazy="selectin")

    def __repr__(self):
        return f"<Notice {self.title}>"
