from sqlalchemy import Column, String, Boolean, DateTime, Enum as SQLEnum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from app.core.database import Base
from app.core.types import GUID, generate_uuid


class FlatStatus(str, enum.Enum):
    """Occupancy status"""
    OCCUPIED = "occupied"
    VACANT = "vacant"


class Flat(Base):
    """Residential unit identified by wing + flat number"""
    __tablename__ = "flats"
    __table_args__ = (
        UniqueConstraint("wing", "flat_no", name="uq_flats_wing_flat_no"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    wing = Column(String(10), nullable=False, index=True)
    flat_no = Column(String(20), nullable=False)
    status = Column(SQLEnum(FlatStatus), default=FlatStatus.VACANT, nullable=False)
    owner_name = Column(String(255), default="", nullable=False)
    resident_id = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    is_tenant = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    resident = relationship("User", lazy="selectin")

    @property
    def label(self) -> str:
        return f"{self.wing}-{self.flat_no}"

    def __repr__(self):
        return f"<Flat {self.wing}-{self.flat_no}>"
