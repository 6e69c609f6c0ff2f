from sqlalchemy import Column, String, DateTime, ForeignKey, Text, JSON, Table
from sqlalchemy.orm import relationship
from datetime import datetime

from app.core.database import Base
from app.core.types import GUID, generate_uuid


# Users who liked a post
memory_post_likes = Table(
    "memory_post_likes",
    Base.metadata,
    Column("post_id", GUID, ForeignKey("memory_posts.id", ondelete="CASCADE"), primary_key=True),
    Column("user_id", GUID, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime, default=datetime.utcnow),
)


class MemoryPost(Base):
    """Photo post on the memory lane feed"""
    __tablename__ = "memory_posts"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    images = Column(JSON, default=list, nullable=False)  # [{"url", "public_id"}]
    event_date = Column(DateTime, nullable=True)
    posted_by_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    posted_by = relationship("User", lazy="selectin")
    likes = relationship("User", secondary=memory_post_likes, lazy="selectin")
    comments = relationship(
        "MemoryComment",
        back_populates="post",
        cascade="all, delete-orphan",
        order_by="MemoryComment.created_at",
        lazy="selectin",
    )

    @property
    def like_count(self) -> int:
        return len(self.likes)

    def __repr__(self):
        return f"<MemoryPost {self.title}>"


class MemoryComment(Base):
    """Comment on a memory lane post"""
    __tablename__ = "memory_comments"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    post_id = Column(GUID, ForeignKey("memory_posts.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    text = Column(Text, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    post = relationship("MemoryPost", back_populates="comments")
    user = relationship("User", lazy="selectin")
