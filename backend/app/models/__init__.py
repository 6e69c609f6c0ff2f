# Re-export all models for convenient imports
from app.models.user import User, UserRole
from app.models.flat import Flat, FlatStatus
from app.models.notice import Notice, NoticeCategory, NoticePriority
from app.models.complaint import Complaint, ComplaintCategory, ComplaintStatus
from app.models.maintenance import MaintenanceBill, BillStatus, PaymentStatus
from app.models.memory_post import MemoryPost, MemoryComment, memory_post_likes

__all__ = [
    # User
    "User",
    "UserRole",
    # Flats
    "Flat",
    "FlatStatus",
    # Notices
    "Notice",
    "NoticeCategory",
    "NoticePriority",
    # Complaints
    "Complaint",
    "ComplaintCategory",
    "ComplaintStatus",
    # Maintenance
    "MaintenanceBill",
    "BillStatus",
    "PaymentStatus",
    # Memory lane
    "MemoryPost",
    "MemoryComment",
    "memory_post_likes",
]
