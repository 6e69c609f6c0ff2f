from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from app.core.database import get_db
from app.models.complaint import Complaint, ComplaintStatus
from app.models.flat import Flat, FlatStatus
from app.models.maintenance import MaintenanceBill, BillStatus
from app.models.notice import Notice
from app.models.user import User
from app.modules.auth.dependencies import get_current_user
from app.schemas.dashboard import DashboardStats

router = APIRouter()


async def _count(db: AsyncSession, query) -> int:
    result = await db.execute(query)
    return result.scalar() or 0


@router.get("/stats")
async def get_dashboard_stats(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Headline counts; complaints and dues are scoped to the caller unless admin"""
    total_flats = await _count(db, select(func.count(Flat.id)))
    occupied_flats = await _count(
        db, select(func.count(Flat.id)).where(Flat.status == FlatStatus.OCCUPIED)
    )

    complaints = select(func.count(Complaint.id)).where(Complaint.status == ComplaintStatus.PENDING)
    bills = select(func.count(MaintenanceBill.id)).where(
        MaintenanceBill.status.in_([BillStatus.PENDING, BillStatus.OVERDUE])
    )
    if not current_user.is_admin:
        complaints = complaints.where(Complaint.raised_by_id == current_user.id)
        bills = bills.where(MaintenanceBill.resident_id == current_user.id)

    stats = DashboardStats(
        total_flats=total_flats,
        occupied_flats=occupied_flats,
        occupancy_rate=round(occupied_flats / total_flats * 100, 1) if total_flats else 0.0,
        pending_complaints=await _count(db, complaints),
        unpaid_maintenance=await _count(db, bills),
        active_notices=await _count(db, select(func.count(Notice.id)).where(Notice.is_active.is_(True))),
    )

    return {"success": True, "data": stats}
