"""
Maintenance bill lifecycle: creation (single and bulk), overdue sweep and
settlement after a confirmed gateway payment.

Bills move pending -> overdue when the due date passes unpaid, and
pending/overdue -> paid once a payment is confirmed. Paid is terminal.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ValidationError
from app.core.logging_config import logger
from app.models.maintenance import MaintenanceBill, BillStatus, PaymentStatus
from app.models.user import User, UserRole
from app.schemas.maintenance import MaintenanceCreate


class MaintenanceService:
    """Database operations shared by the maintenance endpoints and Celery"""

    async def find_resident(self, db: AsyncSession, wing: str, flat_no: str) -> Optional[User]:
        result = await db.execute(
            select(User).where(
                User.wing == wing.upper(),
                User.flat_no == flat_no,
                User.role == UserRole.RESIDENT,
            )
        )
        return result.scalars().first()

    async def bill_exists(self, db: AsyncSession, wing: str, flat_no: str, month: str, year: int) -> bool:
        result = await db.execute(
            select(MaintenanceBill.id).where(
                MaintenanceBill.wing == wing,
                MaintenanceBill.flat_no == flat_no,
                MaintenanceBill.month == month,
                MaintenanceBill.year == year,
            )
        )
        return result.first() is not None

    async def create_bill(self, db: AsyncSession, data: MaintenanceCreate) -> Tuple[MaintenanceBill, User]:
        """
        Create one bill for the resident living at (wing, flat_no).

        Raises ValidationError when no resident lives there or a bill for
        the same period already exists. The caller commits.
        """
        resident = await self.find_resident(db, data.wing, data.flat_no)
        if not resident:
            raise ValidationError(
                f"No resident found for {data.wing}-{data.flat_no}. "
                "Please assign a resident to this flat first."
            )

        if await self.bill_exists(db, data.wing, data.flat_no, data.month, data.year):
            raise ValidationError(
                f"Maintenance bill already exists for {data.wing}-{data.flat_no} "
                f"for {data.month} {data.year}"
            )

        bill = MaintenanceBill(
            resident=resident,
            resident_id=resident.id,
            wing=data.wing,
            flat_no=data.flat_no,
            amount=data.amount,
            month=data.month,
            year=data.year,
            due_date=data.due_date,
            status=BillStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
        )
        db.add(bill)
        await db.flush()
        return bill, resident

    async def create_bills(
        self, db: AsyncSession, items: List[MaintenanceCreate]
    ) -> Tuple[List[MaintenanceBill], List[str]]:
        """Create each bill independently; failures are collected as messages"""
        created: List[MaintenanceBill] = []
        errors: List[str] = []
        seen = set()

        for item in items:
            key = (item.wing, item.flat_no, item.month, item.year)
            if key in seen:
                errors.append(f"Bill already exists for {item.wing}-{item.flat_no} ({item.month} {item.year})")
                continue

            resident = await self.find_resident(db, item.wing, item.flat_no)
            if not resident:
                errors.append(f"No resident found for {item.wing}-{item.flat_no}")
                continue

            if await self.bill_exists(db, item.wing, item.flat_no, item.month, item.year):
                errors.append(f"Bill already exists for {item.wing}-{item.flat_no} ({item.month} {item.year})")
                continue

            bill = MaintenanceBill(
                resident=resident,
                resident_id=resident.id,
                wing=item.wing,
                flat_no=item.flat_no,
                amount=item.amount,
                month=item.month,
                year=item.year,
                due_date=item.due_date,
                status=BillStatus.PENDING,
                payment_status=PaymentStatus.PENDING,
            )
            db.add(bill)
            seen.add(key)
            created.append(bill)

        if created:
            await db.flush()

        logger.info(f"[Maintenance] Bulk create: {len(created)} created, {len(errors)} errors")
        return created, errors

    async def mark_overdue_bills(self, db: AsyncSession, now: Optional[datetime] = None) -> int:
        """Flip unpaid bills whose due date has passed to overdue"""
        now = now or datetime.utcnow()
        result = await db.execute(
            update(MaintenanceBill)
            .where(
                MaintenanceBill.status == BillStatus.PENDING,
                MaintenanceBill.due_date < now,
            )
            .values(status=BillStatus.OVERDUE, updated_at=now)
            .execution_options(synchronize_session="fetch")
        )
        count = result.rowcount or 0
        if count:
            logger.info(f"[Maintenance] Marked {count} bills overdue")
        return count

    def mark_paid(
        self,
        bill: MaintenanceBill,
        payment_id: str,
        order_id: Optional[str],
        payment_status: PaymentStatus,
    ) -> MaintenanceBill:
        bill.status = BillStatus.PAID
        bill.razorpay_payment_id = payment_id
        if order_id:
            bill.razorpay_order_id = order_id
        bill.payment_date = datetime.utcnow()
        bill.payment_status = payment_status
        return bill

    def receipt_for(self, bill: MaintenanceBill) -> str:
        """Gateway receipts are capped at 40 chars"""
        return f"maint_{str(bill.id)[-12:]}"

    def order_notes(self, bill: MaintenanceBill) -> Dict[str, Any]:
        return {
            "maintenance_id": str(bill.id),
            "resident_id": str(bill.resident_id),
            "wing": bill.wing,
            "flat_no": bill.flat_no,
            "month": bill.month,
            "year": str(bill.year),
        }

    async def get_by_order_id(self, db: AsyncSession, order_id: str) -> Optional[MaintenanceBill]:
        result = await db.execute(
            select(MaintenanceBill).where(MaintenanceBill.razorpay_order_id == order_id)
        )
        return result.scalars().first()


# Singleton instance
maintenance_service = MaintenanceService()
