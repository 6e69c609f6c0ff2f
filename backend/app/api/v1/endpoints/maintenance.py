"""
Maintenance API

Admins raise monthly bills per flat; residents pay them through Razorpay.

Payment flow:
1. POST /maintenance/{id}/create-order   -> Razorpay order for the bill amount
2. Checkout widget collects the payment on the client
3. POST /maintenance/{id}/verify-payment -> confirm with the gateway, mark paid
4. POST /maintenance/webhook             -> gateway callback (backup for step 3)
"""
import json
import time
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import (
    AuthorizationError,
    MaintenanceBillNotFoundError,
    PaymentError,
    PaymentNotConfiguredError,
)
from app.core.logging_config import logger
from app.core.types import is_valid_uuid
from app.models.maintenance import MaintenanceBill, BillStatus, PaymentStatus
from app.models.user import User
from app.modules.auth.dependencies import get_current_user, get_current_admin
from app.schemas.maintenance import (
    MaintenanceCreate,
    MaintenanceBulkCreate,
    MaintenanceUpdate,
    MaintenanceResponse,
    VerifyPaymentRequest,
    OrderResponse,
    PaymentSummary,
)
from app.services.email_service import email_service
from app.services.maintenance_service import maintenance_service
from app.services.payment_gateway import PaymentGateway, get_payment_gateway

router = APIRouter()

# Gateway states that mean the money has been secured
SUCCESSFUL_PAYMENT_STATES = {"captured", "authorized"}


async def _get_bill(db: AsyncSession, bill_id: str) -> MaintenanceBill:
    bill = None
    if is_valid_uuid(bill_id):
        result = await db.execute(select(MaintenanceBill).where(MaintenanceBill.id == bill_id))
        bill = result.scalar_one_or_none()
    if not bill:
        raise MaintenanceBillNotFoundError(bill_id)
    return bill


def _ensure_can_pay(bill: MaintenanceBill, user: User) -> None:
    if bill.resident_id != user.id and not user.is_admin:
        raise AuthorizationError("Not authorized to pay this bill")


def _summary(bill: MaintenanceBill) -> PaymentSummary:
    return PaymentSummary(
        maintenance_id=str(bill.id),
        status=bill.status,
        payment_status=bill.payment_status,
        razorpay_payment_id=bill.razorpay_payment_id,
        razorpay_order_id=bill.razorpay_order_id,
        payment_date=bill.payment_date,
        amount=bill.amount,
    )


async def _notify_bill(bill_id: str, email: str, full_name: str, *bill_details) -> None:
    sent = await email_service.send_bill_email(email, full_name, *bill_details)
    if not sent:
        logger.warning(f"[Maintenance] Bill notification for {bill_id} not delivered to {email}")


def _schedule_notification(background_tasks: BackgroundTasks, bill: MaintenanceBill, resident: User) -> None:
    background_tasks.add_task(
        _notify_bill, str(bill.id), resident.email, resident.full_name,
        bill.wing, bill.flat_no, bill.amount, bill.month, bill.year, bill.due_date,
    )


# ==================== Bills ====================

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_bill(
    bill_data: MaintenanceCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Raise a bill for the resident of a flat (admin only)"""
    bill, resident = await maintenance_service.create_bill(db, bill_data)
    await db.commit()
    await db.refresh(bill)

    logger.info(f"[Maintenance] Bill {bill.id} created for {bill.wing}-{bill.flat_no} {bill.month} {bill.year}")
    _schedule_notification(background_tasks, bill, resident)

    return {
        "success": True,
        "data": MaintenanceResponse.model_validate(bill),
        "message": f"Maintenance bill created successfully for {resident.full_name}"
    }


@router.post("/bulk", status_code=status.HTTP_201_CREATED)
async def create_bills_bulk(
    payload: MaintenanceBulkCreate,
    background_tasks: BackgroundTasks,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Raise many bills at once; each failure is reported, not fatal"""
    if not payload.bills:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Bills array is required")

    created, errors = await maintenance_service.create_bills(db, payload.bills)
    await db.commit()
    for bill in created:
        await db.refresh(bill)
        _schedule_notification(background_tasks, bill, bill.resident)

    message = f"Created {len(created)} maintenance bills successfully"
    if errors:
        message += f" with {len(errors)} errors"

    response = {
        "success": True,
        "data": [MaintenanceResponse.model_validate(b) for b in created],
        "created_count": len(created),
        "message": message,
    }
    if errors:
        response["errors"] = errors
    return response


@router.get("")
async def list_bills(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Admins see all bills, residents their own; newest first"""
    if await maintenance_service.mark_overdue_bills(db):
        await db.commit()

    query = select(MaintenanceBill).order_by(MaintenanceBill.created_at.desc())
    if not current_user.is_admin:
        query = query.where(MaintenanceBill.resident_id == current_user.id)

    result = await db.execute(query)
    bills = result.scalars().all()

    return {
        "success": True,
        "count": len(bills),
        "data": [MaintenanceResponse.model_validate(b) for b in bills]
    }


# ==================== Gateway callbacks & lookups ====================

@router.post("/webhook")
async def razorpay_webhook(
    request: Request,
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    x_razorpay_signature: Optional[str] = Header(None, alias="X-Razorpay-Signature")
):
    """
    Razorpay webhook endpoint for payment events.

    Handles payment.captured, order.paid and payment.failed.
    Configure this URL in the Razorpay Dashboard: /api/v1/maintenance/webhook
    """
    if not gateway.webhook_secret:
        logger.warning("[Webhook] Webhook secret not configured")
        return {"status": "skipped", "reason": "webhook not configured"}

    body = await request.body()
    if not gateway.verify_webhook_signature(body, x_razorpay_signature):
        logger.warning("[Webhook] Invalid webhook signature")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook signature")

    try:
        payload = json.loads(body)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook payload")

    event = payload.get("event")
    entities = payload.get("payload", {})
    payment = entities.get("payment", {}).get("entity", {})
    order = entities.get("order", {}).get("entity", {})

    logger.info(f"[Webhook] Received event: {event}")

    if event in ("payment.captured", "order.paid"):
        order_id = payment.get("order_id") or order.get("id")
        payment_id = payment.get("id") or order.get("payment_id")
        await _settle_from_webhook(db, order_id, payment_id)
    elif event == "payment.failed":
        order_id = payment.get("order_id")
        bill = await maintenance_service.get_by_order_id(db, order_id) if order_id else None
        if bill and not bill.is_paid:
            bill.payment_status = PaymentStatus.FAILED
            await db.commit()
            logger.log_payment_event("webhook_failed", str(bill.id), success=False,
                                     reason=payment.get("error_description"))

    return {"status": "ok"}


async def _settle_from_webhook(db: AsyncSession, order_id: Optional[str], payment_id: Optional[str]) -> None:
    if not order_id:
        logger.warning("[Webhook] No order_id in capture event")
        return

    bill = await maintenance_service.get_by_order_id(db, order_id)
    if not bill:
        logger.warning(f"[Webhook] No bill found for order {order_id}")
        return

    if bill.is_paid:
        logger.info(f"[Webhook] Bill {bill.id} already paid")
        return

    maintenance_service.mark_paid(bill, payment_id or bill.razorpay_payment_id, order_id, PaymentStatus.CAPTURED)
    await db.commit()
    logger.log_payment_event("webhook_captured", str(bill.id), amount=bill.amount, order_id=order_id)


@router.get("/payment/{payment_id}")
async def get_payment_details(
    payment_id: str,
    current_user: User = Depends(get_current_user),
    gateway: PaymentGateway = Depends(get_payment_gateway)
):
    """Raw payment entity from Razorpay"""
    payment = await gateway.fetch_payment(payment_id)
    return {"success": True, "data": payment}


# ==================== Single bill ====================

@router.get("/{bill_id}")
async def get_bill(
    bill_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    bill = await _get_bill(db, bill_id)
    if bill.resident_id != current_user.id and not current_user.is_admin:
        raise AuthorizationError("Not authorized to view this bill")

    return {"success": True, "data": MaintenanceResponse.model_validate(bill)}


@router.put("/{bill_id}")
async def update_bill(
    bill_id: str,
    update: MaintenanceUpdate,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    bill = await _get_bill(db, bill_id)
    changes = {k: v for k, v in update.model_dump(exclude_unset=True).items() if v is not None}

    month = changes.get("month", bill.month)
    year = changes.get("year", bill.year)
    if (month, year) != (bill.month, bill.year) and await maintenance_service.bill_exists(
        db, bill.wing, bill.flat_no, month, year
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Duplicate maintenance bill found for this period"
        )

    for field, value in changes.items():
        setattr(bill, field, value)

    await db.commit()
    await db.refresh(bill)

    return {"success": True, "data": MaintenanceResponse.model_validate(bill)}


@router.delete("/{bill_id}")
async def delete_bill(
    bill_id: str,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    bill = await _get_bill(db, bill_id)

    await db.delete(bill)
    await db.commit()

    return {"success": True, "message": "Maintenance bill deleted successfully"}


# ==================== Payments ====================

@router.post("/{bill_id}/create-order")
async def create_payment_order(
    bill_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway)
):
    """Create a Razorpay order for a bill"""
    if not gateway.is_configured:
        raise PaymentNotConfiguredError()

    bill = await _get_bill(db, bill_id)
    _ensure_can_pay(bill, current_user)
    if bill.is_paid:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="This bill has already been paid")

    order = await gateway.create_order(
        amount_paise=bill.amount_paise,
        receipt=maintenance_service.receipt_for(bill),
        notes=maintenance_service.order_notes(bill),
    )

    bill.razorpay_order_id = order["id"]
    bill.razorpay_order_details = order
    await db.commit()

    logger.log_payment_event("order_created", str(bill.id), amount=bill.amount, order_id=order["id"])

    return {
        "success": True,
        "data": OrderResponse(
            id=order["id"],
            amount=order.get("amount", bill.amount_paise),
            currency=order.get("currency", gateway.currency),
            receipt=order.get("receipt"),
            status=order.get("status"),
            created_at=order.get("created_at"),
            notes=order.get("notes") or {},
            key_id=gateway.key_id,
        )
    }


@router.post("/{bill_id}/verify-payment")
async def verify_payment(
    bill_id: str,
    payload: VerifyPaymentRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway)
):
    """Confirm a checkout payment with Razorpay and settle the bill"""
    bill = await _get_bill(db, bill_id)
    _ensure_can_pay(bill, current_user)

    if bill.is_paid:
        return {"success": True, "message": "Payment already verified", "data": _summary(bill)}

    if (payload.razorpay_order_id and bill.razorpay_order_id
            and payload.razorpay_order_id != bill.razorpay_order_id):
        logger.log_payment_event("verify", str(bill.id), success=False, reason="Order mismatch")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Payment does not belong to this bill")

    # A stored order id is never replaced by one taken from the request
    order_id = bill.razorpay_order_id or payload.razorpay_order_id

    if payload.razorpay_signature and gateway.is_configured:
        if not gateway.verify_payment_signature(order_id, payload.razorpay_payment_id, payload.razorpay_signature):
            logger.log_payment_event("verify", str(bill.id), success=False, reason="Invalid signature")
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payment signature")

    try:
        payment = await gateway.fetch_payment(payload.razorpay_payment_id)
    except PaymentError as e:
        if settings.is_production():
            logger.log_payment_event("verify", str(bill.id), success=False, reason=e.message)
            raise
        # Gateway unreachable outside production: accept on the client's word
        maintenance_service.mark_paid(
            bill, payload.razorpay_payment_id, order_id or "dev_verification", PaymentStatus.AUTHORIZED
        )
        await db.commit()
        logger.log_payment_event("verify_dev_mode", str(bill.id), amount=bill.amount)
        return {"success": True, "message": "Payment verified (development mode)", "data": _summary(bill)}

    payment_state = payment.get("status")
    gateway_order_id = payment.get("order_id")

    if bill.razorpay_order_id and gateway_order_id and gateway_order_id != bill.razorpay_order_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Payment does not belong to this bill")

    if payment_state in SUCCESSFUL_PAYMENT_STATES:
        maintenance_service.mark_paid(
            bill, payload.razorpay_payment_id, gateway_order_id or order_id, PaymentStatus(payment_state)
        )
        await db.commit()
        logger.log_payment_event("verify", str(bill.id), amount=bill.amount, gateway_status=payment_state)
        return {
            "success": True,
            "message": f"Payment verified successfully (Status: {payment_state})",
            "data": _summary(bill)
        }

    if payment_state == "failed":
        bill.payment_status = PaymentStatus.FAILED
        await db.commit()
        logger.log_payment_event("verify", str(bill.id), success=False, reason=payment.get("error_description"))
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Payment failed: {payment.get('error_description')}"
        )

    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=f"Payment not completed. Status: {payment_state}"
    )


@router.post("/{bill_id}/simulate-payment")
async def simulate_payment(
    bill_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Mark a bill paid without the gateway (never in production)"""
    if settings.is_production():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Simulated payments are not allowed in production"
        )

    bill = await _get_bill(db, bill_id)
    _ensure_can_pay(bill, current_user)
    if bill.is_paid:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="This bill has already been paid")

    maintenance_service.mark_paid(bill, f"simulated_{int(time.time() * 1000)}", None, PaymentStatus.CAPTURED)
    await db.commit()
    await db.refresh(bill)

    logger.log_payment_event("simulated", str(bill.id), amount=bill.amount)

    return {
        "success": True,
        "message": "Payment simulated successfully",
        "data": MaintenanceResponse.model_validate(bill)
    }
