"""
Complaints API

Residents raise complaints (optionally with photos) and may edit them while
still pending; admins see everything and drive the status workflow.
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.database import get_db
from app.core.logging_config import logger
from app.core.types import is_valid_uuid
from app.models.complaint import Complaint, ComplaintCategory, ComplaintStatus
from app.models.user import User
from app.modules.auth.dependencies import get_current_user, get_verified_user
from app.schemas.complaint import ComplaintUpdate, ComplaintResponse, RESIDENT_EDITABLE_FIELDS
from app.utils.storage_client import StorageClient, get_storage_client, upload_images

router = APIRouter()

COMPLAINT_IMAGE_FOLDER = "complaints"


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_complaint(
    title: str = Form(..., min_length=1, max_length=255),
    description: str = Form(..., min_length=1),
    category: ComplaintCategory = Form(...),
    images: Optional[List[UploadFile]] = File(None),
    current_user: User = Depends(get_verified_user),
    storage: StorageClient = Depends(get_storage_client),
    db: AsyncSession = Depends(get_db)
):
    """Raise a complaint; photos go to object storage"""
    uploaded = await upload_images(storage, images or [], COMPLAINT_IMAGE_FOLDER)

    complaint = Complaint(
        title=title.strip(),
        description=description.strip(),
        category=category,
        images=uploaded,
        raised_by=current_user,
        wing=current_user.wing,
        flat_no=current_user.flat_no,
    )
    db.add(complaint)
    await db.commit()
    await db.refresh(complaint)

    logger.info(f"[Complaints] '{complaint.title}' raised by {current_user.email} with {len(uploaded)} images")

    return {"success": True, "data": ComplaintResponse.model_validate(complaint)}


@router.get("")
async def list_complaints(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Admins see all complaints, residents their own; newest first"""
    query = select(Complaint).order_by(Complaint.created_at.desc())
    if not current_user.is_admin:
        query = query.where(Complaint.raised_by_id == current_user.id)

    result = await db.execute(query)
    complaints = result.scalars().all()

    return {
        "success": True,
        "count": len(complaints),
        "data": [ComplaintResponse.model_validate(c) for c in complaints]
    }


@router.put("/{complaint_id}")
async def update_complaint(
    complaint_id: str,
    update: ComplaintUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    complaint = None
    if is_valid_uuid(complaint_id):
        result = await db.execute(select(Complaint).where(Complaint.id == complaint_id))
        complaint = result.scalar_one_or_none()
    if not complaint:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Complaint not found")

    changes = {k: v for k, v in update.model_dump(exclude_unset=True).items() if v is not None}

    if not current_user.is_admin:
        if complaint.raised_by_id != current_user.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not authorized to update this complaint"
            )
        if complaint.status != ComplaintStatus.PENDING:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot update complaint that is already being processed"
            )
        changes = {k: v for k, v in changes.items() if k in RESIDENT_EDITABLE_FIELDS}

    new_status = changes.get("status")
    if new_status is not None and new_status != complaint.status:
        if new_status == ComplaintStatus.RESOLVED:
            complaint.resolved_at = datetime.utcnow()
        elif complaint.status == ComplaintStatus.RESOLVED:
            complaint.resolved_at = None

    for field, value in changes.items():
        setattr(complaint, field, value)

    await db.commit()
    await db.refresh(complaint)

    logger.info(f"[Complaints] {complaint.id} updated by {current_user.email}: {sorted(changes)}")

    return {"success": True, "data": ComplaintResponse.model_validate(complaint)}
