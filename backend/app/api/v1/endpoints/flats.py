"""
Flats API

Flat inventory keyed by (wing, flat_no). Residents can read the list;
only admins create, edit or delete flats.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.database import get_db
from app.core.exceptions import FlatNotFoundError
from app.core.logging_config import logger
from app.core.types import is_valid_uuid
from app.models.flat import Flat
from app.models.user import User
from app.modules.auth.dependencies import get_current_user, get_current_admin
from app.schemas.flat import FlatCreate, FlatUpdate, FlatResponse

router = APIRouter()


async def _get_flat(db: AsyncSession, flat_id: str) -> Flat:
    flat = None
    if is_valid_uuid(flat_id):
        result = await db.execute(select(Flat).where(Flat.id == flat_id))
        flat = result.scalar_one_or_none()
    if not flat:
        raise FlatNotFoundError(flat_id)
    return flat


async def _resolve_resident(db: AsyncSession, resident_id: str) -> User:
    resident = None
    if is_valid_uuid(resident_id):
        result = await db.execute(select(User).where(User.id == resident_id))
        resident = result.scalar_one_or_none()
    if not resident:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Resident not found")
    return resident


async def _flat_exists(db: AsyncSession, wing: str, flat_no: str, exclude_id: str = None) -> bool:
    query = select(Flat.id).where(Flat.wing == wing, Flat.flat_no == flat_no)
    if exclude_id:
        query = query.where(Flat.id != exclude_id)
    result = await db.execute(query)
    return result.first() is not None


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_flat(
    flat_data: FlatCreate,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Create a flat (admin only)"""
    if await _flat_exists(db, flat_data.wing, flat_data.flat_no):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Flat {flat_data.wing}-{flat_data.flat_no} already exists"
        )

    resident = None
    if flat_data.resident_id:
        resident = await _resolve_resident(db, flat_data.resident_id)

    flat = Flat(
        wing=flat_data.wing,
        flat_no=flat_data.flat_no,
        status=flat_data.status,
        owner_name=flat_data.owner_name,
        is_tenant=flat_data.is_tenant,
        resident=resident,
    )
    db.add(flat)
    await db.commit()
    await db.refresh(flat)

    logger.info(f"[Flats] Created flat {flat.label} by {current_user.email}")

    return {"success": True, "data": FlatResponse.model_validate(flat)}


@router.get("")
async def list_flats(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """All flats ordered by wing and number, residents populated"""
    result = await db.execute(select(Flat).order_by(Flat.wing, Flat.flat_no))
    flats = result.scalars().all()

    return {
        "success": True,
        "count": len(flats),
        "data": [FlatResponse.model_validate(f) for f in flats]
    }


@router.put("/{flat_id}")
async def update_flat(
    flat_id: str,
    flat_data: FlatUpdate,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Partial update (admin only)"""
    flat = await _get_flat(db, flat_id)
    updates = flat_data.model_dump(exclude_unset=True)

    wing = updates.get("wing") or flat.wing
    flat_no = updates.get("flat_no") or flat.flat_no
    if (wing, flat_no) != (flat.wing, flat.flat_no) and await _flat_exists(db, wing, flat_no, exclude_id=flat.id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Flat {wing}-{flat_no} already exists"
        )

    if "resident_id" in updates:
        resident_id = updates.pop("resident_id")
        flat.resident = await _resolve_resident(db, resident_id) if resident_id else None

    for field, value in updates.items():
        if value is not None:
            setattr(flat, field, value)

    await db.commit()
    await db.refresh(flat)

    return {"success": True, "data": FlatResponse.model_validate(flat)}


@router.delete("/{flat_id}")
async def delete_flat(
    flat_id: str,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Delete a flat (admin only)"""
    flat = await _get_flat(db, flat_id)
    label = flat.label

    await db.delete(flat)
    await db.commit()

    logger.info(f"[Flats] Deleted flat {label} by {current_user.email}")

    return {"success": True, "message": "Flat deleted successfully"}
