from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.database import get_db
from app.core.logging_config import logger
from app.core.types import is_valid_uuid
from app.models.notice import Notice
from app.models.user import User
from app.modules.auth.dependencies import get_current_user, get_current_admin
from app.schemas.notice import NoticeCreate, NoticeUpdate, NoticeResponse

router = APIRouter()


async def _get_notice(db: AsyncSession, notice_id: str) -> Notice:
    notice = None
    if is_valid_uuid(notice_id):
        result = await db.execute(select(Notice).where(Notice.id == notice_id))
        notice = result.scalar_one_or_none()
    if not notice:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notice not found")
    return notice


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_notice(
    notice_data: NoticeCreate,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    """Publish a notice (admin only)"""
    notice = Notice(**notice_data.model_dump(), created_by=current_user)
    db.add(notice)
    await db.commit()
    await db.refresh(notice)

    logger.info(f"[Notices] '{notice.title}' published by {current_user.email}")

    return {"success": True, "data": NoticeResponse.model_validate(notice)}


@router.get("")
async def list_notices(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Active notices, newest first"""
    result = await db.execute(
        select(Notice)
        .where(Notice.is_active.is_(True))
        .order_by(Notice.created_at.desc())
    )
    notices = result.scalars().all()

    return {
        "success": True,
        "count": len(notices),
        "data": [NoticeResponse.model_validate(n) for n in notices]
    }


@router.put("/{notice_id}")
async def update_notice(
    notice_id: str,
    notice_data: NoticeUpdate,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    notice = await _get_notice(db, notice_id)

    for field, value in notice_data.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(notice, field, value)

    await db.commit()
    await db.refresh(notice)

    return {"success": True, "data": NoticeResponse.model_validate(notice)}


@router.delete("/{notice_id}")
async def delete_notice(
    notice_id: str,
    current_user: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db)
):
    notice = await _get_notice(db, notice_id)

    await db.delete(notice)
    await db.commit()

    return {"success": True, "message": "Notice deleted successfully"}
