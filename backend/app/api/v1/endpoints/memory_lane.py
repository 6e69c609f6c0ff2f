"""
Memory Lane API

Society photo feed. Any authenticated member can post, like and comment.
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.database import get_db
from app.core.logging_config import logger
from app.core.types import is_valid_uuid
from app.models.memory_post import MemoryPost, MemoryComment
from app.models.user import User
from app.modules.auth.dependencies import get_current_user, get_verified_user
from app.schemas.memory_lane import CommentCreate, MemoryPostResponse
from app.utils.storage_client import StorageClient, get_storage_client, upload_images

router = APIRouter()

MEMORY_IMAGE_FOLDER = "memory-lane"


async def _get_post(db: AsyncSession, post_id: str) -> MemoryPost:
    post = None
    if is_valid_uuid(post_id):
        result = await db.execute(select(MemoryPost).where(MemoryPost.id == post_id))
        post = result.scalar_one_or_none()
    if not post:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Post not found")
    return post


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_post(
    title: str = Form(..., min_length=1, max_length=255),
    description: Optional[str] = Form(None),
    event_date: Optional[datetime] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    current_user: User = Depends(get_verified_user),
    storage: StorageClient = Depends(get_storage_client),
    db: AsyncSession = Depends(get_db)
):
    uploaded = await upload_images(storage, images or [], MEMORY_IMAGE_FOLDER)

    if event_date is not None and event_date.tzinfo is not None:
        event_date = event_date.replace(tzinfo=None) - event_date.utcoffset()

    post = MemoryPost(
        title=title.strip(),
        description=description,
        event_date=event_date,
        images=uploaded,
        posted_by=current_user,
    )
    db.add(post)
    await db.commit()
    await db.refresh(post)

    logger.info(f"[MemoryLane] Post '{post.title}' by {current_user.email} with {len(uploaded)} images")

    return {"success": True, "data": MemoryPostResponse.model_validate(post)}


@router.get("")
async def list_posts(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(select(MemoryPost).order_by(MemoryPost.created_at.desc()))
    posts = result.scalars().all()

    return {
        "success": True,
        "count": len(posts),
        "data": [MemoryPostResponse.model_validate(p) for p in posts]
    }


@router.post("/{post_id}/like")
async def toggle_like(
    post_id: str,
    current_user: User = Depends(get_verified_user),
    db: AsyncSession = Depends(get_db)
):
    """Like the post, or remove the caller's like if already present"""
    post = await _get_post(db, post_id)

    existing = next((u for u in post.likes if u.id == current_user.id), None)
    if existing is not None:
        post.likes.remove(existing)
    else:
        post.likes.append(current_user)

    await db.commit()
    await db.refresh(post)

    return {
        "success": True,
        "liked": existing is None,
        "data": MemoryPostResponse.model_validate(post)
    }


@router.post("/{post_id}/comment")
async def add_comment(
    post_id: str,
    comment: CommentCreate,
    current_user: User = Depends(get_verified_user),
    db: AsyncSession = Depends(get_db)
):
    post = await _get_post(db, post_id)

    post.comments.append(MemoryComment(user=current_user, text=comment.text))
    await db.commit()
    await db.refresh(post)

    return {"success": True, "data": MemoryPostResponse.model_validate(post)}
