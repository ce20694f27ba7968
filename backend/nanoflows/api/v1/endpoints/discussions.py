"""
Course discussion threads and their replies.
"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from nanoflows.api.v1.endpoints.courses import get_course_or_404
from nanoflows.core.database import get_db, execute_with_retry
from nanoflows.models import Discussion, DiscussionReply, User
from nanoflows.modules.auth import get_current_user
from nanoflows.schemas.auth import CurrentUser
from nanoflows.schemas.learning import DiscussionCreate, ReplyCreate

router = APIRouter()


def _serialize_discussion(discussion: Discussion, author_name: Optional[str] = None) -> dict:
    return {
        "id": discussion.id,
        "user_id": discussion.user_id,
        "course_id": discussion.course_id,
        "lesson_id": discussion.lesson_id,
        "title": discussion.title,
        "content": discussion.content,
        "author_name": author_name,
        "created_at": discussion.created_at,
        "updated_at": discussion.updated_at,
    }


def _serialize_reply(reply: DiscussionReply) -> dict:
    return {
        "id": reply.id,
        "discussion_id": reply.discussion_id,
        "user_id": reply.user_id,
        "content": reply.content,
        "author_name": reply.author.name if reply.author else None,
        "created_at": reply.created_at,
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_discussion(
    discussion_data: DiscussionCreate,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    await get_course_or_404(db, discussion_data.course_id)

    discussion = Discussion(user_id=current_user.id, **discussion_data.model_dump())
    db.add(discussion)
    await db.commit()
    await db.refresh(discussion)

    return {
        "message": "Discussion created successfully",
        "discussion": _serialize_discussion(discussion, current_user.name),
    }


@router.get("")
async def list_discussions(
    course_id: Optional[str] = None,
    lesson_id: Optional[str] = None,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Threads newest first, each with author name and reply count"""
    reply_count = (
        select(func.count(DiscussionReply.id))
        .where(DiscussionReply.discussion_id == Discussion.id)
        .correlate(Discussion)
        .scalar_subquery()
    )
    query = (
        select(Discussion, User.name, reply_count.label("reply_count"))
        .join(User, User.id == Discussion.user_id)
        .order_by(Discussion.created_at.desc())
    )
    if course_id:
        query = query.where(Discussion.course_id == course_id)
    if lesson_id:
        query = query.where(Discussion.lesson_id == lesson_id)

    result = await execute_with_retry(db, query)

    discussions = []
    for discussion, author_name, replies in result.all():
        item = _serialize_discussion(discussion, author_name)
        item["reply_count"] = replies or 0
        discussions.append(item)

    return {"discussions": discussions}


@router.get("/{discussion_id}")
async def get_discussion(
    discussion_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    result = await execute_with_retry(
        db,
        select(Discussion)
        .where(Discussion.id == discussion_id)
        .options(
            selectinload(Discussion.author),
            selectinload(Discussion.replies).selectinload(DiscussionReply.author),
        )
    )
    discussion = result.scalar_one_or_none()
    if not discussion:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Discussion not found")

    item = _serialize_discussion(discussion, discussion.author.name if discussion.author else None)
    item["replies"] = [_serialize_reply(r) for r in discussion.replies]
    return {"discussion": item}


@router.post("/{discussion_id}/reply", status_code=status.HTTP_201_CREATED)
async def reply_to_discussion(
    discussion_id: str,
    reply_data: ReplyCreate,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    exists = await execute_with_retry(db, select(Discussion.id).where(Discussion.id == discussion_id))
    if not exists.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Discussion not found")

    reply = DiscussionReply(
        discussion_id=discussion_id,
        user_id=current_user.id,
        content=reply_data.content,
    )
    db.add(reply)
    await db.commit()

    return {
        "message": "Reply added successfully",
        "reply": {
            "id": reply.id,
            "discussion_id": reply.discussion_id,
            "user_id": reply.user_id,
            "content": reply.content,
            "author_name": current_user.name,
            "created_at": reply.created_at,
        },
    }


@router.delete("/{discussion_id}")
async def delete_discussion(
    discussion_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Owners delete their own threads; admins can delete any"""
    query = select(Discussion).where(Discussion.id == discussion_id)
    if not current_user.is_admin:
        query = query.where(Discussion.user_id == current_user.id)

    result = await execute_with_retry(db, query)
    discussion = result.scalar_one_or_none()
    if not discussion:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Discussion not found or unauthorized"
        )

    await db.delete(discussion)
    await db.commit()

    return {"message": "Discussion deleted successfully"}
