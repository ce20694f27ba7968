"""
Notification endpoints: a student's inbox and the admin activity feed.
"""
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from nanoflows.core.database import get_db, execute_with_retry
from nanoflows.models import Notification, User
from nanoflows.modules.auth import get_current_user, require_admin
from nanoflows.schemas.auth import CurrentUser
from nanoflows.schemas.notification import NotificationResponse
from nanoflows.services.notification_service import admin_type_label

router = APIRouter()

ADMIN_FEED_LIMIT = 1000


@router.get("/admin/all")
async def get_all_notifications(
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Latest notifications across all users, with recipient details"""
    result = await execute_with_retry(
        db,
        select(Notification, User.name, User.email)
        .join(User, User.id == Notification.user_id)
        .order_by(Notification.created_at.desc())
        .limit(ADMIN_FEED_LIMIT)
    )

    notifications = []
    for notification, user_name, user_email in result.all():
        item = NotificationResponse.model_validate(notification).model_dump()
        item.update({
            "type": admin_type_label(notification.type),
            "user_id": notification.user_id,
            "user_name": user_name,
            "user_email": user_email,
            "email_sent": notification.email_sent,
        })
        notifications.append(item)

    return {"notifications": notifications}


@router.get("")
async def get_my_notifications(
    limit: int = Query(50, ge=1, le=200),
    unread_only: bool = False,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    query = select(Notification).where(Notification.user_id == current_user.id)
    if unread_only:
        query = query.where(Notification.is_read == False)  # noqa: E712

    result = await execute_with_retry(
        db, query.order_by(Notification.created_at.desc()).limit(limit)
    )
    unread = await execute_with_retry(
        db,
        select(func.count(Notification.id)).where(
            Notification.user_id == current_user.id,
            Notification.is_read == False,  # noqa: E712
        )
    )

    return {
        "notifications": [NotificationResponse.model_validate(n) for n in result.scalars().all()],
        "unread_count": unread.scalar() or 0,
    }


@router.put("/read-all")
async def mark_all_read(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    result = await execute_with_retry(
        db,
        update(Notification)
        .where(Notification.user_id == current_user.id, Notification.is_read == False)  # noqa: E712
        .values(is_read=True, read_at=datetime.utcnow())
    )
    await db.commit()

    return {"message": "All notifications marked as read", "updated": result.rowcount}


@router.put("/{notification_id}/read")
async def mark_read(
    notification_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    result = await execute_with_retry(
        db,
        select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == current_user.id,
        )
    )
    notification = result.scalar_one_or_none()
    if not notification:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")

    if not notification.is_read:
        notification.is_read = True
        notification.read_at = datetime.utcnow()
        await db.commit()

    return {"notification": NotificationResponse.model_validate(notification)}
