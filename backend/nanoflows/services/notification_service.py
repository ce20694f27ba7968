"""
Notification Service - records in-app notifications and fans out course
announcements to enrolled students.
"""

from typing import Optional, Dict, Any, List
from sqlalchemy.ext.asyncio import AsyncSession

from nanoflows.core.database import query_with_retry
from nanoflows.core.logging_config import logger
from nanoflows.models.notification import Notification, NotificationType


# Admin dashboard shows shorter type names than the ones stored
ADMIN_TYPE_LABELS = {
    NotificationType.PAYMENT_SUCCESS.value: "payment",
    NotificationType.CERTIFICATE_ISSUED.value: "certificate",
}


def admin_type_label(notification_type: str) -> str:
    return ADMIN_TYPE_LABELS.get(notification_type, notification_type)


class NotificationService:
    """Create notification rows; callers commit"""

    async def create(
        self,
        db: AsyncSession,
        user_id: str,
        notification_type: str,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> Notification:
        notification = Notification(
            user_id=str(user_id),
            type=str(notification_type),
            title=title,
            message=message,
            data=data or {},
        )
        db.add(notification)
        await db.flush()
        logger.debug(f"[Notification] {notification_type} queued for user {user_id}")
        return notification

    async def get_enrolled_students(self, db: AsyncSession, course_id: str) -> List[Dict[str, Any]]:
        """Active students with a purchase for the course"""
        result = await query_with_retry(
            """
            SELECT u.id, u.email, u.name
            FROM purchases p
            JOIN users u ON u.id = p.user_id
            WHERE p.course_id = $1 AND u.is_active = $2
            """,
            [str(course_id), True],
            db=db,
        )
        return result.rows

    async def notify_course_update(
        self,
        db: AsyncSession,
        course_id: str,
        course_title: str,
        message: str,
    ) -> List[Dict[str, Any]]:
        """
        Record a course_update notification for every enrolled student.

        Returns the recipients so the caller can schedule the email.
        """
        students = await self.get_enrolled_students(db, course_id)
        for student in students:
            await self.create(
                db,
                user_id=student["id"],
                notification_type=NotificationType.COURSE_UPDATE,
                title=f"New content in {course_title}",
                message=message,
                data={"course_id": str(course_id)},
            )

        if students:
            logger.info(f"[Notification] course_update sent to {len(students)} students of course {course_id}")
        return students


notification_service = NotificationService()
