"""
Course enrollment endpoints.

Free courses are enrolled here directly; paid courses go through
/payments, which records the purchase once the payment is verified.
"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nanoflows.api.v1.endpoints.courses import get_course_or_404
from nanoflows.core.database import get_db, execute_with_retry
from nanoflows.core.logging_config import logger
from nanoflows.models import Purchase, PurchaseSource, Course, User
from nanoflows.modules.auth import get_current_user, require_admin
from nanoflows.schemas.auth import CurrentUser
from nanoflows.schemas.billing import PurchaseCreate, PurchaseResponse
from nanoflows.services.notification_service import notification_service

router = APIRouter()


async def find_purchase(db: AsyncSession, user_id: str, course_id: str) -> Optional[Purchase]:
    result = await execute_with_retry(
        db,
        select(Purchase).where(Purchase.user_id == user_id, Purchase.course_id == course_id)
    )
    return result.scalar_one_or_none()


async def enroll(
    db: AsyncSession,
    user_id: str,
    course: Course,
    source: PurchaseSource,
    payment_id: Optional[str] = None,
) -> Purchase:
    """Add a purchase row for the user; the caller commits"""
    purchase = Purchase(
        user_id=user_id,
        course_id=course.id,
        amount=0.0 if course.free else course.price,
        source=source,
        payment_id=payment_id,
    )
    db.add(purchase)
    await db.flush()
    logger.info(f"[Purchases] User {user_id} enrolled in course {course.id} via {source.value}")
    return purchase


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_purchase(
    purchase_data: PurchaseCreate,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    course = await get_course_or_404(db, purchase_data.course_id)

    if await find_purchase(db, current_user.id, course.id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Course already purchased")

    if not course.free:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Paid courses must be purchased through the payment flow"
        )

    purchase = await enroll(db, current_user.id, course, PurchaseSource.FREE)
    await db.commit()
    await db.refresh(purchase)

    return {
        "message": "Course purchased successfully",
        "purchase": PurchaseResponse.model_validate(purchase),
    }


@router.get("/my-purchases")
async def get_my_purchases(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    result = await execute_with_retry(
        db,
        select(Purchase, Course)
        .join(Course, Course.id == Purchase.course_id)
        .where(Purchase.user_id == current_user.id)
        .order_by(Purchase.purchased_at.desc())
    )

    purchases = []
    for purchase, course in result.all():
        item = PurchaseResponse.model_validate(purchase).model_dump()
        item.update({
            "title": course.title,
            "description": course.description,
            "thumbnail": course.thumbnail,
            "category": course.category,
            "instructor_name": course.instructor_name,
            "duration": course.duration,
            "free": course.free,
        })
        purchases.append(item)

    return {"purchases": purchases}


@router.get("/check/{course_id}")
async def check_purchase(
    course_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    course = await get_course_or_404(db, course_id)
    purchased = await find_purchase(db, current_user.id, course_id) is not None

    return {
        "purchased": purchased,
        "isFree": bool(course.free),
        "enrolled": purchased,
    }


@router.get("/all")
async def get_all_purchases(
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    result = await execute_with_retry(
        db,
        select(Purchase, User.name, User.email, Course.title)
        .join(User, User.id == Purchase.user_id)
        .join(Course, Course.id == Purchase.course_id)
        .order_by(Purchase.purchased_at.desc())
    )

    purchases = []
    for purchase, user_name, user_email, course_title in result.all():
        item = PurchaseResponse.model_validate(purchase).model_dump()
        item.update({"user_name": user_name, "user_email": user_email, "course_title": course_title})
        purchases.append(item)

    return {"purchases": purchases}


@router.get("/course/{course_id}/students")
async def get_course_students(
    course_id: str,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    await get_course_or_404(db, course_id)
    students = await notification_service.get_enrolled_students(db, course_id)
    return {"students": students, "count": len(students)}
