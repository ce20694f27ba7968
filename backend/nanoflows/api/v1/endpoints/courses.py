"""
Course catalogue endpoints.

Students browse published courses; admins manage the full catalogue and
see enrollment and revenue figures.
"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from nanoflows.core.database import get_db, execute_with_retry
from nanoflows.core.logging_config import logger
from nanoflows.models import Course, Module, Lesson, Purchase
from nanoflows.modules.auth import require_admin, get_optional_user
from nanoflows.schemas.auth import CurrentUser
from nanoflows.schemas.course import (
    CourseCreate,
    CourseUpdate,
    CourseResponse,
    CourseDetailResponse,
)

router = APIRouter()


async def get_course_or_404(db: AsyncSession, course_id: str) -> Course:
    """Shared lookup used by the other academy routers"""
    result = await execute_with_retry(db, select(Course).where(Course.id == course_id))
    course = result.scalar_one_or_none()
    if not course:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found")
    return course


async def _load_course_tree(db: AsyncSession, course_id: str) -> Optional[Course]:
    result = await execute_with_retry(
        db,
        select(Course)
        .where(Course.id == course_id)
        .options(selectinload(Course.modules).selectinload(Module.lessons))
    )
    return result.scalar_one_or_none()


@router.get("")
async def list_courses(
    search: Optional[str] = None,
    category: Optional[str] = None,
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    db: AsyncSession = Depends(get_db)
):
    """Published courses, newest first unless a price sort is requested"""
    query = select(Course).where(Course.published == True)  # noqa: E712

    if search:
        query = query.where(Course.title.ilike(f"%{search}%"))
    if category:
        query = query.where(Course.category == category)

    if sort_by == "price_low":
        query = query.order_by(Course.price.asc())
    elif sort_by == "price_high":
        query = query.order_by(Course.price.desc())
    else:
        query = query.order_by(Course.created_at.desc())

    result = await execute_with_retry(db, query)
    courses = result.scalars().all()

    return {"courses": [CourseResponse.model_validate(c) for c in courses]}


@router.get("/admin/all")
async def admin_list_courses(
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Every course (published or not) with module and lesson counts"""
    module_count = (
        select(func.count(Module.id))
        .where(Module.course_id == Course.id)
        .correlate(Course)
        .scalar_subquery()
    )
    lesson_count = (
        select(func.count(Lesson.id))
        .where(Lesson.course_id == Course.id)
        .correlate(Course)
        .scalar_subquery()
    )

    result = await execute_with_retry(
        db,
        select(Course, module_count.label("module_count"), lesson_count.label("lesson_count"))
        .order_by(Course.created_at.desc())
    )

    courses = []
    for course, modules, lessons in result.all():
        item = CourseResponse.model_validate(course).model_dump()
        item["module_count"] = modules or 0
        item["lesson_count"] = lessons or 0
        courses.append(item)

    return {"courses": courses}


@router.get("/admin/{course_id}")
async def admin_get_course(
    course_id: str,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Course tree plus enrolled student count and revenue"""
    course = await _load_course_tree(db, course_id)
    if not course:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found")

    stats = await execute_with_retry(
        db,
        select(func.count(Purchase.id), func.coalesce(func.sum(Purchase.amount), 0))
        .where(Purchase.course_id == course_id)
    )
    enrolled, revenue = stats.one()

    return {
        "course": CourseDetailResponse.model_validate(course),
        "enrolled_students": enrolled or 0,
        "revenue": float(revenue or 0),
    }


@router.get("/{course_id}")
async def get_course(
    course_id: str,
    current_user: Optional[CurrentUser] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db)
):
    """Course with its modules and lessons in order"""
    course = await _load_course_tree(db, course_id)
    if not course:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found")

    purchased = False
    if current_user:
        result = await execute_with_retry(
            db,
            select(Purchase.id).where(
                Purchase.user_id == current_user.id,
                Purchase.course_id == course_id,
            )
        )
        purchased = result.first() is not None

    return {"course": CourseDetailResponse.model_validate(course), "purchased": purchased}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_course(
    course_data: CourseCreate,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    if course_data.free:
        price = 0.0
    elif not course_data.price:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Price is required for paid courses"
        )
    else:
        price = course_data.price

    values = course_data.model_dump(exclude={"price"})
    values["instructor_name"] = course_data.instructor_name or current_user.name

    course = Course(**values, price=price, created_by=current_user.id)
    db.add(course)
    await db.commit()
    await db.refresh(course)

    logger.info(f"[Courses] {current_user.email} created course {course.id} ({course.title})")

    return {
        "message": "Course created successfully",
        "course": CourseResponse.model_validate(course),
    }


@router.put("/{course_id}")
async def update_course(
    course_id: str,
    course_data: CourseUpdate,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    course = await get_course_or_404(db, course_id)

    for field, value in course_data.model_dump(exclude_unset=True).items():
        setattr(course, field, value)

    if course.free:
        course.price = 0.0
    elif course.price is None:
        course.price = 0.0

    await db.commit()
    await db.refresh(course)

    return {
        "message": "Course updated successfully",
        "course": CourseResponse.model_validate(course),
    }


@router.delete("/{course_id}")
async def delete_course(
    course_id: str,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Delete a course along with its modules, lessons, quizzes and assignments"""
    course = await get_course_or_404(db, course_id)

    await db.delete(course)
    await db.commit()

    logger.info(f"[Courses] {current_user.email} deleted course {course_id}")
    return {"message": "Course deleted successfully"}
