"""
Course structure endpoints: modules and the lessons inside them.

Adding a module or a lesson notifies every enrolled student.
"""
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from nanoflows.api.v1.endpoints.courses import get_course_or_404
from nanoflows.core.database import get_db, execute_with_retry
from nanoflows.core.logging_config import logger
from nanoflows.models import Course, Module, Lesson, Quiz, Assignment
from nanoflows.modules.auth import get_current_user, require_admin
from nanoflows.schemas.auth import CurrentUser
from nanoflows.schemas.course import (
    ModuleCreate,
    ModuleUpdate,
    ModuleResponse,
    LessonCreate,
    LessonUpdate,
    LessonResponse,
)
from nanoflows.services.email_service import email_service
from nanoflows.services.notification_service import notification_service

router = APIRouter()


async def _get_module(db: AsyncSession, module_id: str) -> Module:
    result = await execute_with_retry(db, select(Module).where(Module.id == module_id))
    module = result.scalar_one_or_none()
    if not module:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Module not found")
    return module


async def _get_lesson(db: AsyncSession, lesson_id: str) -> Lesson:
    result = await execute_with_retry(db, select(Lesson).where(Lesson.id == lesson_id))
    lesson = result.scalar_one_or_none()
    if not lesson:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lesson not found")
    return lesson


async def _counts_by_lesson(db: AsyncSession, model, course_id: str) -> dict:
    result = await execute_with_retry(
        db,
        select(model.lesson_id, func.count(model.id))
        .where(model.course_id == course_id, model.lesson_id.isnot(None))
        .group_by(model.lesson_id)
    )
    return {lesson_id: count for lesson_id, count in result.all()}


async def _announce(
    db: AsyncSession,
    background_tasks: BackgroundTasks,
    course: Course,
    message: str
) -> None:
    students = await notification_service.notify_course_update(db, course.id, course.title, message)
    if students:
        background_tasks.add_task(email_service.send_course_update_email, students, course.title, message)


@router.get("/course/{course_id}")
async def get_course_modules(
    course_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Modules in order, each with its lessons and per-lesson quiz/assignment counts"""
    result = await execute_with_retry(
        db,
        select(Module)
        .where(Module.course_id == course_id)
        .options(selectinload(Module.lessons))
        .order_by(Module.order_index)
    )
    modules = result.scalars().all()

    quiz_counts = await _counts_by_lesson(db, Quiz, course_id)
    assignment_counts = await _counts_by_lesson(db, Assignment, course_id)

    payload = []
    for module in modules:
        item = ModuleResponse.model_validate(module).model_dump()
        lessons = []
        for lesson in module.lessons:
            lesson_item = LessonResponse.model_validate(lesson).model_dump()
            lesson_item["quiz_count"] = quiz_counts.get(lesson.id, 0)
            lesson_item["assignment_count"] = assignment_counts.get(lesson.id, 0)
            lessons.append(lesson_item)
        item["lessons"] = lessons
        item["lesson_count"] = len(lessons)
        payload.append(item)

    return {"modules": payload}


# ==================== Modules ====================

@router.post("/module", status_code=status.HTTP_201_CREATED)
async def create_module(
    module_data: ModuleCreate,
    background_tasks: BackgroundTasks,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    course = await get_course_or_404(db, module_data.course_id)

    order_index = module_data.order_index
    if order_index is None:
        count = await execute_with_retry(
            db, select(func.count(Module.id)).where(Module.course_id == course.id)
        )
        order_index = count.scalar() or 0

    module = Module(**module_data.model_dump(exclude={"order_index"}), order_index=order_index)
    db.add(module)
    await db.flush()

    await _announce(db, background_tasks, course, f"New module added: {module.title}")
    await db.commit()
    await db.refresh(module)

    logger.info(f"[Modules] Module {module.id} added to course {course.id}")
    return {
        "message": "Module created successfully",
        "module": ModuleResponse.model_validate(module),
    }


@router.put("/module/{module_id}")
async def update_module(
    module_id: str,
    module_data: ModuleUpdate,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    module = await _get_module(db, module_id)

    for field, value in module_data.model_dump(exclude_unset=True).items():
        setattr(module, field, value)

    await db.commit()
    await db.refresh(module)

    return {
        "message": "Module updated successfully",
        "module": ModuleResponse.model_validate(module),
    }


@router.delete("/module/{module_id}")
async def delete_module(
    module_id: str,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    module = await _get_module(db, module_id)

    await db.delete(module)
    await db.commit()

    return {"message": "Module deleted successfully"}


# ==================== Lessons ====================

@router.post("/lesson", status_code=status.HTTP_201_CREATED)
async def create_lesson(
    lesson_data: LessonCreate,
    background_tasks: BackgroundTasks,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    module = await _get_module(db, lesson_data.module_id)
    course = await get_course_or_404(db, module.course_id)

    order_index = lesson_data.order_index
    if order_index is None:
        count = await execute_with_retry(
            db, select(func.count(Lesson.id)).where(Lesson.module_id == module.id)
        )
        order_index = count.scalar() or 0

    lesson = Lesson(
        **lesson_data.model_dump(exclude={"order_index"}),
        course_id=module.course_id,
        order_index=order_index,
    )
    db.add(lesson)
    await db.flush()

    await _announce(db, background_tasks, course, f"New lesson added: {lesson.title}")
    await db.commit()
    await db.refresh(lesson)

    return {
        "message": "Lesson created successfully",
        "lesson": LessonResponse.model_validate(lesson),
    }


@router.put("/lesson/{lesson_id}")
async def update_lesson(
    lesson_id: str,
    lesson_data: LessonUpdate,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    lesson = await _get_lesson(db, lesson_id)

    for field, value in lesson_data.model_dump(exclude_unset=True).items():
        setattr(lesson, field, value)

    await db.commit()
    await db.refresh(lesson)

    return {
        "message": "Lesson updated successfully",
        "lesson": LessonResponse.model_validate(lesson),
    }


@router.delete("/lesson/{lesson_id}")
async def delete_lesson(
    lesson_id: str,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    lesson = await _get_lesson(db, lesson_id)

    await db.delete(lesson)
    await db.commit()

    return {"message": "Lesson deleted successfully"}
