"""
Lesson progress endpoints.

Completing the last lesson of a course issues its certificate.
"""
from datetime import datetime
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nanoflows.api.v1.endpoints.courses import get_course_or_404
from nanoflows.core.database import get_db, execute_with_retry
from nanoflows.core.logging_config import logger
from nanoflows.models import UserProgress, Lesson, User
from nanoflows.modules.auth import get_current_user, require_admin
from nanoflows.schemas.auth import CurrentUser
from nanoflows.schemas.learning import ProgressUpdate, ProgressResponse
from nanoflows.services.certificate_service import certificate_service
from nanoflows.services.progress_service import progress_service

router = APIRouter()


@router.post("")
async def update_progress(
    progress_data: ProgressUpdate,
    response: Response,
    background_tasks: BackgroundTasks,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Create or update progress for one lesson.

    completed, completion_percentage and last_position replace the stored
    values; time_spent is added to the running total.
    """
    lesson_result = await execute_with_retry(db, select(Lesson).where(Lesson.id == progress_data.lesson_id))
    lesson = lesson_result.scalar_one_or_none()
    if not lesson:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lesson not found")

    course_id = progress_data.course_id or lesson.course_id

    result = await execute_with_retry(
        db,
        select(UserProgress).where(
            UserProgress.user_id == current_user.id,
            UserProgress.lesson_id == lesson.id,
        )
    )
    progress = result.scalar_one_or_none()

    if progress is None:
        progress = UserProgress(
            user_id=current_user.id,
            course_id=course_id,
            lesson_id=lesson.id,
            completed=False,
            completion_percentage=0.0,
            last_position=0,
            time_spent=0,
        )
        db.add(progress)
        response.status_code = status.HTTP_201_CREATED
    else:
        response.status_code = status.HTTP_200_OK

    if progress_data.completed is not None:
        if progress_data.completed and not progress.completed:
            progress.completed_at = datetime.utcnow()
        progress.completed = progress_data.completed
    if progress_data.completion_percentage is not None:
        progress.completion_percentage = progress_data.completion_percentage
    if progress_data.last_position is not None:
        progress.last_position = progress_data.last_position
    progress.time_spent = (progress.time_spent or 0) + progress_data.time_spent

    await db.flush()

    certificate = None
    if progress_data.completed:
        completion = await progress_service.get_course_completion(db, current_user.id, course_id)
        if completion["total_lessons"] and completion["percentage"] >= 100:
            user = (await execute_with_retry(db, select(User).where(User.id == current_user.id))).scalar_one()
            course = await get_course_or_404(db, course_id)
            certificate = await certificate_service.issue(db, user, course, background_tasks)
            logger.info(f"[Progress] {current_user.id} completed course {course_id}")

    await db.commit()
    await db.refresh(progress)

    payload = {"progress": ProgressResponse.model_validate(progress)}
    if certificate is not None:
        payload["certificate_id"] = certificate.certificate_id
    return payload


@router.get("/course/{course_id}")
async def get_course_progress(
    course_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Per-lesson progress plus video completion stats for the player"""
    result = await execute_with_retry(
        db,
        select(UserProgress).where(
            UserProgress.user_id == current_user.id,
            UserProgress.course_id == course_id,
        )
    )
    progress = [ProgressResponse.model_validate(p) for p in result.scalars().all()]
    stats = await progress_service.get_video_stats(db, current_user.id, course_id)

    return {"progress": progress, "stats": stats}


@router.get("/user")
async def get_user_progress(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return {"courses": await progress_service.get_user_course_summaries(db, current_user.id)}


@router.get("/all")
async def get_all_progress(
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Progress of every student, newest activity first"""
    result = await execute_with_retry(
        db,
        select(UserProgress, User.name, User.email, Lesson.title)
        .join(User, User.id == UserProgress.user_id)
        .join(Lesson, Lesson.id == UserProgress.lesson_id)
        .order_by(UserProgress.updated_at.desc())
    )

    rows = []
    for progress, user_name, user_email, lesson_title in result.all():
        item = ProgressResponse.model_validate(progress).model_dump()
        item.update({"user_name": user_name, "user_email": user_email, "lesson_title": lesson_title})
        rows.append(item)

    return {"progress": rows}
