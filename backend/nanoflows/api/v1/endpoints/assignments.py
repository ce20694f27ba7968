"""
Assignment endpoints: admins set and grade work, students submit once.
"""
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from nanoflows.api.v1.endpoints.courses import get_course_or_404
from nanoflows.core.database import get_db, execute_with_retry
from nanoflows.core.logging_config import logger
from nanoflows.models import Assignment, AssignmentSubmission, SubmissionStatus, User
from nanoflows.modules.auth import get_current_user, require_admin
from nanoflows.schemas.auth import CurrentUser
from nanoflows.schemas.assessment import (
    AssignmentCreate,
    AssignmentUpdate,
    AssignmentResponse,
    SubmissionCreate,
    GradeRequest,
    SubmissionResponse,
)

router = APIRouter()


async def _get_assignment(db: AsyncSession, assignment_id: str) -> Assignment:
    result = await execute_with_retry(db, select(Assignment).where(Assignment.id == assignment_id))
    assignment = result.scalar_one_or_none()
    if not assignment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Assignment not found")
    return assignment


async def _list(db: AsyncSession, *criteria):
    result = await execute_with_retry(
        db,
        select(Assignment).where(*criteria).order_by(Assignment.created_at)
    )
    return [AssignmentResponse.model_validate(a) for a in result.scalars().all()]


# ==================== Admin ====================

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_assignment(
    assignment_data: AssignmentCreate,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    if not assignment_data.module_id and not assignment_data.lesson_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Either module_id or lesson_id is required"
        )
    await get_course_or_404(db, assignment_data.course_id)

    assignment = Assignment(**assignment_data.model_dump())
    db.add(assignment)
    await db.commit()
    await db.refresh(assignment)

    return {
        "message": "Assignment created successfully",
        "assignment": AssignmentResponse.model_validate(assignment),
    }


@router.put("/{assignment_id}")
async def update_assignment(
    assignment_id: str,
    assignment_data: AssignmentUpdate,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    assignment = await _get_assignment(db, assignment_id)

    updates = assignment_data.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    for field, value in updates.items():
        setattr(assignment, field, value)

    await db.commit()
    await db.refresh(assignment)

    return {
        "message": "Assignment updated successfully",
        "assignment": AssignmentResponse.model_validate(assignment),
    }


@router.delete("/{assignment_id}")
async def delete_assignment(
    assignment_id: str,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    assignment = await _get_assignment(db, assignment_id)
    await db.delete(assignment)
    await db.commit()
    return {"message": "Assignment deleted successfully"}


@router.get("/course/{course_id}")
async def get_course_assignments(
    course_id: str,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    return {"assignments": await _list(db, Assignment.course_id == course_id)}


@router.get("/course/{course_id}/submissions")
async def get_course_submissions(
    course_id: str,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Every submission for the course, with student and assignment details"""
    result = await execute_with_retry(
        db,
        select(AssignmentSubmission, User.name, User.email, Assignment.title, Assignment.max_points)
        .join(Assignment, Assignment.id == AssignmentSubmission.assignment_id)
        .join(User, User.id == AssignmentSubmission.user_id)
        .where(Assignment.course_id == course_id)
        .order_by(AssignmentSubmission.submitted_at.desc())
    )

    submissions = []
    for submission, user_name, user_email, title, max_points in result.all():
        item = SubmissionResponse.model_validate(submission).model_dump()
        item.update({
            "user_name": user_name,
            "user_email": user_email,
            "assignment_title": title,
            "max_points": max_points,
        })
        submissions.append(item)

    return {"submissions": submissions}


@router.put("/submission/{submission_id}/grade")
async def grade_submission(
    submission_id: str,
    grade: GradeRequest,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    if grade.score is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Score is required")

    result = await execute_with_retry(
        db,
        select(AssignmentSubmission)
        .where(AssignmentSubmission.id == submission_id)
        .options(selectinload(AssignmentSubmission.assignment))
    )
    submission = result.scalar_one_or_none()
    if not submission:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Submission not found")

    max_points = submission.assignment.max_points
    if grade.score < 0 or grade.score > max_points:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Score must be between 0 and {max_points}"
        )

    submission.score = grade.score
    submission.feedback = grade.feedback
    submission.status = SubmissionStatus.GRADED
    submission.graded_at = datetime.utcnow()
    submission.graded_by = current_user.id

    await db.commit()
    await db.refresh(submission)

    logger.info(f"[Assignments] Submission {submission_id} graded {grade.score}/{max_points} by {current_user.email}")

    return {
        "message": "Assignment graded successfully",
        "submission": SubmissionResponse.model_validate(submission),
    }


# ==================== Students ====================

@router.get("/lesson/{lesson_id}")
async def get_lesson_assignments(
    lesson_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return {"assignments": await _list(db, Assignment.lesson_id == lesson_id)}


@router.get("/module/{module_id}")
async def get_module_assignments(
    module_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return {"assignments": await _list(db, Assignment.module_id == module_id)}


@router.post("/submit", status_code=status.HTTP_201_CREATED)
async def submit_assignment(
    submission_data: SubmissionCreate,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    if not submission_data.submission_text and not submission_data.submission_file_url:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Either submission text or file URL is required"
        )

    assignment = await _get_assignment(db, submission_data.assignment_id)

    existing = await execute_with_retry(
        db,
        select(AssignmentSubmission.id).where(
            AssignmentSubmission.assignment_id == assignment.id,
            AssignmentSubmission.user_id == current_user.id,
        )
    )
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Assignment already submitted")

    submission = AssignmentSubmission(
        assignment_id=assignment.id,
        user_id=current_user.id,
        submission_text=submission_data.submission_text,
        submission_file_url=submission_data.submission_file_url,
    )
    db.add(submission)
    await db.commit()
    await db.refresh(submission)

    return {
        "message": "Assignment submitted successfully",
        "submission": SubmissionResponse.model_validate(submission),
    }


@router.get("/submissions")
async def get_my_submissions(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    result = await execute_with_retry(
        db,
        select(AssignmentSubmission, Assignment.title, Assignment.max_points, Assignment.course_id)
        .join(Assignment, Assignment.id == AssignmentSubmission.assignment_id)
        .where(AssignmentSubmission.user_id == current_user.id)
        .order_by(AssignmentSubmission.submitted_at.desc())
    )

    submissions = []
    for submission, title, max_points, course_id in result.all():
        item = SubmissionResponse.model_validate(submission).model_dump()
        item.update({"assignment_title": title, "max_points": max_points, "course_id": course_id})
        submissions.append(item)

    return {"submissions": submissions}
