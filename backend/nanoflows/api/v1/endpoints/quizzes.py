"""
Quiz endpoints.

Admins see and edit the answer key; students only get the question and
options until they submit an attempt.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nanoflows.api.v1.endpoints.courses import get_course_or_404
from nanoflows.core.database import get_db, execute_with_retry
from nanoflows.core.logging_config import logger
from nanoflows.models import Quiz, QuizAttempt, User
from nanoflows.modules.auth import get_current_user, require_admin
from nanoflows.schemas.auth import CurrentUser
from nanoflows.schemas.assessment import (
    QuizCreate,
    QuizUpdate,
    QuizResponse,
    QuizStudentResponse,
    QuizAttemptRequest,
    QuizAttemptResponse,
)

router = APIRouter()


def validate_options(options: Optional[List[str]], correct_answer: Optional[int]) -> None:
    if options is None or len(options) < 2:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Options must be a list with at least 2 items"
        )
    if correct_answer is None or correct_answer < 0 or correct_answer >= len(options):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid correct_answer index"
        )


async def _get_quiz(db: AsyncSession, quiz_id: str) -> Quiz:
    result = await execute_with_retry(db, select(Quiz).where(Quiz.id == quiz_id))
    quiz = result.scalar_one_or_none()
    if not quiz:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Quiz not found")
    return quiz


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_quiz(
    quiz_data: QuizCreate,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    if not quiz_data.module_id and not quiz_data.lesson_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Either module_id or lesson_id is required"
        )
    validate_options(quiz_data.options, quiz_data.correct_answer)
    await get_course_or_404(db, quiz_data.course_id)

    quiz = Quiz(**quiz_data.model_dump())
    db.add(quiz)
    await db.commit()
    await db.refresh(quiz)

    return {"message": "Quiz created successfully", "quiz": QuizResponse.model_validate(quiz)}


@router.put("/{quiz_id}")
async def update_quiz(
    quiz_id: str,
    quiz_data: QuizUpdate,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    quiz = await _get_quiz(db, quiz_id)
    updates = quiz_data.model_dump(exclude_unset=True)

    if "options" in updates or "correct_answer" in updates:
        validate_options(
            updates.get("options", quiz.options),
            updates.get("correct_answer", quiz.correct_answer),
        )

    for field, value in updates.items():
        setattr(quiz, field, value)

    await db.commit()
    await db.refresh(quiz)

    return {"message": "Quiz updated successfully", "quiz": QuizResponse.model_validate(quiz)}


@router.delete("/{quiz_id}")
async def delete_quiz(
    quiz_id: str,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    quiz = await _get_quiz(db, quiz_id)
    await db.delete(quiz)
    await db.commit()
    return {"message": "Quiz deleted successfully"}


@router.get("/course/{course_id}")
async def get_course_quizzes(
    course_id: str,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """All quizzes of a course, answer key included"""
    result = await execute_with_retry(
        db,
        select(Quiz).where(Quiz.course_id == course_id).order_by(Quiz.order_index, Quiz.created_at)
    )
    return {"quizzes": [QuizResponse.model_validate(q) for q in result.scalars().all()]}


@router.get("/course/{course_id}/scores")
async def get_course_scores(
    course_id: str,
    current_user: CurrentUser = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    result = await execute_with_retry(
        db,
        select(QuizAttempt, User.name, User.email, Quiz.question, Quiz.points)
        .join(Quiz, Quiz.id == QuizAttempt.quiz_id)
        .join(User, User.id == QuizAttempt.user_id)
        .where(Quiz.course_id == course_id)
        .order_by(QuizAttempt.attempted_at.desc())
    )

    scores = []
    for attempt, user_name, user_email, question, points in result.all():
        item = QuizAttemptResponse.model_validate(attempt).model_dump()
        item.update({
            "user_name": user_name,
            "user_email": user_email,
            "question": question,
            "max_points": points,
        })
        scores.append(item)

    return {"scores": scores}


@router.get("/lesson/{lesson_id}")
async def get_lesson_quizzes(
    lesson_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    result = await execute_with_retry(
        db,
        select(Quiz).where(Quiz.lesson_id == lesson_id).order_by(Quiz.order_index, Quiz.created_at)
    )
    return {"quizzes": [QuizStudentResponse.model_validate(q) for q in result.scalars().all()]}


@router.get("/module/{module_id}")
async def get_module_quizzes(
    module_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    result = await execute_with_retry(
        db,
        select(Quiz).where(Quiz.module_id == module_id).order_by(Quiz.order_index, Quiz.created_at)
    )
    return {"quizzes": [QuizStudentResponse.model_validate(q) for q in result.scalars().all()]}


@router.post("/attempt", status_code=status.HTTP_201_CREATED)
async def submit_attempt(
    attempt_data: QuizAttemptRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Grade an answer immediately and record the attempt"""
    quiz = await _get_quiz(db, attempt_data.quiz_id)

    is_correct = attempt_data.selected_answer == quiz.correct_answer
    score = quiz.points if is_correct else 0

    attempt = QuizAttempt(
        user_id=current_user.id,
        quiz_id=quiz.id,
        selected_answer=attempt_data.selected_answer,
        is_correct=is_correct,
        score=score,
    )
    db.add(attempt)
    await db.commit()
    await db.refresh(attempt)

    logger.debug(f"[Quizzes] {current_user.id} answered quiz {quiz.id}: correct={is_correct}")

    return {
        "attempt": QuizAttemptResponse.model_validate(attempt),
        "is_correct": is_correct,
        "score": score,
        "correct_answer": quiz.correct_answer,
        "explanation": quiz.explanation,
    }


@router.get("/scores")
async def get_my_scores(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    result = await execute_with_retry(
        db,
        select(QuizAttempt, Quiz.question, Quiz.course_id, Quiz.points)
        .join(Quiz, Quiz.id == QuizAttempt.quiz_id)
        .where(QuizAttempt.user_id == current_user.id)
        .order_by(QuizAttempt.attempted_at.desc())
    )

    scores = []
    for attempt, question, course_id, points in result.all():
        item = QuizAttemptResponse.model_validate(attempt).model_dump()
        item.update({"question": question, "course_id": course_id, "max_points": points})
        scores.append(item)

    return {"scores": scores}
