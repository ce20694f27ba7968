"""
Video notes: one note per (user, lesson, timestamp), saved again to edit.
"""
from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from nanoflows.core.database import get_db, execute_with_retry
from nanoflows.models import Note, Lesson, Module
from nanoflows.modules.auth import get_current_user
from nanoflows.schemas.auth import CurrentUser
from nanoflows.schemas.learning import NoteCreate, NoteResponse

router = APIRouter()


@router.post("")
async def save_note(
    note_data: NoteCreate,
    response: Response,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    result = await execute_with_retry(
        db,
        select(Note).where(
            Note.user_id == current_user.id,
            Note.lesson_id == note_data.lesson_id,
            Note.timestamp == note_data.timestamp,
        )
    )
    note = result.scalar_one_or_none()

    if note:
        note.content = note_data.content
        message = "Note updated successfully"
    else:
        note = Note(user_id=current_user.id, **note_data.model_dump())
        db.add(note)
        response.status_code = status.HTTP_201_CREATED
        message = "Note saved successfully"

    await db.commit()
    await db.refresh(note)

    return {"message": message, "note": NoteResponse.model_validate(note)}


@router.get("/lesson/{lesson_id}")
async def get_lesson_notes(
    lesson_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    result = await execute_with_retry(
        db,
        select(Note)
        .where(Note.user_id == current_user.id, Note.lesson_id == lesson_id)
        .order_by(Note.timestamp, Note.created_at)
    )
    return {"notes": [NoteResponse.model_validate(n) for n in result.scalars().all()]}


@router.get("/course/{course_id}")
async def get_course_notes(
    course_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """All the caller's notes for a course, in lesson order"""
    result = await execute_with_retry(
        db,
        select(Note, Lesson.title, Module.title)
        .join(Lesson, Lesson.id == Note.lesson_id)
        .join(Module, Module.id == Lesson.module_id)
        .where(Note.user_id == current_user.id, Note.course_id == course_id)
        .order_by(Module.order_index, Lesson.order_index, Note.timestamp)
    )

    notes = []
    for note, lesson_title, module_title in result.all():
        item = NoteResponse.model_validate(note).model_dump()
        item.update({"lesson_title": lesson_title, "module_title": module_title})
        notes.append(item)

    return {"notes": notes}


@router.delete("/{note_id}")
async def delete_note(
    note_id: str,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    result = await execute_with_retry(
        db,
        select(Note).where(Note.id == note_id, Note.user_id == current_user.id)
    )
    note = result.scalar_one_or_none()
    if not note:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Note not found")

    await db.delete(note)
    await db.commit()

    return {"message": "Note deleted successfully"}
