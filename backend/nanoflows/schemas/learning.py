from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


# ============== Progress ==============

class ProgressUpdate(BaseModel):
    lesson_id: str
    course_id: Optional[str] = None  # taken from the lesson when omitted
    completed: Optional[bool] = None
    completion_percentage: Optional[float] = Field(None, ge=0, le=100)
    last_position: Optional[int] = Field(None, ge=0)
    time_spent: int = Field(0, ge=0)  # seconds to add


class ProgressResponse(BaseModel):
    id: str
    user_id: str
    course_id: str
    lesson_id: str
    completed: bool
    completion_percentage: float
    last_position: int
    time_spent: int
    completed_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ============== Certificates ==============

class CertificateResponse(BaseModel):
    id: str
    certificate_id: str
    user_id: str
    course_id: str
    student_name: str
    course_title: str
    certificate_url: Optional[str] = None
    issued_at: datetime

    class Config:
        from_attributes = True


# ============== Notes ==============

class NoteCreate(BaseModel):
    course_id: str
    lesson_id: str
    content: str = Field(..., min_length=1)
    timestamp: int = Field(0, ge=0)


class NoteResponse(BaseModel):
    id: str
    course_id: str
    lesson_id: str
    content: str
    timestamp: int
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ============== Discussions ==============

class DiscussionCreate(BaseModel):
    course_id: str
    lesson_id: Optional[str] = None
    title: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1)


class ReplyCreate(BaseModel):
    content: str = Field(..., min_length=1)
