from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime


# ============== Quizzes ==============

class QuizCreate(BaseModel):
    course_id: str
    module_id: Optional[str] = None
    lesson_id: Optional[str] = None
    question: str = Field(..., min_length=1)
    options: List[str]
    correct_answer: int
    explanation: Optional[str] = None
    points: int = Field(1, ge=0)
    order_index: int = Field(0, ge=0)


class QuizUpdate(BaseModel):
    question: Optional[str] = Field(None, min_length=1)
    options: Optional[List[str]] = None
    correct_answer: Optional[int] = None
    explanation: Optional[str] = None
    points: Optional[int] = Field(None, ge=0)
    order_index: Optional[int] = Field(None, ge=0)


class QuizStudentResponse(BaseModel):
    """Quiz as shown to students (no answer key)"""
    id: str
    course_id: str
    module_id: Optional[str] = None
    lesson_id: Optional[str] = None
    question: str
    options: List[str]
    points: int
    order_index: int

    class Config:
        from_attributes = True


class QuizResponse(QuizStudentResponse):
    correct_answer: int
    explanation: Optional[str] = None
    created_at: datetime


class QuizAttemptRequest(BaseModel):
    quiz_id: str
    selected_answer: int


class QuizAttemptResponse(BaseModel):
    id: str
    user_id: str
    quiz_id: str
    selected_answer: int
    is_correct: bool
    score: int
    attempted_at: datetime

    class Config:
        from_attributes = True


# ============== Assignments ==============

class AssignmentCreate(BaseModel):
    course_id: str
    module_id: Optional[str] = None
    lesson_id: Optional[str] = None
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    instructions: Optional[str] = None
    max_points: int = Field(100, gt=0)
    due_date: Optional[datetime] = None


class AssignmentUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    instructions: Optional[str] = None
    max_points: Optional[int] = Field(None, gt=0)
    due_date: Optional[datetime] = None


class AssignmentResponse(BaseModel):
    id: str
    course_id: str
    module_id: Optional[str] = None
    lesson_id: Optional[str] = None
    title: str
    description: Optional[str] = None
    instructions: Optional[str] = None
    max_points: int
    due_date: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class SubmissionCreate(BaseModel):
    assignment_id: str
    submission_text: Optional[str] = None
    submission_file_url: Optional[str] = None


class GradeRequest(BaseModel):
    score: Optional[float] = None
    feedback: Optional[str] = None


class SubmissionResponse(BaseModel):
    id: str
    assignment_id: str
    user_id: str
    submission_text: Optional[str] = None
    submission_file_url: Optional[str] = None
    status: str
    score: Optional[float] = None
    feedback: Optional[str] = None
    submitted_at: datetime
    graded_at: Optional[datetime] = None

    class Config:
        from_attributes = True
