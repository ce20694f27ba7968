from pydantic import BaseModel, Field
from typing import Optional, List, Any
from datetime import datetime

from nanoflows.models.course import CourseLevel, LessonContentType


# ============== Courses ==============

class CourseCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1, max_length=100)
    price: Optional[float] = Field(None, ge=0)
    free: bool = False
    level: CourseLevel = CourseLevel.BEGINNER
    thumbnail: Optional[str] = None
    preview_video_url: Optional[str] = None
    duration: Optional[str] = None
    instructor_name: Optional[str] = None
    published: bool = True


class CourseUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    price: Optional[float] = Field(None, ge=0)
    free: Optional[bool] = None
    level: Optional[CourseLevel] = None
    thumbnail: Optional[str] = None
    preview_video_url: Optional[str] = None
    duration: Optional[str] = None
    instructor_name: Optional[str] = None
    published: Optional[bool] = None


class CourseResponse(BaseModel):
    id: str
    title: str
    description: str
    category: str
    level: str
    price: float
    free: bool
    thumbnail: Optional[str] = None
    preview_video_url: Optional[str] = None
    duration: Optional[str] = None
    instructor_name: Optional[str] = None
    published: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ============== Modules & Lessons ==============

class ModuleCreate(BaseModel):
    course_id: str
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    order_index: Optional[int] = Field(None, ge=0)
    resources: List[Any] = []


class ModuleUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    order_index: Optional[int] = Field(None, ge=0)
    resources: Optional[List[Any]] = None


class LessonCreate(BaseModel):
    module_id: str
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    content_type: LessonContentType = LessonContentType.VIDEO
    video_url: Optional[str] = None
    video_duration: str = "0:00"
    content: Optional[str] = None
    resources: List[Any] = []
    order_index: Optional[int] = Field(None, ge=0)
    is_preview: bool = False


class LessonUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    content_type: Optional[LessonContentType] = None
    video_url: Optional[str] = None
    video_duration: Optional[str] = None
    content: Optional[str] = None
    resources: Optional[List[Any]] = None
    order_index: Optional[int] = Field(None, ge=0)
    is_preview: Optional[bool] = None


class LessonResponse(BaseModel):
    id: str
    module_id: str
    course_id: str
    title: str
    description: Optional[str] = None
    content_type: str
    video_url: Optional[str] = None
    video_duration: str
    content: Optional[str] = None
    resources: Optional[List[Any]] = None
    order_index: int
    is_preview: bool

    class Config:
        from_attributes = True


class ModuleResponse(BaseModel):
    id: str
    course_id: str
    title: str
    description: Optional[str] = None
    order_index: int
    resources: Optional[List[Any]] = None

    class Config:
        from_attributes = True


class ModuleWithLessons(ModuleResponse):
    lessons: List[LessonResponse] = []


class CourseDetailResponse(CourseResponse):
    modules: List[ModuleWithLessons] = []
