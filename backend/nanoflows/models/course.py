"""
Course catalogue: courses, their modules, and the lessons inside each module.

Deleting a course removes its modules, lessons, quizzes and assignments.
"""

from sqlalchemy import Column, String, Boolean, DateTime, Integer, Float, Text, ForeignKey, JSON
from sqlalchemy.orm import relationship
from datetime import datetime

from nanoflows.core.database import Base
from nanoflows.core.types import GUID, generate_uuid, ValueEnum, StrEnum


class CourseLevel(StrEnum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class LessonContentType(StrEnum):
    VIDEO = "video"
    ARTICLE = "article"
    RESOURCE = "resource"


class Course(Base):
    __tablename__ = "courses"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(100), nullable=False, index=True)
    level = Column(ValueEnum(CourseLevel), default=CourseLevel.BEGINNER, nullable=False)

    # Pricing (rupees); free courses always carry price 0
    price = Column(Float, default=0.0, nullable=False)
    free = Column(Boolean, default=False, nullable=False)

    thumbnail = Column(Text, nullable=True)
    preview_video_url = Column(Text, nullable=True)
    duration = Column(String(50), nullable=True)
    instructor_name = Column(String(255), nullable=True)
    published = Column(Boolean, default=True, nullable=False, index=True)

    created_by = Column(GUID, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    modules = relationship(
        "Module",
        back_populates="course",
        cascade="all, delete",
        order_by="Module.order_index",
    )
    lessons = relationship("Lesson", back_populates="course", cascade="all, delete")
    quizzes = relationship("Quiz", back_populates="course", cascade="all, delete")
    assignments = relationship("Assignment", back_populates="course", cascade="all, delete")

    def __repr__(self):
        return f"<Course {self.title}>"


class Module(Base):
    __tablename__ = "modules"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    course_id = Column(GUID, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    order_index = Column(Integer, default=0, nullable=False)
    resources = Column(JSON, default=list)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    course = relationship("Course", back_populates="modules")
    lessons = relationship(
        "Lesson",
        back_populates="module",
        cascade="all, delete",
        order_by="Lesson.order_index",
    )
    quizzes = relationship("Quiz", back_populates="module", cascade="all, delete")
    assignments = relationship("Assignment", back_populates="module", cascade="all, delete")

    def __repr__(self):
        return f"<Module {self.title}>"


class Lesson(Base):
    __tablename__ = "lessons"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    module_id = Column(GUID, ForeignKey("modules.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(GUID, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    content_type = Column(ValueEnum(LessonContentType), default=LessonContentType.VIDEO, nullable=False)
    video_url = Column(Text, nullable=True)
    video_duration = Column(String(20), default="0:00", nullable=False)
    content = Column(Text, nullable=True)
    resources = Column(JSON, default=list)

    order_index = Column(Integer, default=0, nullable=False)
    is_preview = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    module = relationship("Module", back_populates="lessons")
    course = relationship("Course", back_populates="lessons")
    quizzes = relationship("Quiz", back_populates="lesson", cascade="all, delete")
    assignments = relationship("Assignment", back_populates="lesson", cascade="all, delete")

    def __repr__(self):
        return f"<Lesson {self.title}>"
