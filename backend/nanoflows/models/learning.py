"""
Per-student learning state: lesson progress, certificates, notes and
course discussions.
"""

from sqlalchemy import Column, String, Boolean, DateTime, Integer, Float, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from nanoflows.core.database import Base
from nanoflows.core.types import GUID, generate_uuid


class UserProgress(Base):
    """One row per (user, lesson); time_spent accumulates across updates"""
    __tablename__ = "user_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "lesson_id", name="uq_progress_user_lesson"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(GUID, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    lesson_id = Column(GUID, ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False, index=True)

    completed = Column(Boolean, default=False, nullable=False)
    completion_percentage = Column(Float, default=0.0, nullable=False)
    last_position = Column(Integer, default=0, nullable=False)  # seconds into the video
    time_spent = Column(Integer, default=0, nullable=False)  # seconds, cumulative

    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Certificate(Base):
    __tablename__ = "certificates"
    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_certificate_user_course"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    certificate_id = Column(String(50), unique=True, index=True, nullable=False)  # NFC-XXXXXXXXXXXX-000000
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(GUID, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)

    student_name = Column(String(255), nullable=False)
    course_title = Column(String(255), nullable=False)
    certificate_url = Column(Text, nullable=True)  # /uploads/certificates/<id>.pdf

    issued_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User")
    course = relationship("Course")


class Note(Base):
    """Timestamped note a student takes while watching a lesson"""
    __tablename__ = "notes"
    __table_args__ = (
        UniqueConstraint("user_id", "lesson_id", "timestamp", name="uq_note_user_lesson_timestamp"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(GUID, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    lesson_id = Column(GUID, ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False, index=True)

    content = Column(Text, nullable=False)
    timestamp = Column(Integer, default=0, nullable=False)  # video position in seconds

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Discussion(Base):
    __tablename__ = "discussions"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(GUID, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    lesson_id = Column(GUID, ForeignKey("lessons.id", ondelete="SET NULL"), nullable=True, index=True)

    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    author = relationship("User")
    replies = relationship(
        "DiscussionReply",
        back_populates="discussion",
        cascade="all, delete",
        order_by="DiscussionReply.created_at",
    )


class DiscussionReply(Base):
    __tablename__ = "discussion_replies"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    discussion_id = Column(GUID, ForeignKey("discussions.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    discussion = relationship("Discussion", back_populates="replies")
    author = relationship("User")
