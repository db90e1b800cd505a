import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base
from app.models.lifecycle import LifecycleMixin


class Course(LifecycleMixin, Base):
    __tablename__ = "courses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    report_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    teacher_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    # Fixed at creation; schedule slots copy it for the per-term uniqueness index.
    term_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    subject_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    class_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())


class CourseStudent(Base):
    __tablename__ = "course_students"
    __table_args__ = (
        UniqueConstraint("course_id", "student_id", name="uq_course_students_course_student"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    course_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    student_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
