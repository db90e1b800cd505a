import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from app.db.base import Base
from app.models.lifecycle import LifecycleMixin

ACTIVE_SLOT_PREDICATE = text("status = 'active'")


class ScheduleSlot(LifecycleMixin, Base):
    __tablename__ = "schedule_slots"
    __table_args__ = (
        CheckConstraint("day_of_week >= 0 AND day_of_week <= 6", name="ck_schedule_slots_day_of_week"),
        CheckConstraint("period >= 0 AND period <= 7", name="ck_schedule_slots_period"),
        # A teacher cannot hold two live slots in the same cell of one term.
        Index(
            "uq_schedule_slots_teacher_cell",
            "teacher_id",
            "term_id",
            "day_of_week",
            "period",
            unique=True,
            sqlite_where=ACTIVE_SLOT_PREDICATE,
            postgresql_where=ACTIVE_SLOT_PREDICATE,
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    course_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    teacher_id: Mapped[str] = mapped_column(String(36), nullable=False)
    term_id: Mapped[str] = mapped_column(String(36), nullable=False)
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    period: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), onupdate=func.now())
