"""Weekly timetable coordinates.

Stored days follow the Sunday = 0 convention. Screens list the week Monday
first, so UI day indexes have to be translated with :func:`ui_day_to_stored`
before they reach the schedule services.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db.repository import is_live
from app.models.academic_calendar import Term
from app.models.course import Course
from app.models.schedule_slot import ScheduleSlot

DAYS_PER_WEEK = 7
PERIODS_PER_DAY = 8
DAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


@dataclass(frozen=True, order=True)
class SlotCoordinate:
    day_of_week: int
    period: int

    def __post_init__(self) -> None:
        validate_coordinate(self.day_of_week, self.period)

    @property
    def key(self) -> str:
        return f"{self.day_of_week}-{self.period}"

    @property
    def day_name(self) -> str:
        return DAY_NAMES[self.day_of_week]


def validate_coordinate(day_of_week: int, period: int) -> None:
    if not 0 <= day_of_week < DAYS_PER_WEEK:
        raise ValueError(f"day_of_week must be between 0 and {DAYS_PER_WEEK - 1}, got {day_of_week}")
    if not 0 <= period < PERIODS_PER_DAY:
        raise ValueError(f"period must be between 0 and {PERIODS_PER_DAY - 1}, got {period}")


def ui_day_to_stored(ui_day: int) -> int:
    """Map a Monday-first UI index (0 = Monday .. 6 = Sunday) to the stored day."""
    if not 0 <= ui_day < DAYS_PER_WEEK:
        raise ValueError(f"ui_day must be between 0 and {DAYS_PER_WEEK - 1}, got {ui_day}")
    return 0 if ui_day == 6 else ui_day + 1


def stored_day_to_ui(day_of_week: int) -> int:
    if not 0 <= day_of_week < DAYS_PER_WEEK:
        raise ValueError(f"day_of_week must be between 0 and {DAYS_PER_WEEK - 1}, got {day_of_week}")
    return 6 if day_of_week == 0 else day_of_week - 1


def day_name(day_of_week: int) -> str:
    return DAY_NAMES[day_of_week]


def period_label(period: int) -> str:
    if period == 0:
        return "Morning"
    if period == PERIODS_PER_DAY - 1:
        return "Night"
    return f"Period {period}"


def as_coordinates(slots: Iterable) -> list[SlotCoordinate]:
    """Accept coordinates, ``(day, period)`` pairs or ``{"day", "period"}`` mappings."""
    coordinates: list[SlotCoordinate] = []
    for slot in slots:
        if isinstance(slot, SlotCoordinate):
            coordinates.append(slot)
        elif isinstance(slot, dict):
            coordinates.append(SlotCoordinate(int(slot["day"]), int(slot["period"])))
        else:
            day, period = slot
            coordinates.append(SlotCoordinate(int(day), int(period)))
    return coordinates


def live_slots_query():
    """Slots that count: live slot, live course, course in the active live term."""
    return (
        select(ScheduleSlot)
        .join(Course, Course.id == ScheduleSlot.course_id)
        .join(Term, Term.id == Course.term_id)
        .where(
            is_live(ScheduleSlot),
            is_live(Course),
            is_live(Term),
            Term.is_active.is_(True),
        )
    )


def find_occupied_slot(
    db: Session,
    *,
    day_of_week: int,
    period: int,
    teacher_id: str | None = None,
    course_id: str | None = None,
) -> ScheduleSlot | None:
    if teacher_id is None and course_id is None:
        raise ValueError("find_occupied_slot needs a teacher_id or a course_id")
    validate_coordinate(day_of_week, period)
    statement = live_slots_query().where(
        ScheduleSlot.day_of_week == day_of_week,
        ScheduleSlot.period == period,
    )
    if teacher_id is not None:
        statement = statement.where(Course.teacher_id == teacher_id)
    if course_id is not None:
        statement = statement.where(ScheduleSlot.course_id == course_id)
    return db.execute(statement.order_by(ScheduleSlot.created_at).limit(1)).scalar_one_or_none()
