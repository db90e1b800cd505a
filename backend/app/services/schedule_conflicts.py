"""Student double-booking checks.

Both checks are read-only. ``check_course_schedule_update_conflict`` reports
every clash it finds; ``check_student_schedule_conflict`` stops at the first
one because enrollment only needs a yes/no plus a reason. Callers decide how
much of the list to show.
"""
from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Iterable, Mapping

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db.repository import get_live, is_live
from app.models.academic_calendar import Term
from app.models.course import Course, CourseStudent
from app.models.schedule_slot import ScheduleSlot
from app.models.user import User
from app.services.slot_grid import SlotCoordinate, as_coordinates, day_name, find_occupied_slot


@dataclass(frozen=True)
class ScheduleConflict:
    course_id: str
    course_name: str
    day_of_week: int
    period: int

    def describe(self) -> str:
        return f"{self.course_name} on {day_name(self.day_of_week)} Period {self.period}"

    def as_dict(self) -> dict:
        return {
            "course_id": self.course_id,
            "course_name": self.course_name,
            "day_of_week": self.day_of_week,
            "period": self.period,
        }


@dataclass(frozen=True)
class StudentScheduleConflict:
    student_id: str
    student_name: str
    conflict: ScheduleConflict

    @property
    def message(self) -> str:
        return f"Conflict for student {self.student_name} with {self.conflict.describe()}"

    def as_dict(self) -> dict:
        return {
            "student_id": self.student_id,
            "student_name": self.student_name,
            "conflict": self.conflict.as_dict(),
        }


def enrollment_conflict_message(conflict: ScheduleConflict) -> str:
    return f"Schedule conflict with {conflict.describe()}"


def _enrolled_students(db: Session, course_id: str) -> list[User]:
    return list(
        db.execute(
            select(User)
            .join(CourseStudent, CourseStudent.student_id == User.id)
            .where(CourseStudent.course_id == course_id, User.is_active.is_(True))
            .order_by(User.name.asc(), User.id.asc())
        ).scalars()
    )


CellOverrides = Mapping[str, Iterable[tuple[int, int]]]


def course_cells(db: Session, course_id: str) -> set[tuple[int, int]]:
    """Stored ``(day_of_week, period)`` cells of a course's live slots."""
    rows = db.execute(
        select(ScheduleSlot.day_of_week, ScheduleSlot.period).where(
            ScheduleSlot.course_id == course_id,
            is_live(ScheduleSlot),
        )
    ).all()
    return {(day, period) for day, period in rows}


def _other_course_occupancy(
    db: Session,
    *,
    term_id: str,
    student_ids: list[str],
    exclude_course_id: str,
    overrides: CellOverrides | None = None,
) -> dict[str, list[tuple[Course, set[tuple[int, int]]]]]:
    """For each student, the other live courses of the active term and the cells they occupy.

    Courses named in ``overrides`` occupy the given cells instead of their stored ones.
    """
    overrides = overrides or {}
    if not student_ids:
        return {}
    rows = db.execute(
        select(CourseStudent.student_id, Course)
        .join(Course, Course.id == CourseStudent.course_id)
        .join(Term, Term.id == Course.term_id)
        .where(
            CourseStudent.student_id.in_(student_ids),
            Course.term_id == term_id,
            Course.id != exclude_course_id,
            is_live(Course),
            is_live(Term),
            Term.is_active.is_(True),
        )
        .order_by(Course.name.asc(), Course.id.asc())
    ).all()

    course_ids = {course.id for _, course in rows} - set(overrides)
    occupied_by_course: dict[str, set[tuple[int, int]]] = defaultdict(set)
    for course_id, cells in overrides.items():
        occupied_by_course[course_id] = {(int(day), int(period)) for day, period in cells}
    if course_ids:
        slots = db.execute(
            select(ScheduleSlot).where(ScheduleSlot.course_id.in_(course_ids), is_live(ScheduleSlot))
        ).scalars()
        for slot in slots:
            occupied_by_course[slot.course_id].add((slot.day_of_week, slot.period))

    occupancy: dict[str, list[tuple[Course, set[tuple[int, int]]]]] = defaultdict(list)
    for student_id, course in rows:
        occupancy[student_id].append((course, occupied_by_course.get(course.id, set())))
    return occupancy


def check_course_schedule_update_conflict(
    db: Session,
    course_id: str,
    candidate_slots: Iterable,
    *,
    overrides: CellOverrides | None = None,
) -> list[StudentScheduleConflict]:
    """Clashes the enrolled students would have if the course moved to ``candidate_slots``.

    ``candidate_slots`` is the complete proposed slot set of the course; the
    course's current slots are ignored. ``overrides`` maps other course ids to
    the cells they will hold once the same change is applied, so slots that
    change is vacating are not counted. Each (student, slot, other course)
    clash is reported once.
    """
    coordinates: list[SlotCoordinate] = as_coordinates(candidate_slots)
    course = get_live(db, Course, course_id)
    if course is None or not coordinates:
        return []

    students = _enrolled_students(db, course.id)
    if not students:
        return []

    occupancy = _other_course_occupancy(
        db,
        term_id=course.term_id,
        student_ids=[student.id for student in students],
        exclude_course_id=course.id,
        overrides=overrides,
    )

    conflicts: list[StudentScheduleConflict] = []
    for student in students:
        other_courses = occupancy.get(student.id, [])
        for coordinate in coordinates:
            cell = (coordinate.day_of_week, coordinate.period)
            for other_course, occupied in other_courses:
                if cell in occupied:
                    conflicts.append(
                        StudentScheduleConflict(
                            student_id=student.id,
                            student_name=student.name,
                            conflict=ScheduleConflict(
                                course_id=other_course.id,
                                course_name=other_course.name,
                                day_of_week=coordinate.day_of_week,
                                period=coordinate.period,
                            ),
                        )
                    )
    return conflicts


def check_student_schedule_conflict(db: Session, student_id: str, course_id: str) -> ScheduleConflict | None:
    """First cell of ``course_id`` that the student already spends in another course."""
    course = get_live(db, Course, course_id)
    if course is None:
        return None

    target_slots = list(
        db.execute(
            select(ScheduleSlot)
            .where(ScheduleSlot.course_id == course.id, is_live(ScheduleSlot))
            .order_by(ScheduleSlot.day_of_week.asc(), ScheduleSlot.period.asc())
        ).scalars()
    )
    if not target_slots:
        return None

    other_courses = _other_course_occupancy(
        db,
        term_id=course.term_id,
        student_ids=[student_id],
        exclude_course_id=course.id,
    ).get(student_id, [])

    for slot in target_slots:
        cell = (slot.day_of_week, slot.period)
        for other_course, occupied in other_courses:
            if cell in occupied:
                return ScheduleConflict(
                    course_id=other_course.id,
                    course_name=other_course.name,
                    day_of_week=slot.day_of_week,
                    period=slot.period,
                )
    return None


def get_conflicting_courses(db: Session, teacher_id: str, day_of_week: int, period: int) -> list[str]:
    """Ids of the teacher's active-term courses that cannot be placed in this cell.

    Placing a course reassigns the cell in place, so the course currently
    holding it does not count against the others.
    """
    coordinate = SlotCoordinate(day_of_week, period)
    occupant = find_occupied_slot(db, teacher_id=teacher_id, day_of_week=day_of_week, period=period)
    vacated = None
    if occupant is not None:
        vacated = {occupant.course_id: course_cells(db, occupant.course_id) - {(day_of_week, period)}}
    courses = db.execute(
        select(Course)
        .join(Term, Term.id == Course.term_id)
        .where(
            Course.teacher_id == teacher_id,
            is_live(Course),
            is_live(Term),
            Term.is_active.is_(True),
        )
        .order_by(Course.name.asc())
    ).scalars()
    return [
        course.id
        for course in courses
        if check_course_schedule_update_conflict(db, course.id, [coordinate], overrides=vacated)
    ]
