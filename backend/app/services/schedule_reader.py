from __future__ import annotations

from collections import defaultdict

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.result import Ok, Result, not_found
from app.db.repository import get_active_term, is_live
from app.models.academic_calendar import AcademicYear, Term
from app.models.course import Course, CourseStudent
from app.models.schedule_slot import ScheduleSlot
from app.models.school_class import SchoolClass
from app.models.subject import Subject
from app.models.user import User, UserRole
from app.schemas.schedule import (
    GridCellOut,
    MasterScheduleOut,
    MasterScheduleTeacherOut,
    ScheduleSlotOut,
    StudentScheduleEntryOut,
    TeacherScheduleCourseOut,
    TeacherScheduleOut,
    TeacherSummary,
    TeacherWithCoursesOut,
    TermSummary,
)
from app.services.slot_grid import (
    day_name,
    live_slots_query,
    period_label,
    stored_day_to_ui,
    validate_coordinate,
)
from app.services.view_cache import MASTER_SCHEDULE_KEY, cached_view, teacher_schedule_key


def slot_out(slot: ScheduleSlot) -> ScheduleSlotOut:
    return ScheduleSlotOut(
        id=slot.id,
        course_id=slot.course_id,
        day_of_week=slot.day_of_week,
        ui_day=stored_day_to_ui(slot.day_of_week),
        day_name=day_name(slot.day_of_week),
        period=slot.period,
        period_label=period_label(slot.period),
    )


def _term_summary(db: Session, term: Term | None) -> TermSummary | None:
    if term is None:
        return None
    year = db.get(AcademicYear, term.academic_year_id)
    return TermSummary(id=term.id, type=term.type.value, academic_year_name=year.name if year else None)


def _active_term_courses(db: Session, *, teacher_ids: list[str] | None = None) -> list[Course]:
    statement = (
        select(Course)
        .join(Term, Term.id == Course.term_id)
        .where(is_live(Course), is_live(Term), Term.is_active.is_(True))
        .order_by(Course.name.asc(), Course.id.asc())
    )
    if teacher_ids is not None:
        statement = statement.where(Course.teacher_id.in_(teacher_ids))
    return list(db.execute(statement).scalars())


def _course_rows(db: Session, courses: list[Course], *, with_slots: bool) -> list[TeacherScheduleCourseOut]:
    if not courses:
        return []
    course_ids = [course.id for course in courses]
    class_ids = {course.class_id for course in courses if course.class_id}
    subject_ids = {course.subject_id for course in courses if course.subject_id}

    class_names = (
        dict(db.execute(select(SchoolClass.id, SchoolClass.name).where(SchoolClass.id.in_(class_ids))).all())
        if class_ids
        else {}
    )
    subject_names = (
        dict(db.execute(select(Subject.id, Subject.name).where(Subject.id.in_(subject_ids))).all())
        if subject_ids
        else {}
    )
    student_counts = dict(
        db.execute(
            select(CourseStudent.course_id, func.count(CourseStudent.id))
            .where(CourseStudent.course_id.in_(course_ids))
            .group_by(CourseStudent.course_id)
        ).all()
    )

    slots_by_course: dict[str, list[ScheduleSlotOut]] = defaultdict(list)
    if with_slots:
        slots = db.execute(
            select(ScheduleSlot)
            .where(ScheduleSlot.course_id.in_(course_ids), is_live(ScheduleSlot))
            .order_by(ScheduleSlot.day_of_week.asc(), ScheduleSlot.period.asc())
        ).scalars()
        for slot in slots:
            slots_by_course[slot.course_id].append(slot_out(slot))

    return [
        TeacherScheduleCourseOut(
            id=course.id,
            name=course.name,
            report_name=course.report_name,
            class_id=course.class_id,
            class_name=class_names.get(course.class_id),
            subject_id=course.subject_id,
            subject_name=subject_names.get(course.subject_id),
            student_count=student_counts.get(course.id, 0),
            slots=slots_by_course.get(course.id, []),
        )
        for course in courses
    ]


def _cells(rows: list[TeacherScheduleCourseOut]) -> list[GridCellOut]:
    cells = [
        GridCellOut(
            slot_id=slot.id,
            day_of_week=slot.day_of_week,
            ui_day=slot.ui_day,
            period=slot.period,
            period_label=slot.period_label,
            course_id=row.id,
            course_name=row.name,
            class_name=row.class_name,
            subject_name=row.subject_name,
        )
        for row in rows
        for slot in row.slots
    ]
    return sorted(cells, key=lambda cell: (cell.ui_day, cell.period))


def _get_teacher(db: Session, teacher_id: str) -> User | None:
    teacher = db.get(User, teacher_id)
    if teacher is None or not teacher.is_teacher:
        return None
    return teacher


def get_teacher_schedule(db: Session, teacher_id: str) -> Result[TeacherScheduleOut]:
    teacher = _get_teacher(db, teacher_id)
    if teacher is None:
        return not_found("Teacher not found")

    def build() -> TeacherScheduleOut:
        rows = _course_rows(db, _active_term_courses(db, teacher_ids=[teacher.id]), with_slots=True)
        return TeacherScheduleOut(
            teacher=TeacherSummary(id=teacher.id, name=teacher.name, email=teacher.email),
            term=_term_summary(db, get_active_term(db)),
            courses=rows,
            cells=_cells(rows),
        )

    return Ok(cached_view(teacher_schedule_key(teacher.id), build))


def get_student_schedule(
    db: Session,
    student_id: str,
    day_of_week: int | None = None,
) -> Result[list[StudentScheduleEntryOut]]:
    student = db.get(User, student_id)
    if student is None or student.role != UserRole.student:
        return not_found("Student not found")
    if day_of_week is not None:
        validate_coordinate(day_of_week, 0)

    statement = (
        live_slots_query()
        .join(CourseStudent, CourseStudent.course_id == Course.id)
        .where(CourseStudent.student_id == student.id)
        .add_columns(Course)
        .order_by(ScheduleSlot.day_of_week.asc(), ScheduleSlot.period.asc())
    )
    if day_of_week is not None:
        statement = statement.where(ScheduleSlot.day_of_week == day_of_week)
    rows = db.execute(statement).all()

    teacher_ids = {course.teacher_id for _, course in rows}
    teacher_names = (
        dict(db.execute(select(User.id, User.name).where(User.id.in_(teacher_ids))).all()) if teacher_ids else {}
    )
    return Ok(
        [
            StudentScheduleEntryOut(
                slot_id=slot.id,
                course_id=course.id,
                course_name=course.report_name or course.name,
                teacher_id=course.teacher_id,
                teacher_name=teacher_names.get(course.teacher_id),
                day_of_week=slot.day_of_week,
                ui_day=stored_day_to_ui(slot.day_of_week),
                day_name=day_name(slot.day_of_week),
                period=slot.period,
                period_label=period_label(slot.period),
            )
            for slot, course in rows
        ]
    )


def get_master_schedule(db: Session) -> MasterScheduleOut:
    def build() -> MasterScheduleOut:
        courses = _active_term_courses(db)
        rows = _course_rows(db, courses, with_slots=True)
        teacher_by_course = {course.id: course.teacher_id for course in courses}
        teacher_ids = set(teacher_by_course.values())
        teacher_names = (
            dict(db.execute(select(User.id, User.name).where(User.id.in_(teacher_ids))).all())
            if teacher_ids
            else {}
        )

        grouped: dict[str, dict[str, dict[str, GridCellOut]]] = defaultdict(dict)
        for row in rows:
            teacher_id = teacher_by_course[row.id]
            for cell in _cells([row]):
                grouped[teacher_id].setdefault(str(cell.day_of_week), {})[str(cell.period)] = cell

        teachers = [
            MasterScheduleTeacherOut(
                teacher_id=teacher_id,
                teacher_name=teacher_names.get(teacher_id, ""),
                days=grouped.get(teacher_id, {}),
            )
            for teacher_id in teacher_ids
        ]
        teachers.sort(key=lambda item: (item.teacher_name.lower(), item.teacher_id))
        return MasterScheduleOut(term=_term_summary(db, get_active_term(db)), teachers=teachers)

    return cached_view(MASTER_SCHEDULE_KEY, build)


def list_teachers_with_courses(db: Session, search: str = "") -> list[TeacherWithCoursesOut]:
    statement = (
        select(User)
        .join(Course, Course.teacher_id == User.id)
        .join(Term, Term.id == Course.term_id)
        .where(
            User.is_active.is_(True),
            is_live(Course),
            is_live(Term),
            Term.is_active.is_(True),
        )
        .distinct()
        .order_by(User.name.asc())
    )
    term = search.strip()
    if term:
        statement = statement.where(User.name.ilike(f"%{term}%"))
    teachers = list(db.execute(statement).scalars())
    if not teachers:
        return []

    courses = _active_term_courses(db, teacher_ids=[teacher.id for teacher in teachers])
    rows = _course_rows(db, courses, with_slots=False)
    rows_by_teacher: dict[str, list[TeacherScheduleCourseOut]] = defaultdict(list)
    for course, row in zip(courses, rows):
        rows_by_teacher[course.teacher_id].append(row)

    return [
        TeacherWithCoursesOut(
            id=teacher.id,
            name=teacher.name,
            email=teacher.email,
            courses=rows_by_teacher.get(teacher.id, []),
        )
        for teacher in teachers
    ]
