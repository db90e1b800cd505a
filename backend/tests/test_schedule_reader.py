from conftest import make_course, make_term, make_user, place_slot

from app.core.result import ErrorKind
from app.models.academic_calendar import SemesterType
from app.models.user import UserRole
from app.services.schedule_mutator import update_schedule
from app.services.schedule_reader import (
    get_master_schedule,
    get_student_schedule,
    get_teacher_schedule,
    list_teachers_with_courses,
)


def test_teacher_schedule_lists_active_term_courses_and_cells(db_session):
    term = make_term(db_session)
    teacher = make_user(db_session, "Teacher", UserRole.homeroom_teacher)
    student = make_user(db_session, "Sari", UserRole.student)
    math = make_course(db_session, "Math", teacher, term, students=[student])
    art = make_course(db_session, "Art", teacher, term)
    place_slot(db_session, math, 0, 7)
    place_slot(db_session, math, 1, 0)
    place_slot(db_session, art, 1, 3)

    view = get_teacher_schedule(db_session, teacher.id).data

    assert view.teacher.id == teacher.id
    assert view.term.id == term.id
    assert view.term.academic_year_name == "2026/2027"
    assert [course.name for course in view.courses] == ["Art", "Math"]
    assert [course.student_count for course in view.courses] == [0, 1]
    # Cells follow the Monday-first week, so Sunday comes last.
    assert [(cell.day_of_week, cell.period) for cell in view.cells] == [(1, 0), (1, 3), (0, 7)]
    assert view.cells[0].period_label == "Morning"
    assert view.cells[-1].period_label == "Night"


def test_teacher_schedule_for_unknown_teacher(db_session):
    student = make_user(db_session, "Sari", UserRole.student)

    assert get_teacher_schedule(db_session, "missing").kind == ErrorKind.not_found
    assert get_teacher_schedule(db_session, student.id).kind == ErrorKind.not_found


def test_inactive_term_slots_are_never_returned(db_session):
    active = make_term(db_session)
    inactive = make_term(db_session, semester_type=SemesterType.even, is_active=False)
    teacher = make_user(db_session, "Teacher", UserRole.teacher)
    student = make_user(db_session, "Sari", UserRole.student)
    current = make_course(db_session, "Current", teacher, active, students=[student])
    old = make_course(db_session, "Old", teacher, inactive, students=[student])
    place_slot(db_session, current, 2, 2)
    place_slot(db_session, old, 3, 3)

    teacher_view = get_teacher_schedule(db_session, teacher.id).data
    student_view = get_student_schedule(db_session, student.id).data
    master = get_master_schedule(db_session)

    assert [course.id for course in teacher_view.courses] == [current.id]
    assert [entry.course_id for entry in student_view] == [current.id]
    assert list(master.teachers[0].days) == ["2"]
    assert master.teachers[0].days["2"]["2"].course_id == current.id


def test_archived_term_hides_schedule(db_session):
    term = make_term(db_session)
    teacher = make_user(db_session, "Teacher", UserRole.teacher)
    math = make_course(db_session, "Math", teacher, term)
    place_slot(db_session, math, 2, 2)
    term.archive()
    db_session.commit()

    view = get_teacher_schedule(db_session, teacher.id).data

    assert view.term is None
    assert view.courses == []
    assert get_master_schedule(db_session).teachers == []


def test_student_schedule_sorted_and_filtered_by_day(db_session):
    term = make_term(db_session)
    teacher_a = make_user(db_session, "Teacher A", UserRole.teacher)
    teacher_b = make_user(db_session, "Teacher B", UserRole.teacher)
    student = make_user(db_session, "Sari", UserRole.student)
    math = make_course(db_session, "Math", teacher_a, term, students=[student])
    physics = make_course(db_session, "Physics", teacher_b, term, students=[student])
    math.report_name = "Mathematics"
    db_session.commit()
    place_slot(db_session, physics, 2, 1)
    place_slot(db_session, math, 1, 4)
    place_slot(db_session, math, 1, 2)

    week = get_student_schedule(db_session, student.id).data
    tuesday = get_student_schedule(db_session, student.id, day_of_week=2).data

    assert [(entry.day_of_week, entry.period) for entry in week] == [(1, 2), (1, 4), (2, 1)]
    assert week[0].course_name == "Mathematics"
    assert week[0].teacher_name == "Teacher A"
    assert week[0].day_name == "Monday"
    assert [entry.course_name for entry in tuesday] == ["Physics"]


def test_student_schedule_for_unknown_student(db_session):
    teacher = make_user(db_session, "Teacher", UserRole.teacher)

    assert get_student_schedule(db_session, teacher.id).kind == ErrorKind.not_found


def test_master_schedule_groups_by_teacher(db_session):
    term = make_term(db_session)
    zed = make_user(db_session, "Zed", UserRole.teacher)
    amy = make_user(db_session, "Amy", UserRole.teacher)
    art = make_course(db_session, "Art", zed, term)
    math = make_course(db_session, "Math", amy, term)
    place_slot(db_session, art, 1, 1)
    place_slot(db_session, math, 1, 1)
    place_slot(db_session, math, 4, 6)

    master = get_master_schedule(db_session)

    assert [row.teacher_name for row in master.teachers] == ["Amy", "Zed"]
    assert set(master.teachers[0].days) == {"1", "4"}
    assert master.teachers[0].days["4"]["6"].course_name == "Math"


def test_cached_views_are_refreshed_after_mutation(db_session):
    term = make_term(db_session)
    teacher = make_user(db_session, "Teacher", UserRole.teacher)
    math = make_course(db_session, "Math", teacher, term)

    assert get_teacher_schedule(db_session, teacher.id).data.cells == []
    assert get_master_schedule(db_session).teachers[0].days == {}

    assert update_schedule(db_session, teacher.id, 3, 3, math.id).ok

    assert len(get_teacher_schedule(db_session, teacher.id).data.cells) == 1
    assert get_master_schedule(db_session).teachers[0].days["3"]["3"].course_id == math.id


def test_teacher_listing_with_search(db_session):
    term = make_term(db_session)
    ayu = make_user(db_session, "Ayu", UserRole.homeroom_teacher)
    budi = make_user(db_session, "Budi", UserRole.teacher)
    make_user(db_session, "Idle", UserRole.teacher)
    make_course(db_session, "Math", ayu, term)
    make_course(db_session, "Physics", budi, term)

    assert [row.name for row in list_teachers_with_courses(db_session)] == ["Ayu", "Budi"]
    matches = list_teachers_with_courses(db_session, "bud")
    assert [row.name for row in matches] == ["Budi"]
    assert [course.name for course in matches[0].courses] == ["Physics"]
