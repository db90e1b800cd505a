from conftest import make_course, make_term, make_user, place_slot

from app.models.academic_calendar import SemesterType
from app.models.user import UserRole
from app.services.schedule_conflicts import (
    check_course_schedule_update_conflict,
    check_student_schedule_conflict,
    enrollment_conflict_message,
    get_conflicting_courses,
)


def _school(db):
    term = make_term(db)
    teacher_a = make_user(db, "Teacher A", UserRole.teacher)
    teacher_b = make_user(db, "Teacher B", UserRole.teacher)
    alice = make_user(db, "Alice", UserRole.student)
    bob = make_user(db, "Bob", UserRole.student)
    math = make_course(db, "Math", teacher_a, term, students=[alice, bob])
    physics = make_course(db, "Physics", teacher_b, term, students=[alice, bob])
    return term, teacher_a, teacher_b, alice, bob, math, physics


def test_course_update_reports_every_clash(db_session):
    _, _, _, alice, bob, math, physics = _school(db_session)
    place_slot(db_session, physics, 1, 2)
    place_slot(db_session, physics, 2, 3)

    conflicts = check_course_schedule_update_conflict(db_session, math.id, [(1, 2), (2, 3), (4, 4)])

    assert len(conflicts) == 4
    assert {item.student_id for item in conflicts} == {alice.id, bob.id}
    assert conflicts[0].message == "Conflict for student Alice with Physics on Monday Period 2"


def test_course_update_ignores_the_course_itself(db_session):
    _, _, _, _, _, math, _ = _school(db_session)
    place_slot(db_session, math, 1, 2)

    assert check_course_schedule_update_conflict(db_session, math.id, [(1, 2)]) == []


def test_course_without_students_never_conflicts(db_session):
    term = make_term(db_session)
    teacher = make_user(db_session, "Teacher", UserRole.teacher)
    empty = make_course(db_session, "Empty", teacher, term)

    assert check_course_schedule_update_conflict(db_session, empty.id, [(1, 1)]) == []


def test_student_check_returns_first_clash_only(db_session):
    term = make_term(db_session)
    teacher_a = make_user(db_session, "Teacher A", UserRole.teacher)
    teacher_b = make_user(db_session, "Teacher B", UserRole.teacher)
    alice = make_user(db_session, "Alice", UserRole.student)
    math = make_course(db_session, "Math", teacher_a, term)
    physics = make_course(db_session, "Physics", teacher_b, term, students=[alice])
    place_slot(db_session, math, 3, 1)
    place_slot(db_session, math, 1, 5)
    place_slot(db_session, physics, 1, 5)
    place_slot(db_session, physics, 3, 1)

    clash = check_student_schedule_conflict(db_session, alice.id, math.id)

    assert clash is not None
    assert (clash.day_of_week, clash.period) == (1, 5)
    assert enrollment_conflict_message(clash) == "Schedule conflict with Physics on Monday Period 5"


def test_student_check_without_clash(db_session):
    _, _, _, alice, _, math, physics = _school(db_session)
    place_slot(db_session, math, 1, 1)
    place_slot(db_session, physics, 1, 2)

    assert check_student_schedule_conflict(db_session, alice.id, math.id) is None


def test_courses_of_other_terms_do_not_count(db_session):
    term = make_term(db_session)
    other_term = make_term(db_session, semester_type=SemesterType.even, is_active=False)
    teacher_a = make_user(db_session, "Teacher A", UserRole.teacher)
    teacher_b = make_user(db_session, "Teacher B", UserRole.teacher)
    alice = make_user(db_session, "Alice", UserRole.student)
    math = make_course(db_session, "Math", teacher_a, term, students=[alice])
    old_physics = make_course(db_session, "Old Physics", teacher_b, other_term, students=[alice])
    place_slot(db_session, old_physics, 1, 2)

    assert check_course_schedule_update_conflict(db_session, math.id, [(1, 2)]) == []


def test_archived_courses_do_not_count(db_session):
    _, _, _, _, _, math, physics = _school(db_session)
    place_slot(db_session, physics, 1, 2)
    physics.archive()
    db_session.commit()

    assert check_course_schedule_update_conflict(db_session, math.id, [(1, 2)]) == []


def test_conflicting_courses_for_a_cell(db_session):
    term = make_term(db_session)
    teacher_a = make_user(db_session, "Teacher A", UserRole.teacher)
    teacher_b = make_user(db_session, "Teacher B", UserRole.teacher)
    alice = make_user(db_session, "Alice", UserRole.student)
    bob = make_user(db_session, "Bob", UserRole.student)
    math = make_course(db_session, "Math", teacher_a, term, students=[alice])
    art = make_course(db_session, "Art", teacher_a, term, students=[bob])
    physics = make_course(db_session, "Physics", teacher_b, term, students=[alice])
    place_slot(db_session, physics, 4, 6)

    assert get_conflicting_courses(db_session, teacher_a.id, 4, 6) == [math.id]
    assert get_conflicting_courses(db_session, teacher_a.id, 4, 5) == []
    assert art.id not in get_conflicting_courses(db_session, teacher_a.id, 4, 6)


def test_cell_holder_does_not_block_its_replacement(db_session):
    term = make_term(db_session)
    teacher = make_user(db_session, "Homeroom", UserRole.homeroom_teacher)
    alice = make_user(db_session, "Alice", UserRole.student)
    math = make_course(db_session, "Math", teacher, term, students=[alice])
    art = make_course(db_session, "Art", teacher, term, students=[alice])
    place_slot(db_session, math, 2, 3)

    assert check_course_schedule_update_conflict(db_session, art.id, [(2, 3)])
    assert check_course_schedule_update_conflict(db_session, art.id, [(2, 3)], overrides={math.id: []}) == []
    assert get_conflicting_courses(db_session, teacher.id, 2, 3) == []
