"""Seed a small demo school: accounts, an active semester, courses and a first timetable.

Run:
  PYTHONPATH=backend python scripts/seed_demo_school.py

Prints a bearer token for the demo admin so the API can be explored right away.
"""

from __future__ import annotations

from datetime import date
import os

from sqlalchemy import select

from app.core.result import Err
from app.core.security import create_access_token
from app.db.repository import get_active_term
from app.db.session import SessionLocal
from app.models.academic_calendar import SemesterType
from app.models.course import Course, CourseStudent
from app.models.user import User, UserRole
from app.services.academic_calendar import create_semester, set_active_term
from app.services.schedule_mutator import save_teacher_schedule

EMAIL_DOMAIN = os.getenv("DEMO_EMAIL_DOMAIN", "demo-school.org")
ACADEMIC_YEAR = os.getenv("DEMO_ACADEMIC_YEAR", "2026/2027")

DEMO_USERS = [
    ("Demo Admin", "admin", UserRole.admin),
    ("Ayu Lestari", "ayu", UserRole.homeroom_teacher),
    ("Budi Santoso", "budi", UserRole.teacher),
    ("Citra Dewi", "citra", UserRole.student),
    ("Dimas Pratama", "dimas", UserRole.student),
    ("Eka Putri", "eka", UserRole.student),
]

# teacher handle -> [(course name, [(day_of_week, period), ...])]
DEMO_TIMETABLE = {
    "ayu": [("Mathematics", [(1, 1), (3, 2)]), ("Homeroom", [(1, 0)])],
    "budi": [("Physics", [(2, 1), (4, 3)]), ("Chemistry", [(5, 2)])],
}


def _upsert_user(session, *, name: str, handle: str, role: UserRole) -> User:
    email = f"{handle}@{EMAIL_DOMAIN}"
    user = session.execute(select(User).where(User.email == email)).scalar_one_or_none()
    if user is None:
        user = User(name=name, email=email, role=role, is_active=True)
        session.add(user)
    else:
        user.name = name
        user.role = role
        user.is_active = True
    session.commit()
    return user


def _ensure_active_term(session, admin: User):
    term = get_active_term(session)
    if term is not None:
        return term
    created = create_semester(
        session,
        academic_year_name=ACADEMIC_YEAR,
        semester_type=SemesterType.odd,
        start_date=date(2026, 7, 13),
        end_date=date(2026, 12, 18),
        actor_id=admin.id,
    )
    if isinstance(created, Err):
        raise SystemExit(f"Could not create semester: {created.message}")
    activated = set_active_term(session, created.data.id, actor_id=admin.id)
    if isinstance(activated, Err):
        raise SystemExit(f"Could not activate semester: {activated.message}")
    return activated.data


def _ensure_course(session, *, name: str, teacher: User, term_id: str) -> Course:
    course = session.execute(
        select(Course).where(Course.name == name, Course.teacher_id == teacher.id, Course.term_id == term_id)
    ).scalar_one_or_none()
    if course is None:
        course = Course(name=name, teacher_id=teacher.id, term_id=term_id)
        session.add(course)
        session.commit()
    return course


def main() -> None:
    with SessionLocal() as session:
        users = {
            handle: _upsert_user(session, name=name, handle=handle, role=role)
            for name, handle, role in DEMO_USERS
        }
        admin = users["admin"]
        term = _ensure_active_term(session, admin)
        students = [user for user in users.values() if user.role == UserRole.student]

        for handle, courses in DEMO_TIMETABLE.items():
            teacher = users[handle]
            entries = []
            for course_name, cells in courses:
                course = _ensure_course(session, name=course_name, teacher=teacher, term_id=term.id)
                enrolled = set(
                    session.execute(
                        select(CourseStudent.student_id).where(CourseStudent.course_id == course.id)
                    ).scalars()
                )
                session.add_all(
                    CourseStudent(course_id=course.id, student_id=student.id)
                    for student in students
                    if student.id not in enrolled
                )
                session.commit()
                entries.extend({"day_of_week": day, "period": period, "course_id": course.id} for day, period in cells)

            outcome = save_teacher_schedule(session, teacher.id, entries, actor_id=admin.id)
            if isinstance(outcome, Err):
                raise SystemExit(f"Could not save timetable for {teacher.name}: {outcome.message}")
            print(f"{teacher.name}: {outcome.data}")

        print("\nDemo accounts:")
        for user in users.values():
            print(f"  {user.role.value:<17} {user.email}")
        print(f"\nAdmin bearer token:\n  {create_access_token(admin.id)}")


if __name__ == "__main__":
    main()
