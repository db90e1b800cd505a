from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_db
from app.core.security import create_access_token
from app.db.base import Base
from app.main import app
from app.models.academic_calendar import AcademicYear, SemesterType, Term
from app.models.course import Course, CourseStudent
from app.models.schedule_slot import ScheduleSlot
from app.models.user import User, UserRole
from app.services.view_cache import clear_view_cache


@pytest.fixture()
def engine():
    clear_view_cache()  # cached grids from a previous test would point at a dropped database
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()
    clear_view_cache()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def make_user(db, name: str, role: UserRole, *, email: str | None = None, is_active: bool = True) -> User:
    handle = name.lower().replace(" ", ".")
    user = User(name=name, email=email or f"{handle}@school.edu", role=role, is_active=is_active)
    db.add(user)
    db.commit()
    return user


def make_term(
    db,
    *,
    year_name: str = "2026/2027",
    semester_type: SemesterType = SemesterType.odd,
    is_active: bool = True,
) -> Term:
    year = db.query(AcademicYear).filter(AcademicYear.name == year_name).one_or_none()
    if year is None:
        year = AcademicYear(name=year_name, start_date=date(2026, 7, 1), end_date=date(2027, 6, 30), is_active=is_active)
        db.add(year)
        db.flush()
    term = Term(
        academic_year_id=year.id,
        type=semester_type,
        start_date=date(2026, 7, 13) if semester_type == SemesterType.odd else date(2027, 1, 11),
        end_date=date(2026, 12, 18) if semester_type == SemesterType.odd else date(2027, 6, 18),
        is_active=is_active,
    )
    db.add(term)
    db.commit()
    return term


def make_course(db, name: str, teacher: User, term: Term, *, students: list[User] = ()) -> Course:
    course = Course(name=name, teacher_id=teacher.id, term_id=term.id)
    db.add(course)
    db.flush()
    db.add_all(CourseStudent(course_id=course.id, student_id=student.id) for student in students)
    db.commit()
    return course


def place_slot(db, course: Course, day_of_week: int, period: int) -> ScheduleSlot:
    slot = ScheduleSlot(
        course_id=course.id,
        teacher_id=course.teacher_id,
        term_id=course.term_id,
        day_of_week=day_of_week,
        period=period,
    )
    db.add(slot)
    db.commit()
    return slot


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}
