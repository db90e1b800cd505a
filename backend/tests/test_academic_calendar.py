from datetime import date

from sqlalchemy import select

from app.core.result import ErrorKind
from app.db.repository import get_active_term
from app.models.academic_calendar import AcademicYear, SemesterType, Term
from app.services.academic_calendar import (
    archive_academic_year,
    archive_term,
    create_academic_year,
    create_semester,
    list_semesters,
    set_active_academic_year,
    set_active_term,
    update_semester,
)


def _semester(db, year_name: str, semester_type: SemesterType, start: date, end: date) -> Term:
    result = create_semester(
        db,
        academic_year_name=year_name,
        semester_type=semester_type,
        start_date=start,
        end_date=end,
    )
    assert result.ok, result
    return result.data


def _active_flags(db, model) -> list[str]:
    db.expire_all()
    return list(db.execute(select(model.id).where(model.is_active.is_(True))).scalars())


def test_semester_creation_finds_or_widens_year(db_session):
    odd = _semester(db_session, "2026/2027", SemesterType.odd, date(2026, 7, 13), date(2026, 12, 18))
    even = _semester(db_session, "2026/2027", SemesterType.even, date(2027, 1, 11), date(2027, 6, 18))

    years = list(db_session.execute(select(AcademicYear)).scalars())
    assert len(years) == 1
    assert odd.academic_year_id == even.academic_year_id == years[0].id
    assert (years[0].start_date, years[0].end_date) == (date(2026, 7, 13), date(2027, 6, 18))
    assert not odd.is_active and not even.is_active


def test_semester_dates_must_be_ordered(db_session):
    result = create_semester(
        db_session,
        academic_year_name="2026/2027",
        semester_type=SemesterType.odd,
        start_date=date(2026, 12, 1),
        end_date=date(2026, 12, 1),
    )

    assert result.kind == ErrorKind.validation
    assert db_session.execute(select(Term)).first() is None


def test_only_one_active_term_and_year(db_session):
    first = _semester(db_session, "2025/2026", SemesterType.even, date(2026, 1, 5), date(2026, 6, 12))
    second = _semester(db_session, "2026/2027", SemesterType.odd, date(2026, 7, 13), date(2026, 12, 18))

    assert set_active_term(db_session, first.id).ok
    assert _active_flags(db_session, Term) == [first.id]

    assert set_active_term(db_session, second.id).ok
    assert _active_flags(db_session, Term) == [second.id]
    assert _active_flags(db_session, AcademicYear) == [second.academic_year_id]
    assert get_active_term(db_session).id == second.id


def test_activating_unknown_term_changes_nothing(db_session):
    term = _semester(db_session, "2026/2027", SemesterType.odd, date(2026, 7, 13), date(2026, 12, 18))
    assert set_active_term(db_session, term.id).ok

    result = set_active_term(db_session, "missing")

    assert result.kind == ErrorKind.not_found
    assert _active_flags(db_session, Term) == [term.id]


def test_archiving_active_term_deactivates_it(db_session):
    term = _semester(db_session, "2026/2027", SemesterType.odd, date(2026, 7, 13), date(2026, 12, 18))
    set_active_term(db_session, term.id)

    assert archive_term(db_session, term.id).ok

    assert get_active_term(db_session) is None
    assert list_semesters(db_session) == []
    assert archive_term(db_session, term.id).kind == ErrorKind.not_found


def test_update_semester_moves_it_to_another_year(db_session):
    term = _semester(db_session, "2026/2027", SemesterType.odd, date(2026, 7, 13), date(2026, 12, 18))
    set_active_term(db_session, term.id)

    result = update_semester(
        db_session,
        term.id,
        academic_year_name="2027/2028",
        semester_type=SemesterType.odd,
        start_date=date(2027, 7, 12),
        end_date=date(2027, 12, 17),
    )

    assert result.ok
    new_year = db_session.execute(select(AcademicYear).where(AcademicYear.name == "2027/2028")).scalar_one()
    assert result.data.academic_year_id == new_year.id
    assert _active_flags(db_session, AcademicYear) == [new_year.id]


def test_academic_year_lifecycle(db_session):
    first = create_academic_year(
        db_session, name="2025/2026", start_date=date(2025, 7, 1), end_date=date(2026, 6, 30)
    ).data
    second = create_academic_year(
        db_session, name="2026/2027", start_date=date(2026, 7, 1), end_date=date(2027, 6, 30)
    ).data
    duplicate = create_academic_year(
        db_session, name="2026/2027", start_date=date(2026, 7, 1), end_date=date(2027, 6, 30)
    )
    assert duplicate.kind == ErrorKind.conflict

    set_active_academic_year(db_session, first.id)
    set_active_academic_year(db_session, second.id)
    assert _active_flags(db_session, AcademicYear) == [second.id]

    assert archive_academic_year(db_session, second.id).ok
    assert _active_flags(db_session, AcademicYear) == []
    assert set_active_academic_year(db_session, second.id).kind == ErrorKind.not_found


def test_semester_restores_archived_year_of_same_name(db_session):
    created = create_academic_year(
        db_session, name="2030/2031", start_date=date(2030, 7, 1), end_date=date(2031, 6, 30)
    )
    assert archive_academic_year(db_session, created.data.id).ok

    term = _semester(db_session, "2030/2031", SemesterType.odd, date(2030, 8, 1), date(2030, 12, 20))

    years = list(db_session.execute(select(AcademicYear)).scalars())
    assert [year.id for year in years] == [created.data.id]
    assert term.academic_year_id == created.data.id
    assert not years[0].is_archived
    assert (years[0].start_date, years[0].end_date) == (date(2030, 8, 1), date(2030, 12, 20))
