from __future__ import annotations

from datetime import date
import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.result import Ok, Result, conflict, failure, invalid, not_found
from app.db.repository import get_live, is_live, select_live, set_active
from app.models.academic_calendar import AcademicYear, SemesterType, Term
from app.models.course import Course
from app.services.audit import log_activity
from app.services.view_cache import invalidate_schedule_views

logger = logging.getLogger(__name__)


def _find_or_extend_year(db: Session, name: str, start_date: date, end_date: date) -> AcademicYear:
    """Return the academic year called ``name``, widened to cover the given dates.

    Year names are unique across archived records too, so an archived year
    with this name is restored rather than duplicated.
    """
    year = db.execute(select(AcademicYear).where(AcademicYear.name == name)).scalar_one_or_none()
    if year is None:
        year = AcademicYear(name=name, start_date=start_date, end_date=end_date, is_active=False)
        db.add(year)
        db.flush()
        return year
    if year.is_archived:
        year.restore()
        year.start_date, year.end_date = start_date, end_date
        return year
    if start_date < year.start_date:
        year.start_date = start_date
    if end_date > year.end_date:
        year.end_date = end_date
    return year


def list_semesters(db: Session) -> list[tuple[Term, AcademicYear | None, int]]:
    course_counts = dict(
        db.execute(
            select(Course.term_id, func.count(Course.id)).where(is_live(Course)).group_by(Course.term_id)
        ).all()
    )
    terms = db.execute(select_live(Term).order_by(Term.start_date.desc())).scalars()
    return [
        (term, db.get(AcademicYear, term.academic_year_id), course_counts.get(term.id, 0))
        for term in terms
    ]


def create_semester(
    db: Session,
    *,
    academic_year_name: str,
    semester_type: SemesterType,
    start_date: date,
    end_date: date,
    actor_id: str | None = None,
) -> Result[Term]:
    if start_date >= end_date:
        return invalid("Semester start date must be before its end date")
    try:
        year = _find_or_extend_year(db, academic_year_name, start_date, end_date)
        term = Term(
            academic_year_id=year.id,
            type=semester_type,
            start_date=start_date,
            end_date=end_date,
            is_active=False,
        )
        db.add(term)
        db.flush()
        log_activity(
            db,
            actor_id=actor_id,
            action="term.created",
            entity_type="term",
            entity_id=term.id,
            summary=f"{academic_year_name} {semester_type.value}",
        )
        db.commit()
    except IntegrityError:
        db.rollback()
        return conflict("Academic year name already exists")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error creating semester for %s", academic_year_name)
        return failure("Failed to create semester")
    db.refresh(term)
    return Ok(term)


def update_semester(
    db: Session,
    term_id: str,
    *,
    academic_year_name: str,
    semester_type: SemesterType,
    start_date: date,
    end_date: date,
    actor_id: str | None = None,
) -> Result[Term]:
    if start_date >= end_date:
        return invalid("Semester start date must be before its end date")
    try:
        term = get_live(db, Term, term_id)
        if term is None:
            return not_found("Semester not found")
        year = _find_or_extend_year(db, academic_year_name, start_date, end_date)
        term.academic_year_id = year.id
        term.type = semester_type
        term.start_date = start_date
        term.end_date = end_date
        if term.is_active and not year.is_active:
            set_active(db, AcademicYear, year.id)
        log_activity(db, actor_id=actor_id, action="term.updated", entity_type="term", entity_id=term.id)
        db.commit()
    except IntegrityError:
        db.rollback()
        return conflict("Academic year name already exists")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error updating semester %s", term_id)
        return failure("Failed to update semester")
    invalidate_schedule_views()
    db.refresh(term)
    return Ok(term)


def set_active_term(db: Session, term_id: str, *, actor_id: str | None = None) -> Result[Term]:
    """Make ``term_id`` the only active term and its year the only active year."""
    try:
        term = set_active(db, Term, term_id)
        if term is None:
            db.rollback()
            return not_found("Semester not found")
        if set_active(db, AcademicYear, term.academic_year_id) is None:
            db.rollback()
            return not_found("Academic year of this semester not found")
        log_activity(db, actor_id=actor_id, action="term.activated", entity_type="term", entity_id=term.id)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error setting active semester %s", term_id)
        return failure("Failed to set active semester")
    invalidate_schedule_views()
    logger.info("Active semester is now %s", term_id)
    db.refresh(term)
    return Ok(term)


def archive_term(db: Session, term_id: str, *, actor_id: str | None = None) -> Result[None]:
    try:
        term = get_live(db, Term, term_id)
        if term is None:
            return not_found("Semester not found")
        term.archive()
        term.is_active = False
        log_activity(db, actor_id=actor_id, action="term.archived", entity_type="term", entity_id=term.id)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error deleting semester %s", term_id)
        return failure("Failed to delete semester")
    invalidate_schedule_views()
    return Ok(None)


def list_academic_years(db: Session) -> list[AcademicYear]:
    return list(db.execute(select_live(AcademicYear).order_by(AcademicYear.start_date.desc())).scalars())


def create_academic_year(
    db: Session,
    *,
    name: str,
    start_date: date,
    end_date: date,
    actor_id: str | None = None,
) -> Result[AcademicYear]:
    if start_date >= end_date:
        return invalid("Academic year start date must be before its end date")
    try:
        year = AcademicYear(name=name, start_date=start_date, end_date=end_date, is_active=False)
        db.add(year)
        db.flush()
        log_activity(
            db,
            actor_id=actor_id,
            action="academic_year.created",
            entity_type="academic_year",
            entity_id=year.id,
            summary=name,
        )
        db.commit()
    except IntegrityError:
        db.rollback()
        return conflict("Academic year name already exists")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error creating academic year %s", name)
        return failure("Failed to create academic year")
    db.refresh(year)
    return Ok(year)


def set_active_academic_year(db: Session, year_id: str, *, actor_id: str | None = None) -> Result[AcademicYear]:
    try:
        year = set_active(db, AcademicYear, year_id)
        if year is None:
            db.rollback()
            return not_found("Academic year not found")
        log_activity(
            db,
            actor_id=actor_id,
            action="academic_year.activated",
            entity_type="academic_year",
            entity_id=year.id,
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error setting active academic year %s", year_id)
        return failure("Failed to set active academic year")
    db.refresh(year)
    return Ok(year)


def archive_academic_year(db: Session, year_id: str, *, actor_id: str | None = None) -> Result[None]:
    try:
        year = get_live(db, AcademicYear, year_id)
        if year is None:
            return not_found("Academic year not found")
        year.archive()
        year.is_active = False
        log_activity(
            db,
            actor_id=actor_id,
            action="academic_year.archived",
            entity_type="academic_year",
            entity_id=year.id,
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error deleting academic year %s", year_id)
        return failure("Failed to delete academic year")
    return Ok(None)
