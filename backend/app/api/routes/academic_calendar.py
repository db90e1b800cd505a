from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db, require_admin
from app.core.result import unwrap
from app.db.repository import get_active_term
from app.models.academic_calendar import AcademicYear, Term
from app.models.user import User
from app.schemas.academic_calendar import AcademicYearCreate, AcademicYearOut, SemesterOut, SemesterWrite
from app.schemas.common import SuccessOut
from app.services.academic_calendar import (
    archive_academic_year,
    archive_term,
    create_academic_year,
    create_semester,
    list_academic_years,
    list_semesters,
    set_active_academic_year,
    set_active_term,
    update_semester,
)

router = APIRouter()


def _semester_out(term: Term, year: AcademicYear | None, course_count: int = 0) -> SemesterOut:
    return SemesterOut(
        id=term.id,
        type=term.type,
        start_date=term.start_date,
        end_date=term.end_date,
        is_active=term.is_active,
        academic_year_id=term.academic_year_id,
        academic_year_name=year.name if year is not None else None,
        course_count=course_count,
    )


@router.get("/academic-years", response_model=list[AcademicYearOut])
def list_years(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[AcademicYearOut]:
    return list_academic_years(db)


@router.post("/academic-years", response_model=AcademicYearOut, status_code=status.HTTP_201_CREATED)
def create_year(
    payload: AcademicYearCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> AcademicYearOut:
    return unwrap(
        create_academic_year(
            db,
            name=payload.name,
            start_date=payload.start_date,
            end_date=payload.end_date,
            actor_id=current_user.id,
        )
    )


@router.post("/academic-years/{year_id}/activate", response_model=AcademicYearOut)
def activate_year(
    year_id: str,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> AcademicYearOut:
    return unwrap(set_active_academic_year(db, year_id, actor_id=current_user.id))


@router.delete("/academic-years/{year_id}", response_model=SuccessOut)
def delete_year(
    year_id: str,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> SuccessOut:
    unwrap(archive_academic_year(db, year_id, actor_id=current_user.id))
    return SuccessOut(message="Academic year deleted")


@router.get("/semesters", response_model=list[SemesterOut])
def list_terms(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[SemesterOut]:
    return [_semester_out(term, year, count) for term, year, count in list_semesters(db)]


@router.get("/semesters/active", response_model=SemesterOut | None)
def active_term(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> SemesterOut | None:
    term = get_active_term(db)
    if term is None:
        return None
    return _semester_out(term, db.get(AcademicYear, term.academic_year_id))


@router.post("/semesters", response_model=SemesterOut, status_code=status.HTTP_201_CREATED)
def create_term(
    payload: SemesterWrite,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> SemesterOut:
    term = unwrap(
        create_semester(
            db,
            academic_year_name=payload.academic_year_name,
            semester_type=payload.type,
            start_date=payload.start_date,
            end_date=payload.end_date,
            actor_id=current_user.id,
        )
    )
    return _semester_out(term, db.get(AcademicYear, term.academic_year_id))


@router.put("/semesters/{term_id}", response_model=SemesterOut)
def update_term(
    term_id: str,
    payload: SemesterWrite,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> SemesterOut:
    term = unwrap(
        update_semester(
            db,
            term_id,
            academic_year_name=payload.academic_year_name,
            semester_type=payload.type,
            start_date=payload.start_date,
            end_date=payload.end_date,
            actor_id=current_user.id,
        )
    )
    return _semester_out(term, db.get(AcademicYear, term.academic_year_id))


@router.post("/semesters/{term_id}/activate", response_model=SemesterOut)
def activate_term(
    term_id: str,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> SemesterOut:
    term = unwrap(set_active_term(db, term_id, actor_id=current_user.id))
    return _semester_out(term, db.get(AcademicYear, term.academic_year_id))


@router.delete("/semesters/{term_id}", response_model=SuccessOut)
def delete_term(
    term_id: str,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> SuccessOut:
    unwrap(archive_term(db, term_id, actor_id=current_user.id))
    return SuccessOut(message="Semester deleted")
