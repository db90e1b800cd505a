from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db, require_admin
from app.core.exceptions import DuplicateResourceError, ResourceNotFoundError, ValidationFailedError
from app.core.result import unwrap
from app.db.repository import get_active_term, get_live, select_live
from app.models.academic_calendar import Term
from app.models.school_class import ClassEnrollment, SchoolClass
from app.models.user import TEACHING_ROLES, User
from app.schemas.common import SuccessOut
from app.schemas.enrollment import EnrollStudentRequest, RosterStudentOut, StudentOptionOut
from app.schemas.school_class import ClassCreate, ClassOut, ClassUpdate
from app.schemas.user import UserOut
from app.services.audit import log_activity
from app.services.enrollment import (
    available_students_for_class,
    class_roster,
    enroll_student_to_class,
    remove_student_from_class,
)
from app.services.view_cache import invalidate_schedule_views

router = APIRouter()


def _class_out(db: Session, school_class: SchoolClass) -> ClassOut:
    count = db.execute(
        select(func.count(ClassEnrollment.id)).where(ClassEnrollment.class_id == school_class.id)
    ).scalar_one()
    return ClassOut.model_validate(school_class).model_copy(update={"student_count": count})


def _get_class(db: Session, class_id: str) -> SchoolClass:
    school_class = get_live(db, SchoolClass, class_id)
    if school_class is None:
        raise ResourceNotFoundError("Class not found")
    return school_class


def _validate_homeroom_teacher(db: Session, teacher_id: str | None) -> None:
    if teacher_id is None:
        return
    teacher = db.get(User, teacher_id)
    if teacher is None or not teacher.is_active or not teacher.is_teacher:
        raise ValidationFailedError("Homeroom teacher must be an active user with a teaching role")


def _ensure_unique_name(db: Session, *, name: str, term_id: str, exclude_id: str | None = None) -> None:
    statement = select_live(SchoolClass).where(
        SchoolClass.term_id == term_id,
        func.lower(SchoolClass.name) == name.lower(),
    )
    if exclude_id is not None:
        statement = statement.where(SchoolClass.id != exclude_id)
    if db.execute(statement.limit(1)).scalar_one_or_none() is not None:
        raise DuplicateResourceError("Class name already exists in this semester")


@router.get("/", response_model=list[ClassOut])
def list_classes(
    term_id: str | None = Query(default=None, max_length=36),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[ClassOut]:
    if term_id is None:
        active = get_active_term(db)
        if active is None:
            return []
        term_id = active.id
    classes = db.execute(
        select_live(SchoolClass).where(SchoolClass.term_id == term_id).order_by(SchoolClass.name.asc())
    ).scalars()
    return [_class_out(db, school_class) for school_class in classes]


@router.get("/homeroom-teachers", response_model=list[UserOut])
def list_homeroom_teachers(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> list[UserOut]:
    return list(
        db.execute(
            select(User)
            .where(User.role.in_(sorted(TEACHING_ROLES)), User.is_active.is_(True))
            .order_by(User.name.asc())
        ).scalars()
    )


@router.post("/", response_model=ClassOut, status_code=status.HTTP_201_CREATED)
def create_class(
    payload: ClassCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> ClassOut:
    if get_live(db, Term, payload.term_id) is None:
        raise ResourceNotFoundError("Semester not found")
    _validate_homeroom_teacher(db, payload.homeroom_teacher_id)
    _ensure_unique_name(db, name=payload.name, term_id=payload.term_id)

    school_class = SchoolClass(**payload.model_dump())
    db.add(school_class)
    db.flush()
    log_activity(
        db,
        actor_id=current_user.id,
        action="class.created",
        entity_type="class",
        entity_id=school_class.id,
        summary=school_class.name,
    )
    db.commit()
    db.refresh(school_class)
    return _class_out(db, school_class)


@router.put("/{class_id}", response_model=ClassOut)
def update_class(
    class_id: str,
    payload: ClassUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> ClassOut:
    school_class = _get_class(db, class_id)
    name = payload.name.strip()
    if not name:
        raise ValidationFailedError("Name cannot be empty")
    _validate_homeroom_teacher(db, payload.homeroom_teacher_id)
    _ensure_unique_name(db, name=name, term_id=school_class.term_id, exclude_id=school_class.id)

    school_class.name = name
    school_class.homeroom_teacher_id = payload.homeroom_teacher_id
    log_activity(db, actor_id=current_user.id, action="class.updated", entity_type="class", entity_id=school_class.id)
    db.commit()
    invalidate_schedule_views()
    db.refresh(school_class)
    return _class_out(db, school_class)


@router.delete("/{class_id}", response_model=SuccessOut)
def delete_class(
    class_id: str,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> SuccessOut:
    school_class = _get_class(db, class_id)
    school_class.archive()
    log_activity(db, actor_id=current_user.id, action="class.archived", entity_type="class", entity_id=school_class.id)
    db.commit()
    invalidate_schedule_views()
    return SuccessOut(message="Class deleted")


@router.get("/{class_id}/students", response_model=list[RosterStudentOut])
def list_class_students(
    class_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[RosterStudentOut]:
    return [
        RosterStudentOut(
            id=student.id,
            name=student.name,
            email=student.email,
            official_id=student.official_id,
            enrollment_id=enrollment.id,
        )
        for student, enrollment in unwrap(class_roster(db, class_id))
    ]


@router.get("/{class_id}/available-students", response_model=list[StudentOptionOut])
def list_available_class_students(
    class_id: str,
    search: str = Query(default="", max_length=200),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> list[StudentOptionOut]:
    return unwrap(available_students_for_class(db, class_id, search))


@router.post("/{class_id}/students", response_model=SuccessOut, status_code=status.HTTP_201_CREATED)
def enroll_class_student(
    class_id: str,
    payload: EnrollStudentRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> SuccessOut:
    unwrap(enroll_student_to_class(db, class_id, payload.student_id, actor_id=current_user.id))
    return SuccessOut(message="Student enrolled")


@router.delete("/{class_id}/students/{student_id}", response_model=SuccessOut)
def remove_class_student(
    class_id: str,
    student_id: str,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> SuccessOut:
    unwrap(remove_student_from_class(db, class_id, student_id, actor_id=current_user.id))
    return SuccessOut(message="Student removed")
