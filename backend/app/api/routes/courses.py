import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db, require_admin
from app.core.exceptions import ResourceNotFoundError, ScheduleConflictError, ValidationFailedError
from app.core.result import unwrap
from app.db.repository import get_live, is_live, select_live
from app.models.academic_calendar import Term
from app.models.course import Course, CourseStudent
from app.models.schedule_slot import ScheduleSlot
from app.models.school_class import SchoolClass
from app.models.subject import Subject
from app.models.user import User
from app.schemas.common import SuccessOut
from app.schemas.course import CourseCreate, CourseOut, CourseUpdate
from app.schemas.enrollment import ClassEnrollmentOut, EnrollClassRequest, EnrollStudentRequest, StudentOptionOut
from app.services.audit import log_activity
from app.services.enrollment import (
    available_students_for_course,
    course_students,
    enroll_class_to_course,
    enroll_student_to_course,
    remove_student_from_course,
)
from app.services.view_cache import invalidate_schedule_views

logger = logging.getLogger(__name__)

router = APIRouter()


def _course_out(db: Session, course: Course) -> CourseOut:
    count = db.execute(
        select(func.count(CourseStudent.id)).where(CourseStudent.course_id == course.id)
    ).scalar_one()
    return CourseOut.model_validate(course).model_copy(update={"student_count": count})


def _get_course(db: Session, course_id: str) -> Course:
    course = get_live(db, Course, course_id)
    if course is None:
        raise ResourceNotFoundError("Course not found")
    return course


def _validate_teacher(db: Session, teacher_id: str) -> User:
    teacher = db.get(User, teacher_id)
    if teacher is None or not teacher.is_active or not teacher.is_teacher:
        raise ValidationFailedError("Teacher must be an active user with a teaching role")
    return teacher


def _validate_references(db: Session, *, subject_id: str | None, class_id: str | None, term_id: str) -> None:
    if subject_id is not None and get_live(db, Subject, subject_id) is None:
        raise ResourceNotFoundError("Subject not found")
    if class_id is not None:
        school_class = get_live(db, SchoolClass, class_id)
        if school_class is None:
            raise ResourceNotFoundError("Class not found")
        if school_class.term_id != term_id:
            raise ValidationFailedError("Class belongs to a different semester")


@router.get("/", response_model=list[CourseOut])
def list_courses(
    show_all: bool = Query(default=False),
    teacher_id: str | None = Query(default=None, max_length=36),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[CourseOut]:
    statement = (
        select_live(Course)
        .join(Term, Term.id == Course.term_id)
        .where(is_live(Term))
        .order_by(Course.name.asc())
    )
    if not show_all:
        statement = statement.where(Term.is_active.is_(True))
    if teacher_id:
        statement = statement.where(Course.teacher_id == teacher_id)
    courses = list(db.execute(statement).scalars())

    counts = dict(
        db.execute(
            select(CourseStudent.course_id, func.count(CourseStudent.id))
            .where(CourseStudent.course_id.in_([course.id for course in courses]))
            .group_by(CourseStudent.course_id)
        ).all()
    ) if courses else {}
    return [
        CourseOut.model_validate(course).model_copy(update={"student_count": counts.get(course.id, 0)})
        for course in courses
    ]


@router.get("/{course_id}", response_model=CourseOut)
def get_course(
    course_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> CourseOut:
    return _course_out(db, _get_course(db, course_id))


@router.post("/", response_model=CourseOut, status_code=status.HTTP_201_CREATED)
def create_course(
    payload: CourseCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> CourseOut:
    _validate_teacher(db, payload.teacher_id)
    if get_live(db, Term, payload.term_id) is None:
        raise ResourceNotFoundError("Semester not found")
    _validate_references(db, subject_id=payload.subject_id, class_id=payload.class_id, term_id=payload.term_id)

    course = Course(**payload.model_dump())
    db.add(course)
    db.flush()
    log_activity(
        db,
        actor_id=current_user.id,
        action="course.created",
        entity_type="course",
        entity_id=course.id,
        summary=course.name,
    )
    db.commit()
    db.refresh(course)
    invalidate_schedule_views(course.teacher_id)
    return _course_out(db, course)


@router.put("/{course_id}", response_model=CourseOut)
def update_course(
    course_id: str,
    payload: CourseUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> CourseOut:
    course = _get_course(db, course_id)
    data = payload.model_dump(exclude_unset=True)

    term_id = data.pop("term_id", None)
    if term_id and term_id != course.term_id:
        raise ValidationFailedError("A course cannot be moved to another semester")
    if "name" in data and (data["name"] is None or not data["name"].strip()):
        raise ValidationFailedError("Name cannot be empty")
    for key in ("report_name", "subject_id", "class_id"):
        if key in data and isinstance(data[key], str):
            data[key] = data[key].strip() or None

    previous_teacher_id = course.teacher_id
    if data.get("teacher_id") is None:
        data.pop("teacher_id", None)
    else:
        _validate_teacher(db, data["teacher_id"])
    _validate_references(
        db,
        subject_id=data.get("subject_id"),
        class_id=data.get("class_id"),
        term_id=course.term_id,
    )

    for key, value in data.items():
        setattr(course, key, value)

    if data:
        log_activity(
            db,
            actor_id=current_user.id,
            action="course.updated",
            entity_type="course",
            entity_id=course.id,
            details={"changed_fields": sorted(data.keys())},
        )
    try:
        if course.teacher_id != previous_teacher_id:
            # Slots carry the teacher id for the double-booking index.
            db.execute(
                update(ScheduleSlot)
                .where(ScheduleSlot.course_id == course.id, is_live(ScheduleSlot))
                .values(teacher_id=course.teacher_id)
                .execution_options(synchronize_session="fetch")
            )
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Teacher change for course %s collides with existing slots", course_id)
        raise ScheduleConflictError("The new teacher already teaches another course in one of this course's slots") from exc
    db.refresh(course)
    invalidate_schedule_views(previous_teacher_id, course.teacher_id)
    return _course_out(db, course)


@router.delete("/{course_id}", response_model=SuccessOut)
def delete_course(
    course_id: str,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> SuccessOut:
    course = _get_course(db, course_id)
    course.archive()
    slots = db.execute(
        select(ScheduleSlot).where(ScheduleSlot.course_id == course.id, is_live(ScheduleSlot))
    ).scalars()
    for slot in slots:
        slot.archive()
    log_activity(
        db,
        actor_id=current_user.id,
        action="course.archived",
        entity_type="course",
        entity_id=course.id,
        summary=course.name,
    )
    db.commit()
    invalidate_schedule_views(course.teacher_id)
    return SuccessOut(message="Course deleted")


@router.get("/{course_id}/students", response_model=list[StudentOptionOut])
def list_course_students(
    course_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[StudentOptionOut]:
    return unwrap(course_students(db, course_id))


@router.get("/{course_id}/available-students", response_model=list[StudentOptionOut])
def list_available_students(
    course_id: str,
    search: str = Query(default="", max_length=200),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> list[StudentOptionOut]:
    return unwrap(available_students_for_course(db, course_id, search))


@router.post("/{course_id}/students", response_model=SuccessOut, status_code=status.HTTP_201_CREATED)
def enroll_student(
    course_id: str,
    payload: EnrollStudentRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> SuccessOut:
    unwrap(enroll_student_to_course(db, course_id, payload.student_id, actor_id=current_user.id))
    return SuccessOut(message="Student enrolled")


@router.delete("/{course_id}/students/{student_id}", response_model=SuccessOut)
def remove_student(
    course_id: str,
    student_id: str,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> SuccessOut:
    unwrap(remove_student_from_course(db, course_id, student_id, actor_id=current_user.id))
    return SuccessOut(message="Student removed")


@router.post("/{course_id}/classes", response_model=ClassEnrollmentOut)
def enroll_class(
    course_id: str,
    payload: EnrollClassRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> ClassEnrollmentOut:
    outcome = unwrap(enroll_class_to_course(db, course_id, payload.class_id, actor_id=current_user.id))
    return ClassEnrollmentOut(**outcome)
