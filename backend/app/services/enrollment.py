from __future__ import annotations

import logging

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.result import Ok, Result, conflict, failure, invalid, not_found
from app.db.repository import get_live
from app.models.course import Course, CourseStudent
from app.models.school_class import ClassEnrollment, SchoolClass
from app.models.user import User, UserRole
from app.services.audit import log_activity
from app.services.schedule_conflicts import (
    check_student_schedule_conflict,
    enrollment_conflict_message,
)
from app.services.view_cache import invalidate_schedule_views

logger = logging.getLogger(__name__)


def _get_student(db: Session, student_id: str) -> User | None:
    student = db.get(User, student_id)
    if student is None or student.role != UserRole.student or not student.is_active:
        return None
    return student


def _search_students(db: Session, *, exclude_ids: set[str], search: str) -> list[User]:
    statement = select(User).where(User.role == UserRole.student, User.is_active.is_(True))
    if exclude_ids:
        statement = statement.where(User.id.not_in(exclude_ids))
    needle = search.strip()
    if needle:
        pattern = f"%{needle}%"
        statement = statement.where(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
    statement = statement.order_by(User.name.asc()).limit(get_settings().available_students_limit)
    return list(db.execute(statement).scalars())


def course_student_ids(db: Session, course_id: str) -> set[str]:
    return set(
        db.execute(select(CourseStudent.student_id).where(CourseStudent.course_id == course_id)).scalars()
    )


def class_student_ids(db: Session, class_id: str) -> list[str]:
    return list(
        db.execute(
            select(ClassEnrollment.student_id)
            .where(ClassEnrollment.class_id == class_id)
            .order_by(ClassEnrollment.created_at.asc(), ClassEnrollment.id.asc())
        ).scalars()
    )


# Course enrollment


def available_students_for_course(db: Session, course_id: str, search: str = "") -> Result[list[User]]:
    course = get_live(db, Course, course_id)
    if course is None:
        return not_found("Course not found")
    return Ok(_search_students(db, exclude_ids=course_student_ids(db, course.id), search=search))


def course_students(db: Session, course_id: str) -> Result[list[User]]:
    course = get_live(db, Course, course_id)
    if course is None:
        return not_found("Course not found")
    students = db.execute(
        select(User)
        .join(CourseStudent, CourseStudent.student_id == User.id)
        .where(CourseStudent.course_id == course.id)
        .order_by(User.name.asc())
    ).scalars()
    return Ok(list(students))


def enroll_student_to_course(
    db: Session,
    course_id: str,
    student_id: str,
    *,
    actor_id: str | None = None,
) -> Result[None]:
    course = get_live(db, Course, course_id)
    if course is None:
        return not_found("Course not found")
    student = _get_student(db, student_id)
    if student is None:
        return not_found("Student not found")
    if student.id in course_student_ids(db, course.id):
        return conflict("Student is already enrolled in this course")

    clash = check_student_schedule_conflict(db, student.id, course.id)
    if clash is not None:
        return conflict(enrollment_conflict_message(clash), conflict=clash.as_dict())

    try:
        db.add(CourseStudent(course_id=course.id, student_id=student.id))
        log_activity(
            db,
            actor_id=actor_id,
            action="course.student_enrolled",
            entity_type="course",
            entity_id=course.id,
            details={"student_id": student.id},
        )
        db.commit()
    except IntegrityError:
        db.rollback()
        return conflict("Student is already enrolled in this course")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error enrolling student %s to course %s", student_id, course_id)
        return failure("Failed to enroll student")
    invalidate_schedule_views(course.teacher_id)
    return Ok(None)


def remove_student_from_course(
    db: Session,
    course_id: str,
    student_id: str,
    *,
    actor_id: str | None = None,
) -> Result[None]:
    course = get_live(db, Course, course_id)
    if course is None:
        return not_found("Course not found")
    link = db.execute(
        select(CourseStudent).where(CourseStudent.course_id == course.id, CourseStudent.student_id == student_id)
    ).scalar_one_or_none()
    if link is None:
        logger.warning("Student %s not found in course %s", student_id, course_id)
        return not_found("Student is not enrolled in this course")
    try:
        db.delete(link)
        log_activity(
            db,
            actor_id=actor_id,
            action="course.student_removed",
            entity_type="course",
            entity_id=course.id,
            details={"student_id": student_id},
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error removing student %s from course %s", student_id, course_id)
        return failure("Failed to remove student")
    invalidate_schedule_views(course.teacher_id)
    return Ok(None)


def enroll_class_to_course(
    db: Session,
    course_id: str,
    class_id: str,
    *,
    actor_id: str | None = None,
) -> Result[dict]:
    """Enroll every roster member not yet in the course; any conflict cancels the whole batch."""
    course = get_live(db, Course, course_id)
    if course is None:
        return not_found("Course not found")
    school_class = get_live(db, SchoolClass, class_id)
    if school_class is None:
        return not_found("Class not found")

    roster = class_student_ids(db, school_class.id)
    if not roster:
        return invalid("No students found in this class")

    current = course_student_ids(db, course.id)
    new_ids = [student_id for student_id in roster if student_id not in current]
    if not new_ids:
        return Ok({"count": 0, "message": "All students from this class are already enrolled"})

    messages: list[str] = []
    conflicts: list[dict] = []
    for student_id in new_ids:
        clash = check_student_schedule_conflict(db, student_id, course.id)
        if clash is None:
            continue
        student = db.get(User, student_id)
        name = student.name if student is not None else "Student"
        messages.append(f"{name}: Conflict with {clash.describe()}")
        conflicts.append({"student_id": student_id, "student_name": name, "conflict": clash.as_dict()})

    if messages:
        return conflict(
            "Cannot enroll class. Conflicts found:\n" + "\n".join(messages),
            conflict_details=messages,
            conflicts=conflicts,
        )

    try:
        db.add_all(CourseStudent(course_id=course.id, student_id=student_id) for student_id in new_ids)
        log_activity(
            db,
            actor_id=actor_id,
            action="course.class_enrolled",
            entity_type="course",
            entity_id=course.id,
            details={"class_id": school_class.id, "count": len(new_ids)},
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error enrolling class %s to course %s", class_id, course_id)
        return failure("Failed to enroll class")
    invalidate_schedule_views(course.teacher_id)
    return Ok({"count": len(new_ids), "message": f"Enrolled {len(new_ids)} student(s)"})


# Class roster


def class_roster(db: Session, class_id: str) -> Result[list[tuple[User, ClassEnrollment]]]:
    school_class = get_live(db, SchoolClass, class_id)
    if school_class is None:
        return not_found("Class not found")
    rows = db.execute(
        select(User, ClassEnrollment)
        .join(ClassEnrollment, ClassEnrollment.student_id == User.id)
        .where(ClassEnrollment.class_id == school_class.id)
        .order_by(User.name.asc())
    ).all()
    return Ok([(user, enrollment) for user, enrollment in rows])


def available_students_for_class(db: Session, class_id: str, search: str = "") -> Result[list[User]]:
    school_class = get_live(db, SchoolClass, class_id)
    if school_class is None:
        return not_found("Class not found")
    return Ok(_search_students(db, exclude_ids=set(class_student_ids(db, school_class.id)), search=search))


def enroll_student_to_class(
    db: Session,
    class_id: str,
    student_id: str,
    *,
    actor_id: str | None = None,
) -> Result[ClassEnrollment]:
    school_class = get_live(db, SchoolClass, class_id)
    if school_class is None:
        return not_found("Class not found")
    student = _get_student(db, student_id)
    if student is None:
        return not_found("Student not found")
    if student.id in class_student_ids(db, school_class.id):
        return conflict("Student is already enrolled in this class")
    try:
        enrollment = ClassEnrollment(class_id=school_class.id, student_id=student.id)
        db.add(enrollment)
        log_activity(
            db,
            actor_id=actor_id,
            action="class.student_enrolled",
            entity_type="class",
            entity_id=school_class.id,
            details={"student_id": student.id},
        )
        db.commit()
    except IntegrityError:
        db.rollback()
        return conflict("Student is already enrolled in this class")
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error enrolling student %s to class %s", student_id, class_id)
        return failure("Failed to enroll student")
    db.refresh(enrollment)
    return Ok(enrollment)


def remove_student_from_class(
    db: Session,
    class_id: str,
    student_id: str,
    *,
    actor_id: str | None = None,
) -> Result[None]:
    enrollment = db.execute(
        select(ClassEnrollment).where(ClassEnrollment.class_id == class_id, ClassEnrollment.student_id == student_id)
    ).scalar_one_or_none()
    if enrollment is None:
        logger.warning("No enrollment found for class %s and student %s", class_id, student_id)
        return not_found("Student not found in this class or already removed")
    try:
        db.delete(enrollment)
        log_activity(
            db,
            actor_id=actor_id,
            action="class.student_removed",
            entity_type="class",
            entity_id=class_id,
            details={"student_id": student_id},
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error removing student %s from class %s", student_id, class_id)
        return failure("Failed to remove student")
    return Ok(None)
