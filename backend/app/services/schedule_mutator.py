from __future__ import annotations

from collections import Counter
import logging
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.result import Err, Ok, Result, conflict, failure, invalid, not_found
from app.db.repository import is_live
from app.models.academic_calendar import Term
from app.models.course import Course
from app.models.schedule_slot import ScheduleSlot
from app.models.user import User
from app.services.audit import log_activity
from app.services.schedule_conflicts import check_course_schedule_update_conflict, course_cells
from app.services.slot_grid import SlotCoordinate, day_name, find_occupied_slot, live_slots_query
from app.services.view_cache import invalidate_schedule_views

logger = logging.getLogger(__name__)

DOUBLE_BOOKING_MESSAGE = "Teacher already has a course in this slot"


def _lock_teacher(db: Session, teacher_id: str) -> User | None:
    # Row lock serialises concurrent edits of the same teacher's grid.
    teacher = db.execute(select(User).where(User.id == teacher_id).with_for_update()).scalar_one_or_none()
    if teacher is None or not teacher.is_active or not teacher.is_teacher:
        return None
    return teacher


def _active_courses(db: Session, teacher_id: str) -> dict[str, Course]:
    courses = db.execute(
        select(Course)
        .join(Term, Term.id == Course.term_id)
        .where(
            Course.teacher_id == teacher_id,
            is_live(Course),
            is_live(Term),
            Term.is_active.is_(True),
        )
        .order_by(Course.name.asc())
    ).scalars()
    return {course.id: course for course in courses}


def _abort(db: Session, result: Err) -> Err:
    db.rollback()
    return result


def update_schedule(
    db: Session,
    teacher_id: str,
    day_of_week: int,
    period: int,
    course_id: str | None,
    *,
    actor_id: str | None = None,
) -> Result[ScheduleSlot | None]:
    """Assign ``course_id`` to one cell of the teacher's grid, or clear it when ``None``.

    An occupied cell is reassigned in place. Clearing an empty cell succeeds
    without touching storage.
    """
    try:
        coordinate = SlotCoordinate(day_of_week, period)
    except ValueError as exc:
        return invalid(str(exc))

    try:
        teacher = _lock_teacher(db, teacher_id)
        if teacher is None:
            return _abort(db, not_found("Teacher not found"))

        existing = find_occupied_slot(
            db,
            teacher_id=teacher.id,
            day_of_week=coordinate.day_of_week,
            period=coordinate.period,
        )

        if course_id is None:
            if existing is None:
                db.rollback()
                return Ok(None)
            existing.archive()
            slot = existing
            action = "schedule.slot_cleared"
        else:
            course = _active_courses(db, teacher.id).get(course_id)
            if course is None:
                return _abort(db, not_found("Course not found for this teacher in the active term"))

            vacated = None
            if existing is not None and existing.course_id != course.id:
                cell = (coordinate.day_of_week, coordinate.period)
                vacated = {existing.course_id: course_cells(db, existing.course_id) - {cell}}
            conflicts = check_course_schedule_update_conflict(db, course.id, [coordinate], overrides=vacated)
            if conflicts:
                logger.info(
                    "Rejected slot %s for course %s: %d student conflict(s)",
                    coordinate.key,
                    course.id,
                    len(conflicts),
                )
                return _abort(
                    db,
                    conflict(conflicts[0].message, conflicts=[item.as_dict() for item in conflicts]),
                )

            if existing is not None:
                existing.course_id = course.id
                existing.term_id = course.term_id
                slot = existing
                action = "schedule.slot_reassigned"
            else:
                slot = ScheduleSlot(
                    course_id=course.id,
                    teacher_id=teacher.id,
                    term_id=course.term_id,
                    day_of_week=coordinate.day_of_week,
                    period=coordinate.period,
                )
                db.add(slot)
                db.flush()
                action = "schedule.slot_created"

        log_activity(
            db,
            actor_id=actor_id,
            action=action,
            entity_type="schedule_slot",
            entity_id=slot.id,
            summary=f"{teacher.name}: {day_name(coordinate.day_of_week)} period {coordinate.period}",
            details={"teacher_id": teacher.id, "course_id": course_id, "cell": coordinate.key},
        )
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Double booking rejected for teacher %s at %s", teacher_id, coordinate.key)
        return conflict(DOUBLE_BOOKING_MESSAGE)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error updating schedule for teacher %s at %s", teacher_id, coordinate.key)
        return failure("Failed to update schedule")

    invalidate_schedule_views(teacher_id)
    logger.info("%s for teacher %s at %s", action, teacher_id, coordinate.key)
    return Ok(slot)


def _parse_entries(schedules: Iterable[dict]) -> list[tuple[SlotCoordinate, str]] | Err:
    entries: list[tuple[SlotCoordinate, str]] = []
    for item in schedules:
        try:
            coordinate = SlotCoordinate(int(item["day_of_week"]), int(item["period"]))
        except (KeyError, TypeError, ValueError) as exc:
            return invalid(f"Invalid schedule entry: {exc}")
        course_id = item.get("course_id")
        if not course_id:
            return invalid("Every schedule entry needs a course_id")
        entries.append((coordinate, course_id))

    duplicates = [coordinate for coordinate, count in Counter(c for c, _ in entries).items() if count > 1]
    if duplicates:
        first = min(duplicates)
        return invalid(
            f"Duplicate schedule entry for {first.day_name} Period {first.period}",
            cells=[coordinate.key for coordinate in sorted(duplicates)],
        )
    return entries


def save_teacher_schedule(
    db: Session,
    teacher_id: str,
    schedules: Iterable[dict],
    *,
    actor_id: str | None = None,
) -> Result[dict]:
    """Replace the teacher's active-term week with ``schedules``.

    Every course's proposed slot set is checked before anything is written;
    one conflicting course rejects the whole batch.
    """
    parsed = _parse_entries(schedules)
    if isinstance(parsed, Err):
        return parsed
    entries = parsed

    try:
        teacher = _lock_teacher(db, teacher_id)
        if teacher is None:
            return _abort(db, not_found("Teacher not found"))

        courses = _active_courses(db, teacher.id)
        unknown = sorted({course_id for _, course_id in entries if course_id not in courses})
        if unknown:
            return _abort(
                db,
                not_found("Course not found for this teacher in the active term", course_ids=unknown),
            )

        slots_by_course: dict[str, list[SlotCoordinate]] = {}
        for coordinate, course_id in entries:
            slots_by_course.setdefault(course_id, []).append(coordinate)

        # Check against the week as it will be, not the cells this batch replaces.
        planned: dict[str, set[tuple[int, int]]] = {course_id: set() for course_id in courses}
        for coordinate, course_id in entries:
            planned[course_id].add((coordinate.day_of_week, coordinate.period))

        messages: list[str] = []
        all_conflicts: list[dict] = []
        for course_id, coordinates in slots_by_course.items():
            course_conflicts = check_course_schedule_update_conflict(
                db, course_id, coordinates, overrides=planned
            )
            if course_conflicts:
                messages.append(course_conflicts[0].message)
                all_conflicts.extend(item.as_dict() for item in course_conflicts)

        if messages:
            logger.warning(
                "Rejected schedule batch for teacher %s: %d course(s) with conflicts",
                teacher.id,
                len(messages),
            )
            return _abort(
                db,
                conflict(
                    "Schedule conflicts detected",
                    conflict_details=messages,
                    conflicts=all_conflicts,
                ),
            )

        existing_slots = list(
            db.execute(
                live_slots_query().where(Course.teacher_id == teacher.id)
            ).scalars()
        )
        desired = {coordinate.key: (coordinate, course_id) for coordinate, course_id in entries}

        created = updated = archived = 0
        for slot in existing_slots:
            key = SlotCoordinate(slot.day_of_week, slot.period).key
            wanted = desired.pop(key, None)
            if wanted is None:
                slot.archive()
                archived += 1
            elif slot.course_id != wanted[1]:
                slot.course_id = wanted[1]
                slot.term_id = courses[wanted[1]].term_id
                updated += 1

        for coordinate, course_id in desired.values():
            db.add(
                ScheduleSlot(
                    course_id=course_id,
                    teacher_id=teacher.id,
                    term_id=courses[course_id].term_id,
                    day_of_week=coordinate.day_of_week,
                    period=coordinate.period,
                )
            )
            created += 1

        summary = {"created": created, "updated": updated, "archived": archived}
        log_activity(
            db,
            actor_id=actor_id,
            action="schedule.teacher_saved",
            entity_type="teacher",
            entity_id=teacher.id,
            summary=f"{teacher.name}: {created} created, {updated} updated, {archived} removed",
            details=summary,
        )
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning("Double booking rejected while saving schedule for teacher %s", teacher_id)
        return conflict(DOUBLE_BOOKING_MESSAGE)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Error saving schedule for teacher %s", teacher_id)
        return failure("Failed to save schedule")

    invalidate_schedule_views(teacher_id)
    logger.info("Saved schedule for teacher %s: %s", teacher_id, summary)
    return Ok(summary)
