from fastapi import APIRouter, Depends, Query
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.api.deps import ensure_self_or_admin, get_current_user, get_db, require_admin, require_roles
from app.core.exceptions import ValidationFailedError
from app.core.result import unwrap
from app.models.user import User, UserRole
from app.schemas.schedule import (
    ConflictingCoursesOut,
    MasterScheduleOut,
    SaveTeacherScheduleRequest,
    ScheduleSaveOut,
    SlotAssignmentRequest,
    SlotCell,
    SlotMutationOut,
    StudentScheduleEntryOut,
    TeacherScheduleOut,
    TeacherWithCoursesOut,
)
from app.services.schedule_conflicts import get_conflicting_courses
from app.services.schedule_mutator import save_teacher_schedule, update_schedule
from app.services.schedule_reader import (
    slot_out,
    get_master_schedule,
    get_student_schedule,
    get_teacher_schedule,
    list_teachers_with_courses,
)

router = APIRouter()


def _cell_from_query(day_of_week: int | None, ui_day: int | None, period: int) -> SlotCell:
    try:
        return SlotCell(day_of_week=day_of_week, ui_day=ui_day, period=period)
    except ValidationError as exc:
        raise ValidationFailedError("Invalid schedule cell", details={"errors": [error["msg"] for error in exc.errors()]}) from exc


@router.get("/teachers", response_model=list[TeacherWithCoursesOut])
def list_schedule_teachers(
    search: str = Query(default="", max_length=200),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[TeacherWithCoursesOut]:
    return list_teachers_with_courses(db, search)


@router.get("/master", response_model=MasterScheduleOut)
def master_schedule(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MasterScheduleOut:
    return get_master_schedule(db)


@router.get("/teachers/{teacher_id}", response_model=TeacherScheduleOut)
def teacher_schedule(
    teacher_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> TeacherScheduleOut:
    return unwrap(get_teacher_schedule(db, teacher_id))


@router.put("/teachers/{teacher_id}/slots", response_model=SlotMutationOut)
def assign_slot(
    teacher_id: str,
    payload: SlotAssignmentRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> SlotMutationOut:
    slot = unwrap(
        update_schedule(
            db,
            teacher_id,
            payload.day_of_week,
            payload.period,
            payload.course_id,
            actor_id=current_user.id,
        )
    )
    if slot is None or slot.is_archived:
        return SlotMutationOut(slot=None)
    return SlotMutationOut(slot=slot_out(slot))


@router.put("/teachers/{teacher_id}", response_model=ScheduleSaveOut)
def save_schedule(
    teacher_id: str,
    payload: SaveTeacherScheduleRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> ScheduleSaveOut:
    entries = [entry.model_dump(include={"day_of_week", "period", "course_id"}) for entry in payload.schedules]
    summary = unwrap(save_teacher_schedule(db, teacher_id, entries, actor_id=current_user.id))
    return ScheduleSaveOut(**summary)


@router.get("/teachers/{teacher_id}/conflicts", response_model=ConflictingCoursesOut)
def conflicting_courses(
    teacher_id: str,
    period: int = Query(),
    day_of_week: int | None = Query(default=None),
    ui_day: int | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ConflictingCoursesOut:
    cell = _cell_from_query(day_of_week, ui_day, period)
    return ConflictingCoursesOut(
        day_of_week=cell.day_of_week,
        period=cell.period,
        conflicting_course_ids=get_conflicting_courses(db, teacher_id, cell.day_of_week, cell.period),
    )


@router.get("/me", response_model=list[StudentScheduleEntryOut])
def my_schedule(
    day_of_week: int | None = Query(default=None, ge=0, le=6),
    current_user: User = Depends(require_roles(UserRole.student)),
    db: Session = Depends(get_db),
) -> list[StudentScheduleEntryOut]:
    return unwrap(get_student_schedule(db, current_user.id, day_of_week))


@router.get("/students/{student_id}", response_model=list[StudentScheduleEntryOut])
def student_schedule(
    student_id: str,
    day_of_week: int | None = Query(default=None, ge=0, le=6),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[StudentScheduleEntryOut]:
    ensure_self_or_admin(current_user, student_id)
    return unwrap(get_student_schedule(db, student_id, day_of_week))
