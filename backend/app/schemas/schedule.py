from pydantic import BaseModel, Field, model_validator

from app.services.slot_grid import PERIODS_PER_DAY, ui_day_to_stored


class SlotCell(BaseModel):
    """A grid cell addressed either by stored day (Sunday = 0) or by Monday-first ``ui_day``."""

    day_of_week: int | None = Field(default=None, ge=0, le=6)
    ui_day: int | None = Field(default=None, ge=0, le=6)
    period: int = Field(ge=0, le=PERIODS_PER_DAY - 1)

    @model_validator(mode="after")
    def resolve_day(self) -> "SlotCell":
        if self.day_of_week is None and self.ui_day is None:
            raise ValueError("Either day_of_week or ui_day is required")
        if self.ui_day is not None:
            stored = ui_day_to_stored(self.ui_day)
            if self.day_of_week is not None and self.day_of_week != stored:
                raise ValueError("day_of_week and ui_day point at different days")
            self.day_of_week = stored
        return self


class SlotAssignmentRequest(SlotCell):
    course_id: str | None = Field(default=None, max_length=36)


class TeacherScheduleEntry(SlotCell):
    course_id: str = Field(min_length=1, max_length=36)


class SaveTeacherScheduleRequest(BaseModel):
    schedules: list[TeacherScheduleEntry] = Field(default_factory=list, max_length=7 * PERIODS_PER_DAY)


class ScheduleSlotOut(BaseModel):
    id: str
    course_id: str
    day_of_week: int
    ui_day: int
    day_name: str
    period: int
    period_label: str


class GridCellOut(BaseModel):
    slot_id: str
    day_of_week: int
    ui_day: int
    period: int
    period_label: str
    course_id: str
    course_name: str
    class_name: str | None = None
    subject_name: str | None = None


class TermSummary(BaseModel):
    id: str
    type: str
    academic_year_name: str | None = None


class TeacherSummary(BaseModel):
    id: str
    name: str
    email: str


class TeacherScheduleCourseOut(BaseModel):
    id: str
    name: str
    report_name: str | None = None
    class_id: str | None = None
    class_name: str | None = None
    subject_id: str | None = None
    subject_name: str | None = None
    student_count: int = 0
    slots: list[ScheduleSlotOut] = Field(default_factory=list)


class TeacherScheduleOut(BaseModel):
    teacher: TeacherSummary
    term: TermSummary | None = None
    courses: list[TeacherScheduleCourseOut] = Field(default_factory=list)
    cells: list[GridCellOut] = Field(default_factory=list)


class TeacherWithCoursesOut(TeacherSummary):
    courses: list[TeacherScheduleCourseOut] = Field(default_factory=list)


class StudentScheduleEntryOut(BaseModel):
    slot_id: str
    course_id: str
    course_name: str
    teacher_id: str
    teacher_name: str | None = None
    day_of_week: int
    ui_day: int
    day_name: str
    period: int
    period_label: str


class MasterScheduleTeacherOut(BaseModel):
    teacher_id: str
    teacher_name: str
    # day_of_week (as string) -> period (as string) -> cell
    days: dict[str, dict[str, GridCellOut]] = Field(default_factory=dict)


class MasterScheduleOut(BaseModel):
    term: TermSummary | None = None
    teachers: list[MasterScheduleTeacherOut] = Field(default_factory=list)


class ConflictingCoursesOut(BaseModel):
    day_of_week: int
    period: int
    conflicting_course_ids: list[str]


class SlotMutationOut(BaseModel):
    success: bool = True
    slot: ScheduleSlotOut | None = None


class ScheduleSaveOut(BaseModel):
    success: bool = True
    created: int
    updated: int
    archived: int
