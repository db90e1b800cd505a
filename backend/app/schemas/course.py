from pydantic import BaseModel, Field, field_validator


class CourseBase(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    report_name: str | None = Field(default=None, max_length=200)
    teacher_id: str = Field(min_length=1, max_length=36)
    subject_id: str | None = Field(default=None, max_length=36)
    class_id: str | None = Field(default=None, max_length=36)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Name cannot be empty")
        return trimmed

    @field_validator("report_name", "subject_id", "class_id")
    @classmethod
    def blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        trimmed = value.strip()
        return trimmed or None


class CourseCreate(CourseBase):
    term_id: str = Field(min_length=1, max_length=36)


class CourseUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    report_name: str | None = Field(default=None, max_length=200)
    teacher_id: str | None = Field(default=None, min_length=1, max_length=36)
    # Accepted only when it matches the current term; courses never move between terms.
    term_id: str | None = Field(default=None, max_length=36)
    subject_id: str | None = Field(default=None, max_length=36)
    class_id: str | None = Field(default=None, max_length=36)


class CourseOut(BaseModel):
    id: str
    name: str
    report_name: str | None = None
    teacher_id: str
    term_id: str
    subject_id: str | None = None
    class_id: str | None = None
    student_count: int = 0

    model_config = {"from_attributes": True}
