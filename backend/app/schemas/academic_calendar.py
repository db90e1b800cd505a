from datetime import date

from pydantic import BaseModel, Field, field_validator

from app.models.academic_calendar import SemesterType


class AcademicYearCreate(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    start_date: date
    end_date: date

    @field_validator("name")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Name cannot be empty")
        return trimmed


class AcademicYearOut(BaseModel):
    id: str
    name: str
    start_date: date
    end_date: date
    is_active: bool

    model_config = {"from_attributes": True}


class SemesterWrite(BaseModel):
    academic_year_name: str = Field(min_length=1, max_length=50)
    type: SemesterType
    start_date: date
    end_date: date

    @field_validator("academic_year_name")
    @classmethod
    def normalize_year_name(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Academic year name cannot be empty")
        return trimmed


class SemesterOut(BaseModel):
    id: str
    type: SemesterType
    start_date: date
    end_date: date
    is_active: bool
    academic_year_id: str
    academic_year_name: str | None = None
    course_count: int = 0
