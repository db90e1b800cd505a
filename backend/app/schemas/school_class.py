from pydantic import BaseModel, Field, field_validator


class ClassCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    term_id: str = Field(min_length=1, max_length=36)
    homeroom_teacher_id: str | None = Field(default=None, max_length=36)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("Name cannot be empty")
        return trimmed


class ClassUpdate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    homeroom_teacher_id: str | None = Field(default=None, max_length=36)


class ClassOut(BaseModel):
    id: str
    name: str
    term_id: str
    homeroom_teacher_id: str | None = None
    student_count: int = 0

    model_config = {"from_attributes": True}
