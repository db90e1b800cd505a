from pydantic import BaseModel, Field, field_validator


class SubjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    code: str = Field(min_length=1, max_length=50)
    description: str | None = None

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        return value.strip().upper()


class SubjectOut(BaseModel):
    id: str
    name: str
    code: str
    description: str | None = None

    model_config = {"from_attributes": True}
