from pydantic import BaseModel, Field


class EnrollStudentRequest(BaseModel):
    student_id: str = Field(min_length=1, max_length=36)


class EnrollClassRequest(BaseModel):
    class_id: str = Field(min_length=1, max_length=36)


class StudentOptionOut(BaseModel):
    id: str
    name: str
    email: str
    official_id: str | None = None

    model_config = {"from_attributes": True}


class RosterStudentOut(StudentOptionOut):
    enrollment_id: str


class ClassEnrollmentOut(BaseModel):
    success: bool = True
    count: int
    message: str
