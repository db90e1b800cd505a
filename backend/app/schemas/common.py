from pydantic import BaseModel


class SuccessOut(BaseModel):
    success: bool = True
    message: str | None = None
