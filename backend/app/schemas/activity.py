from datetime import datetime

from pydantic import BaseModel


class ActivityLogOut(BaseModel):
    id: str
    actor_id: str | None
    action: str
    entity_type: str
    entity_id: str | None
    summary: str
    details: dict
    created_at: datetime | None = None

    model_config = {"from_attributes": True}
