from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import DateTime, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column


class RecordStatus(str, Enum):
    active = "active"
    archived = "archived"


class LifecycleMixin:
    """Soft-delete state shared by every retirable record.

    Archived records stay in storage but are hidden from every query that goes
    through ``app.db.repository``.
    """

    status: Mapped[RecordStatus] = mapped_column(
        SAEnum(RecordStatus, name="record_status"),
        nullable=False,
        default=RecordStatus.active,
        index=True,
    )
    archived_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def is_archived(self) -> bool:
        return self.status == RecordStatus.archived

    def archive(self) -> None:
        if self.status == RecordStatus.archived:
            return
        self.status = RecordStatus.archived
        self.archived_at = datetime.now(timezone.utc)

    def restore(self) -> None:
        self.status = RecordStatus.active
        self.archived_at = None
