"""Query helpers that keep archived records out of sight.

Every read of a retirable model should go through these helpers (or the
``is_live`` clause) so that soft-deleted rows never leak into schedules,
conflict checks or listings.
"""
from __future__ import annotations

from typing import TypeVar

from sqlalchemy import Select, select, update
from sqlalchemy.orm import Session

from app.models.academic_calendar import Term
from app.models.lifecycle import LifecycleMixin, RecordStatus

M = TypeVar("M", bound=LifecycleMixin)


def is_live(model: type[LifecycleMixin]):
    return model.status == RecordStatus.active


def select_live(model: type[M]) -> Select:
    return select(model).where(is_live(model))


def get_live(db: Session, model: type[M], record_id: str | None) -> M | None:
    if not record_id:
        return None
    record = db.get(model, record_id)
    if record is None or record.status != RecordStatus.active:
        return None
    return record


def get_active_term(db: Session) -> Term | None:
    return db.execute(
        select(Term).where(Term.is_active.is_(True), is_live(Term)).limit(1)
    ).scalar_one_or_none()


def set_active(db: Session, model: type[M], record_id: str) -> M | None:
    """Make ``record_id`` the only row of ``model`` flagged ``is_active``.

    Both statements run inside the caller's transaction, so readers never
    observe two active rows once the caller commits.
    """
    record = get_live(db, model, record_id)
    if record is None:
        return None
    db.execute(
        update(model)
        .where(model.is_active.is_(True), model.id != record_id)
        .values(is_active=False)
        .execution_options(synchronize_session="fetch")
    )
    record.is_active = True
    return record
