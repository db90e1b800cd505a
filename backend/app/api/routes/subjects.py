from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db, require_admin
from app.core.exceptions import DuplicateResourceError
from app.db.repository import select_live
from app.models.subject import Subject
from app.models.user import User
from app.schemas.subject import SubjectCreate, SubjectOut
from app.services.audit import log_activity

router = APIRouter()


@router.get("/", response_model=list[SubjectOut])
def list_subjects(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> list[SubjectOut]:
    return list(db.execute(select_live(Subject).order_by(Subject.name.asc())).scalars())


@router.post("/", response_model=SubjectOut, status_code=status.HTTP_201_CREATED)
def create_subject(
    payload: SubjectCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> SubjectOut:
    existing = db.execute(select(Subject).where(Subject.code == payload.code)).scalar_one_or_none()
    if existing is not None:
        raise DuplicateResourceError("Subject code already exists")
    subject = Subject(**payload.model_dump())
    db.add(subject)
    db.flush()
    log_activity(
        db,
        actor_id=current_user.id,
        action="subject.created",
        entity_type="subject",
        entity_id=subject.id,
        summary=f"{subject.code} {subject.name}",
    )
    db.commit()
    db.refresh(subject)
    return subject
