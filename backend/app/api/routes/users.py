from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db, require_admin
from app.core.exceptions import DuplicateResourceError
from app.models.user import User, UserRole
from app.schemas.user import UserCreate, UserOut
from app.services.audit import log_activity

router = APIRouter()


@router.get("/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)) -> UserOut:
    return current_user


@router.get("/", response_model=list[UserOut])
def list_users(
    role: UserRole | None = Query(default=None),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> list[UserOut]:
    statement = select(User).order_by(User.name.asc())
    if role is not None:
        statement = statement.where(User.role == role)
    return list(db.execute(statement).scalars())


@router.post("/", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
) -> UserOut:
    existing = db.execute(select(User).where(User.email == payload.email)).scalar_one_or_none()
    if existing is not None:
        raise DuplicateResourceError("Email already registered")
    user = User(**payload.model_dump(), is_active=True)
    db.add(user)
    db.flush()
    log_activity(
        db,
        actor_id=current_user.id,
        action="user.created",
        entity_type="user",
        entity_id=user.id,
        summary=f"{user.name} ({user.role.value})",
    )
    db.commit()
    db.refresh(user)
    return user
