from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from nexusjob.auth import get_current_employer, get_current_user
from nexusjob.database import commit, get_db
from nexusjob.models.user import User, UserRole
from nexusjob.schemas.profile import ProfileOut, ProfileUpdate


router = APIRouter()


@router.get("/me", response_model=ProfileOut)
def me(current_user: User = Depends(get_current_user)) -> User:
    return current_user


@router.patch("/me", response_model=ProfileOut)
def update_me(
    payload: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> User:
    changes = payload.model_dump(exclude_unset=True)
    for field, value in changes.items():
        if field == "name":
            if value is None:
                continue
            value = value.strip()
        setattr(current_user, field, value)
    db.add(current_user)
    commit(db)
    db.refresh(current_user)
    return current_user


@router.get("/candidates", response_model=list[ProfileOut])
def list_candidates(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_employer),
) -> list[User]:
    return (
        db.query(User)
        .filter(User.role == UserRole.SEEKER.value, User.is_active == True)  # noqa: E712
        .order_by(User.name.asc())
        .all()
    )
