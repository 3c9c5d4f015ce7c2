from __future__ import annotations

from collections import Counter

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from nexusjob.auth import get_current_seeker, get_current_user
from nexusjob.config import settings
from nexusjob.database import get_db
from nexusjob.models.application import Application, ApplicationStatus
from nexusjob.models.user import User, UserRole
from nexusjob.schemas.application import (
    ApplicationCreate,
    ApplicationOut,
    ApplicationStatsOut,
    ApplicationStatusOut,
    ApplicationStatusUpdate,
)
from nexusjob.schemas.chat import ChatOut
from nexusjob.services.chats import ChatRepository
from nexusjob.services.job_board import ApplicationRepository
from nexusjob.services.realtime import RealtimeHub, get_hub


router = APIRouter()


def _visible_applications(repo: ApplicationRepository, user: User) -> list[Application]:
    if user.role == UserRole.EMPLOYER.value:
        return repo.list_for_employer(user.id)
    return repo.list_for_seeker(user.id)


@router.get("", response_model=list[ApplicationOut])
def list_applications(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[Application]:
    return _visible_applications(ApplicationRepository(db), current_user)


@router.post("", response_model=ApplicationOut, status_code=status.HTTP_201_CREATED)
def create_application(
    payload: ApplicationCreate,
    db: Session = Depends(get_db),
    hub: RealtimeHub = Depends(get_hub),
    current_user: User = Depends(get_current_seeker),
) -> Application:
    repo = ApplicationRepository(db, hub, single_application_per_job=settings.single_application_per_job)
    return repo.create_application(
        job_id=payload.job_id,
        seeker_id=current_user.id,
        seeker_name=current_user.name,
        cover_letter=payload.cover_letter,
    )


@router.get("/stats", response_model=ApplicationStatsOut)
def application_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ApplicationStatsOut:
    applications = _visible_applications(ApplicationRepository(db), current_user)
    counts = Counter(app.status for app in applications)
    return ApplicationStatsOut(
        pending=counts.get(ApplicationStatus.PENDING.value, 0),
        reviewing=counts.get(ApplicationStatus.REVIEWING.value, 0),
        accepted=counts.get(ApplicationStatus.ACCEPTED.value, 0),
        rejected=counts.get(ApplicationStatus.REJECTED.value, 0),
        total=len(applications),
    )


@router.patch("/{app_id}/status", response_model=ApplicationStatusOut)
def update_application_status(
    app_id: int,
    payload: ApplicationStatusUpdate,
    db: Session = Depends(get_db),
    hub: RealtimeHub = Depends(get_hub),
    current_user: User = Depends(get_current_user),
) -> ApplicationStatusOut:
    repo = ApplicationRepository(db, hub)
    if not repo.get(app_id):
        raise HTTPException(status_code=404, detail="Application not found")

    application = repo.update_status(app_id, payload.status, actor_id=current_user.id)
    chat = None
    if application.status == ApplicationStatus.ACCEPTED.value:
        chat = ChatRepository(db, hub).ensure_for_application(application)

    return ApplicationStatusOut(
        application=ApplicationOut.model_validate(application),
        chat=ChatOut.model_validate(chat) if chat else None,
    )
