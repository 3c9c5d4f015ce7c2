from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from nexusjob.models.application import ApplicationStatus
from nexusjob.schemas.chat import ChatOut


class ApplicationCreate(BaseModel):
    job_id: int
    cover_letter: str | None = None


class ApplicationStatusUpdate(BaseModel):
    status: ApplicationStatus


class ApplicationOut(BaseModel):
    id: int
    job_id: int
    seeker_id: int
    seeker_name: str
    status: ApplicationStatus
    cover_letter: str | None = None
    applied_at: datetime

    class Config:
        from_attributes = True


class ApplicationStatusOut(BaseModel):
    application: ApplicationOut
    chat: ChatOut | None = None


class ApplicationStatsOut(BaseModel):
    pending: int = 0
    reviewing: int = 0
    accepted: int = 0
    rejected: int = 0
    total: int = Field(default=0, ge=0)
