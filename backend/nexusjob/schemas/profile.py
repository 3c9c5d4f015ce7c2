from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from nexusjob.models.user import UserRole


class ProfileOut(BaseModel):
    id: int
    name: str
    email: str
    role: UserRole
    avatar: str | None = None
    bio: str | None = None
    skills: list[str] = Field(default_factory=list)
    experience: str | None = None
    company_name: str | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class ProfileUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    avatar: str | None = None
    bio: str | None = None
    skills: list[str] | None = None
    experience: str | None = None
    company_name: str | None = None
