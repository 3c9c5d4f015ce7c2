from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from nexusjob.models.job import JobType


class JobCreate(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    company_name: str | None = None
    location: str = ""
    type: JobType = JobType.FULL_TIME
    salary_range: str = ""
    description: str = ""
    requirements: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


class JobUpdate(JobCreate):
    pass


class JobOut(BaseModel):
    id: int
    employer_id: int
    company_name: str | None = None
    title: str
    location: str | None = None
    type: JobType
    salary_range: str | None = None
    description: str = ""
    requirements: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    posted_at: datetime

    class Config:
        from_attributes = True
