from __future__ import annotations

import enum

from sqlalchemy import Column, DateTime, Index, Integer, String, Text
from sqlalchemy.types import JSON

from nexusjob.database import Base, utcnow


class JobType(str, enum.Enum):
    FULL_TIME = "Full-time"
    PART_TIME = "Part-time"
    CONTRACT = "Contract"
    REMOTE = "Remote"


class Job(Base):
    __tablename__ = "jobs"
    __table_args__ = (Index("idx_posted_at", "posted_at"),)

    id = Column(Integer, primary_key=True, index=True)
    employer_id = Column(Integer, nullable=False, index=True)
    company_name = Column(String(255))
    title = Column(String(500), nullable=False)
    location = Column(String(255))
    type = Column(String(50), nullable=False, default=JobType.FULL_TIME.value)
    salary_range = Column(String(120))
    description = Column(Text, nullable=False, default="")
    requirements = Column(JSON, default=list)
    tags = Column(JSON, default=list)
    posted_at = Column(DateTime, default=utcnow, nullable=False)
