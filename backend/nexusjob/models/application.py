from __future__ import annotations

import enum

from sqlalchemy import Column, DateTime, Index, Integer, String, Text

from nexusjob.database import Base, utcnow


class ApplicationStatus(str, enum.Enum):
    PENDING = "Pending"
    REVIEWING = "Reviewing"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"


class Application(Base):
    __tablename__ = "applications"
    __table_args__ = (Index("idx_application_job_seeker", "job_id", "seeker_id"),)

    id = Column(Integer, primary_key=True, index=True)
    # Plain reference: deleting a job leaves its applications orphaned.
    job_id = Column(Integer, nullable=False, index=True)
    seeker_id = Column(Integer, nullable=False, index=True)
    seeker_name = Column(String(255), nullable=False)
    status = Column(String(20), default=ApplicationStatus.PENDING.value, nullable=False)
    cover_letter = Column(Text)
    applied_at = Column(DateTime, default=utcnow, nullable=False)
