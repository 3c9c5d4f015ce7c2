from __future__ import annotations

import enum

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.types import JSON

from nexusjob.database import Base, utcnow


class UserRole(str, enum.Enum):
    SEEKER = "SEEKER"
    EMPLOYER = "EMPLOYER"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    role = Column(String(20), nullable=False, default=UserRole.SEEKER.value)
    avatar = Column(String(1000))
    bio = Column(Text)
    skills = Column(JSON, default=list)
    experience = Column(Text)
    company_name = Column(String(255))
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    @property
    def is_employer(self) -> bool:
        return self.role == UserRole.EMPLOYER.value
