from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from nexusjob.config import settings
from nexusjob.errors import TransientServiceError


def build_engine(database_url: str) -> Engine:
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, connect_args=connect_args)


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)

Base = declarative_base()


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory() -> sessionmaker:
    """Factory for code that opens its own sessions, such as WebSocket handlers."""
    return SessionLocal


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def commit(db: Session) -> None:
    """Commit, rolling back and translating store failures into retryable errors."""
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise
    except DBAPIError as exc:
        db.rollback()
        raise TransientServiceError("The data store is temporarily unavailable, please retry") from exc
