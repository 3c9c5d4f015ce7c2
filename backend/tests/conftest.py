from __future__ import annotations

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from nexusjob.auth import create_access_token
from nexusjob.config import settings
from nexusjob.database import Base, build_engine, get_db, get_session_factory
from nexusjob.main import app
from nexusjob.models.user import User, UserRole
from nexusjob.schemas.job import JobCreate
from nexusjob.services.job_board import ApplicationRepository, JobRepository
from nexusjob.services.realtime import RealtimeHub, get_hub
from nexusjob.services.recommendations import RecommendationGateway, get_gateway


class FakeMessages:
    def __init__(self) -> None:
        self.replies: list[str | Exception] = []
        self.calls: list[dict] = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(content=[SimpleNamespace(type="text", text=reply)])


class FakeAnthropic:
    """Stands in for ``anthropic.Anthropic``; only ``messages.create`` is used."""

    def __init__(self) -> None:
        self.messages = FakeMessages()

    def reply(self, *replies: str | Exception) -> None:
        self.messages.replies.extend(replies)


@pytest.fixture(autouse=True)
def no_model_credentials(monkeypatch):
    # Keep the suite offline even when ANTHROPIC_API_KEY is exported.
    monkeypatch.setattr(settings, "anthropic_api_key", "")


@pytest.fixture
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'nexusjob-test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


@pytest.fixture
def db(session_factory):
    with session_factory() as session:
        yield session


@pytest.fixture
def hub():
    return RealtimeHub()


@pytest.fixture
def make_user(db):
    def _make(name: str, role: UserRole = UserRole.SEEKER, **fields) -> User:
        user = User(
            name=name,
            email=fields.pop("email", f"{name.lower().replace(' ', '.')}@example.com"),
            role=role.value,
            **fields,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def employer(make_user):
    return make_user("Erin Employer", UserRole.EMPLOYER, company_name="Acme Labs")


@pytest.fixture
def seeker(make_user):
    return make_user("Sam Seeker", skills=["python", "sql"], experience="4 years backend", bio="API developer")


@pytest.fixture
def job(db, employer):
    return JobRepository(db).create_job(
        employer,
        JobCreate(
            title="Backend Engineer",
            location="Berlin",
            description="Build and operate the hiring platform APIs.",
            requirements=["Python", "PostgreSQL"],
            tags=["python", "fastapi"],
        ),
    )


@pytest.fixture
def application(db, hub, job, seeker):
    return ApplicationRepository(db, hub).create_application(job.id, seeker.id, seeker.name, "I would love to join.")


@pytest.fixture
def fake_model():
    return FakeAnthropic()


@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers


@pytest.fixture
def client(session_factory, hub, fake_model):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_hub] = lambda: hub
    app.dependency_overrides[get_gateway] = lambda: RecommendationGateway(client=fake_model)
    yield TestClient(app)
    app.dependency_overrides.clear()
