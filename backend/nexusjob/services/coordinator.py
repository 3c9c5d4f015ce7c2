from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass

from sqlalchemy.orm import Session, sessionmaker

from nexusjob.auth import resolve_token_user
from nexusjob.errors import AuthenticationError, ValidationError
from nexusjob.models.application import ApplicationStatus
from nexusjob.models.job import Job
from nexusjob.models.user import UserRole
from nexusjob.schemas.application import ApplicationOut
from nexusjob.schemas.chat import ChatOut
from nexusjob.schemas.job import JobOut
from nexusjob.services.chats import ChatRepository, chat_sort_key
from nexusjob.services.job_board import ApplicationRepository, JobRepository
from nexusjob.services.realtime import (
    APPLICATIONS_TOPIC,
    CHATS_TOPIC,
    RealtimeEvent,
    RealtimeHub,
    Subscription,
)


@dataclass
class SessionContext:
    """The signed-in user of one client session.

    Opened from a persisted bearer token and closed on logout or disconnect.
    """

    user_id: int
    name: str
    role: UserRole
    token: str
    closed: bool = False

    @classmethod
    def open(cls, db: Session, token: str | None) -> SessionContext:
        user = resolve_token_user(db, token)
        if user is None:
            raise AuthenticationError("Session token is missing, invalid or expired")
        return cls(user_id=user.id, name=user.name, role=UserRole(user.role), token=token or "")

    @property
    def is_employer(self) -> bool:
        return self.role == UserRole.EMPLOYER

    def close(self) -> None:
        self.closed = True
        self.token = ""


class ViewCoordinator:
    """Per-session projections of jobs, applications and chats.

    This is where "at most one chat per application" is enforced from the
    workflow side. Whenever an application is seen as Accepted, whether this
    session changed it or another session did, ``ensure_chat`` runs. The
    unique constraint on ``chats.application_id`` makes concurrent attempts
    converge on one row.
    """

    def __init__(self, context: SessionContext, session_factory: sessionmaker, hub: RealtimeHub) -> None:
        self.context = context
        self.session_factory = session_factory
        self.hub = hub
        self.jobs: dict[int, JobOut] = {}
        self.applications: dict[int, ApplicationOut] = {}
        self.chats: dict[int, ChatOut] = {}
        self.logger = logging.getLogger(self.__class__.__name__)
        self._subscriptions: list[Subscription] = []
        self._lock = threading.RLock()

    def refresh(self) -> None:
        self._require_open()
        with self.session_factory() as db:
            jobs = [JobOut.model_validate(job) for job in JobRepository(db).list_jobs()]
            applications_repo = ApplicationRepository(db)
            if self.context.is_employer:
                applications = applications_repo.list_for_employer(self.context.user_id)
            else:
                applications = applications_repo.list_for_seeker(self.context.user_id)
            chats = ChatRepository(db).list_for_user(self.context.user_id)
            application_views = [ApplicationOut.model_validate(app) for app in applications]
            chat_views = [ChatOut.model_validate(chat) for chat in chats]

        with self._lock:
            self.jobs = {job.id: job for job in jobs}
            self.applications = {app.id: app for app in application_views}
            self.chats = {chat.id: chat for chat in chat_views}

    def update_application_status(
        self,
        application_id: int,
        status: ApplicationStatus | str,
    ) -> tuple[ApplicationOut, ChatOut | None]:
        self._require_open()
        with self.session_factory() as db:
            application = ApplicationRepository(db, self.hub).update_status(
                application_id,
                status,
                actor_id=self.context.user_id,
            )
            view = ApplicationOut.model_validate(application)

        # Cache only after the store confirmed the write.
        with self._lock:
            self.applications[view.id] = view

        chat = None
        if view.status == ApplicationStatus.ACCEPTED:
            chat = self.ensure_chat(view.id)
        return view, chat

    def ensure_chat(self, application_id: int) -> ChatOut:
        with self.session_factory() as db:
            application = ApplicationRepository(db).get(application_id)
            if application is None:
                raise ValidationError(f"Application {application_id} does not exist")
            chat = ChatRepository(db, self.hub).ensure_for_application(application)
            view = ChatOut.model_validate(chat)
        self._store_chat(view)
        return view

    def handle_event(self, event: RealtimeEvent) -> None:
        if self.context.closed:
            return
        if event.topic == APPLICATIONS_TOPIC:
            self._on_application(event.payload)
        elif event.topic == CHATS_TOPIC:
            self._on_chat(event.payload)

    def attach(self, dispatch: Callable[[RealtimeEvent], None] | None = None) -> None:
        """Subscribe to application and chat changes.

        Without ``dispatch`` events are handled inline on the publishing
        thread. Live connections pass a dispatcher that queues them instead.
        """
        self._require_open()
        handler = dispatch or self.handle_event
        with self._lock:
            if self._subscriptions:
                return
            self._subscriptions = [
                self.hub.subscribe(APPLICATIONS_TOPIC, handler),
                self.hub.subscribe(CHATS_TOPIC, handler),
            ]

    def detach(self) -> None:
        with self._lock:
            subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            subscription.unsubscribe()

    def close(self) -> None:
        self.detach()
        with self._lock:
            self.jobs.clear()
            self.applications.clear()
            self.chats.clear()
        self.context.close()

    def sorted_chats(self) -> list[ChatOut]:
        with self._lock:
            return sorted(self.chats.values(), key=chat_sort_key)

    def chat_for_application(self, application_id: int) -> ChatOut | None:
        with self._lock:
            for chat in self.chats.values():
                if chat.application_id == application_id:
                    return chat
        return None

    def _on_application(self, application: ApplicationOut) -> None:
        if not self._concerns_session(application):
            return
        with self._lock:
            self.applications[application.id] = application
        if application.status == ApplicationStatus.ACCEPTED and self.chat_for_application(application.id) is None:
            self.ensure_chat(application.id)

    def _on_chat(self, chat: ChatOut) -> None:
        # The chats channel is system-wide; keep only our own conversations.
        if not ChatRepository.is_participant(chat, self.context.user_id):
            return
        self._store_chat(chat)

    def _store_chat(self, chat: ChatOut) -> None:
        with self._lock:
            current = self.chats.get(chat.id)
            if current is not None and _is_older(chat, current):
                return
            self.chats[chat.id] = chat

    def _concerns_session(self, application: ApplicationOut) -> bool:
        if application.seeker_id == self.context.user_id:
            return True
        if not self.context.is_employer:
            return False
        with self._lock:
            if application.id in self.applications:
                return True
            job = self.jobs.get(application.job_id)
        if job is not None:
            return job.employer_id == self.context.user_id
        with self.session_factory() as db:
            owner = db.query(Job.employer_id).filter(Job.id == application.job_id).scalar()
        return owner == self.context.user_id

    def _require_open(self) -> None:
        if self.context.closed:
            raise AuthenticationError("Session has been closed")


def _is_older(candidate: ChatOut, current: ChatOut) -> bool:
    if candidate.last_message_at is None or current.last_message_at is None:
        return False
    return candidate.last_message_at < current.last_message_at
