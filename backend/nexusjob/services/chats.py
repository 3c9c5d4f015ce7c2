from __future__ import annotations

import logging
from collections.abc import Callable

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from nexusjob.database import commit, utcnow
from nexusjob.errors import ValidationError
from nexusjob.models.application import Application
from nexusjob.models.chat import Chat
from nexusjob.models.job import Job
from nexusjob.schemas.chat import ChatOut
from nexusjob.services.realtime import CHATS_TOPIC, RealtimeEvent, RealtimeHub, Subscription


def chat_sort_key(chat: Chat | ChatOut) -> tuple:
    """Newest activity first, chats without messages last."""
    last = chat.last_message_at
    return (
        last is None,
        -(last.timestamp()) if last is not None else 0.0,
        -(chat.created_at.timestamp()),
        -chat.id,
    )


class ChatRepository:
    def __init__(self, db: Session, hub: RealtimeHub | None = None) -> None:
        self.db = db
        self.hub = hub
        self.logger = logging.getLogger(self.__class__.__name__)

    def get(self, chat_id: int) -> Chat | None:
        return self.db.query(Chat).filter(Chat.id == chat_id).first()

    def get_by_application_id(self, application_id: int) -> Chat | None:
        return self.db.query(Chat).filter(Chat.application_id == application_id).first()

    def list_for_user(self, user_id: int) -> list[Chat]:
        return (
            self.db.query(Chat)
            .filter(or_(Chat.employer_id == user_id, Chat.seeker_id == user_id))
            .order_by(Chat.last_message_at.desc().nulls_last(), Chat.created_at.desc(), Chat.id.desc())
            .all()
        )

    def create_chat(self, application: Application, job_title: str, employer_id: int) -> Chat:
        """Insert the conversation for ``application``.

        ``chats.application_id`` is unique, so a concurrent insert for the same
        application fails here and the row that won is returned instead.
        """
        chat = Chat(
            application_id=application.id,
            employer_id=employer_id,
            seeker_id=application.seeker_id,
            job_title=job_title,
            unread_count=0,
            created_at=utcnow(),
        )
        self.db.add(chat)
        try:
            commit(self.db)
        except IntegrityError:
            existing = self.get_by_application_id(application.id)
            if existing is None:
                raise
            self.logger.info("Chat for application %s already exists (chat %s)", application.id, existing.id)
            return existing

        self.db.refresh(chat)
        self.logger.info(
            "Created chat %s for application %s between employer %s and seeker %s",
            chat.id,
            application.id,
            employer_id,
            application.seeker_id,
        )
        self._publish("insert", chat)
        return chat

    def ensure_for_application(self, application: Application) -> Chat:
        existing = self.get_by_application_id(application.id)
        if existing:
            return existing
        job = self.db.query(Job).filter(Job.id == application.job_id).first()
        if not job:
            raise ValidationError(f"Job {application.job_id} for application {application.id} no longer exists")
        return self.create_chat(application, job.title, job.employer_id)

    def subscribe_to_chats(self, user_id: int, on_update: Callable[[RealtimeEvent], None]) -> Subscription:
        if self.hub is None:
            raise RuntimeError("No realtime hub configured")

        def _participant_only(event: RealtimeEvent) -> None:
            if self.is_participant(event.payload, user_id):
                on_update(event)

        return self.hub.subscribe(CHATS_TOPIC, _participant_only)

    @staticmethod
    def is_participant(chat: Chat | ChatOut, user_id: int) -> bool:
        return user_id in (chat.employer_id, chat.seeker_id)

    def publish_update(self, chat: Chat) -> None:
        self._publish("update", chat)

    def _publish(self, kind: str, chat: Chat) -> None:
        if self.hub is not None:
            self.hub.publish(CHATS_TOPIC, kind, ChatOut.model_validate(chat))
