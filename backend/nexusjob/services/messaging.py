from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session, sessionmaker

from nexusjob.config import settings
from nexusjob.database import commit, utcnow
from nexusjob.errors import PermissionDeniedError, TransientServiceError, ValidationError
from nexusjob.models.chat import Chat
from nexusjob.models.message import Message
from nexusjob.schemas.chat import MessageOut
from nexusjob.services.chats import ChatRepository
from nexusjob.services.realtime import RealtimeEvent, RealtimeHub, Subscription, messages_topic


class MessagingEngine:
    def __init__(
        self,
        db: Session,
        hub: RealtimeHub | None = None,
        max_page_size: int | None = None,
    ) -> None:
        self.db = db
        self.hub = hub
        self.chats = ChatRepository(db, hub)
        self.max_page_size = max_page_size or settings.max_message_page_size
        self.logger = logging.getLogger(self.__class__.__name__)

    def send_message(self, chat_id: int, sender_id: int, sender_name: str, content: str) -> Message:
        if not (content or "").strip():
            raise ValidationError("Message content cannot be empty")
        chat = self.chats.get(chat_id)
        if not chat:
            raise ValidationError(f"Chat {chat_id} does not exist")
        if not chat.has_participant(sender_id):
            raise PermissionDeniedError("Only the employer and the seeker of this chat can post in it")

        message = Message(
            chat_id=chat.id,
            sender_id=sender_id,
            sender_name=sender_name,
            content=content,
            sent_at=utcnow(),
            read=False,
        )
        self.db.add(message)
        commit(self.db)
        self.db.refresh(message)

        preview_updated = self._update_preview(chat, message)

        if self.hub is not None:
            # Chat first, so a live reader's counter reset is the last chat event.
            if preview_updated:
                self.chats.publish_update(chat)
            self.hub.publish(messages_topic(chat.id), "insert", MessageOut.model_validate(message))
        return message

    def get_messages(self, chat_id: int, after_id: int | None = None, limit: int | None = None) -> list[Message]:
        """History of a chat ordered by ``(sent_at, id)``.

        ``after_id`` is a cursor: only messages strictly after that message are
        returned. ``limit`` is capped at ``max_page_size``; ``None`` returns the
        rest of the history.
        """
        query = self.db.query(Message).filter(Message.chat_id == chat_id)
        if after_id is not None:
            cursor = self.db.query(Message).filter(Message.id == after_id, Message.chat_id == chat_id).first()
            if cursor is None:
                raise ValidationError(f"Message {after_id} is not part of chat {chat_id}")
            query = query.filter(
                or_(
                    Message.sent_at > cursor.sent_at,
                    and_(Message.sent_at == cursor.sent_at, Message.id > cursor.id),
                )
            )
        query = query.order_by(Message.sent_at.asc(), Message.id.asc())
        if limit is not None:
            query = query.limit(max(1, min(limit, self.max_page_size)))
        return query.all()

    def mark_messages_as_read(self, chat_id: int, reader_id: int) -> int:
        """Flip the other participant's unread messages and reset the chat counter.

        Safe to repeat: a second call marks nothing and leaves the counter at 0.
        """
        marked = (
            self.db.query(Message)
            .filter(
                Message.chat_id == chat_id,
                Message.sender_id != reader_id,
                Message.read.is_(False),
            )
            .update({Message.read: True})
        )
        chat = self.chats.get(chat_id)
        counter_changed = bool(chat and chat.unread_count)
        if chat is not None:
            chat.unread_count = 0
            self.db.add(chat)
        commit(self.db)

        if chat is not None and (marked or counter_changed):
            self.chats.publish_update(chat)
        return int(marked)

    def subscribe_to_messages(self, chat_id: int, on_message: Callable[[RealtimeEvent], None]) -> Subscription:
        if self.hub is None:
            raise RuntimeError("No realtime hub configured")
        return self.hub.subscribe(messages_topic(chat_id), on_message)

    def _update_preview(self, chat: Chat, message: Message) -> bool:
        chat.last_message = message.content
        chat.last_message_at = message.sent_at
        chat.unread_count = func.coalesce(Chat.unread_count, 0) + 1
        self.db.add(chat)
        try:
            commit(self.db)
        except TransientServiceError:
            # The message is stored; only the listing preview is stale.
            self.logger.warning("Message %s stored but preview of chat %s was not updated", message.id, chat.id)
            return False
        self.db.refresh(chat)
        return True


class LiveChat:
    """A participant's open chat window.

    Opening marks the other side's messages read. Each live message from the
    other participant is marked read before it is forwarded. ``close`` is
    idempotent and stops delivery before it returns.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        hub: RealtimeHub,
        chat_id: int,
        reader_id: int,
        on_message: Callable[[RealtimeEvent], None],
    ) -> None:
        self.session_factory = session_factory
        self.hub = hub
        self.chat_id = chat_id
        self.reader_id = reader_id
        self.on_message = on_message
        self.logger = logging.getLogger(self.__class__.__name__)
        self._subscription: Subscription | None = None
        self._seen: set[int] = set()
        self._seen_lock = threading.Lock()
        self._pending: list[MessageOut] | None = None

    @property
    def is_open(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def open(self) -> list[MessageOut]:
        """Subscribe, then return the history in ``(sent_at, id)`` order and mark it read.

        Live messages that arrive before the history is returned are merged
        into it instead of being forwarded. If loading fails the subscription
        is removed again.
        """
        with self._seen_lock:
            self._pending = []
        self._subscription = self.hub.subscribe(messages_topic(self.chat_id), self._handle)
        try:
            with self.session_factory() as db:
                engine = MessagingEngine(db, self.hub)
                history = [MessageOut.model_validate(message) for message in engine.get_messages(self.chat_id)]
                engine.mark_messages_as_read(self.chat_id, self.reader_id)
        except Exception:
            self.close()
            raise

        with self._seen_lock:
            merged = {message.id: message for message in history}
            for message in self._pending or []:
                merged.setdefault(message.id, message)
            self._pending = None
            self._seen.update(merged)
        history = sorted(merged.values(), key=lambda message: (message.sent_at, message.id))
        self.logger.debug("User %s opened chat %s with %d messages", self.reader_id, self.chat_id, len(history))
        return history

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()

    def _handle(self, event: RealtimeEvent) -> None:
        message = event.payload
        with self._seen_lock:
            if message.id in self._seen:
                return
            self._seen.add(message.id)
            held_back = self._pending is not None
            if held_back:
                self._pending.append(message)
        if message.sender_id != self.reader_id:
            with self.session_factory() as db:
                MessagingEngine(db, self.hub).mark_messages_as_read(self.chat_id, self.reader_id)
        if not held_back:
            self.on_message(event)
