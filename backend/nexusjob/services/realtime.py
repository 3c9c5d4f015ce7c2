from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel


APPLICATIONS_TOPIC = "applications"
CHATS_TOPIC = "chats"


def messages_topic(chat_id: int) -> str:
    return f"messages:{chat_id}"


@dataclass(frozen=True)
class RealtimeEvent:
    topic: str
    kind: str
    payload: BaseModel

    def to_frame(self) -> dict[str, Any]:
        return {"topic": self.topic, "kind": self.kind, "data": self.payload.model_dump(mode="json")}


EventCallback = Callable[[RealtimeEvent], Any]


class Subscription:
    """Handle for one callback on one topic.

    ``unsubscribe`` and delivery take the same lock, so once ``unsubscribe``
    returns the callback is never called again.
    """

    def __init__(self, hub: RealtimeHub, topic: str, callback: EventCallback) -> None:
        self.hub = hub
        self.topic = topic
        self.callback = callback
        self._lock = threading.RLock()
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def deliver(self, event: RealtimeEvent) -> bool:
        with self._lock:
            if not self._active:
                return False
            self.callback(event)
            return True

    def unsubscribe(self) -> None:
        with self._lock:
            if not self._active:
                return
            self._active = False
        self.hub._remove(self)

    def __call__(self) -> None:
        self.unsubscribe()


class RealtimeHub:
    """In-process push channels keyed by topic.

    Each topic has its own lock, so events published on one topic reach every
    subscriber in publish order. Topics are independent of each other.
    """

    def __init__(self) -> None:
        self.logger = logging.getLogger(self.__class__.__name__)
        self._subscribers: dict[str, list[Subscription]] = {}
        self._topic_locks: dict[str, threading.RLock] = {}
        self._registry_lock = threading.Lock()

    def subscribe(self, topic: str, callback: EventCallback) -> Subscription:
        subscription = Subscription(self, topic, callback)
        with self._registry_lock:
            self._subscribers.setdefault(topic, []).append(subscription)
        return subscription

    def publish(self, topic: str, kind: str, payload: BaseModel) -> RealtimeEvent:
        event = RealtimeEvent(topic=topic, kind=kind, payload=payload)
        with self._topic_lock(topic):
            with self._registry_lock:
                targets = list(self._subscribers.get(topic, ()))
            for subscription in targets:
                try:
                    subscription.deliver(event)
                except Exception:
                    self.logger.exception("Subscriber on %s failed while handling %s event", topic, kind)
        return event

    def subscriber_count(self, topic: str) -> int:
        with self._registry_lock:
            return len(self._subscribers.get(topic, ()))

    def _topic_lock(self, topic: str) -> threading.RLock:
        with self._registry_lock:
            lock = self._topic_locks.get(topic)
            if lock is None:
                lock = threading.RLock()
                self._topic_locks[topic] = lock
            return lock

    def _remove(self, subscription: Subscription) -> None:
        with self._registry_lock:
            subscribers = self._subscribers.get(subscription.topic)
            if not subscribers:
                return
            if subscription in subscribers:
                subscribers.remove(subscription)
            if not subscribers:
                del self._subscribers[subscription.topic]


hub = RealtimeHub()


def get_hub() -> RealtimeHub:
    return hub
