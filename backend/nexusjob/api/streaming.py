from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import WebSocket

from nexusjob.services.realtime import RealtimeEvent


logger = logging.getLogger(__name__)

Renderer = Callable[[RealtimeEvent], Awaitable[dict[str, Any] | None]]


class EventStream:
    """Bridges hub callbacks, which run on any thread, onto one WebSocket.

    Every outgoing frame goes through the queue so only the pump task writes
    to the socket.
    """

    def __init__(self, websocket: WebSocket) -> None:
        self.websocket = websocket
        self.loop = asyncio.get_running_loop()
        self.queue: asyncio.Queue[RealtimeEvent | dict[str, Any]] = asyncio.Queue()
        self._task: asyncio.Task | None = None

    def push(self, item: RealtimeEvent | dict[str, Any]) -> None:
        self.loop.call_soon_threadsafe(self.queue.put_nowait, item)

    def start(self, render: Renderer) -> None:
        self._task = asyncio.create_task(self._pump(render))

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _pump(self, render: Renderer) -> None:
        while True:
            item = await self.queue.get()
            frame = await render(item) if isinstance(item, RealtimeEvent) else item
            if frame is not None:
                await self.websocket.send_json(frame)


def parse_frame(raw: str) -> dict[str, Any] | None:
    try:
        frame = json.loads(raw)
    except json.JSONDecodeError:
        return None
    return frame if isinstance(frame, dict) else None


def error_frame(detail: str, status_code: int = 400, retryable: bool = False) -> dict[str, Any]:
    return {"type": "error", "detail": detail, "status": status_code, "retryable": retryable}
