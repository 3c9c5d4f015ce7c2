from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import sessionmaker

from nexusjob.api.streaming import EventStream, error_frame, parse_frame
from nexusjob.database import get_session_factory
from nexusjob.errors import AuthenticationError, NexusJobError, TransientServiceError
from nexusjob.services.coordinator import SessionContext, ViewCoordinator
from nexusjob.services.realtime import APPLICATIONS_TOPIC, CHATS_TOPIC, RealtimeEvent, RealtimeHub, get_hub


router = APIRouter()
logger = logging.getLogger(__name__)


def _open_context(session_factory: sessionmaker, token: str | None) -> SessionContext:
    with session_factory() as db:
        return SessionContext.open(db, token)


def _snapshot(coordinator: ViewCoordinator) -> dict[str, Any]:
    return {
        "type": "snapshot",
        "applications": [app.model_dump(mode="json") for app in coordinator.applications.values()],
        "chats": [chat.model_dump(mode="json") for chat in coordinator.sorted_chats()],
    }


@router.websocket("/live")
async def live_session(
    websocket: WebSocket,
    token: str | None = Query(default=None),
    session_factory: sessionmaker = Depends(get_session_factory),
    hub: RealtimeHub = Depends(get_hub),
) -> None:
    try:
        context = await run_in_threadpool(_open_context, session_factory, token)
    except AuthenticationError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    coordinator = ViewCoordinator(context, session_factory, hub)
    stream = EventStream(websocket)

    async def render(event: RealtimeEvent) -> dict[str, Any] | None:
        await run_in_threadpool(coordinator.handle_event, event)
        if event.topic == APPLICATIONS_TOPIC and event.payload.id in coordinator.applications:
            return {"type": "application", "application": coordinator.applications[event.payload.id].model_dump(mode="json")}
        if event.topic == CHATS_TOPIC and event.payload.id in coordinator.chats:
            return {"type": "chat", "chat": coordinator.chats[event.payload.id].model_dump(mode="json")}
        return None

    logger.info("Live session opened for user %s", context.user_id)

    try:
        coordinator.attach(dispatch=stream.push)
        await run_in_threadpool(coordinator.refresh)
        await websocket.send_json(_snapshot(coordinator))
        stream.start(render)
        while True:
            frame = parse_frame(await websocket.receive_text())
            if frame is None:
                stream.push(error_frame("Frames must be JSON objects"))
                continue
            action = frame.get("action")
            try:
                if action == "refresh":
                    await run_in_threadpool(coordinator.refresh)
                    stream.push(_snapshot(coordinator))
                elif action == "update_status":
                    await run_in_threadpool(
                        coordinator.update_application_status,
                        int(frame.get("application_id", 0)),
                        str(frame.get("status", "")),
                    )
                else:
                    stream.push(error_frame(f"Unknown action {action!r}"))
            except NexusJobError as exc:
                stream.push(error_frame(exc.detail, exc.status_code, retryable=isinstance(exc, TransientServiceError)))
            except (TypeError, ValueError):
                stream.push(error_frame("application_id must be an integer", 422))
    except WebSocketDisconnect:
        logger.info("Live session closed for user %s", context.user_id)
    finally:
        coordinator.close()
        await stream.stop()
