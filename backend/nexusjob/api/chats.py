from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session, sessionmaker

from nexusjob.api.streaming import EventStream, error_frame, parse_frame
from nexusjob.auth import get_current_user, resolve_token_user
from nexusjob.database import get_db, get_session_factory
from nexusjob.errors import NexusJobError, TransientServiceError
from nexusjob.models.chat import Chat
from nexusjob.models.job import Job
from nexusjob.models.message import Message
from nexusjob.models.user import User
from nexusjob.schemas.chat import ChatOut, MessageCreate, MessageOut, ReadReceiptOut
from nexusjob.services.chats import ChatRepository
from nexusjob.services.job_board import ApplicationRepository
from nexusjob.services.messaging import LiveChat, MessagingEngine
from nexusjob.services.realtime import RealtimeEvent, RealtimeHub, get_hub


router = APIRouter()
logger = logging.getLogger(__name__)


def _participant_chat(repo: ChatRepository, chat_id: int, user: User) -> Chat:
    chat = repo.get(chat_id)
    if not chat:
        raise HTTPException(status_code=404, detail="Chat not found")
    if not chat.has_participant(user.id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You are not part of this chat")
    return chat


@router.get("", response_model=list[ChatOut])
def list_chats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[Chat]:
    return ChatRepository(db).list_for_user(current_user.id)


@router.get("/by-application/{application_id}", response_model=ChatOut | None)
def get_chat_for_application(
    application_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Chat | None:
    application = ApplicationRepository(db).get(application_id)
    if not application:
        raise HTTPException(status_code=404, detail="Application not found")
    owner_id = db.query(Job.employer_id).filter(Job.id == application.job_id).scalar()
    if current_user.id not in (application.seeker_id, owner_id):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You are not part of this application")
    return ChatRepository(db).get_by_application_id(application_id)


@router.get("/{chat_id}/messages", response_model=list[MessageOut])
def list_messages(
    chat_id: int,
    after_id: int | None = Query(default=None),
    limit: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[Message]:
    engine = MessagingEngine(db)
    _participant_chat(engine.chats, chat_id, current_user)
    return engine.get_messages(chat_id, after_id=after_id, limit=limit)


@router.post("/{chat_id}/messages", response_model=MessageOut, status_code=status.HTTP_201_CREATED)
def send_message(
    chat_id: int,
    payload: MessageCreate,
    db: Session = Depends(get_db),
    hub: RealtimeHub = Depends(get_hub),
    current_user: User = Depends(get_current_user),
) -> Message:
    engine = MessagingEngine(db, hub)
    _participant_chat(engine.chats, chat_id, current_user)
    return engine.send_message(chat_id, current_user.id, current_user.name, payload.content)


@router.post("/{chat_id}/read", response_model=ReadReceiptOut)
def mark_read(
    chat_id: int,
    db: Session = Depends(get_db),
    hub: RealtimeHub = Depends(get_hub),
    current_user: User = Depends(get_current_user),
) -> ReadReceiptOut:
    engine = MessagingEngine(db, hub)
    _participant_chat(engine.chats, chat_id, current_user)
    marked = engine.mark_messages_as_read(chat_id, current_user.id)
    return ReadReceiptOut(chat_id=chat_id, marked=marked, unread_count=0)


def _authorize_chat_socket(session_factory: sessionmaker, token: str | None, chat_id: int) -> tuple[int, str] | None:
    with session_factory() as db:
        user = resolve_token_user(db, token)
        if user is None:
            return None
        chat = ChatRepository(db).get(chat_id)
        if chat is None or not chat.has_participant(user.id):
            return None
        return user.id, user.name


def _send_from_socket(
    session_factory: sessionmaker,
    hub: RealtimeHub,
    chat_id: int,
    sender_id: int,
    sender_name: str,
    content: str,
) -> None:
    with session_factory() as db:
        MessagingEngine(db, hub).send_message(chat_id, sender_id, sender_name, content)


async def _render_message(event: RealtimeEvent) -> dict:
    return {"type": "message", "message": event.payload.model_dump(mode="json")}


@router.websocket("/{chat_id}/ws")
async def chat_socket(
    websocket: WebSocket,
    chat_id: int,
    token: str | None = Query(default=None),
    session_factory: sessionmaker = Depends(get_session_factory),
    hub: RealtimeHub = Depends(get_hub),
) -> None:
    identity = await run_in_threadpool(_authorize_chat_socket, session_factory, token, chat_id)
    if identity is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    user_id, user_name = identity

    await websocket.accept()
    stream = EventStream(websocket)
    live = LiveChat(session_factory, hub, chat_id, user_id, stream.push)
    try:
        history = await run_in_threadpool(live.open)
    except NexusJobError as exc:
        logger.warning("Could not open chat %s for user %s: %s", chat_id, user_id, exc.detail)
        await websocket.send_json(error_frame(exc.detail, exc.status_code, retryable=isinstance(exc, TransientServiceError)))
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return
    logger.info("User %s connected to chat %s", user_id, chat_id)

    try:
        await websocket.send_json({"type": "history", "messages": [message.model_dump(mode="json") for message in history]})
        stream.start(_render_message)
        while True:
            frame = parse_frame(await websocket.receive_text())
            if frame is None:
                stream.push(error_frame("Frames must be JSON objects"))
                continue
            content = str(frame.get("content") or "")
            try:
                await run_in_threadpool(_send_from_socket, session_factory, hub, chat_id, user_id, user_name, content)
            except NexusJobError as exc:
                stream.push(
                    error_frame(exc.detail, exc.status_code, retryable=isinstance(exc, TransientServiceError))
                )
    except WebSocketDisconnect:
        logger.info("User %s disconnected from chat %s", user_id, chat_id)
    finally:
        live.close()
        await stream.stop()
