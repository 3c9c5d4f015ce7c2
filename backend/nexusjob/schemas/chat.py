from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class ChatOut(BaseModel):
    id: int
    application_id: int
    employer_id: int
    seeker_id: int
    job_title: str
    last_message: str | None = None
    last_message_at: datetime | None = None
    unread_count: int = 0
    created_at: datetime

    class Config:
        from_attributes = True


class MessageCreate(BaseModel):
    content: str = Field(min_length=1, max_length=5000)


class MessageOut(BaseModel):
    id: int
    chat_id: int
    sender_id: int
    sender_name: str
    content: str
    sent_at: datetime
    read: bool

    class Config:
        from_attributes = True


class ReadReceiptOut(BaseModel):
    chat_id: int
    marked: int
    unread_count: int = 0
