from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text

from nexusjob.database import Base, utcnow


class Message(Base):
    __tablename__ = "messages"
    __table_args__ = (Index("idx_message_chat_order", "chat_id", "sent_at", "id"),)

    id = Column(Integer, primary_key=True, index=True)
    chat_id = Column(Integer, ForeignKey("chats.id"), nullable=False)
    sender_id = Column(Integer, nullable=False)
    sender_name = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    sent_at = Column(DateTime, default=utcnow, nullable=False)
    read = Column(Boolean, default=False, nullable=False)
