from __future__ import annotations

from sqlalchemy import Column, DateTime, Index, Integer, String, Text, UniqueConstraint

from nexusjob.database import Base, utcnow


class Chat(Base):
    __tablename__ = "chats"
    __table_args__ = (
        UniqueConstraint("application_id", name="uq_chat_application"),
        Index("idx_chat_employer", "employer_id"),
        Index("idx_chat_seeker", "seeker_id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    application_id = Column(Integer, nullable=False)
    employer_id = Column(Integer, nullable=False)
    seeker_id = Column(Integer, nullable=False)
    job_title = Column(String(500), nullable=False)
    last_message = Column(Text)
    last_message_at = Column(DateTime)
    # Shared by both participants; whoever opens the chat resets it.
    unread_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def has_participant(self, user_id: int) -> bool:
        return user_id in (self.employer_id, self.seeker_id)
