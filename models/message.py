# models/message.py
from sqlalchemy import Column, BigInteger, Boolean, DateTime, ForeignKey, Index, Text
from sqlalchemy.orm import relationship

from .base import Base, utcnow


class Message(Base):
    __tablename__ = "messages"
    __table_args__ = (
        Index("ix_messages_match_unread", "match_id", "read"),
    )

    id = Column(BigInteger, primary_key=True, index=True)
    match_id = Column(BigInteger, ForeignKey("matches.id", ondelete="CASCADE"), nullable=False, index=True)
    sender_id = Column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    sender = relationship("User", foreign_keys=[sender_id], lazy="joined")

    def __repr__(self):
        return f"<Message {self.sender_id}→match {self.match_id}>"
