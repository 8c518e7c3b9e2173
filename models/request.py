# models/request.py
from sqlalchemy import (
    Column, BigInteger, Boolean, CheckConstraint, DateTime, ForeignKey, String, Text, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .base import Base, utcnow

STATUS_PENDING = "pending"
STATUS_ACCEPTED = "accepted"
STATUS_REJECTED = "rejected"


class IdeaRequest(Base):
    __tablename__ = "requests"
    __table_args__ = (
        UniqueConstraint("requester_id", "idea_id", name="uq_request_requester_idea"),
        CheckConstraint("requester_id != idea_owner_id", name="ck_request_not_own_idea"),
    )

    id = Column(BigInteger, primary_key=True, index=True)
    requester_id = Column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    idea_owner_id = Column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    idea_id = Column(BigInteger, ForeignKey("ideas.id", ondelete="CASCADE"), nullable=False)
    message = Column(Text, nullable=False)
    status = Column(String(10), default=STATUS_PENDING, nullable=False)
    # Read flag of whoever the current status concerns: the owner while
    # pending, the requester once accepted.
    viewed = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    requester = relationship("User", foreign_keys=[requester_id], lazy="joined")
    idea_owner = relationship("User", foreign_keys=[idea_owner_id], lazy="joined")
    idea = relationship("Idea", foreign_keys=[idea_id], lazy="joined")

    def __repr__(self):
        return f"<IdeaRequest {self.requester_id}→{self.idea_id} {self.status}>"
