# models/match.py
from sqlalchemy import (
    Column, BigInteger, Boolean, CheckConstraint, DateTime, ForeignKey, UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .base import Base, utcnow


class Match(Base):
    __tablename__ = "matches"
    __table_args__ = (
        UniqueConstraint("user_a_id", "user_b_id", "idea_id", name="uq_match_pair_idea"),
        CheckConstraint("user_a_id < user_b_id", name="ck_match_canonical_pair"),
    )

    id = Column(BigInteger, primary_key=True, index=True)
    user_a_id = Column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    user_b_id = Column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    idea_id = Column(BigInteger, ForeignKey("ideas.id", ondelete="CASCADE"), nullable=False)
    read_by_a = Column(Boolean, default=False, nullable=False)
    read_by_b = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    user_a = relationship("User", foreign_keys=[user_a_id], lazy="joined")
    user_b = relationship("User", foreign_keys=[user_b_id], lazy="joined")
    idea = relationship("Idea", foreign_keys=[idea_id], lazy="joined")

    def has_participant(self, user_id: int) -> bool:
        return user_id in (self.user_a_id, self.user_b_id)

    def other_user_id(self, user_id: int) -> int:
        return self.user_b_id if self.user_a_id == user_id else self.user_a_id

    def other_user(self, user_id: int):
        return self.user_b if self.user_a_id == user_id else self.user_a

    def __repr__(self):
        return f"<Match {self.user_a_id}↔{self.user_b_id} idea={self.idea_id}>"
