# models/swipe.py
from sqlalchemy import Column, BigInteger, DateTime, ForeignKey, String, UniqueConstraint

from .base import Base, utcnow

SWIPE_LEFT = "left"
SWIPE_RIGHT = "right"


class Swipe(Base):
    __tablename__ = "swipes"
    __table_args__ = (
        UniqueConstraint("user_id", "idea_id", name="uq_swipe_user_idea"),
    )

    id = Column(BigInteger, primary_key=True, index=True)
    user_id = Column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    idea_id = Column(BigInteger, ForeignKey("ideas.id", ondelete="CASCADE"), nullable=False, index=True)
    direction = Column(String(5), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<Swipe {self.user_id}→{self.idea_id} {self.direction}>"
