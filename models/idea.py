# models/idea.py
from sqlalchemy import Column, BigInteger, Boolean, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from .base import Base, utcnow


class Idea(Base):
    __tablename__ = "ideas"

    id = Column(BigInteger, primary_key=True, index=True)
    owner_id = Column(BigInteger, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    name = Column(String(200), nullable=False)
    one_liner = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    swipe_right_count = Column(Integer, default=0, nullable=False)
    swipe_left_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    owner = relationship("User", foreign_keys=[owner_id], lazy="joined")

    def __repr__(self):
        return f"<Idea id={self.id} name={self.name!r}>"
