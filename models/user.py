# models/user.py
from sqlalchemy import Column, BigInteger, DateTime, String, Text

from .base import Base, utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(BigInteger, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=True)
    name = Column(String(100), nullable=True)
    avatar = Column(String(512), nullable=True)
    role = Column(String(32), nullable=True)
    bio = Column(Text, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<User id={self.id} name={self.name!r}>"
