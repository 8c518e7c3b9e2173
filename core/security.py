# core/security.py
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import settings
from core.database import get_db
from core.errors import Unauthenticated
from models.user import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth", auto_error=False)


def create_access_token(user_id: int, expires_minutes: Optional[int] = None) -> str:
    minutes = expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES
    payload = {
        "user_id": user_id,
        "exp": datetime.utcnow() + timedelta(minutes=minutes),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_user_id(token: Optional[str]) -> int:
    """Extract the user id from a bearer token or raise Unauthenticated."""
    if not token:
        raise Unauthenticated()
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise Unauthenticated()
    user_id = payload.get("user_id")
    if user_id is None:
        raise Unauthenticated()
    return int(user_id)


async def authenticate_token(token: Optional[str], db: AsyncSession) -> User:
    """
    Resolve a bearer token to a stored user.

    Shared by the HTTP dependency and the websocket handshake so both
    surfaces accept exactly the same credentials.
    """
    user_id = decode_user_id(token)
    user = await db.get(User, user_id)
    if not user:
        raise Unauthenticated("User not found")
    return user


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    return await authenticate_token(token, db)
