from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi.security import OAuth2PasswordBearer
from jose import jwt
from pydantic import BaseModel

from app.branchflow.core.config import settings

# Tokens are issued by the identity service; this service only verifies them.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

DEFAULT_TOKEN_TTL = timedelta(minutes=60)


class TokenData(BaseModel):
    sub: str
    role: str
    location_id: str | None = None
    username: str | None = None


def create_access_token(data: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or DEFAULT_TOKEN_TTL)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str) -> dict[str, Any]:
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])


def create_user_access_token(user, expires_delta: Optional[timedelta] = None) -> str:
    return create_access_token(
        {
            "sub": str(user.id),
            "role": user.role,
            "location_id": str(user.location_id) if user.location_id else None,
            "username": user.username,
        },
        expires_delta=expires_delta,
    )
