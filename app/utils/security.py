from datetime import datetime, timedelta, timezone
from typing import Tuple

import bcrypt
from jose import JWTError, jwt

from core.config import config
from core.exceptions.base import UnauthorizedException


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a bcrypt hash."""
    return bcrypt.checkpw(
        plain_password.encode("utf-8"), hashed_password.encode("utf-8")
    )


def _encode(payload: dict, expires_in: timedelta) -> str:
    payload = {**payload, "exp": datetime.now(timezone.utc) + expires_in}
    return jwt.encode(payload, config.SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def create_access_token(user_id: str, role: str, version: int = 0) -> str:
    """
    Create a JWT access token.

    ``ver`` carries the user's token version; bumping the version on the
    account invalidates every token minted before.
    """
    return _encode(
        {"sub": user_id, "role": role, "ver": version, "type": "access"},
        timedelta(minutes=config.JWT_ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_refresh_token(user_id: str, version: int = 0) -> str:
    """Create a JWT refresh token."""
    return _encode(
        {"sub": user_id, "ver": version, "type": "refresh"},
        timedelta(days=config.JWT_REFRESH_TOKEN_EXPIRE_DAYS),
    )


def decode_token(token: str) -> dict:
    """Decode and verify a JWT token."""
    try:
        return jwt.decode(token, config.SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
    except JWTError:
        raise UnauthorizedException(message="Invalid or expired token")


def create_tokens(user_id: str, role: str, version: int = 0) -> Tuple[str, str]:
    """Create both access and refresh tokens."""
    return (
        create_access_token(user_id, role, version),
        create_refresh_token(user_id, version),
    )
