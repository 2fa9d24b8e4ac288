from dataclasses import dataclass
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import STAFF_ROLES, Role, User
from app.utils.security import decode_token
from core.db import get_db
from core.exceptions.base import ForbiddenException, UnauthorizedException

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token", auto_error=False)


@dataclass(frozen=True)
class SessionContext:
    """Who is calling, resolved once per request and passed explicitly."""

    user_id: str
    email: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role in STAFF_ROLES


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db_session: AsyncSession = Depends(get_db),
) -> User:
    """Get the current authenticated user from JWT token."""
    if not token:
        raise UnauthorizedException(message="Not authenticated")

    payload = decode_token(token)

    if payload.get("type") != "access":
        raise UnauthorizedException(message="Invalid token type")

    user = await User.get_by_id(db_session, payload.get("sub"))

    if not user:
        raise UnauthorizedException(message="User not found")

    if not user.is_active:
        raise UnauthorizedException(message="User is inactive")

    if payload.get("ver") != user.token_version:
        raise UnauthorizedException(message="Token has been revoked")

    return user


async def get_session_context(
    current_user: User = Depends(get_current_user),
) -> SessionContext:
    return SessionContext(
        user_id=current_user.id, email=current_user.email, role=current_user.role
    )


async def get_current_admin(
    session: SessionContext = Depends(get_session_context),
) -> SessionContext:
    """Require an admin or SK official."""
    if not session.is_admin:
        raise ForbiddenException(message="Admin access required")
    return session
