from datetime import datetime, timezone
from typing import Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.password_reset_token import PasswordResetToken
from app.models.user import Role, User
from app.schemas.user import LogoutResponse, TokenResponse, UserCreate
from app.utils.security import (
    create_tokens,
    decode_token,
    hash_password,
    verify_password,
)
from core.config import config
from core.exceptions.base import BadRequestException, UnauthorizedException
from core.logging import get_logger

logger = get_logger(__name__)

RESET_REQUESTED_MESSAGE = (
    "If an account exists with this email, you will receive a password reset link."
)


class AuthService:
    """Service for authentication operations."""

    def __init__(self, db_session: AsyncSession):
        self.db_session = db_session

    @staticmethod
    def _tokens_for(user: User) -> TokenResponse:
        access_token, refresh_token = create_tokens(
            user.id, user.role.value, user.token_version
        )
        return TokenResponse(access_token=access_token, refresh_token=refresh_token)

    async def _create_account(
        self, username: str, email: str, password: str, role: Role
    ) -> User:
        if await User.get_by_email(self.db_session, email):
            raise BadRequestException(message="Email already registered")
        if await User.get_by_username(self.db_session, username):
            raise BadRequestException(message="Username already taken")

        user = await User.create_user(
            db_session=self.db_session,
            username=username,
            email=email,
            hashed_password=hash_password(password),
            role=role,
        )
        logger.info(f"Created {role.value} account {user.username}")
        return user

    async def register(self, data: UserCreate) -> Tuple[User, TokenResponse]:
        """Register a new regular user."""
        user = await self._create_account(
            data.username, data.email, data.password, Role.USER
        )
        return user, self._tokens_for(user)

    async def login(self, login: str, password: str) -> Tuple[User, TokenResponse]:
        """Authenticate with email or username and password."""
        user = await User.get_by_login(self.db_session, login)

        if not user or not verify_password(password, user.hashed_password):
            logger.warning(f"Failed login attempt for {login}")
            raise UnauthorizedException(message="Invalid credentials")

        if not user.is_active:
            raise UnauthorizedException(message="Account is deactivated")

        user.last_login = datetime.now(timezone.utc)
        await self.db_session.commit()
        await self.db_session.refresh(user)

        return user, self._tokens_for(user)

    async def refresh_token(self, refresh_token: str) -> TokenResponse:
        """Issue a new token pair from a valid refresh token."""
        payload = decode_token(refresh_token)

        if payload.get("type") != "refresh":
            raise UnauthorizedException(message="Invalid token type")

        user = await User.get_by_id(self.db_session, payload.get("sub"))

        if not user or not user.is_active:
            raise UnauthorizedException(message="User not found or inactive")

        if payload.get("ver") != user.token_version:
            raise UnauthorizedException(message="Token has been revoked")

        return self._tokens_for(user)

    async def logout(self, user_id: str) -> LogoutResponse:
        """
        Log the user out everywhere.

        Bumps the account's token version so every access and refresh token
        issued so far stops validating.
        """
        user = await User.get_by_id(self.db_session, user_id)
        if not user:
            raise UnauthorizedException(message="User not found")

        revoked = user.token_version
        user.token_version = revoked + 1
        await self.db_session.commit()
        logger.info(f"User {user_id} logged out, token version {revoked} revoked")

        return LogoutResponse(message="Logged out successfully", revoked_before=revoked + 1)

    async def create_staff_user(
        self,
        username: str,
        email: str,
        password: str,
        role: Role = Role.ADMIN,
    ) -> User:
        """Create an admin or SK official account (initial setup and seeding)."""
        return await self._create_account(username, email, password, role)

    async def forgot_password(self, email: str) -> PasswordResetToken:
        """
        Issue a password reset token for the account with this email.

        Earlier unused tokens of the account are invalidated. Unknown emails
        raise BadRequestException with the same message the caller shows on
        success, so the response does not reveal which emails exist.
        """
        user = await User.get_by_email(self.db_session, email)

        if not user:
            raise BadRequestException(message=RESET_REQUESTED_MESSAGE)

        if not user.is_active:
            raise BadRequestException(message="Account is deactivated")

        await PasswordResetToken.invalidate_user_tokens(self.db_session, user.id)
        reset_token = await PasswordResetToken.create_token(
            self.db_session, user.id, config.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES
        )
        logger.info(f"Password reset token issued for user {user.id}")
        return reset_token

    async def reset_password(self, token: str, new_password: str) -> User:
        """
        Set a new password using a reset token.

        The token is spent and the token version bumped, so sessions opened
        with the old password stop working.
        """
        reset_token = await PasswordResetToken.get_by_token(self.db_session, token)

        if not reset_token or not reset_token.is_valid():
            raise BadRequestException(message="Invalid or expired reset token")

        user = await User.get_by_id(self.db_session, reset_token.user_id)

        if not user or not user.is_active:
            raise BadRequestException(message="User not found or inactive")

        user.hashed_password = hash_password(new_password)
        user.token_version = user.token_version + 1
        reset_token.mark_as_used()
        await self.db_session.commit()
        await self.db_session.refresh(user)

        logger.info(f"Password reset for user {user.id}")
        return user
