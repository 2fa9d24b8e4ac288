from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from api.deps import SessionContext, get_session_context
from app.schemas.user import (
    AuthResponse,
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    LogoutResponse,
    MessageResponse,
    RefreshTokenRequest,
    ResetPasswordRequest,
    TokenResponse,
    UserCreate,
    UserLogin,
    UserResponse,
)
from app.services.auth_service import RESET_REQUESTED_MESSAGE, AuthService
from core.db import get_db
from core.exceptions.base import BadRequestException
from core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    data: UserCreate,
    db_session: AsyncSession = Depends(get_db),
) -> AuthResponse:
    """
    Create a youth account.

    New accounts always get the ``user`` role; staff accounts are created
    by the seed script.
    """
    user, tokens = await AuthService(db_session).register(data)
    logger.info(f"Account {user.id} registered as {user.username}")
    return AuthResponse(user=UserResponse.model_validate(user), tokens=tokens)


@router.post("/token", response_model=TokenResponse)
async def login_for_swagger(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db_session: AsyncSession = Depends(get_db),
) -> TokenResponse:
    """OAuth2 password flow for the docs UI; ``username`` may also be an email."""
    _, tokens = await AuthService(db_session).login(form_data.username, form_data.password)
    return tokens


@router.post("/login", response_model=AuthResponse)
async def login(
    data: UserLogin,
    db_session: AsyncSession = Depends(get_db),
) -> AuthResponse:
    """Sign in with email or username and password."""
    user, tokens = await AuthService(db_session).login(data.login, data.password)
    logger.info(f"Account {user.id} signed in")
    return AuthResponse(user=UserResponse.model_validate(user), tokens=tokens)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    data: RefreshTokenRequest,
    db_session: AsyncSession = Depends(get_db),
) -> TokenResponse:
    """Trade a refresh token for a new token pair."""
    return await AuthService(db_session).refresh_token(data.refresh_token)


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    session: SessionContext = Depends(get_session_context),
    db_session: AsyncSession = Depends(get_db),
) -> LogoutResponse:
    """Sign out everywhere: every token issued to the account so far is revoked."""
    return await AuthService(db_session).logout(session.user_id)


@router.post("/forgot-password", response_model=ForgotPasswordResponse)
async def forgot_password(
    data: ForgotPasswordRequest,
    db_session: AsyncSession = Depends(get_db),
) -> ForgotPasswordResponse:
    """
    Start password recovery.

    The portal sends no email, so the reset token is returned in the
    response. Unknown or deactivated accounts get the same message without
    a token.
    """
    logger.info("Forgot password request")
    try:
        reset_token = await AuthService(db_session).forgot_password(data.email)
    except BadRequestException as exc:
        logger.info(f"No reset token issued: {exc.message}")
        return ForgotPasswordResponse(message=RESET_REQUESTED_MESSAGE)
    return ForgotPasswordResponse(message=RESET_REQUESTED_MESSAGE, token=reset_token.token)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    data: ResetPasswordRequest,
    db_session: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Set a new password with a reset token; existing sessions are revoked."""
    user = await AuthService(db_session).reset_password(data.token, data.new_password)
    logger.info(f"Password reset successfully for user: {user.id}")
    return MessageResponse(
        message="Password reset successfully. You can now login with your new password."
    )
