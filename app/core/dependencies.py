"""Dependencies for FastAPI endpoints."""
from dataclasses import dataclass
from typing import Callable
from fastapi import Request, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from slowapi.util import get_remote_address
from limits import parse_many
from app.core.config import Settings
from app.core.constants import ErrorCode, VerificationPurpose
from app.core.database import get_db
from app.core.exceptions import AppException, InvalidTokenException
from app.interfaces.refresh_token import IRefreshTokenRepository
from app.interfaces.user import IUserRepository
from app.repositories.refresh_token_repository import RefreshTokenRepository
from app.repositories.user_repository import UserRepository
from app.schemas.auth import RefreshTokenRequest, ResetPasswordRequest
from app.services.reset_token_guard import ResetTokenGuard
from app.services.token_factory import TokenFactory, subject_id
from app.services.verification import VerificationChannel

# HTTP Bearer token scheme; a missing header is reported as AUTH006 by get_current_user
security = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_factory(request: Request) -> TokenFactory:
    return request.app.state.token_factory


def get_register_channel(request: Request) -> VerificationChannel:
    return request.app.state.verification_channels[VerificationPurpose.REGISTER]


def get_recover_password_channel(request: Request) -> VerificationChannel:
    return request.app.state.verification_channels[VerificationPurpose.RECOVER_PASSWORD]


async def get_user_repository(db: AsyncSession = Depends(get_db)) -> IUserRepository:
    return UserRepository(db)


async def get_refresh_token_repository(db: AsyncSession = Depends(get_db)) -> IRefreshTokenRepository:
    return RefreshTokenRepository(db)


def create_rate_limit_dependency(setting_name: str, period: str, endpoint_name: str) -> Callable:
    """
    Factory function to create a rate limiting dependency using slowapi.

    Args:
        setting_name: Settings attribute holding the number of allowed requests
        period: Window understood by ``limits`` ("minute", "hour")
        endpoint_name: Namespace for the counter so endpoints do not share budgets

    Returns:
        Dependency function that can be used with FastAPI Depends()
    """

    async def rate_limit_check(request: Request) -> None:
        """Raises GEN001 (429) once the client exhausted its budget."""
        app_limiter = request.app.state.limiter
        settings: Settings = request.app.state.settings

        rate_limit = parse_many(f"{getattr(settings, setting_name)}/{period}")[0]
        key = f"{endpoint_name}:{get_remote_address(request)}"

        if not app_limiter._limiter.hit(rate_limit, key):
            raise AppException(code=ErrorCode.RATE_LIMIT_EXCEEDED)

        return None

    return rate_limit_check


check_login_rate_limit = create_rate_limit_dependency("LOGIN_RATE_LIMIT_PER_MINUTE", "minute", "login")
check_register_rate_limit = create_rate_limit_dependency("REGISTER_RATE_LIMIT_PER_HOUR", "hour", "register")
check_verify_code_rate_limit = create_rate_limit_dependency("VERIFY_CODE_RATE_LIMIT_PER_MINUTE", "minute", "verify-code")
check_recover_password_rate_limit = create_rate_limit_dependency(
    "RECOVER_PASSWORD_RATE_LIMIT_PER_HOUR", "hour", "recover-password"
)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    token_factory: TokenFactory = Depends(get_token_factory),
) -> dict:
    """
    Authenticate a request using the access token in the Authorization header.

    Returns:
        Dictionary with id, phone_number and role from the token

    Raises:
        InvalidTokenException: Header missing, token invalid or expired
    """
    if credentials is None:
        raise InvalidTokenException()

    payload = token_factory.verify_access(credentials.credentials)
    return {
        "id": subject_id(payload),
        "phone_number": payload.get("phoneNumber"),
        "role": payload.get("role"),
    }


@dataclass(frozen=True)
class RefreshContext:
    refresh_token: str
    user_id: int


async def get_refresh_context(
    body: RefreshTokenRequest,
    token_factory: TokenFactory = Depends(get_token_factory),
) -> RefreshContext:
    """Verify the refresh token signature from the body and extract the claimed user."""
    payload = token_factory.verify_refresh(body.refresh_token)
    return RefreshContext(refresh_token=body.refresh_token, user_id=subject_id(payload))


@dataclass(frozen=True)
class ResetPasswordContext:
    user_id: int
    new_password: str


async def get_reset_password_context(
    body: ResetPasswordRequest,
    token_factory: TokenFactory = Depends(get_token_factory),
    user_repository: IUserRepository = Depends(get_user_repository),
) -> ResetPasswordContext:
    """Verify the reset token from the body and run it through the reset guard."""
    payload = token_factory.verify_reset(body.token)
    user_id = await ResetTokenGuard(user_repository).validate(payload)
    return ResetPasswordContext(user_id=user_id, new_password=body.new_password)
