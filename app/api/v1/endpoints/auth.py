from fastapi import APIRouter, status, Depends
from app.schemas.auth import (
    LoginRequest,
    RegisterRequest,
    PhoneNumberRequest,
    VerifyCodeRequest,
    RefreshTokenRequest,
    TokenPairResponse,
    UserSummary,
    ResetTokenResponse,
)
from app.schemas.response import ApiResponse
from app.core.config import Settings
from app.core.constants import AuthMessages
from app.core.dependencies import (
    check_login_rate_limit,
    check_register_rate_limit,
    check_verify_code_rate_limit,
    check_recover_password_rate_limit,
    get_app_settings,
    get_current_user,
    get_recover_password_channel,
    get_refresh_context,
    get_refresh_token_repository,
    get_register_channel,
    get_reset_password_context,
    get_token_factory,
    get_user_repository,
    RefreshContext,
    ResetPasswordContext,
)
from app.interfaces.refresh_token import IRefreshTokenRepository
from app.interfaces.user import IUserRepository
from app.services.auth import AuthService
from app.services.credentials import CredentialVerifier
from app.services.password_recovery import PasswordRecoveryService
from app.services.refresh_token_store import RefreshTokenStore
from app.services.token_factory import TokenFactory
from app.services.user_registration import UserRegistrationService
from app.services.verification import VerificationChannel

router = APIRouter()


async def get_refresh_token_store(
    token_factory: TokenFactory = Depends(get_token_factory),
    refresh_token_repository: IRefreshTokenRepository = Depends(get_refresh_token_repository),
) -> RefreshTokenStore:
    return RefreshTokenStore(refresh_token_repository, ttl=token_factory.config.refresh_ttl)


async def get_auth_service(
    settings: Settings = Depends(get_app_settings),
    user_repository: IUserRepository = Depends(get_user_repository),
    token_factory: TokenFactory = Depends(get_token_factory),
    refresh_token_store: RefreshTokenStore = Depends(get_refresh_token_store),
) -> AuthService:
    """Dependency injection for AuthService with database repositories."""
    return AuthService(
        user_repository=user_repository,
        credential_verifier=CredentialVerifier(user_repository, bcrypt_rounds=settings.BCRYPT_ROUNDS),
        token_factory=token_factory,
        refresh_token_store=refresh_token_store,
    )


async def get_registration_service(
    settings: Settings = Depends(get_app_settings),
    user_repository: IUserRepository = Depends(get_user_repository),
    register_channel: VerificationChannel = Depends(get_register_channel),
) -> UserRegistrationService:
    return UserRegistrationService(
        user_repository=user_repository,
        register_channel=register_channel,
        bcrypt_rounds=settings.BCRYPT_ROUNDS,
    )


async def get_password_recovery_service(
    settings: Settings = Depends(get_app_settings),
    user_repository: IUserRepository = Depends(get_user_repository),
    recover_channel: VerificationChannel = Depends(get_recover_password_channel),
    token_factory: TokenFactory = Depends(get_token_factory),
    refresh_token_store: RefreshTokenStore = Depends(get_refresh_token_store),
) -> PasswordRecoveryService:
    return PasswordRecoveryService(
        user_repository=user_repository,
        recover_channel=recover_channel,
        token_factory=token_factory,
        refresh_token_store=refresh_token_store,
        bcrypt_rounds=settings.BCRYPT_ROUNDS,
    )


def _token_pair_data(result: dict) -> dict:
    return TokenPairResponse(
        access_token=result["access_token"],
        refresh_token=result["refresh_token"],
        user=UserSummary(**result["user"]),
    ).model_dump(by_alias=True)


@router.post("/login", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def login(
    credentials: LoginRequest,
    _: None = Depends(check_login_rate_limit),
    auth_service: AuthService = Depends(get_auth_service)
):
    """Authenticate with phone number and password."""
    result = await auth_service.login(credentials.phone_number, credentials.password)
    return ApiResponse(success=True, message=AuthMessages.LOGIN_SUCCESS, data=_token_pair_data(result))


@router.post("/refresh", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def refresh(
    context: RefreshContext = Depends(get_refresh_context),
    auth_service: AuthService = Depends(get_auth_service)
):
    """Trade a refresh token for a new pair. Each refresh token works once."""
    result = await auth_service.refresh(context.refresh_token, context.user_id)
    return ApiResponse(success=True, message=AuthMessages.REFRESH_SUCCESS, data=_token_pair_data(result))


@router.post("/logout", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def logout(
    body: RefreshTokenRequest,
    current_user: dict = Depends(get_current_user),
    auth_service: AuthService = Depends(get_auth_service)
):
    await auth_service.logout(body.refresh_token, current_user["id"])
    return ApiResponse(success=True, message=AuthMessages.LOGOUT_SUCCESS)


@router.post("/register", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user: RegisterRequest,
    _: None = Depends(check_register_rate_limit),
    registration_service: UserRegistrationService = Depends(get_registration_service)
):
    """Create an account and send the phone verification code."""
    result = await registration_service.register(
        phone_number=user.phone_number,
        password=user.password,
        name=user.name,
        last_name=user.last_name,
    )
    return ApiResponse(
        success=True,
        message=AuthMessages.REGISTER_SUCCESS,
        data=UserSummary(**result).model_dump(by_alias=True),
    )


@router.post("/verify-register-code", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def verify_register_code(
    request: VerifyCodeRequest,
    _: None = Depends(check_verify_code_rate_limit),
    registration_service: UserRegistrationService = Depends(get_registration_service)
):
    await registration_service.verify_register_code(request.phone_number, request.code)
    return ApiResponse(success=True, message=AuthMessages.REGISTER_CODE_VERIFIED)


@router.post("/resend-register-code", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def resend_register_code(
    request: PhoneNumberRequest,
    _: None = Depends(check_register_rate_limit),
    registration_service: UserRegistrationService = Depends(get_registration_service)
):
    """Always answers 200 so the response does not reveal whether the phone is registered."""
    await registration_service.resend_register_code(request.phone_number)
    return ApiResponse(success=True, message=AuthMessages.REGISTER_CODE_RESENT)


@router.post("/recover-password", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def recover_password(
    request: PhoneNumberRequest,
    _: None = Depends(check_recover_password_rate_limit),
    recovery_service: PasswordRecoveryService = Depends(get_password_recovery_service)
):
    """Send a recovery code. Unknown phone numbers get the same answer."""
    await recovery_service.send_reset_password_code(request.phone_number)
    return ApiResponse(success=True, message=AuthMessages.RECOVERY_CODE_SENT)


@router.post("/verify-recover-password", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def verify_recover_password(
    request: VerifyCodeRequest,
    _: None = Depends(check_verify_code_rate_limit),
    recovery_service: PasswordRecoveryService = Depends(get_password_recovery_service)
):
    token = await recovery_service.generate_reset_password_token(request.phone_number, request.code)
    return ApiResponse(
        success=True,
        message=AuthMessages.RESET_TOKEN_ISSUED,
        data=ResetTokenResponse(token=token).model_dump(by_alias=True),
    )


@router.post("/reset-password", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def reset_password(
    context: ResetPasswordContext = Depends(get_reset_password_context),
    recovery_service: PasswordRecoveryService = Depends(get_password_recovery_service)
):
    """Set a new password using a reset token from /verify-recover-password."""
    await recovery_service.reset_password(context.user_id, context.new_password)
    return ApiResponse(success=True, message=AuthMessages.PASSWORD_RESET_SUCCESS)
