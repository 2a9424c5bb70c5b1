import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi import Limiter
from slowapi.util import get_remote_address
from app.api.v1.endpoints import auth, health
from app.schemas.response import ApiResponse
from app.core.exceptions import AppException
from app.core.handler import (
    http_exception_handler,
    validation_exception_handler,
    app_exception_handler,
    general_exception_handler
)
from app.core.config import JwtConfig, Settings, get_settings
from app.core.database import db_manager
from app.services.health import APPLICATION_VERSION
from app.services.sms import get_sms_provider
from app.services.token_factory import TokenFactory
from app.services.verification import build_verification_channels

logger = logging.getLogger(__name__)

# Service ids used by the console provider when no Twilio services are configured
CONSOLE_REGISTER_SERVICE = "console-register"
CONSOLE_RECOVER_PASSWORD_SERVICE = "console-recover-password"


def _configure_logging(settings: Settings) -> None:
    logging.getLogger("app").setLevel(settings.LOG_LEVEL.upper())


def create_app(settings: Settings | None = None, init_database: bool = True) -> FastAPI:
    """
    Build the application.

    Settings are validated here, so missing JWT secrets stop the process at
    startup. Serve with ``uvicorn app.main:create_app --factory``.
    """
    settings = settings or get_settings()
    _configure_logging(settings)

    sms_provider = get_sms_provider(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager for startup and shutdown events."""
        logger.info("Starting up application...")

        if init_database:
            try:
                db_manager.init(
                    database_url=settings.database_url_computed,
                    echo=settings.DB_ECHO,
                    pool_size=settings.DB_POOL_SIZE
                )
            except Exception as e:
                logger.error(f"Failed to initialize database: {e}")
                raise

        yield

        logger.info("Shutting down application...")
        await sms_provider.close()
        if init_database:
            await db_manager.close()

    app = FastAPI(
        title="InfraCheck API",
        version=APPLICATION_VERSION,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    # Can be changed to Redis later: storage_uri="redis://localhost:6379"
    app.state.limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")
    app.state.token_factory = TokenFactory(JwtConfig.from_settings(settings))
    app.state.sms_provider = sms_provider
    app.state.verification_channels = build_verification_channels(
        sms_provider,
        register_service_sid=settings.TWILIO_REGISTER_VERIFY_SERVICE_SID or CONSOLE_REGISTER_SERVICE,
        recover_password_service_sid=settings.TWILIO_RECOVER_PASSWORD_VERIFY_SERVICE_SID or CONSOLE_RECOVER_PASSWORD_SERVICE,
    )

    # Register global exception handlers (apply to all endpoints)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(auth.router, prefix="/api/v1/auth", tags=["Authentication"])
    app.include_router(health.router, prefix="/api/v1", tags=["Health"])

    @app.get("/")
    def root():
        """Root health check endpoint."""
        return ApiResponse(
            success=True,
            message="System operational",
            data={"status": "ok"}
        )

    return app
