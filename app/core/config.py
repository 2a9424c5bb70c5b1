import logging
import re
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator, model_validator, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

_DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}

MIN_PROD_SECRET_LENGTH = 32


def parse_duration(value: str | int) -> timedelta:
    """
    Parse a duration such as ``15m``, ``7d``, ``12h`` or ``30s``.

    A bare integer is interpreted as seconds.

    Raises:
        ValueError: If the value is not a positive duration
    """
    if isinstance(value, int):
        seconds = value
    else:
        match = _DURATION_PATTERN.match(value)
        if not match:
            raise ValueError(f"Invalid duration '{value}', expected e.g. '15m', '7d' or '3600'")
        seconds = int(match.group(1)) * _DURATION_UNITS[match.group(2)]

    if seconds <= 0:
        raise ValueError("Duration must be positive")
    return timedelta(seconds=seconds)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    ENVIRONMENT: Literal["dev", "prod"] = Field(default="dev", description="Application environment")

    # JWT Configuration
    JWT_SECRET: str = Field(description="Secret key for access token signing")
    JWT_REFRESH_SECRET: str = Field(description="Secret key for refresh token signing")
    JWT_RESET_SECRET: str = Field(description="Secret key for password reset token signing")
    JWT_EXPIRATION: str = Field(default="15m", description="Access token lifetime")
    JWT_REFRESH_EXPIRATION: str = Field(default="7d", description="Refresh token lifetime")
    JWT_RESET_EXPIRATION: str = Field(default="15m", description="Password reset token lifetime")
    JWT_ALGORITHM: str = Field(default="HS256", description="JWT algorithm")

    BCRYPT_ROUNDS: int = Field(default=10, ge=4, le=31, description="Bcrypt cost factor")

    # Database Configuration
    DB_HOST: str = Field(default="localhost", description="Database host")
    DB_PORT: int = Field(default=5432, description="Database port")
    DB_NAME: str = Field(default="infracheck", description="Database name")
    DB_USER: str = Field(default="postgres", description="Database user")
    DB_PASSWORD: str = Field(default="", description="Database password")
    DATABASE_URL: Optional[str] = Field(default=None, description="Full database URL (overrides individual DB_* settings)")
    DB_POOL_SIZE: int = Field(default=5, description="Database connection pool size")
    DB_ECHO: bool = Field(default=False, description="Enable SQL query logging")

    # SMS verification
    SMS_PROVIDER: Literal["twilio", "console"] = Field(default="twilio", description="SMS verification provider")
    TWILIO_ACCOUNT_SID: str | None = Field(default=None, description="Twilio account SID")
    TWILIO_AUTH_TOKEN: str | None = Field(default=None, description="Twilio auth token")
    TWILIO_REGISTER_VERIFY_SERVICE_SID: str | None = Field(default=None, description="Verify service used for registration codes")
    TWILIO_RECOVER_PASSWORD_VERIFY_SERVICE_SID: str | None = Field(default=None, description="Verify service used for password recovery codes")
    FIXED_OTP: str | None = Field(default="", description="Fixed code for the console provider (leave empty for random codes)")

    LOGIN_RATE_LIMIT_PER_MINUTE: int = Field(default=5, description="Maximum login attempts per minute per IP")
    REGISTER_RATE_LIMIT_PER_HOUR: int = Field(default=3, description="Maximum registration attempts per hour per IP")
    VERIFY_CODE_RATE_LIMIT_PER_MINUTE: int = Field(default=5, description="Maximum code verification attempts per minute per IP")
    RECOVER_PASSWORD_RATE_LIMIT_PER_HOUR: int = Field(default=5, description="Maximum recovery requests per hour per IP")

    CORS_ORIGINS: str = Field(default="http://localhost:5173", description="Comma separated list of allowed origins")
    LOG_LEVEL: str = Field(default="INFO", description="Log level for the application logger")

    @computed_field
    @property
    def database_url_computed(self) -> str:
        """
        Compute the database URL from individual settings or use DATABASE_URL if provided.

        Returns:
            str: SQLAlchemy async connection URL
        """
        if self.DATABASE_URL:
            url = self.DATABASE_URL
            if url.startswith("postgresql://"):
                url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
            elif "://" not in url:
                url = f"postgresql+asyncpg://{url}"
            return url

        return f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @field_validator("JWT_SECRET", "JWT_REFRESH_SECRET", "JWT_RESET_SECRET")
    @classmethod
    def validate_secret_present(cls, v: str, info) -> str:
        if not v or not v.strip():
            raise ValueError(f"{info.field_name} must not be empty")
        return v

    @field_validator("JWT_EXPIRATION", "JWT_REFRESH_EXPIRATION", "JWT_RESET_EXPIRATION")
    @classmethod
    def validate_token_expiration(cls, v: str) -> str:
        parse_duration(v)
        return v

    @model_validator(mode="after")
    def validate_environment(self):
        """Environment-specific validations."""
        secrets = (self.JWT_SECRET, self.JWT_REFRESH_SECRET, self.JWT_RESET_SECRET)

        if self.ENVIRONMENT == "prod":
            if any(len(secret) < MIN_PROD_SECRET_LENGTH for secret in secrets):
                raise ValueError(
                    f"JWT secrets must be at least {MIN_PROD_SECRET_LENGTH} characters long in production. "
                    "Set strong secrets in your .env file."
                )
            if len(set(secrets)) != len(secrets):
                raise ValueError("JWT_SECRET, JWT_REFRESH_SECRET and JWT_RESET_SECRET must all differ in production")
            if self.SMS_PROVIDER != "twilio":
                raise ValueError("SMS_PROVIDER must be 'twilio' in production")

        if self.SMS_PROVIDER == "twilio":
            missing = [
                name for name in (
                    "TWILIO_ACCOUNT_SID",
                    "TWILIO_AUTH_TOKEN",
                    "TWILIO_REGISTER_VERIFY_SERVICE_SID",
                    "TWILIO_RECOVER_PASSWORD_VERIFY_SERVICE_SID",
                )
                if not getattr(self, name)
            ]
            if missing:
                raise ValueError(f"Missing Twilio configuration: {', '.join(missing)}")
            if self.TWILIO_REGISTER_VERIFY_SERVICE_SID == self.TWILIO_RECOVER_PASSWORD_VERIFY_SERVICE_SID:
                raise ValueError("Registration and password recovery must use different verify services")

        return self


@dataclass(frozen=True)
class JwtConfig:
    """Signing material and lifetimes for the three token kinds."""

    access_secret: str
    refresh_secret: str
    reset_secret: str
    access_ttl: timedelta
    refresh_ttl: timedelta
    reset_ttl: timedelta
    algorithm: str = "HS256"

    @classmethod
    def from_settings(cls, settings: Settings) -> "JwtConfig":
        return cls(
            access_secret=settings.JWT_SECRET,
            refresh_secret=settings.JWT_REFRESH_SECRET,
            reset_secret=settings.JWT_RESET_SECRET,
            access_ttl=parse_duration(settings.JWT_EXPIRATION),
            refresh_ttl=parse_duration(settings.JWT_REFRESH_EXPIRATION),
            reset_ttl=parse_duration(settings.JWT_RESET_EXPIRATION),
            algorithm=settings.JWT_ALGORITHM,
        )


@lru_cache
def get_settings() -> Settings:
    """Load settings from the environment and .env file once per process."""
    settings = Settings()
    logger.info(f"Configuration loaded for environment '{settings.ENVIRONMENT}' (sms provider: {settings.SMS_PROVIDER})")
    return settings
