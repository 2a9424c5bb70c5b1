"""Shared builders for the test suite."""
from datetime import timedelta

from app.core.config import JwtConfig, Settings
from app.core.constants import Role, UserStatus
from app.core.security import get_password_hash
from app.interfaces.verification import ISmsVerificationProvider
from app.services.sms import STATUS_APPROVED, STATUS_PENDING

TEST_CODE = "123456"
TEST_BCRYPT_ROUNDS = 4

ACCESS_SECRET = "access-secret-for-tests"
REFRESH_SECRET = "refresh-secret-for-tests"
RESET_SECRET = "reset-secret-for-tests"


def make_settings(**overrides) -> Settings:
    values = {
        "_env_file": None,
        "ENVIRONMENT": "dev",
        "JWT_SECRET": ACCESS_SECRET,
        "JWT_REFRESH_SECRET": REFRESH_SECRET,
        "JWT_RESET_SECRET": RESET_SECRET,
        "BCRYPT_ROUNDS": TEST_BCRYPT_ROUNDS,
        "SMS_PROVIDER": "console",
        "FIXED_OTP": TEST_CODE,
        "LOGIN_RATE_LIMIT_PER_MINUTE": 100,
        "REGISTER_RATE_LIMIT_PER_HOUR": 100,
        "VERIFY_CODE_RATE_LIMIT_PER_MINUTE": 100,
        "RECOVER_PASSWORD_RATE_LIMIT_PER_HOUR": 100,
    }
    values.update(overrides)
    return Settings(**values)


def make_jwt_config(**overrides) -> JwtConfig:
    values = {
        "access_secret": ACCESS_SECRET,
        "refresh_secret": REFRESH_SECRET,
        "reset_secret": RESET_SECRET,
        "access_ttl": timedelta(minutes=15),
        "refresh_ttl": timedelta(days=7),
        "reset_ttl": timedelta(minutes=15),
    }
    values.update(overrides)
    return JwtConfig(**values)


async def seed_user(
    user_repository,
    phone_number: str = "+56911111111",
    password: str = "pw123456",
    status: UserStatus = UserStatus.ACTIVE,
    role: Role = Role.NEIGHBOR,
) -> dict:
    return await user_repository.create({
        "phone_number": phone_number,
        "hashed_password": get_password_hash(password, rounds=TEST_BCRYPT_ROUNDS),
        "name": "Ana",
        "last_name": "Rojas",
        "role": role,
        "status": status,
    })


class StubSmsProvider(ISmsVerificationProvider):
    """Provider returning fixed statuses, or raising when given an exception."""

    def __init__(self, start_result=STATUS_PENDING, check_result=STATUS_APPROVED):
        self.start_result = start_result
        self.check_result = check_result

    async def start_verification(self, service_sid, phone_number):
        if isinstance(self.start_result, Exception):
            raise self.start_result
        return self.start_result

    async def check_verification(self, service_sid, phone_number, code):
        if isinstance(self.check_result, Exception):
            raise self.check_result
        return self.check_result
