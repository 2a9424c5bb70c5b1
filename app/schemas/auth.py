import re
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

E164_PATTERN = re.compile(r"^\+[1-9]\d{7,14}$")
CODE_PATTERN = re.compile(r"^\d{6}$")
# bcrypt only hashes the first 72 bytes
MAX_PASSWORD_BYTES = 72


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys; snake_case field names also accepted."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='forbid')


def _validate_phone(v: str) -> str:
    v = re.sub(r"[\s-]", "", v)
    if not E164_PATTERN.match(v):
        raise ValueError("Phone number must be in E.164 format, e.g. +56912345678")
    return v


def _validate_password_bytes(v: str) -> str:
    if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return v


class LoginRequest(CamelModel):
    phone_number: str
    password: str = Field(min_length=1)

    @field_validator('phone_number')
    @classmethod
    def validate_phone_number(cls, v: str) -> str:
        return _validate_phone(v)


class RefreshTokenRequest(CamelModel):
    refresh_token: str = Field(min_length=1)


class RegisterRequest(CamelModel):
    phone_number: str
    password: str = Field(min_length=6, max_length=20)
    name: str = Field(min_length=2, max_length=50)
    last_name: str = Field(min_length=2, max_length=50)

    @field_validator('phone_number')
    @classmethod
    def validate_phone_number(cls, v: str) -> str:
        return _validate_phone(v)

    @field_validator('password')
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _validate_password_bytes(v)

    @field_validator('name', 'last_name')
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Must be at least 2 characters long")
        return v


class PhoneNumberRequest(CamelModel):
    phone_number: str

    @field_validator('phone_number')
    @classmethod
    def validate_phone_number(cls, v: str) -> str:
        return _validate_phone(v)


class VerifyCodeRequest(PhoneNumberRequest):
    code: str

    @field_validator('code')
    @classmethod
    def validate_code(cls, v: str) -> str:
        v = v.strip()
        if not CODE_PATTERN.match(v):
            raise ValueError("Code must be exactly 6 digits")
        return v


class ResetPasswordRequest(CamelModel):
    token: str = Field(min_length=1)
    new_password: str = Field(min_length=6)

    @field_validator('new_password')
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return _validate_password_bytes(v)


class UserSummary(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra='ignore')
    id: int
    phone_number: str
    name: str
    last_name: str
    role: str


class TokenPairResponse(CamelModel):
    access_token: str
    refresh_token: str
    user: UserSummary


class ResetTokenResponse(CamelModel):
    token: str
