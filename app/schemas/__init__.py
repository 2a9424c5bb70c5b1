"""Pydantic schemas for request/response validation."""
from app.schemas.auth import (
    LoginRequest,
    RefreshTokenRequest,
    RegisterRequest,
    PhoneNumberRequest,
    VerifyCodeRequest,
    ResetPasswordRequest,
    UserSummary,
    TokenPairResponse,
    ResetTokenResponse,
)
from app.schemas.response import ApiResponse, ErrorResponse

__all__ = [
    # Auth schemas
    "LoginRequest",
    "RefreshTokenRequest",
    "RegisterRequest",
    "PhoneNumberRequest",
    "VerifyCodeRequest",
    "ResetPasswordRequest",
    "UserSummary",
    "TokenPairResponse",
    "ResetTokenResponse",
    # Response envelopes
    "ApiResponse",
    "ErrorResponse",
]
