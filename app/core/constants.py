from enum import StrEnum


class UserStatus(StrEnum):
    """Approval-workflow state of a user account."""
    PENDING_VERIFICATION = "PENDING_VERIFICATION"
    PENDING_APPROVAL = "PENDING_APPROVAL"
    ACTIVE = "ACTIVE"
    REJECTED = "REJECTED"


class Role(StrEnum):
    """User role enumeration."""
    NEIGHBOR = "NEIGHBOR"
    ADMIN = "ADMIN"


class VerificationPurpose(StrEnum):
    """Purpose of an SMS verification channel."""
    REGISTER = "REGISTER"
    RECOVER_PASSWORD = "RECOVER_PASSWORD"


RESET_PASSWORD_SCOPE = "reset_password"

# Statuses allowed to redeem a reset token.
RESET_ELIGIBLE_STATUSES = frozenset({UserStatus.ACTIVE, UserStatus.PENDING_APPROVAL})


class ErrorCode(StrEnum):
    """Stable public error codes."""

    INVALID_CREDENTIALS = "AUTH001"
    ACCOUNT_NOT_ACTIVE = "AUTH005"
    INVALID_ACCESS_TOKEN = "AUTH006"
    INVALID_REFRESH_TOKEN = "AUTH007"
    INVALID_RESET_TOKEN = "AUTH008"
    INVALID_VERIFICATION_CODE = "AUTH010"

    USER_NOT_FOUND = "USR001"
    USER_ALREADY_EXISTS = "USR002"

    VERIFICATION_SEND_FAILED = "VER001"

    VALIDATION_ERROR = "VAL001"
    RATE_LIMIT_EXCEEDED = "GEN001"
    INTERNAL_ERROR = "SRV001"


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.INVALID_CREDENTIALS: "Invalid credentials",
    ErrorCode.ACCOUNT_NOT_ACTIVE: "Account is not active. Please wait for activation or contact support.",
    ErrorCode.INVALID_ACCESS_TOKEN: "Invalid access token",
    ErrorCode.INVALID_REFRESH_TOKEN: "Invalid refresh token",
    ErrorCode.INVALID_RESET_TOKEN: "Invalid reset token",
    ErrorCode.INVALID_VERIFICATION_CODE: "Invalid verification code",
    ErrorCode.USER_NOT_FOUND: "User not found",
    ErrorCode.USER_ALREADY_EXISTS: "User already exists",
    ErrorCode.VERIFICATION_SEND_FAILED: "Failed to send verification code",
    ErrorCode.VALIDATION_ERROR: "Validation error",
    ErrorCode.RATE_LIMIT_EXCEEDED: "Too many requests. Please try again later",
    ErrorCode.INTERNAL_ERROR: "Internal server error",
}

ERROR_HTTP_STATUS: dict[ErrorCode, int] = {
    ErrorCode.INVALID_CREDENTIALS: 401,
    ErrorCode.ACCOUNT_NOT_ACTIVE: 403,
    ErrorCode.INVALID_ACCESS_TOKEN: 401,
    ErrorCode.INVALID_REFRESH_TOKEN: 401,
    ErrorCode.INVALID_RESET_TOKEN: 401,
    ErrorCode.INVALID_VERIFICATION_CODE: 400,
    ErrorCode.USER_NOT_FOUND: 404,
    ErrorCode.USER_ALREADY_EXISTS: 409,
    ErrorCode.VERIFICATION_SEND_FAILED: 502,
    ErrorCode.VALIDATION_ERROR: 422,
    ErrorCode.RATE_LIMIT_EXCEEDED: 429,
    ErrorCode.INTERNAL_ERROR: 500,
}


class AuthMessages(StrEnum):
    """Success messages returned by the auth endpoints."""

    LOGIN_SUCCESS = "Login successful"
    REFRESH_SUCCESS = "Tokens refreshed successfully"
    LOGOUT_SUCCESS = "Logged out successfully"
    REGISTER_SUCCESS = "Registration successful. Please verify your phone number."
    REGISTER_CODE_VERIFIED = "Phone number verified. Your account is pending approval."
    REGISTER_CODE_RESENT = "If the account is pending verification, a new code has been sent."
    RECOVERY_CODE_SENT = "Password recovery code sent successfully."
    RESET_TOKEN_ISSUED = "Password reset token generated successfully"
    PASSWORD_RESET_SUCCESS = "Password reset successful"
