from app.core.constants import ERROR_HTTP_STATUS, ERROR_MESSAGES, ErrorCode


class AppException(Exception):
    """Base application exception carrying a stable error code."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str | None = None, data: dict | None = None, code: ErrorCode | None = None):
        if code is not None:
            self.code = code
        self.message = message or ERROR_MESSAGES[self.code]
        self.status_code = ERROR_HTTP_STATUS[self.code]
        self.data = data or {}
        super().__init__(self.message)


class InvalidCredentialsException(AppException):
    """Unknown phone number or wrong password."""
    code = ErrorCode.INVALID_CREDENTIALS


class AccountNotActiveException(AppException):
    """Correct password but the account has not reached ACTIVE."""
    code = ErrorCode.ACCOUNT_NOT_ACTIVE


class InvalidTokenException(AppException):
    """Expired, malformed or wrongly signed token."""
    code = ErrorCode.INVALID_ACCESS_TOKEN


class InvalidRefreshTokenException(AppException):
    code = ErrorCode.INVALID_REFRESH_TOKEN


class InvalidResetTokenException(AppException):
    code = ErrorCode.INVALID_RESET_TOKEN


class InvalidTokenScopeException(InvalidResetTokenException):
    def __init__(self, data: dict | None = None):
        super().__init__("Invalid token scope", data)


class UserNotEligibleException(InvalidResetTokenException):
    def __init__(self, data: dict | None = None):
        super().__init__("User not found or inactive", data)


class TokenSupersededByPasswordChangeException(InvalidResetTokenException):
    def __init__(self, data: dict | None = None):
        super().__init__("Password has already been changed", data)


class InvalidVerificationCodeException(AppException):
    code = ErrorCode.INVALID_VERIFICATION_CODE


class VerificationSendFailedException(AppException):
    code = ErrorCode.VERIFICATION_SEND_FAILED


class UserAlreadyExistsException(AppException):
    """Exception raised when user already exists."""
    code = ErrorCode.USER_ALREADY_EXISTS


class UserNotFoundException(AppException):
    """Exception raised when user is not found."""
    code = ErrorCode.USER_NOT_FOUND
