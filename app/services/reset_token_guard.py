"""Validation of decoded reset tokens against current account state."""
import logging

from app.core.constants import RESET_ELIGIBLE_STATUSES, RESET_PASSWORD_SCOPE
from app.core.exceptions import (
    InvalidTokenScopeException,
    TokenSupersededByPasswordChangeException,
    UserNotEligibleException,
)
from app.core.security import as_utc
from app.interfaces.user import IUserRepository
from app.services.token_factory import subject_id

logger = logging.getLogger(__name__)


class ResetTokenGuard:
    """Checks a verified reset token payload and yields the user id it may reset."""

    def __init__(self, user_repository: IUserRepository):
        self.user_repository = user_repository

    async def validate(self, payload: dict) -> int:
        """
        Args:
            payload: Signature-verified reset token claims

        Returns:
            The user id allowed to reset its password

        Raises:
            InvalidTokenScopeException: scope is not reset_password
            UserNotEligibleException: user missing or not ACTIVE/PENDING_APPROVAL
            TokenSupersededByPasswordChangeException: password changed at or after issuance
        """
        if payload.get("scope") != RESET_PASSWORD_SCOPE:
            logger.warning(f"Reset token rejected: scope {payload.get('scope')!r}")
            raise InvalidTokenScopeException()

        user_id = subject_id(payload)
        user = await self.user_repository.find_by_id(user_id) if user_id is not None else None
        if not user or user["status"] not in RESET_ELIGIBLE_STATUSES:
            logger.warning(f"Reset token rejected: user {user_id} missing or not eligible")
            raise UserNotEligibleException()

        password_updated_at = user.get("password_updated_at")
        if password_updated_at is not None:
            issued_at = payload.get("iat")
            if not isinstance(issued_at, int):
                logger.warning(f"Reset token rejected: no issue time for user {user_id}")
                raise TokenSupersededByPasswordChangeException()
            # Compare at millisecond precision against the whole-second iat
            updated_ms = int(as_utc(password_updated_at).timestamp() * 1000)
            if updated_ms >= issued_at * 1000:
                logger.warning(f"Reset token rejected: password of user {user_id} changed after issuance")
                raise TokenSupersededByPasswordChangeException()

        return user_id
