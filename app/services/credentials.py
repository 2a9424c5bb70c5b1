"""Phone number and password verification."""
import logging

from app.core.constants import UserStatus
from app.core.exceptions import AccountNotActiveException, InvalidCredentialsException
from app.core.security import DEFAULT_BCRYPT_ROUNDS, hash_password_async, verify_password_async
from app.interfaces.user import IUserRepository
from app.services.sms import mask_phone

logger = logging.getLogger(__name__)

_DUMMY_PASSWORD = "infracheck-unknown-account"
# One hash per cost factor, built on first use
_dummy_hashes: dict[int, str] = {}


async def _dummy_hash(rounds: int) -> str:
    if rounds not in _dummy_hashes:
        _dummy_hashes[rounds] = await hash_password_async(_DUMMY_PASSWORD, rounds)
    return _dummy_hashes[rounds]


class CredentialVerifier:
    """Checks a phone/password pair and gates on account status."""

    def __init__(self, user_repository: IUserRepository, bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS):
        self.user_repository = user_repository
        self.bcrypt_rounds = bcrypt_rounds

    async def validate_credentials(self, phone_number: str, password: str) -> dict:
        """
        Return the user (without password hash) when the credentials are valid.

        Unknown phone and wrong password raise the same error after the same
        bcrypt work. Status is only checked once the password matched.

        Raises:
            InvalidCredentialsException: Unknown phone number or wrong password
            AccountNotActiveException: Correct password, account not ACTIVE
        """
        user = await self.user_repository.find_by_phone_with_password(phone_number)
        if not user:
            await verify_password_async(password, await _dummy_hash(self.bcrypt_rounds))
            logger.warning(f"Login failed for {mask_phone(phone_number)}: unknown phone number")
            raise InvalidCredentialsException()

        if not await verify_password_async(password, user["hashed_password"]):
            logger.warning(f"Login failed for user {user['id']}: wrong password")
            raise InvalidCredentialsException()

        if user["status"] != UserStatus.ACTIVE:
            logger.warning(f"Login refused for user {user['id']}: status {user['status']}")
            raise AccountNotActiveException()

        user.pop("hashed_password", None)
        return user
