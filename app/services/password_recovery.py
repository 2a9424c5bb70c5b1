"""Password recovery over SMS and password reset."""
import logging

from app.core.exceptions import UserNotFoundException, VerificationSendFailedException
from app.core.security import DEFAULT_BCRYPT_ROUNDS, hash_password_async, utcnow
from app.interfaces.user import IUserRepository
from app.interfaces.verification import IVerificationChannel
from app.services.refresh_token_store import RefreshTokenStore
from app.services.sms import mask_phone
from app.services.token_factory import TokenFactory

logger = logging.getLogger(__name__)


class PasswordRecoveryService:
    def __init__(
        self,
        user_repository: IUserRepository,
        recover_channel: IVerificationChannel,
        token_factory: TokenFactory,
        refresh_token_store: RefreshTokenStore,
        bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS,
    ):
        self.user_repository = user_repository
        self.recover_channel = recover_channel
        self.token_factory = token_factory
        self.refresh_token_store = refresh_token_store
        self.bcrypt_rounds = bcrypt_rounds

    async def send_reset_password_code(self, phone_number: str) -> None:
        """
        Send a recovery code if the phone belongs to a user.

        An unknown phone is a silent no-op so the endpoint cannot be used to
        discover registered numbers. Send failures are logged, not raised.
        """
        user = await self.user_repository.find_by_phone(phone_number)
        if not user:
            logger.warning(f"Password recovery requested for unknown phone {mask_phone(phone_number)}")
            return

        try:
            await self.recover_channel.send_code(phone_number)
        except VerificationSendFailedException:
            # Same answer as for an unknown phone; the channel already logged the provider error
            logger.error(f"Password recovery code could not be sent for user {user['id']}")
            return
        logger.info(f"Password recovery code sent for user {user['id']}")

    async def generate_reset_password_token(self, phone_number: str, code: str) -> str:
        """
        Exchange a recovery code for a reset token.

        Raises:
            InvalidVerificationCodeException: Code not approved
            UserNotFoundException: Code approved but the account no longer exists
        """
        await self.recover_channel.check_code(phone_number, code)

        user = await self.user_repository.find_by_phone(phone_number)
        if not user:
            logger.error(f"Recovery code approved for {mask_phone(phone_number)} but no user exists")
            raise UserNotFoundException()

        logger.info(f"Reset token issued for user {user['id']}")
        return self.token_factory.generate_reset_token(user)

    async def reset_password(self, user_id: int, new_password: str) -> None:
        """
        Set a new password and revoke every refresh token of the user.

        Expects a user id already cleared by the reset token guard.
        """
        user = await self.user_repository.find_by_id_with_password(user_id)
        if not user:
            raise UserNotFoundException()

        hashed_password = await hash_password_async(new_password, self.bcrypt_rounds)
        await self.user_repository.update(user_id, {
            "hashed_password": hashed_password,
            "password_updated_at": utcnow(),
        })
        await self.refresh_token_store.invalidate_all_for_user(user_id)
        logger.info(f"Password reset for user {user_id}")
