"""Self-service registration with SMS phone verification."""
import logging

from app.core.constants import Role, UserStatus
from app.core.exceptions import InvalidVerificationCodeException, VerificationSendFailedException
from app.core.security import DEFAULT_BCRYPT_ROUNDS, hash_password_async
from app.interfaces.user import IUserRepository
from app.interfaces.verification import IVerificationChannel
from app.services.auth import user_summary
from app.services.sms import mask_phone

logger = logging.getLogger(__name__)


class UserRegistrationService:
    def __init__(
        self,
        user_repository: IUserRepository,
        register_channel: IVerificationChannel,
        bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS,
    ):
        self.user_repository = user_repository
        self.register_channel = register_channel
        self.bcrypt_rounds = bcrypt_rounds

    async def register(self, phone_number: str, password: str, name: str, last_name: str) -> dict:
        """
        Create a NEIGHBOR account pending phone verification and send the code.

        The account is written before the code is sent; when the send fails
        the caller's transaction is expected to discard it.

        Raises:
            UserAlreadyExistsException: Phone number already registered
            VerificationSendFailedException: SMS provider did not accept the request
        """
        hashed_password = await hash_password_async(password, self.bcrypt_rounds)
        user = await self.user_repository.create({
            "phone_number": phone_number,
            "hashed_password": hashed_password,
            "name": name,
            "last_name": last_name,
            "role": Role.NEIGHBOR,
            "status": UserStatus.PENDING_VERIFICATION,
        })
        logger.info(f"User {user['id']} registered, awaiting phone verification")

        await self.register_channel.send_code(phone_number)
        return user_summary(user)

    async def verify_register_code(self, phone_number: str, code: str) -> None:
        """
        Confirm the phone number and move the account to PENDING_APPROVAL.

        Every failure, including an unknown phone, surfaces as an invalid code.
        """
        await self.register_channel.check_code(phone_number, code)

        user = await self.user_repository.find_by_phone(phone_number)
        if not user:
            logger.warning(f"Approved registration code for unknown phone {mask_phone(phone_number)}")
            raise InvalidVerificationCodeException()

        if user["status"] != UserStatus.PENDING_VERIFICATION:
            logger.warning(f"Registration code for user {user['id']} in status {user['status']}")
            raise InvalidVerificationCodeException()

        await self.user_repository.update(user["id"], {"status": UserStatus.PENDING_APPROVAL})
        logger.info(f"User {user['id']} verified phone number, pending approval")

    async def resend_register_code(self, phone_number: str) -> None:
        """Send a fresh registration code when the account still awaits verification. Otherwise a no-op."""
        user = await self.user_repository.find_by_phone(phone_number)
        if not user or user["status"] != UserStatus.PENDING_VERIFICATION:
            logger.warning(f"Registration code resend ignored for {mask_phone(phone_number)}")
            return

        try:
            await self.register_channel.send_code(phone_number)
        except VerificationSendFailedException:
            logger.error(f"Registration code could not be re-sent for user {user['id']}")
            return
        logger.info(f"Registration code re-sent for user {user['id']}")
