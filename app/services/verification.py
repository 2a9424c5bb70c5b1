"""Purpose-bound SMS verification channels."""
import logging

from app.core.constants import VerificationPurpose
from app.core.exceptions import InvalidVerificationCodeException, VerificationSendFailedException
from app.interfaces.verification import IVerificationChannel, ISmsVerificationProvider
from app.services.sms import STATUS_APPROVED, STATUS_PENDING, mask_phone

logger = logging.getLogger(__name__)


class VerificationChannel(IVerificationChannel):
    """Send/check pathway bound to one upstream verify service.

    Registration and password recovery each get their own instance with a
    different service id, so a code issued on one never validates on the other.
    """

    def __init__(self, purpose: VerificationPurpose, service_sid: str, provider: ISmsVerificationProvider):
        self.purpose = purpose
        self.service_sid = service_sid
        self._provider = provider

    async def send_code(self, phone_number: str) -> None:
        try:
            status = await self._provider.start_verification(self.service_sid, phone_number)
        except Exception as e:
            logger.error(f"[{self.purpose}] SMS provider failed to send code to {mask_phone(phone_number)}: {e}")
            raise VerificationSendFailedException() from e

        if status != STATUS_PENDING:
            logger.error(f"[{self.purpose}] Unexpected verification status '{status}' for {mask_phone(phone_number)}")
            raise VerificationSendFailedException()

    async def check_code(self, phone_number: str, code: str) -> None:
        try:
            status = await self._provider.check_verification(self.service_sid, phone_number, code)
        except Exception as e:
            logger.error(f"[{self.purpose}] SMS provider failed to check code for {mask_phone(phone_number)}: {e}")
            raise InvalidVerificationCodeException() from e

        if status != STATUS_APPROVED:
            logger.info(f"[{self.purpose}] Code rejected for {mask_phone(phone_number)}: status={status}")
            raise InvalidVerificationCodeException()


def build_verification_channels(
    provider: ISmsVerificationProvider,
    register_service_sid: str,
    recover_password_service_sid: str,
) -> dict[VerificationPurpose, VerificationChannel]:
    """Create the registration and password recovery channels."""
    if register_service_sid == recover_password_service_sid:
        raise ValueError("Verification channels must use distinct service ids")
    return {
        VerificationPurpose.REGISTER: VerificationChannel(
            VerificationPurpose.REGISTER, register_service_sid, provider
        ),
        VerificationPurpose.RECOVER_PASSWORD: VerificationChannel(
            VerificationPurpose.RECOVER_PASSWORD, recover_password_service_sid, provider
        ),
    }
