from abc import ABC, abstractmethod


class ISmsVerificationProvider(ABC):
    """Upstream one-time-code service, addressed per verify service id."""

    @abstractmethod
    async def start_verification(self, service_sid: str, phone_number: str) -> str:
        """Send a code and return the provider status (``pending`` on success)."""
        pass

    @abstractmethod
    async def check_verification(self, service_sid: str, phone_number: str, code: str) -> str:
        """Check a code and return the provider status (``approved`` on success)."""
        pass

    async def close(self) -> None:
        """Release network resources."""
        return None


class IVerificationChannel(ABC):
    """One isolated send/check pathway dedicated to a single purpose."""

    @abstractmethod
    async def send_code(self, phone_number: str) -> None:
        """Send a code.

        Raises:
            VerificationSendFailedException: If the provider does not report a pending verification
        """
        pass

    @abstractmethod
    async def check_code(self, phone_number: str, code: str) -> None:
        """Check a code.

        Raises:
            InvalidVerificationCodeException: For any outcome other than approval
        """
        pass
