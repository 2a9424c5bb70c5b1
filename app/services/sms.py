"""SMS verification providers.

Supports Twilio Verify and a console provider for local development,
configured via the SMS_PROVIDER setting.
"""

import asyncio
import logging
import secrets
from typing import Optional

from twilio.base.exceptions import TwilioRestException
from twilio.http.async_http_client import AsyncTwilioHttpClient
from twilio.rest import Client as TwilioClient

from app.core.config import Settings
from app.interfaces.verification import ISmsVerificationProvider

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_NOT_FOUND = "not_found"

CODE_LENGTH = 6


def mask_phone(phone_number: str) -> str:
    """Keep only the last four digits for log output."""
    return f"***{phone_number[-4:]}" if len(phone_number) > 4 else "***"


# =============================================================================
# Twilio Verify Provider
# =============================================================================

class TwilioVerifyProvider(ISmsVerificationProvider):
    """Twilio Verify v2 provider using the async HTTP client.

    The aiohttp-backed client needs a running event loop, so it is created on
    first use rather than at application build time.
    """

    def __init__(self, account_sid: str, auth_token: str):
        self._account_sid = account_sid
        self._auth_token = auth_token
        self._http_client: Optional[AsyncTwilioHttpClient] = None
        self.client: Optional[TwilioClient] = None

    def _verify_service(self, service_sid: str):
        if self.client is None:
            self._http_client = AsyncTwilioHttpClient()
            self.client = TwilioClient(self._account_sid, self._auth_token, http_client=self._http_client)
        return self.client.verify.v2.services(service_sid)

    async def start_verification(self, service_sid: str, phone_number: str) -> str:
        verification = await self._verify_service(service_sid).verifications.create_async(
            to=phone_number,
            channel="sms",
        )
        logger.info(f"[Twilio] Verification started for {mask_phone(phone_number)}: status={verification.status}")
        return verification.status

    async def check_verification(self, service_sid: str, phone_number: str, code: str) -> str:
        try:
            check = await self._verify_service(service_sid).verification_checks.create_async(
                to=phone_number,
                code=code,
            )
        except TwilioRestException as e:
            # Verify answers 404 once a verification expired, was approved or was never started
            if e.status == 404:
                return STATUS_NOT_FOUND
            raise
        return check.status

    async def close(self) -> None:
        if self._http_client is not None:
            await self._http_client.close()
        self._http_client = None
        self.client = None


# =============================================================================
# Console Provider
# =============================================================================

class ConsoleSmsProvider(ISmsVerificationProvider):
    """Development provider keeping one pending code per (service, phone).

    Codes are random unless ``fixed_code`` is set. With ``reveal_codes`` the
    issued code is logged at DEBUG so a developer can complete the flow.
    """

    def __init__(self, fixed_code: Optional[str] = None, reveal_codes: bool = False):
        self._fixed_code = fixed_code or None
        self._reveal_codes = reveal_codes
        self._lock = asyncio.Lock()
        self._pending: dict[tuple[str, str], str] = {}
        self.sent: list[tuple[str, str]] = []

    def _new_code(self) -> str:
        if self._fixed_code:
            return self._fixed_code
        return "".join(secrets.choice("0123456789") for _ in range(CODE_LENGTH))

    async def start_verification(self, service_sid: str, phone_number: str) -> str:
        async with self._lock:
            code = self._new_code()
            self._pending[(service_sid, phone_number)] = code
            self.sent.append((service_sid, phone_number))
        logger.info(f"[CONSOLE] Verification code issued on service {service_sid} for {mask_phone(phone_number)}")
        if self._reveal_codes:
            logger.debug(f"[CONSOLE] Code for {phone_number} on service {service_sid}: {code}")
        return STATUS_PENDING

    async def check_verification(self, service_sid: str, phone_number: str, code: str) -> str:
        async with self._lock:
            expected = self._pending.get((service_sid, phone_number))
            if expected is None:
                return STATUS_NOT_FOUND
            if not secrets.compare_digest(expected, code):
                return STATUS_PENDING
            del self._pending[(service_sid, phone_number)]
            return STATUS_APPROVED


def get_sms_provider(settings: Settings) -> ISmsVerificationProvider:
    """Build the configured SMS provider."""
    provider_name = settings.SMS_PROVIDER.lower()

    if provider_name == "twilio":
        provider = TwilioVerifyProvider(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)
        logger.info("SMS provider initialized: Twilio Verify")
    elif provider_name == "console":
        provider = ConsoleSmsProvider(
            fixed_code=settings.FIXED_OTP,
            reveal_codes=settings.ENVIRONMENT == "dev",
        )
        logger.info("SMS provider initialized: console")
    else:
        raise ValueError(f"Unknown SMS provider: {provider_name}. Use 'twilio' or 'console'.")

    return provider
