import unittest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient
from twilio.base.exceptions import TwilioRestException

from app.core.constants import ErrorCode, VerificationPurpose
from app.core.exceptions import InvalidVerificationCodeException, VerificationSendFailedException
from app.main import create_app
from app.services.sms import (
    ConsoleSmsProvider,
    STATUS_APPROVED,
    STATUS_NOT_FOUND,
    STATUS_PENDING,
    TwilioVerifyProvider,
    get_sms_provider,
)
from app.services.verification import VerificationChannel, build_verification_channels
from tests.helpers import TEST_CODE, StubSmsProvider, make_settings

PHONE = "+56911111111"


class TestConsoleSmsProvider(unittest.IsolatedAsyncioTestCase):
    async def test_code_is_approved_once(self):
        provider = ConsoleSmsProvider(fixed_code=TEST_CODE)
        self.assertEqual(await provider.start_verification("svc", PHONE), STATUS_PENDING)
        self.assertEqual(await provider.check_verification("svc", PHONE, "000000"), STATUS_PENDING)
        self.assertEqual(await provider.check_verification("svc", PHONE, TEST_CODE), STATUS_APPROVED)
        self.assertEqual(await provider.check_verification("svc", PHONE, TEST_CODE), STATUS_NOT_FOUND)

    async def test_random_codes_are_six_digits(self):
        provider = ConsoleSmsProvider()
        await provider.start_verification("svc", PHONE)
        code = provider._pending[("svc", PHONE)]
        self.assertRegex(code, r"^\d{6}$")


class TestVerificationChannel(unittest.IsolatedAsyncioTestCase):
    async def test_channels_are_isolated(self):
        provider = ConsoleSmsProvider(fixed_code=TEST_CODE)
        channels = build_verification_channels(provider, "VA-register", "VA-recover")
        register = channels[VerificationPurpose.REGISTER]
        recover = channels[VerificationPurpose.RECOVER_PASSWORD]

        await register.send_code(PHONE)

        with self.assertRaises(InvalidVerificationCodeException):
            await recover.check_code(PHONE, TEST_CODE)
        await register.check_code(PHONE, TEST_CODE)

    def test_channels_need_distinct_services(self):
        with self.assertRaises(ValueError):
            build_verification_channels(ConsoleSmsProvider(), "VA1", "VA1")

    async def test_send_requires_pending_status(self):
        channel = VerificationChannel(VerificationPurpose.REGISTER, "svc", StubSmsProvider(start_result="failed"))
        with self.assertRaises(VerificationSendFailedException) as ctx:
            await channel.send_code(PHONE)
        self.assertEqual(ctx.exception.code, ErrorCode.VERIFICATION_SEND_FAILED)
        self.assertEqual(ctx.exception.status_code, 502)

    async def test_send_provider_error_is_mapped(self):
        channel = VerificationChannel(
            VerificationPurpose.REGISTER, "svc", StubSmsProvider(start_result=RuntimeError("connection reset"))
        )
        with self.assertRaises(VerificationSendFailedException):
            await channel.send_code(PHONE)

    async def test_every_check_failure_collapses(self):
        for result in ("pending", "canceled", STATUS_NOT_FOUND, RuntimeError("timeout")):
            channel = VerificationChannel(
                VerificationPurpose.RECOVER_PASSWORD, "svc", StubSmsProvider(check_result=result)
            )
            with self.subTest(result=result):
                with self.assertRaises(InvalidVerificationCodeException) as ctx:
                    await channel.check_code(PHONE, TEST_CODE)
                self.assertEqual(ctx.exception.message, "Invalid verification code")


class TestConsoleCodeLogging(unittest.IsolatedAsyncioTestCase):
    async def test_dev_provider_logs_issued_code(self):
        provider = ConsoleSmsProvider(reveal_codes=True)
        with self.assertLogs("app.services.sms", level="DEBUG") as logs:
            await provider.start_verification("svc", PHONE)
        code = provider._pending[("svc", PHONE)]
        self.assertTrue(any(code in line for line in logs.output))

    async def test_code_hidden_unless_revealed(self):
        provider = ConsoleSmsProvider(fixed_code="987654")
        with self.assertLogs("app.services.sms", level="DEBUG") as logs:
            await provider.start_verification("svc", PHONE)
        self.assertFalse(any("987654" in line for line in logs.output))

    def test_dev_settings_reveal_codes(self):
        provider = get_sms_provider(make_settings(FIXED_OTP=""))
        self.assertIsInstance(provider, ConsoleSmsProvider)
        self.assertTrue(provider._reveal_codes)


def _fake_twilio_client(verification=None, check=None):
    """Client whose Verify service returns ``verification``/``check`` or raises them."""
    service = MagicMock()
    service.verifications.create_async = AsyncMock(return_value=verification)
    if isinstance(check, Exception):
        service.verification_checks.create_async = AsyncMock(side_effect=check)
    else:
        service.verification_checks.create_async = AsyncMock(return_value=check)
    client = MagicMock()
    client.verify.v2.services.return_value = service
    return client, service


class TestTwilioVerifyProvider(unittest.IsolatedAsyncioTestCase):
    def make_provider(self, **kwargs):
        provider = TwilioVerifyProvider("ACtest", "token")
        provider.client, service = _fake_twilio_client(**kwargs)
        return provider, service

    async def test_start_returns_status(self):
        provider, service = self.make_provider(verification=SimpleNamespace(status=STATUS_PENDING))

        self.assertEqual(await provider.start_verification("VA-register", PHONE), STATUS_PENDING)
        provider.client.verify.v2.services.assert_called_once_with("VA-register")
        service.verifications.create_async.assert_awaited_once_with(to=PHONE, channel="sms")

    async def test_check_returns_status(self):
        provider, service = self.make_provider(check=SimpleNamespace(status=STATUS_APPROVED))

        self.assertEqual(await provider.check_verification("VA-recover", PHONE, TEST_CODE), STATUS_APPROVED)
        service.verification_checks.create_async.assert_awaited_once_with(to=PHONE, code=TEST_CODE)

    async def test_missing_verification_is_not_found(self):
        provider, _ = self.make_provider(check=TwilioRestException(404, "https://verify.twilio.com/v2"))
        self.assertEqual(await provider.check_verification("VA-recover", PHONE, TEST_CODE), STATUS_NOT_FOUND)

    async def test_other_errors_propagate(self):
        provider, _ = self.make_provider(check=TwilioRestException(500, "https://verify.twilio.com/v2"))
        with self.assertRaises(TwilioRestException):
            await provider.check_verification("VA-recover", PHONE, TEST_CODE)

        channel = VerificationChannel(VerificationPurpose.RECOVER_PASSWORD, "VA-recover", provider)
        with self.assertRaises(InvalidVerificationCodeException):
            await channel.check_code(PHONE, TEST_CODE)

    async def test_close_releases_http_client(self):
        provider = TwilioVerifyProvider("ACtest", "token")
        await provider.close()

        http_client = AsyncMock()
        provider._http_client = http_client
        await provider.close()
        http_client.close.assert_awaited_once()
        self.assertIsNone(provider.client)


class TestTwilioProviderWiring(unittest.TestCase):
    def test_built_without_running_loop(self):
        provider = TwilioVerifyProvider("ACtest", "token")
        self.assertIsNone(provider.client)
        self.assertIsNone(provider._http_client)

    def test_app_with_twilio_provider(self):
        settings = make_settings(
            SMS_PROVIDER="twilio",
            TWILIO_ACCOUNT_SID="ACtest",
            TWILIO_AUTH_TOKEN="token",
            TWILIO_REGISTER_VERIFY_SERVICE_SID="VA-register",
            TWILIO_RECOVER_PASSWORD_VERIFY_SERVICE_SID="VA-recover",
        )
        app = create_app(settings, init_database=False)
        self.assertIsInstance(app.state.sms_provider, TwilioVerifyProvider)

        with TestClient(app) as client:
            self.assertEqual(client.get("/api/v1/health/live").status_code, 200)


if __name__ == "__main__":
    unittest.main()
