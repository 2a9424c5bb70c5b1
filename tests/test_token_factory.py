import unittest
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

from jose import jwt

from app.core.constants import RESET_PASSWORD_SCOPE
from app.core.exceptions import (
    InvalidRefreshTokenException,
    InvalidResetTokenException,
    InvalidTokenException,
)
from app.services.token_factory import TokenFactory, subject_id
from tests.helpers import ACCESS_SECRET, REFRESH_SECRET, RESET_SECRET, make_jwt_config

USER = {"id": 42, "phone_number": "+56911111111", "role": "NEIGHBOR"}


class TestTokenFactory(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.factory = TokenFactory(make_jwt_config())

    async def test_token_pair_payloads(self):
        tokens = await self.factory.generate_token_pair(USER)

        access = self.factory.verify_access(tokens["access_token"])
        self.assertEqual(access["sub"], "42")
        self.assertEqual(access["phoneNumber"], "+56911111111")
        self.assertEqual(access["role"], "NEIGHBOR")
        self.assertEqual(access["exp"] - access["iat"], 15 * 60)

        refresh = self.factory.verify_refresh(tokens["refresh_token"])
        self.assertEqual(set(refresh), {"sub", "jti", "iat", "exp"})
        self.assertEqual(refresh["exp"] - refresh["iat"], 7 * 24 * 3600)

    async def test_pair_is_signed_off_the_event_loop(self):
        offload = AsyncMock(side_effect=lambda func, *args: func(*args))
        with patch("app.services.token_factory.run_in_threadpool", offload):
            tokens = await self.factory.generate_token_pair(USER)

        self.assertEqual(offload.await_count, 2)
        self.assertEqual(self.factory.verify_access(tokens["access_token"])["sub"], "42")
        self.assertEqual(self.factory.verify_refresh(tokens["refresh_token"])["sub"], "42")

    async def test_refresh_tokens_are_unique(self):
        first = await self.factory.generate_token_pair(USER)
        second = await self.factory.generate_token_pair(USER)
        self.assertNotEqual(first["refresh_token"], second["refresh_token"])

    def test_reset_token_payload(self):
        payload = self.factory.verify_reset(self.factory.generate_reset_token(USER))
        self.assertEqual(payload["sub"], "42")
        self.assertEqual(payload["scope"], RESET_PASSWORD_SCOPE)
        self.assertEqual(payload["exp"] - payload["iat"], 15 * 60)

    async def test_secrets_are_isolated(self):
        tokens = await self.factory.generate_token_pair(USER)
        reset_token = self.factory.generate_reset_token(USER)

        with self.assertRaises(InvalidRefreshTokenException):
            self.factory.verify_refresh(tokens["access_token"])
        with self.assertRaises(InvalidTokenException):
            self.factory.verify_access(tokens["refresh_token"])
        with self.assertRaises(InvalidResetTokenException):
            self.factory.verify_reset(tokens["access_token"])
        with self.assertRaises(InvalidResetTokenException):
            self.factory.verify_reset(tokens["refresh_token"])
        with self.assertRaises(InvalidTokenException):
            self.factory.verify_access(reset_token)
        with self.assertRaises(InvalidRefreshTokenException):
            self.factory.verify_refresh(reset_token)

    def test_verify_with_explicit_secret(self):
        token = self.factory.generate_reset_token(USER)
        self.assertEqual(self.factory.verify(token, RESET_SECRET)["sub"], "42")
        with self.assertRaises(InvalidTokenException):
            self.factory.verify(token, ACCESS_SECRET)

    def test_expired_token_rejected(self):
        issued = datetime.now(timezone.utc) - timedelta(hours=1)
        stale_factory = TokenFactory(make_jwt_config(), clock=lambda: issued)
        token = stale_factory.generate_reset_token(USER)
        with self.assertRaises(InvalidResetTokenException):
            self.factory.verify_reset(token)

    def test_malformed_token_rejected(self):
        with self.assertRaises(InvalidTokenException):
            self.factory.verify_access("not-a-jwt")

    def test_non_numeric_subject_rejected(self):
        token = jwt.encode({"sub": "ana"}, REFRESH_SECRET, algorithm="HS256")
        with self.assertRaises(InvalidRefreshTokenException):
            self.factory.verify_refresh(token)


class TestSubjectId(unittest.TestCase):
    def test_subject_id(self):
        self.assertEqual(subject_id({"sub": "7"}), 7)
        self.assertIsNone(subject_id({"sub": "x"}))
        self.assertIsNone(subject_id({}))


if __name__ == "__main__":
    unittest.main()
