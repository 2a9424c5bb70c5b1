import asyncio
import unittest

from fastapi.testclient import TestClient

from app.core.constants import UserStatus
from app.core.dependencies import get_refresh_token_repository, get_user_repository
from app.main import CONSOLE_RECOVER_PASSWORD_SERVICE, CONSOLE_REGISTER_SERVICE, create_app
from app.repositories.memory import InMemoryRefreshTokenRepository, InMemoryUserRepository
from tests.helpers import TEST_CODE, make_settings, seed_user

AUTH = "/api/v1/auth"
PHONE = "+56911111111"
PASSWORD = "pw123456"


class ApiTestCase(unittest.TestCase):
    settings_overrides: dict = {}

    def setUp(self):
        self.users = InMemoryUserRepository()
        self.tokens = InMemoryRefreshTokenRepository()
        self.app = create_app(make_settings(**self.settings_overrides), init_database=False)
        self.app.dependency_overrides[get_user_repository] = lambda: self.users
        self.app.dependency_overrides[get_refresh_token_repository] = lambda: self.tokens
        self.sms = self.app.state.sms_provider
        self.client = TestClient(self.app)

    def activate(self, phone_number: str = PHONE) -> dict:
        async def _activate():
            user = await self.users.find_by_phone(phone_number)
            return await self.users.update(user["id"], {"status": UserStatus.ACTIVE})
        return asyncio.run(_activate())

    def seed(self, **kwargs) -> dict:
        return asyncio.run(seed_user(self.users, **kwargs))

    def login(self, phone_number: str = PHONE, password: str = PASSWORD):
        return self.client.post(f"{AUTH}/login", json={"phoneNumber": phone_number, "password": password})

    def assertError(self, response, status_code: int, code: str):
        self.assertEqual(response.status_code, status_code, response.text)
        body = response.json()
        self.assertFalse(body["success"])
        self.assertEqual(body["code"], code)


class TestRegistrationApi(ApiTestCase):
    def register(self, phone_number: str = PHONE):
        return self.client.post(f"{AUTH}/register", json={
            "phoneNumber": phone_number,
            "password": PASSWORD,
            "name": "Ana",
            "lastName": "Rojas",
        })

    def test_register_verify_and_login(self):
        response = self.register()
        self.assertEqual(response.status_code, 201, response.text)
        data = response.json()["data"]
        self.assertEqual(data["phoneNumber"], PHONE)
        self.assertEqual(data["lastName"], "Rojas")
        self.assertNotIn("hashedPassword", data)
        self.assertEqual(self.sms.sent, [(CONSOLE_REGISTER_SERVICE, PHONE)])

        response = self.client.post(f"{AUTH}/verify-register-code", json={"phoneNumber": PHONE, "code": TEST_CODE})
        self.assertEqual(response.status_code, 200, response.text)

        self.assertError(self.login(), 403, "AUTH005")

        self.activate()
        response = self.login()
        self.assertEqual(response.status_code, 200, response.text)
        data = response.json()["data"]
        self.assertIn("accessToken", data)
        self.assertIn("refreshToken", data)

    def test_duplicate_phone(self):
        self.register()
        self.assertError(self.register(), 409, "USR002")

    def test_invalid_phone(self):
        response = self.register(phone_number="12345")
        self.assertError(response, 422, "VAL001")
        fields = [error["field"] for error in response.json()["data"]["validation_errors"]]
        self.assertIn("phoneNumber", fields)

    def test_multibyte_password_over_bcrypt_limit(self):
        # 19 characters but 76 bytes in UTF-8
        response = self.client.post(f"{AUTH}/register", json={
            "phoneNumber": PHONE,
            "password": "\U0001F600" * 19,
            "name": "Ana",
            "lastName": "Rojas",
        })
        self.assertError(response, 422, "VAL001")
        fields = [error["field"] for error in response.json()["data"]["validation_errors"]]
        self.assertEqual(fields, ["password"])
        self.assertEqual(self.sms.sent, [])

    def test_wrong_code(self):
        self.register()
        response = self.client.post(f"{AUTH}/verify-register-code", json={"phoneNumber": PHONE, "code": "000000"})
        self.assertError(response, 400, "AUTH010")

    def test_resend_always_answers_ok(self):
        response = self.client.post(f"{AUTH}/resend-register-code", json={"phoneNumber": "+56999999999"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.sms.sent, [])


class TestSessionApi(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.seed()

    def test_wrong_password(self):
        self.assertError(self.login(password="wrong-password"), 401, "AUTH001")
        self.assertError(self.login(phone_number="+56922222222"), 401, "AUTH001")

    def test_refresh_rotates_pair(self):
        tokens = self.login().json()["data"]

        response = self.client.post(f"{AUTH}/refresh", json={"refreshToken": tokens["refreshToken"]})
        self.assertEqual(response.status_code, 200, response.text)
        rotated = response.json()["data"]
        self.assertNotEqual(rotated["refreshToken"], tokens["refreshToken"])

        reused = self.client.post(f"{AUTH}/refresh", json={"refreshToken": tokens["refreshToken"]})
        self.assertError(reused, 401, "AUTH007")

    def test_access_token_is_not_a_refresh_token(self):
        tokens = self.login().json()["data"]
        response = self.client.post(f"{AUTH}/refresh", json={"refreshToken": tokens["accessToken"]})
        self.assertError(response, 401, "AUTH007")

    def test_logout(self):
        tokens = self.login().json()["data"]
        body = {"refreshToken": tokens["refreshToken"]}

        self.assertError(self.client.post(f"{AUTH}/logout", json=body), 401, "AUTH006")

        headers = {"Authorization": f"Bearer {tokens['accessToken']}"}
        self.assertEqual(self.client.post(f"{AUTH}/logout", json=body, headers=headers).status_code, 200)
        # Idempotent
        self.assertEqual(self.client.post(f"{AUTH}/logout", json=body, headers=headers).status_code, 200)

        self.assertError(self.client.post(f"{AUTH}/refresh", json=body), 401, "AUTH007")

    def test_refresh_token_rejected_as_bearer(self):
        tokens = self.login().json()["data"]
        headers = {"Authorization": f"Bearer {tokens['refreshToken']}"}
        response = self.client.post(f"{AUTH}/logout", json={"refreshToken": tokens["refreshToken"]}, headers=headers)
        self.assertError(response, 401, "AUTH006")


class TestPasswordRecoveryApi(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.seed()

    def test_unknown_phone_is_not_revealed(self):
        response = self.client.post(f"{AUTH}/recover-password", json={"phoneNumber": "+56999999999"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.sms.sent, [])

    def test_full_recovery(self):
        old_tokens = self.login().json()["data"]

        response = self.client.post(f"{AUTH}/recover-password", json={"phoneNumber": PHONE})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(self.sms.sent, [(CONSOLE_RECOVER_PASSWORD_SERVICE, PHONE)])

        response = self.client.post(f"{AUTH}/verify-recover-password", json={"phoneNumber": PHONE, "code": TEST_CODE})
        self.assertEqual(response.status_code, 200, response.text)
        reset_token = response.json()["data"]["token"]

        response = self.client.post(f"{AUTH}/reset-password", json={"token": reset_token, "newPassword": "new-secret"})
        self.assertEqual(response.status_code, 200, response.text)

        self.assertError(self.login(), 401, "AUTH001")
        self.assertEqual(self.login(password="new-secret").status_code, 200)

        stale = self.client.post(f"{AUTH}/refresh", json={"refreshToken": old_tokens["refreshToken"]})
        self.assertError(stale, 401, "AUTH007")

        reused = self.client.post(f"{AUTH}/reset-password", json={"token": reset_token, "newPassword": "other-secret"})
        self.assertError(reused, 401, "AUTH008")

    def test_register_code_does_not_unlock_recovery(self):
        self.client.post(f"{AUTH}/register", json={
            "phoneNumber": "+56922222222",
            "password": PASSWORD,
            "name": "Luis",
            "lastName": "Soto",
        })
        response = self.client.post(
            f"{AUTH}/verify-recover-password",
            json={"phoneNumber": "+56922222222", "code": TEST_CODE},
        )
        self.assertError(response, 400, "AUTH010")

    def test_access_token_is_not_a_reset_token(self):
        tokens = self.login().json()["data"]
        response = self.client.post(
            f"{AUTH}/reset-password",
            json={"token": tokens["accessToken"], "newPassword": "new-secret"},
        )
        self.assertError(response, 401, "AUTH008")


class TestRateLimitApi(ApiTestCase):
    settings_overrides = {"LOGIN_RATE_LIMIT_PER_MINUTE": 2}

    def test_login_budget(self):
        self.login(password="wrong-password")
        self.login(password="wrong-password")
        self.assertError(self.login(), 429, "GEN001")


class TestHealthApi(ApiTestCase):
    def test_liveness(self):
        response = self.client.get("/api/v1/health/live")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "alive")

    def test_health_without_database(self):
        response = self.client.get("/api/v1/health")
        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["components"]["database"]["status"], "unhealthy")

    def test_root(self):
        response = self.client.get("/")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["success"])


if __name__ == "__main__":
    unittest.main()
