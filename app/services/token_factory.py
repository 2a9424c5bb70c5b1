"""JWT minting and verification for access, refresh and reset tokens."""
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional
from uuid import uuid4

from fastapi.concurrency import run_in_threadpool
from jose import jwt, ExpiredSignatureError, JWTError

from app.core.config import JwtConfig
from app.core.constants import RESET_PASSWORD_SCOPE
from app.core.exceptions import (
    AppException,
    InvalidRefreshTokenException,
    InvalidResetTokenException,
    InvalidTokenException,
)
from app.core.security import utcnow

logger = logging.getLogger(__name__)


class TokenFactory:
    """Signs and verifies the three token kinds, each with its own secret and lifetime."""

    def __init__(self, config: JwtConfig, clock: Callable[[], datetime] = utcnow):
        self.config = config
        self._clock = clock

    def _sign(self, claims: dict, secret: str, ttl: timedelta) -> str:
        issued_at = self._clock()
        to_encode = dict(claims)
        to_encode.update({
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + ttl).timestamp()),
        })
        return jwt.encode(to_encode, secret, algorithm=self.config.algorithm)

    async def _sign_async(self, claims: dict, secret: str, ttl: timedelta) -> str:
        return await run_in_threadpool(self._sign, claims, secret, ttl)

    async def generate_token_pair(self, user: dict) -> dict:
        """
        Mint an access and a refresh token for a user.

        Args:
            user: User dictionary with id, phone_number and role

        Returns:
            Dictionary with access_token and refresh_token
        """
        access_claims = {
            "sub": str(user["id"]),
            "phoneNumber": user["phone_number"],
            "role": str(user["role"]),
        }
        # jti keeps two refresh tokens minted in the same second distinct
        refresh_claims = {"sub": str(user["id"]), "jti": uuid4().hex}

        access_token, refresh_token = await asyncio.gather(
            self._sign_async(access_claims, self.config.access_secret, self.config.access_ttl),
            self._sign_async(refresh_claims, self.config.refresh_secret, self.config.refresh_ttl),
        )
        return {"access_token": access_token, "refresh_token": refresh_token}

    def generate_reset_token(self, user: dict) -> str:
        """Mint a password reset token scoped to ``reset_password``."""
        claims = {"sub": str(user["id"]), "scope": RESET_PASSWORD_SCOPE}
        return self._sign(claims, self.config.reset_secret, self.config.reset_ttl)

    def verify(self, token: str, secret: str, error: type[AppException] = InvalidTokenException) -> dict:
        """
        Decode and verify a token against one secret.

        Expired, malformed and wrongly signed tokens all raise ``error``;
        the specific reason is only logged.
        """
        try:
            payload = jwt.decode(token, secret, algorithms=[self.config.algorithm])
        except ExpiredSignatureError:
            logger.info(f"Token rejected ({error.code}): expired")
            raise error()
        except JWTError as e:
            logger.info(f"Token rejected ({error.code}): {e}")
            raise error()

        if subject_id(payload) is None:
            logger.info(f"Token rejected ({error.code}): missing or malformed subject")
            raise error()
        return payload

    def verify_access(self, token: str) -> dict:
        return self.verify(token, self.config.access_secret, InvalidTokenException)

    def verify_refresh(self, token: str) -> dict:
        return self.verify(token, self.config.refresh_secret, InvalidRefreshTokenException)

    def verify_reset(self, token: str) -> dict:
        return self.verify(token, self.config.reset_secret, InvalidResetTokenException)


def subject_id(payload: dict) -> Optional[int]:
    """Return the numeric user id carried in ``sub``, or None if it is not one."""
    try:
        return int(payload.get("sub"))
    except (TypeError, ValueError):
        return None
