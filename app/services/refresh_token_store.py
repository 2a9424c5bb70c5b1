"""Single-use refresh token persistence."""
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from app.core.security import as_utc, utcnow
from app.interfaces.refresh_token import IRefreshTokenRepository

logger = logging.getLogger(__name__)


class RefreshTokenStore:
    """Tracks issued refresh tokens; a token is redeemable while its row exists and has not expired."""

    def __init__(
        self,
        repository: IRefreshTokenRepository,
        ttl: timedelta,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = repository
        self.ttl = ttl
        self._clock = clock

    async def persist(self, token: str, user_id: int) -> dict:
        return await self.repository.save({
            "token": token,
            "user_id": user_id,
            "expires_at": self._clock() + self.ttl,
        })

    async def find_valid(self, token: str, user_id: int) -> Optional[dict]:
        """Return the stored record, or None when it is missing or expired."""
        record = await self.repository.find_one(token, user_id)
        if not record:
            logger.warning(f"Refresh token for user {user_id} not found (reused or revoked)")
            return None
        if as_utc(record["expires_at"]) <= self._clock():
            logger.warning(f"Refresh token for user {user_id} expired at {record['expires_at']}")
            return None
        return record

    async def invalidate(self, token: str) -> bool:
        """Delete the token. Returns False if it was already gone."""
        return await self.repository.delete_by_token(token)

    async def revoke(self, token: str, user_id: int) -> bool:
        """Delete the token only if it belongs to the user."""
        record = await self.repository.find_one(token, user_id)
        if not record:
            return False
        return await self.repository.delete(record["id"])

    async def invalidate_all_for_user(self, user_id: int) -> int:
        removed = await self.repository.delete_all_for_user(user_id)
        if removed:
            logger.info(f"Revoked {removed} refresh token(s) for user {user_id}")
        return removed
