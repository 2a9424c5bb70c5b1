from abc import ABC, abstractmethod
from typing import Optional


class IRefreshTokenRepository(ABC):
    @abstractmethod
    async def save(self, record: dict) -> dict:
        """Persist a refresh token record.

        Args:
            record: token, user_id and expires_at

        Returns:
            The stored record including id and created_at
        """
        pass

    @abstractmethod
    async def find_one(self, token: str, user_id: int) -> Optional[dict]:
        """Find a record matching both the token string and its owner."""
        pass

    @abstractmethod
    async def delete(self, record_id: int) -> bool:
        """Delete by id. Returns True if a row was removed."""
        pass

    @abstractmethod
    async def delete_by_token(self, token: str) -> bool:
        """Delete by token string. Returns True if a row was removed."""
        pass

    @abstractmethod
    async def delete_all_for_user(self, user_id: int) -> int:
        """Delete every token owned by a user and return how many were removed."""
        pass
