"""Refresh token repository implementation using PostgreSQL."""
from typing import Optional
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession
from app.interfaces.refresh_token import IRefreshTokenRepository
from app.models.refresh_token import RefreshToken


class RefreshTokenRepository(IRefreshTokenRepository):
    """SQLAlchemy implementation of refresh token persistence."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def save(self, record: dict) -> dict:
        token = RefreshToken(
            token=record["token"],
            user_id=record["user_id"],
            expires_at=record["expires_at"],
        )
        self._session.add(token)
        await self._session.flush()
        await self._session.refresh(token)
        return token.to_dict()

    async def find_one(self, token: str, user_id: int) -> Optional[dict]:
        stmt = select(RefreshToken).where(
            RefreshToken.token == token,
            RefreshToken.user_id == user_id,
        )
        result = await self._session.execute(stmt)
        record = result.scalar_one_or_none()
        return record.to_dict() if record else None

    async def delete(self, record_id: int) -> bool:
        stmt = delete(RefreshToken).where(RefreshToken.id == record_id)
        result = await self._session.execute(stmt)
        await self._session.flush()
        return result.rowcount > 0

    async def delete_by_token(self, token: str) -> bool:
        stmt = delete(RefreshToken).where(RefreshToken.token == token)
        result = await self._session.execute(stmt)
        await self._session.flush()
        return result.rowcount > 0

    async def delete_all_for_user(self, user_id: int) -> int:
        stmt = delete(RefreshToken).where(RefreshToken.user_id == user_id)
        result = await self._session.execute(stmt)
        await self._session.flush()
        return result.rowcount
