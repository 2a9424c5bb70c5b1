"""User repository implementation using PostgreSQL."""
import logging
from typing import Optional
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from app.interfaces.user import IUserRepository
from app.models.user import User
from app.core.constants import Role, UserStatus
from app.core.exceptions import UserAlreadyExistsException

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = {"name", "last_name", "role", "status", "hashed_password", "password_updated_at"}


class UserRepository(IUserRepository):
    """PostgreSQL implementation of user repository using SQLAlchemy."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def _get_by_phone(self, phone_number: str) -> Optional[User]:
        stmt = select(User).where(User.phone_number == phone_number)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def _get_by_id(self, user_id: int) -> Optional[User]:
        stmt = select(User).where(User.id == user_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_by_phone(self, phone_number: str) -> Optional[dict]:
        user = await self._get_by_phone(phone_number)
        return user.to_dict() if user else None

    async def find_by_id(self, user_id: int) -> Optional[dict]:
        user = await self._get_by_id(user_id)
        return user.to_dict() if user else None

    async def find_by_phone_with_password(self, phone_number: str) -> Optional[dict]:
        user = await self._get_by_phone(phone_number)
        return user.to_dict(include_password=True) if user else None

    async def find_by_id_with_password(self, user_id: int) -> Optional[dict]:
        user = await self._get_by_id(user_id)
        return user.to_dict(include_password=True) if user else None

    async def create(self, user_data: dict) -> dict:
        """Create a user, mapping a duplicate phone number to USR002."""
        if await self._get_by_phone(user_data["phone_number"]):
            raise UserAlreadyExistsException()

        user = User(
            phone_number=user_data["phone_number"],
            hashed_password=user_data["hashed_password"],
            name=user_data["name"],
            last_name=user_data["last_name"],
            role=str(user_data.get("role", Role.NEIGHBOR)),
            status=str(user_data.get("status", UserStatus.PENDING_VERIFICATION)),
        )

        self._session.add(user)
        try:
            await self._session.flush()
        except IntegrityError:
            # Lost a race on the unique index; the request transaction is rolled back by get_db
            logger.warning("Concurrent registration hit the phone number unique constraint")
            raise UserAlreadyExistsException()

        await self._session.refresh(user)
        return user.to_dict()

    async def update(self, user_id: int, patch: dict) -> Optional[dict]:
        """Apply a partial update."""
        unknown = set(patch) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {', '.join(sorted(unknown))}")

        values = {key: str(value) if key in ("role", "status") else value for key, value in patch.items()}
        if values:
            stmt = update(User).where(User.id == user_id).values(**values)
            await self._session.execute(stmt)
            await self._session.flush()

        user = await self._get_by_id(user_id)
        if user:
            await self._session.refresh(user)
        return user.to_dict() if user else None
