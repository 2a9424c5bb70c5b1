"""In-memory repositories for development and tests."""
import asyncio
from datetime import datetime, timezone
from typing import Any, Optional

from app.core.constants import Role, UserStatus
from app.core.exceptions import UserAlreadyExistsException
from app.interfaces.refresh_token import IRefreshTokenRepository
from app.interfaces.user import IUserRepository

_USER_FIELDS = ("name", "last_name", "role", "status", "hashed_password", "password_updated_at")


def _public(user: dict[str, Any]) -> dict:
    data = dict(user)
    data.pop("hashed_password", None)
    return data


class InMemoryUserRepository(IUserRepository):
    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._users_by_id: dict[int, dict[str, Any]] = {}
        self._ids_by_phone: dict[str, int] = {}
        self._next_id = 1

    async def find_by_phone(self, phone_number: str) -> Optional[dict]:
        user = await self.find_by_phone_with_password(phone_number)
        return _public(user) if user else None

    async def find_by_id(self, user_id: int) -> Optional[dict]:
        user = await self.find_by_id_with_password(user_id)
        return _public(user) if user else None

    async def find_by_phone_with_password(self, phone_number: str) -> Optional[dict]:
        async with self._lock:
            user_id = self._ids_by_phone.get(phone_number)
            if user_id is None:
                return None
            return dict(self._users_by_id[user_id])

    async def find_by_id_with_password(self, user_id: int) -> Optional[dict]:
        async with self._lock:
            user = self._users_by_id.get(user_id)
            return dict(user) if user else None

    async def create(self, user_data: dict) -> dict:
        async with self._lock:
            phone_number = user_data["phone_number"]
            if phone_number in self._ids_by_phone:
                raise UserAlreadyExistsException()

            user_id = self._next_id
            self._next_id += 1
            user = {
                "id": user_id,
                "phone_number": phone_number,
                "hashed_password": user_data["hashed_password"],
                "name": user_data["name"],
                "last_name": user_data["last_name"],
                "role": str(user_data.get("role", Role.NEIGHBOR)),
                "status": str(user_data.get("status", UserStatus.PENDING_VERIFICATION)),
                "created_at": user_data.get("created_at", datetime.now(timezone.utc)),
                "password_updated_at": user_data.get("password_updated_at"),
            }
            self._users_by_id[user_id] = user
            self._ids_by_phone[phone_number] = user_id
            return _public(user)

    async def update(self, user_id: int, patch: dict) -> Optional[dict]:
        async with self._lock:
            user = self._users_by_id.get(user_id)
            if not user:
                return None
            for key, value in patch.items():
                if key not in _USER_FIELDS:
                    raise ValueError(f"Unknown user field: {key}")
                user[key] = str(value) if key in ("role", "status") else value
            return _public(user)


class InMemoryRefreshTokenRepository(IRefreshTokenRepository):
    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._by_id: dict[int, dict[str, Any]] = {}
        self._next_id = 1

    async def save(self, record: dict) -> dict:
        async with self._lock:
            if any(existing["token"] == record["token"] for existing in self._by_id.values()):
                raise ValueError("Refresh token already stored")
            record_id = self._next_id
            self._next_id += 1
            stored = {
                "id": record_id,
                "token": record["token"],
                "user_id": record["user_id"],
                "expires_at": record["expires_at"],
                "created_at": record.get("created_at", datetime.now(timezone.utc)),
            }
            self._by_id[record_id] = stored
            return dict(stored)

    async def find_one(self, token: str, user_id: int) -> Optional[dict]:
        async with self._lock:
            for record in self._by_id.values():
                if record["token"] == token and record["user_id"] == user_id:
                    return dict(record)
            return None

    async def delete(self, record_id: int) -> bool:
        async with self._lock:
            return self._by_id.pop(record_id, None) is not None

    async def delete_by_token(self, token: str) -> bool:
        async with self._lock:
            for record_id, record in self._by_id.items():
                if record["token"] == token:
                    del self._by_id[record_id]
                    return True
            return False

    async def delete_all_for_user(self, user_id: int) -> int:
        async with self._lock:
            doomed = [record_id for record_id, record in self._by_id.items() if record["user_id"] == user_id]
            for record_id in doomed:
                del self._by_id[record_id]
            return len(doomed)
