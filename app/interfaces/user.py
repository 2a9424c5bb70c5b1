from abc import ABC, abstractmethod
from typing import Optional


class IUserRepository(ABC):
    """User directory.

    Plain lookups never expose the password hash; the ``*_with_password``
    variants add a ``hashed_password`` key.
    """

    @abstractmethod
    async def find_by_phone(self, phone_number: str) -> Optional[dict]:
        """Retrieve a user by phone number."""
        pass

    @abstractmethod
    async def find_by_id(self, user_id: int) -> Optional[dict]:
        """Retrieve a user by id."""
        pass

    @abstractmethod
    async def find_by_phone_with_password(self, phone_number: str) -> Optional[dict]:
        """Retrieve a user by phone number including the password hash."""
        pass

    @abstractmethod
    async def find_by_id_with_password(self, user_id: int) -> Optional[dict]:
        """Retrieve a user by id including the password hash."""
        pass

    @abstractmethod
    async def create(self, user_data: dict) -> dict:
        """Create a user.

        Args:
            user_data: phone_number, hashed_password, name, last_name and
                optionally role and status

        Returns:
            The created user without the password hash

        Raises:
            UserAlreadyExistsException: If the phone number is taken
        """
        pass

    @abstractmethod
    async def update(self, user_id: int, patch: dict) -> Optional[dict]:
        """Apply a partial update and return the updated user, or None if absent."""
        pass
