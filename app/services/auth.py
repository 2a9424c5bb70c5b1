import logging

from app.core.exceptions import InvalidRefreshTokenException
from app.interfaces.user import IUserRepository
from app.services.credentials import CredentialVerifier
from app.services.refresh_token_store import RefreshTokenStore
from app.services.token_factory import TokenFactory

logger = logging.getLogger(__name__)

USER_SUMMARY_FIELDS = ("id", "phone_number", "name", "last_name", "role")


def user_summary(user: dict) -> dict:
    """Non-sensitive projection returned to clients."""
    return {field: user[field] for field in USER_SUMMARY_FIELDS}


class AuthService:
    def __init__(
        self,
        user_repository: IUserRepository,
        credential_verifier: CredentialVerifier,
        token_factory: TokenFactory,
        refresh_token_store: RefreshTokenStore,
    ):
        self.user_repository = user_repository
        self.credential_verifier = credential_verifier
        self.token_factory = token_factory
        self.refresh_token_store = refresh_token_store

    async def _issue_session(self, user: dict) -> dict:
        tokens = await self.token_factory.generate_token_pair(user)
        await self.refresh_token_store.persist(tokens["refresh_token"], user["id"])
        return {**tokens, "user": user_summary(user)}

    async def login(self, phone_number: str, password: str) -> dict:
        """Authenticate with phone and password.

        Returns:
            Dictionary with access_token, refresh_token and user summary

        Raises:
            InvalidCredentialsException: Unknown phone or wrong password
            AccountNotActiveException: Account is not ACTIVE
        """
        user = await self.credential_verifier.validate_credentials(phone_number, password)
        session = await self._issue_session(user)
        logger.info(f"User {user['id']} logged in")
        return session

    async def refresh(self, refresh_token: str, user_id: int) -> dict:
        """Consume a refresh token and issue a fresh pair.

        The presented token is deleted before the new one is stored, in the
        same transaction. When two requests race on one token only the one
        whose delete removed the row succeeds.

        Raises:
            InvalidRefreshTokenException: Token missing, expired, reused or owner gone
        """
        if not await self.refresh_token_store.find_valid(refresh_token, user_id):
            raise InvalidRefreshTokenException()

        if not await self.refresh_token_store.invalidate(refresh_token):
            logger.warning(f"Refresh token for user {user_id} consumed concurrently")
            raise InvalidRefreshTokenException()

        user = await self.user_repository.find_by_id(user_id)
        if not user:
            logger.warning(f"Refresh token presented for missing user {user_id}")
            raise InvalidRefreshTokenException()

        return await self._issue_session(user)

    async def logout(self, refresh_token: str, user_id: int) -> None:
        """Revoke a refresh token. Unknown tokens are ignored."""
        if await self.refresh_token_store.revoke(refresh_token, user_id):
            logger.info(f"User {user_id} logged out")
