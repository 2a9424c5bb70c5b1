"""SQLAlchemy ORM models."""
from app.models.user import User
from app.models.refresh_token import RefreshToken

__all__ = [
    "User",
    "RefreshToken",
]
