"""User SQLAlchemy model."""
from datetime import datetime, timezone
from typing import TYPE_CHECKING
from sqlalchemy import String, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.core.database import Base
from app.core.constants import Role, UserStatus

if TYPE_CHECKING:
    from app.models.refresh_token import RefreshToken


class User(Base):
    """Resident or administrator identified by phone number."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    phone_number: Mapped[str] = mapped_column(
        String(20), unique=True, nullable=False, index=True
    )
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    last_name: Mapped[str] = mapped_column(String(50), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20), default=Role.NEIGHBOR.value, nullable=False
    )
    status: Mapped[str] = mapped_column(
        String(30), default=UserStatus.PENDING_VERIFICATION.value, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    password_updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    refresh_tokens: Mapped[list["RefreshToken"]] = relationship(
        "RefreshToken", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )

    def to_dict(self, include_password: bool = False) -> dict:
        """Convert model to dictionary. The password hash is only included on request."""
        data = {
            "id": self.id,
            "phone_number": self.phone_number,
            "name": self.name,
            "last_name": self.last_name,
            "role": self.role,
            "status": self.status,
            "created_at": self.created_at,
            "password_updated_at": self.password_updated_at,
        }
        if include_password:
            data["hashed_password"] = self.hashed_password
        return data

    def __repr__(self) -> str:
        return f"<User(id={self.id}, phone_number={self.phone_number}, status={self.status})>"
