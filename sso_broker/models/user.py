"""User directory model"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from sso_broker.models.database import Base


class User(Base):
    """Profile fields needed to bootstrap a session in a target application"""

    __tablename__ = "users"

    # Primary key (owned by the account system, not generated here)
    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    # Profile
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )
    first_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="User",
    )
    last_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="",
    )
    phone: Mapped[str | None] = mapped_column(
        String(32),
        nullable=True,
    )
    roles: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default="user",
        comment="Comma-separated list of roles",
    )

    # Status flags
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        index=True,
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"

    @property
    def role_list(self) -> list[str]:
        return [r for r in self.roles.split(",") if r]
