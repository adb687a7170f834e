"""OAuth Client model"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from sso_broker.models.database import Base


class OAuthClient(Base):
    """OAuth Client model for third-party integrations"""

    __tablename__ = "oauth_clients"

    # Primary key
    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    # Client identification
    client_id: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    client_secret_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="bcrypt hash, verified only during code exchange and refresh",
    )

    # Client information
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )
    logo_url: Mapped[str | None] = mapped_column(
        String(2048),
        nullable=True,
    )
    website_url: Mapped[str | None] = mapped_column(
        String(2048),
        nullable=True,
    )

    # Permissions
    redirect_uris: Mapped[list[str]] = mapped_column(
        JSON,
        nullable=False,
        default=list,
        comment="Ordered allow-list, matched verbatim",
    )
    allowed_scopes: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Space-separated list of allowed scopes",
    )

    # Status
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
        return f"<OAuthClient(id={self.id}, client_id={self.client_id}, name={self.name})>"

    @property
    def scope_set(self) -> set[str]:
        return set(self.allowed_scopes.split())
