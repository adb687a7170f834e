"""SSO Token model"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from sso_broker.models.database import Base


class SsoToken(Base):
    """One-time cross-domain login ticket"""

    __tablename__ = "sso_tokens"

    # Primary key
    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    # Token identification (SHA-256 hash of the opaque token)
    token_hash: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        index=True,
    )

    # Owner and routing
    user_id: Mapped[str] = mapped_column(
        String(36),
        nullable=False,
        index=True,
    )
    source_app: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )
    target_app: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="First-party app name, or 'external' when bridging into OAuth",
    )
    tier: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )
    redirect_path: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    # OAuth bridging
    client_id: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    scope: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    # Structured extension record (see schemas.sso.SsoMetadata)
    extension: Mapped[dict | None] = mapped_column(
        "metadata",
        JSON,
        nullable=True,
    )

    # Lifecycle
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )
    used_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<SsoToken(id={self.id}, user_id={self.user_id}, "
            f"{self.source_app}->{self.target_app}, used={self.used_at is not None})>"
        )
