"""OAuth Authorization Code model"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from sso_broker.models.database import Base


class OAuthAuthorizationCode(Base):
    """Short-lived, single-use grant artifact"""

    __tablename__ = "oauth_authorization_codes"

    # Primary key
    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    # Code identification (SHA-256 hash of the code)
    code_hash: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        index=True,
    )

    # Relationships
    client_id: Mapped[str] = mapped_column(
        String(255),
        ForeignKey("oauth_clients.client_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        nullable=False,
        index=True,
    )

    # Grant data
    redirect_uri: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Must equal the redirect_uri presented at exchange",
    )
    scope: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Space-separated list of scopes",
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
            f"<OAuthAuthorizationCode(id={self.id}, client_id={self.client_id}, "
            f"used={self.used_at is not None})>"
        )
