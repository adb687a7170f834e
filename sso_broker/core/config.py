"""Application configuration"""

import logging

from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict


class SsoAppConfig(BaseModel):
    """First-party application taking part in internal SSO"""

    name: str
    domain: str
    dev_port: int
    sso_path: str = "/auth/sso"
    enabled: bool = True

    def sso_url(self, development: bool) -> str:
        """Base URL of the application's SSO callback"""
        if development:
            return f"http://localhost:{self.dev_port}{self.sso_path}"
        return f"https://{self.domain}{self.sso_path}"


DEFAULT_SSO_APPS: dict[str, SsoAppConfig] = {
    "my": SsoAppConfig(name="Peeap Pay", domain="my.peeap.com", dev_port=5173),
    "plus": SsoAppConfig(name="Peeap Plus", domain="plus.peeap.com", dev_port=3000),
    "checkout": SsoAppConfig(
        name="Peeap Checkout", domain="checkout.peeap.com", dev_port=5174
    ),
    "developer": SsoAppConfig(
        name="Peeap Developer", domain="developer.peeap.com", dev_port=5175
    ),
}


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(
        env_prefix="SSO_BROKER__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Environment
    environment: str = "development"
    port: int = 8003

    # Database
    db_url: str = "sqlite:///data/sso_broker.db"

    # Redis
    redis_url: str = "redis://localhost:6379/1"

    # Shared key for first-party (internal) endpoints
    internal_api_key: str = "change-me"

    # Secret for the seeded development client (generated when empty)
    default_client_secret: str = ""

    # Lifetimes
    sso_token_expiry_minutes: int = 5
    authorization_code_expiry_minutes: int = 10
    access_token_lifetime: int = 3600  # 1 hour
    refresh_token_lifetime: int = 2592000  # 30 days

    # Expiry sweeper
    enable_sweeper: bool = True
    sweep_interval_seconds: int = 3600
    revoked_retention_days: int = 30

    # Security
    enable_rate_limiting: bool = True
    rate_limit_per_ip: int = 60  # requests per minute
    rate_limit_token_per_ip: int = 20  # /oauth/token, /oauth/revoke, /oauth/introspect
    brute_force_threshold: int = 5  # failed client authentications
    brute_force_lockout_duration: int = 900  # 15 minutes in seconds

    # First-party applications
    sso_apps: dict[str, SsoAppConfig] = DEFAULT_SSO_APPS

    # Logging
    log_level: str = "INFO"

    # Version
    version: str = "0.1.0"

    @property
    def is_production(self) -> bool:
        """Check if running in production"""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development"""
        return self.environment.lower() == "development"


# Create settings instance
settings = Settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger("sso-broker")
