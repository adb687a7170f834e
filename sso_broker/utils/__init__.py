"""Utility modules"""

from sso_broker.utils.clock import ensure_utc, utc_now
from sso_broker.utils.crypto import (
    constant_time_compare,
    generate_secret,
    generate_token,
    hash_secret,
    hash_token,
    verify_secret,
)
from sso_broker.utils.validators import (
    validate_client_id,
    validate_lifetime,
    validate_redirect_path,
    validate_redirect_uri,
    validate_scope,
)

__all__ = [
    "utc_now",
    "ensure_utc",
    "hash_secret",
    "verify_secret",
    "hash_token",
    "generate_token",
    "generate_secret",
    "constant_time_compare",
    "validate_scope",
    "validate_client_id",
    "validate_redirect_uri",
    "validate_redirect_path",
    "validate_lifetime",
]
