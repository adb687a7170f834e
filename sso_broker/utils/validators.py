"""Input validation utilities"""

import re
from urllib.parse import urlsplit


def validate_scope(scope: str) -> tuple[bool, str | None]:
    """
    Validate scope format

    Args:
        scope: Space-separated scopes

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not scope:
        return True, None  # Empty scope falls back to the default

    scope_regex = r"^[a-zA-Z0-9_:.-]+$"

    for s in scope.split():
        if not re.match(scope_regex, s):
            return False, f"Invalid scope format: {s}"

        if len(s) > 100:
            return False, f"Scope is too long: {s}"

    return True, None


def validate_client_id(client_id: str) -> tuple[bool, str | None]:
    """
    Validate client_id format

    Args:
        client_id: Client ID to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not client_id:
        return False, "Client ID is required"

    if len(client_id) < 3:
        return False, "Client ID must be at least 3 characters long"

    if len(client_id) > 255:
        return False, "Client ID is too long (max 255 characters)"

    # Allow alphanumeric, hyphens, and underscores
    if not re.match(r"^[a-zA-Z0-9_-]+$", client_id):
        return False, "Client ID can only contain letters, numbers, hyphens, and underscores"

    return True, None


def validate_redirect_uri(redirect_uri: str) -> tuple[bool, str | None]:
    """
    Validate a redirect URI for registration

    Requirements:
    - Absolute http(s) URI, or a custom scheme for native apps
    - No fragment

    Args:
        redirect_uri: Redirect URI to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not redirect_uri:
        return False, "Redirect URI is required"

    parts = urlsplit(redirect_uri)

    if not parts.scheme:
        return False, "Redirect URI must be absolute"

    if parts.scheme in ("http", "https") and not parts.netloc:
        return False, "Redirect URI must include a host"

    if parts.fragment:
        return False, "Redirect URI must not contain a fragment"

    return True, None


def validate_redirect_path(path: str | None) -> tuple[bool, str | None]:
    """
    Validate an SSO post-login redirect path

    Only same-origin relative paths are accepted so the target application
    never forwards the browser to a foreign host.

    Args:
        path: Path such as ``/dashboard``

    Returns:
        Tuple of (is_valid, error_message)
    """
    if path is None:
        return True, None

    if not path.startswith("/") or path.startswith("//"):
        return False, "Redirect path must be a relative path starting with '/'"

    if "\\" in path or urlsplit(path).netloc:
        return False, "Redirect path must not name a host"

    return True, None


def validate_lifetime(value: int, name: str = "lifetime") -> tuple[bool, str | None]:
    """Lifetimes must be positive whole numbers"""
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        return False, f"{name} must be a positive integer"
    return True, None
