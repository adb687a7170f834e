"""Cryptography utilities"""

import hashlib
import secrets

from passlib.context import CryptContext

# Client secret hashing context with bcrypt
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=12,  # Cost factor
)


def hash_secret(secret: str) -> str:
    """
    Hash a client secret using bcrypt

    Args:
        secret: Plain text secret

    Returns:
        Hashed secret
    """
    return pwd_context.hash(secret)


def verify_secret(plain_secret: str, hashed_secret: str | None) -> bool:
    """
    Verify a client secret against a hash (constant-time comparison)

    Args:
        plain_secret: Plain text secret to verify
        hashed_secret: Hashed secret to compare against

    Returns:
        True if secret matches, False otherwise
    """
    if not plain_secret or not hashed_secret:
        return False
    return pwd_context.verify(plain_secret, hashed_secret)


def hash_token(token: str) -> str:
    """
    Hash a bearer value (SSO token, code, access or refresh token) using SHA-256

    Args:
        token: Opaque token to hash

    Returns:
        Hexadecimal hash string (64 characters)
    """
    return hashlib.sha256(token.encode()).hexdigest()


def generate_token(byte_length: int = 32) -> str:
    """
    Generate an unguessable, URL-safe bearer value

    Args:
        byte_length: Number of random bytes

    Returns:
        URL-safe base64 string without padding
    """
    return secrets.token_urlsafe(byte_length)


def generate_secret(length: int = 32) -> str:
    """
    Generate a cryptographically secure client secret

    Args:
        length: Length of the secret in bytes

    Returns:
        Hexadecimal secret string
    """
    return secrets.token_hex(length)


def constant_time_compare(a: str, b: str) -> bool:
    """Compare two strings in constant time"""
    return secrets.compare_digest(a.encode(), b.encode())
