"""
Unit tests for token generation and hashing.
"""

import re

from sso_broker.utils.crypto import (
    constant_time_compare,
    generate_secret,
    generate_token,
    hash_secret,
    hash_token,
    verify_secret,
)

URL_SAFE = re.compile(r"^[A-Za-z0-9_-]+$")


def test_generate_token_is_url_safe():
    token = generate_token()
    assert URL_SAFE.match(token)
    assert "=" not in token


def test_generate_token_length_follows_byte_length():
    # 32 bytes of base64 without padding
    assert len(generate_token(32)) == 43
    assert len(generate_token(16)) == 22


def test_generate_token_never_repeats():
    tokens = {generate_token() for _ in range(1000)}
    assert len(tokens) == 1000


def test_generate_secret_is_hex():
    secret = generate_secret()
    assert len(secret) == 64
    int(secret, 16)


def test_hash_token_is_stable_sha256_hex():
    assert hash_token("abc") == hash_token("abc")
    assert hash_token("abc") != hash_token("abd")
    assert re.match(r"^[0-9a-f]{64}$", hash_token("abc"))


def test_verify_secret():
    hashed = hash_secret("s3cret-value-long-enough")

    assert hashed != "s3cret-value-long-enough"
    assert verify_secret("s3cret-value-long-enough", hashed)
    assert not verify_secret("wrong", hashed)


def test_verify_secret_rejects_empty_values():
    hashed = hash_secret("s3cret-value-long-enough")

    assert not verify_secret("", hashed)
    assert not verify_secret("s3cret-value-long-enough", None)


def test_constant_time_compare():
    assert constant_time_compare("key", "key")
    assert not constant_time_compare("key", "other")
