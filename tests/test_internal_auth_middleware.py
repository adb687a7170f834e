"""
Tests for the shared-key guard on first-party endpoints.
"""

import pytest


@pytest.mark.parametrize(
    "method,path",
    [
        ("post", "/sso/tokens"),
        ("post", "/sso/redeem"),
        ("put", "/sso/users/u1"),
        ("post", "/oauth/authorize/decision"),
    ],
)
def test_internal_paths_require_key(client, method, path):
    response = getattr(client, method)(path, json={})

    assert response.status_code == 401
    assert response.json() == {"detail": "unauthorized"}


def test_wrong_key_is_rejected(client):
    response = client.post("/sso/redeem", json={"token": "x"}, headers={"X-Internal-Auth": "nope"})

    assert response.status_code == 401


def test_public_paths_do_not_need_key(client):
    assert client.get("/health").status_code == 200
    assert client.get("/oauth/scopes").status_code == 200


def test_token_endpoint_is_not_internal(client):
    response = client.post(
        "/oauth/token",
        data={"grant_type": "refresh_token", "client_id": "x", "client_secret": "y"},
    )

    # Reaches the handler: missing refresh_token, not unauthorized
    assert response.status_code == 400
    assert response.json()["error_code"] == "InvalidRequest"
