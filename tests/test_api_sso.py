"""
HTTP tests for the internal SSO endpoints.
"""

from urllib.parse import parse_qs, urlsplit

from conftest import CLIENT_ID


def _issue(client, headers, **overrides):
    payload = {"user_id": "u1", "source_app": "my", "target_app": "plus"}
    payload.update(overrides)
    return client.post("/sso/tokens", json=payload, headers=headers)


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Correlation-ID" in response.headers


def test_issue_and_redeem(client, internal_headers):
    response = _issue(client, internal_headers, redirect_path="/dashboard")

    assert response.status_code == 201
    issued = response.json()
    query = parse_qs(urlsplit(issued["redirect_url"]).query)
    assert query["token"] == [issued["token"]]
    assert query["redirect"] == ["/dashboard"]

    response = client.post("/sso/redeem", json={"token": issued["token"]}, headers=internal_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["valid"] is True
    assert data["user_id"] == "u1"
    assert data["target_app"] == "plus"
    assert data["redirect_path"] == "/dashboard"
    assert data["user"]["email"] == "ada@example.com"
    assert data["user"]["roles"] == ["user"]


def test_second_redeem_reports_used(client, internal_headers):
    token = _issue(client, internal_headers).json()["token"]
    client.post("/sso/redeem", json={"token": token}, headers=internal_headers)

    response = client.post("/sso/redeem", json={"token": token}, headers=internal_headers)

    assert response.status_code == 401
    assert response.json()["error_code"] == "InvalidOrUsedToken"


def test_redeem_for_user_not_in_directory(client, internal_headers):
    token = _issue(client, internal_headers, user_id="u-unknown").json()["token"]

    response = client.post("/sso/redeem", json={"token": token}, headers=internal_headers)

    assert response.status_code == 200
    assert response.json()["user"] is None


def test_issue_for_external_target_with_school_metadata(client, internal_headers):
    response = _issue(
        client,
        internal_headers,
        target_app="external",
        client_id=CLIENT_ID,
        scope="school:connect",
        metadata={"kind": "school_connect", "school_id": "sch-42", "is_new_connection": True},
    )
    assert response.status_code == 201
    assert response.json()["redirect_url"] is None

    response = client.post(
        "/sso/redeem", json={"token": response.json()["token"]}, headers=internal_headers
    )
    metadata = response.json()["metadata"]
    assert metadata["kind"] == "school_connect"
    assert metadata["school_id"] == "sch-42"
    assert metadata["is_new_connection"] is True


def test_unknown_application(client, internal_headers):
    response = _issue(client, internal_headers, target_app="elsewhere")

    assert response.status_code == 400
    assert response.json()["error_code"] == "UnknownApplication"


def test_sync_user(client, internal_headers):
    response = client.put(
        "/sso/users/u2",
        json={"email": "grace@example.com", "first_name": "Grace", "roles": ["user", "merchant"]},
        headers=internal_headers,
    )

    assert response.status_code == 200
    assert response.json() == {
        "id": "u2",
        "email": "grace@example.com",
        "first_name": "Grace",
        "last_name": "",
        "phone": None,
        "roles": ["user", "merchant"],
    }

    token = _issue(client, internal_headers, user_id="u2").json()["token"]
    response = client.post("/sso/redeem", json={"token": token}, headers=internal_headers)
    assert response.json()["user"]["first_name"] == "Grace"


def test_invalid_body_is_rejected(client, internal_headers):
    response = client.post("/sso/tokens", json={"user_id": "u1"}, headers=internal_headers)

    assert response.status_code == 422
