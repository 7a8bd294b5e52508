from __future__ import annotations

from fastapi.testclient import TestClient

from forge_flow.app import create_app
from forge_flow.auth import hash_password, verify_password
from forge_flow.config import ForgeSettings

CREDENTIALS = {"email": "asha@example.com", "password": "milk-chain-2026", "name": "Asha"}


def _register(client: TestClient) -> dict:
    response = client.post("/api/auth/register", json=CREDENTIALS)
    assert response.status_code == 200
    return response.json()


def test_register_returns_user_and_token(client: TestClient) -> None:
    data = _register(client)

    assert data["user"]["email"] == CREDENTIALS["email"]
    assert data["user"]["name"] == "Asha"
    assert isinstance(data["user"]["id"], int)
    assert data["token"]
    assert "password" not in str(data)


def test_register_requires_every_field(client: TestClient) -> None:
    response = client.post("/api/auth/register", json={"email": "a@b.c", "password": "x"})

    assert response.status_code == 400
    assert response.json() == {"error": "All fields are required"}


def test_register_rejects_duplicate_email(client: TestClient) -> None:
    _register(client)

    response = client.post("/api/auth/register", json=CREDENTIALS)

    assert response.status_code == 400
    assert response.json() == {"error": "Email already registered"}


def test_login_with_wrong_password_is_generic(client: TestClient) -> None:
    _register(client)

    wrong_password = client.post("/api/auth/login", json={"email": CREDENTIALS["email"], "password": "nope"})
    unknown_email = client.post("/api/auth/login", json={"email": "who@example.com", "password": "nope"})

    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json() == {"error": "Invalid credentials"}


def test_login_requires_email_and_password(client: TestClient) -> None:
    response = client.post("/api/auth/login", json={"email": CREDENTIALS["email"]})

    assert response.status_code == 400
    assert response.json() == {"error": "Email and password are required"}


def test_login_then_logout_revokes_token(client: TestClient) -> None:
    _register(client)
    token = client.post(
        "/api/auth/login",
        json={"email": CREDENTIALS["email"], "password": CREDENTIALS["password"]},
    ).json()["token"]
    headers = {"Authorization": f"Bearer {token}"}

    assert client.get("/api/conversations", headers=headers).status_code == 200
    assert client.post("/api/auth/logout", headers=headers).json() == {"success": True}
    assert client.get("/api/conversations", headers=headers).status_code == 401


def test_logout_without_token_still_succeeds(client: TestClient) -> None:
    response = client.post("/api/auth/logout")

    assert response.status_code == 200
    assert response.json() == {"success": True}


def test_malformed_body_is_a_bad_request(client: TestClient) -> None:
    response = client.post("/api/auth/register", json={"email": ["not", "a", "string"]})

    assert response.status_code == 400
    assert "error" in response.json()


def test_auth_without_database_is_unavailable() -> None:
    app = create_app(settings=ForgeSettings(json_logs=False))
    with TestClient(app) as client:
        response = client.post("/api/auth/register", json=CREDENTIALS)
        health = client.get("/api/health")

    assert response.status_code == 503
    assert response.json()["error"].startswith("Database not configured")
    assert health.json() == {"status": "ok", "database": False}


def test_password_hashes_are_salted() -> None:
    first = hash_password("secret", iterations=1000)
    second = hash_password("secret", iterations=1000)

    assert first != second
    assert verify_password("secret", first)
    assert not verify_password("Secret", first)
    assert not verify_password("secret", "garbage")
