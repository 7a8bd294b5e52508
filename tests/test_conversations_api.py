from __future__ import annotations

from fastapi.testclient import TestClient


def _auth_headers(client: TestClient, email: str = "ravi@example.com") -> dict[str, str]:
    response = client.post("/api/auth/register", json={"email": email, "password": "pw-123456", "name": "Ravi"})
    return {"Authorization": f"Bearer {response.json()['token']}"}


def test_conversations_require_a_session(client: TestClient) -> None:
    response = client.get("/api/conversations")

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_create_defaults_title_and_starts_empty(client: TestClient) -> None:
    headers = _auth_headers(client)

    created = client.post("/api/conversations", json={}, headers=headers).json()

    assert created["title"] == "New Chat"
    assert created["messages"] == []
    assert "createdAt" in created
    assert isinstance(created["id"], str)


def test_messages_are_listed_in_order_with_recent_conversation_first(client: TestClient) -> None:
    headers = _auth_headers(client)
    older = client.post("/api/conversations", json={"title": "Pricing"}, headers=headers).json()
    newer = client.post("/api/conversations", json={"title": "Hiring"}, headers=headers).json()

    for role, content in [("user", "How should I price?"), ("assistant", "Per litre saved.")]:
        response = client.post(
            f"/api/conversations/{older['id']}/messages",
            json={"role": role, "content": content},
            headers=headers,
        )
        assert response.status_code == 200

    listed = client.get("/api/conversations", headers=headers).json()

    assert [item["id"] for item in listed] == [older["id"], newer["id"]]
    assert [message["content"] for message in listed[0]["messages"]] == ["How should I price?", "Per litre saved."]
    assert [message["role"] for message in listed[0]["messages"]] == ["user", "assistant"]


def test_foreign_conversation_is_not_found(client: TestClient) -> None:
    owner = _auth_headers(client, "owner@example.com")
    intruder = _auth_headers(client, "intruder@example.com")
    conversation = client.post("/api/conversations", json={"title": "Secret"}, headers=owner).json()

    response = client.post(
        f"/api/conversations/{conversation['id']}/messages",
        json={"role": "user", "content": "hi"},
        headers=intruder,
    )

    assert response.status_code == 404
    assert response.json() == {"error": "Conversation not found"}
    assert client.get("/api/conversations", headers=intruder).json() == []


def test_invalid_role_is_a_bad_request(client: TestClient) -> None:
    headers = _auth_headers(client)
    conversation = client.post("/api/conversations", json={}, headers=headers).json()

    response = client.post(
        f"/api/conversations/{conversation['id']}/messages",
        json={"role": "system", "content": "hi"},
        headers=headers,
    )

    assert response.status_code == 400


def test_delete_removes_conversation_and_ignores_unknown_ids(client: TestClient) -> None:
    headers = _auth_headers(client)
    conversation = client.post("/api/conversations", json={}, headers=headers).json()
    client.post(
        f"/api/conversations/{conversation['id']}/messages",
        json={"role": "user", "content": "bye"},
        headers=headers,
    )

    assert client.delete(f"/api/conversations/{conversation['id']}", headers=headers).json() == {"success": True}
    assert client.delete("/api/conversations/9999", headers=headers).json() == {"success": True}
    assert client.delete("/api/conversations/not-a-number", headers=headers).json() == {"success": True}
    assert client.get("/api/conversations", headers=headers).json() == []


def test_health_reports_database(client: TestClient) -> None:
    assert client.get("/api/health").json() == {"status": "ok", "database": True}
