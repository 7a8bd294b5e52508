"""HTTP client for the account and conversation API."""

from __future__ import annotations

from typing import Any, List

import httpx

from .schemas import AuthResponse, Conversation, Message, Role

DEFAULT_BASE_URL = "http://localhost:8000"
MIN_PASSWORD_LENGTH = 6


class ApiError(Exception):
    """Non-2xx answer from the backend."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


def validate_registration(password: str, confirm_password: str) -> None:
    """Check the register form before anything is sent."""

    if password != confirm_password:
        raise ValueError("Passwords do not match")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")


class ForgeApiClient:
    """Bearer-token client mirroring the backend routes under ``/api``.

    The token is captured on register/login and dropped on logout. Pass an
    existing ``httpx.Client`` (for example a FastAPI ``TestClient``) to reuse
    its transport.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        token: str | None = None,
        http: httpx.Client | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._http = http or httpx.Client(base_url=base_url, timeout=timeout)
        self._owns_http = http is None
        self.token = token

    def __enter__(self) -> "ForgeApiClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    @property
    def is_authenticated(self) -> bool:
        return self.token is not None

    def _request(self, method: str, path: str, payload: dict | None = None) -> Any:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        response = self._http.request(method, f"/api{path}", json=payload, headers=headers)
        if response.is_error:
            try:
                message = response.json().get("error") or "Request failed"
            except ValueError:
                message = "Request failed"
            raise ApiError(response.status_code, message)
        return response.json()

    def register(self, email: str, password: str, name: str, confirm_password: str | None = None) -> AuthResponse:
        """Create an account. Omitting ``confirm_password`` skips the mismatch check only."""

        validate_registration(password, password if confirm_password is None else confirm_password)
        result = AuthResponse.model_validate(
            self._request("POST", "/auth/register", {"email": email, "password": password, "name": name})
        )
        self.token = result.token
        return result

    def login(self, email: str, password: str) -> AuthResponse:
        result = AuthResponse.model_validate(
            self._request("POST", "/auth/login", {"email": email, "password": password})
        )
        self.token = result.token
        return result

    def logout(self) -> None:
        self._request("POST", "/auth/logout")
        self.token = None

    def list_conversations(self) -> List[Conversation]:
        return [Conversation.model_validate(item) for item in self._request("GET", "/conversations")]

    def create_conversation(self, title: str | None = None) -> Conversation:
        return Conversation.model_validate(self._request("POST", "/conversations", {"title": title}))

    def add_message(self, conversation_id: str, role: Role | str, content: str) -> Message:
        payload = {"role": Role(role).value, "content": content}
        return Message.model_validate(
            self._request("POST", f"/conversations/{conversation_id}/messages", payload)
        )

    def delete_conversation(self, conversation_id: str) -> None:
        self._request("DELETE", f"/conversations/{conversation_id}")
