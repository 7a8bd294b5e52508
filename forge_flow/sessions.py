"""In-process bearer token registry."""

from __future__ import annotations

import secrets
import threading
from typing import Dict


class SessionRegistry:
    """Thread-safe map of opaque session tokens to user ids.

    Tokens live until logout or process shutdown; there is no expiry.
    """

    def __init__(self) -> None:
        self._tokens: Dict[str, int] = {}
        self._lock = threading.Lock()

    def issue(self, user_id: int) -> str:
        token = secrets.token_urlsafe(32)
        with self._lock:
            self._tokens[token] = user_id
        return token

    def resolve(self, token: str | None) -> int | None:
        if not token:
            return None
        with self._lock:
            return self._tokens.get(token)

    def revoke(self, token: str | None) -> bool:
        if not token:
            return False
        with self._lock:
            return self._tokens.pop(token, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._tokens.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._tokens)
