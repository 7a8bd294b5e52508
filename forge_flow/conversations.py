"""Conversation store and chat session.

The store is the only mutator of conversations. It keeps them newest first,
persists them to a local JSON directory keyed by user (or ``guest``) and, when
an authenticated API client is supplied, mirrors every write to the backend.
"""

from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, List, Sequence

import httpx

from .client import ApiError, ForgeApiClient
from .errors import ConversationNotFoundError, GatewayError, PersistenceError, RequestInFlightError
from .llm import ForgeGateway
from .logging import get_logger
from .schemas import ChatTurn, Conversation, FounderProfile, Message, Role

logger = get_logger(__name__)

NEW_CONVERSATION_TITLE = "New Conversation"
TITLE_LIMIT = 50
GUEST_KEY = "guest"


def derive_title(content: str) -> str:
    """Title shown for a conversation whose first message is ``content``."""

    if len(content) > TITLE_LIMIT:
        return content[:TITLE_LIMIT] + "..."
    return content


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LocalStorage:
    """JSON files standing in for browser local storage."""

    def __init__(self, directory: str | Path) -> None:
        self.directory = Path(directory)

    @staticmethod
    def key(kind: str, user_id: str | int | None) -> str:
        return f"forgeai_{kind}_{user_id if user_id is not None else GUEST_KEY}"

    def _path(self, kind: str, user_id: str | int | None) -> Path:
        return self.directory / f"{self.key(kind, user_id)}.json"

    def _read(self, kind: str, user_id: str | int | None):
        path = self._path(kind, user_id)
        if not path.exists():
            return None
        return json.loads(path.read_text(encoding="utf-8"))

    def _write(self, kind: str, user_id: str | int | None, data) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self._path(kind, user_id).write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")

    def load_conversations(self, user_id: str | int | None = None) -> List[Conversation]:
        data = self._read("conversations", user_id) or []
        return [Conversation.model_validate(item) for item in data]

    def save_conversations(self, user_id: str | int | None, conversations: Sequence[Conversation]) -> None:
        self._write(
            "conversations",
            user_id,
            [item.model_dump(mode="json", by_alias=True) for item in conversations],
        )

    def load_profile(self, user_id: str | int | None = None) -> FounderProfile | None:
        data = self._read("profile", user_id)
        return FounderProfile.model_validate(data) if data else None

    def save_profile(self, user_id: str | int | None, profile: FounderProfile) -> None:
        self._write("profile", user_id, profile.model_dump(mode="json"))


class ConversationStore:
    """Ordered conversations (newest first) with a single current one."""

    def __init__(
        self,
        storage: LocalStorage | None = None,
        remote: ForgeApiClient | None = None,
        user_id: str | int | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._storage = storage
        self._remote = remote
        self._user_id = user_id
        self._clock = clock
        self._conversations: List[Conversation] = []
        self._current_id: str | None = None

    @property
    def conversations(self) -> List[Conversation]:
        return list(self._conversations)

    @property
    def current(self) -> Conversation | None:
        if self._current_id is None:
            return None
        return self._find(self._current_id)

    @property
    def is_remote(self) -> bool:
        return self._remote is not None and self._remote.is_authenticated

    def _find(self, conversation_id: str) -> Conversation | None:
        return next((item for item in self._conversations if item.id == conversation_id), None)

    def _require(self, conversation_id: str | None) -> Conversation:
        target = conversation_id or self._current_id
        conversation = self._find(target) if target else None
        if conversation is None:
            raise ConversationNotFoundError(target)
        return conversation

    def _replace(self, updated: Conversation) -> None:
        self._conversations = [updated if item.id == updated.id else item for item in self._conversations]

    def _persist(self) -> None:
        if self._storage is not None:
            self._storage.save_conversations(self._user_id, self._conversations)

    def _remote_call(self, action: str, call, *args):
        try:
            return call(*args)
        except (ApiError, httpx.HTTPError) as exc:
            logger.error("conversation sync failed", action=action, error=str(exc))
            raise PersistenceError(f"Failed to {action}: {exc}") from exc

    def load(self) -> List[Conversation]:
        """Restore conversations from the backend or the local directory."""

        if self.is_remote:
            loaded = self._remote_call("load conversations", self._remote.list_conversations)
        elif self._storage is not None:
            loaded = self._storage.load_conversations(self._user_id)
        else:
            loaded = []
        self._conversations = list(loaded)
        if self._conversations:
            self._current_id = self._conversations[0].id
        else:
            self.create_conversation()
        return self.conversations

    def create_conversation(self) -> Conversation:
        if self.is_remote:
            conversation = self._remote_call(
                "create conversation", self._remote.create_conversation, NEW_CONVERSATION_TITLE
            )
        else:
            conversation = Conversation(
                id=str(uuid.uuid4()),
                title=NEW_CONVERSATION_TITLE,
                messages=[],
                created_at=self._clock(),
            )
        self._conversations.insert(0, conversation)
        self._current_id = conversation.id
        self._persist()
        return conversation

    def add_message(self, role: Role | str, content: str, conversation_id: str | None = None) -> Message:
        conversation = self._require(conversation_id)
        role = Role(role)
        message = Message(id=str(uuid.uuid4()), role=role, content=content, timestamp=self._clock())

        title = conversation.title
        if not conversation.messages and role is Role.USER:
            title = derive_title(content)
        optimistic = conversation.model_copy(update={"messages": [*conversation.messages, message], "title": title})
        self._replace(optimistic)

        if self.is_remote:
            try:
                message = self._remote_call(
                    "save message", self._remote.add_message, conversation.id, role, content
                )
            except PersistenceError:
                self._replace(conversation)
                raise
            self._replace(optimistic.model_copy(update={"messages": [*conversation.messages, message]}))

        self._persist()
        return message

    def switch_conversation(self, conversation_id: str) -> Conversation:
        conversation = self._require(conversation_id)
        self._current_id = conversation.id
        return conversation

    def clear(self) -> Conversation | None:
        current = self.current
        if current is None:
            return None
        cleared = current.model_copy(update={"messages": [], "title": NEW_CONVERSATION_TITLE})
        self._replace(cleared)
        self._persist()
        return cleared

    def delete_conversation(self, conversation_id: str) -> None:
        if self._find(conversation_id) is None:
            return
        if self.is_remote:
            self._remote_call("delete conversation", self._remote.delete_conversation, conversation_id)
        self._conversations = [item for item in self._conversations if item.id != conversation_id]
        if self._current_id == conversation_id:
            if self._conversations:
                self._current_id = self._conversations[0].id
            else:
                self.create_conversation()
                return
        self._persist()


class ChatSession:
    """Chat screen logic: one outstanding send at a time."""

    def __init__(self, store: ConversationStore, gateway: ForgeGateway) -> None:
        self.store = store
        self._gateway = gateway
        self.sending = False

    def send(self, text: str, profile: FounderProfile | None = None) -> Message:
        """Send ``text`` and return the assistant message that answers it."""

        content = text.strip()
        if not content:
            raise ValueError("Message must not be empty.")
        if self.sending:
            raise RequestInFlightError("A message is already being sent.")

        self.sending = True
        try:
            conversation = self.store.current or self.store.create_conversation()
            history = [ChatTurn(role=item.role, content=item.content) for item in conversation.messages]
            self.store.add_message(Role.USER, content, conversation.id)
            try:
                reply = self._gateway.chat(content, history, profile)
            except GatewayError as exc:
                reply = f"Sorry, I encountered an error: {exc.message}"
            return self.store.add_message(Role.ASSISTANT, reply, conversation.id)
        finally:
            self.sending = False
