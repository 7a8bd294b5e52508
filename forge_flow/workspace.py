"""View orchestration for the analyze / discover / compose / chat screens.

Each screen owns a :class:`ScreenSlot`, a small state machine over
``idle -> pending -> succeeded | failed``. Moving a slot is the only way to
change its state; a slot that is already pending refuses a second request,
which is what keeps every screen single-flight.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Tuple

from .composer import Composer
from .conversations import ChatSession, ConversationStore, LocalStorage
from .errors import InvalidTransitionError, RequestInFlightError, error_message
from .llm import ForgeGateway
from .logging import get_logger
from .profile import apply_form_edit
from .schemas import (
    ActionPlan,
    AnalysisResult,
    DiscoveryResult,
    FounderProfile,
    LiveData,
    Message,
    Priority,
    Problem,
)

logger = get_logger(__name__)


class Screen(str, Enum):
    ANALYZE = "analyze"
    DISCOVER = "discover"
    COMPOSE = "compose"
    CHAT = "chat"


class RequestState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


TRANSITIONS: Dict[RequestState, FrozenSet[RequestState]] = {
    RequestState.IDLE: frozenset({RequestState.PENDING}),
    RequestState.PENDING: frozenset({RequestState.SUCCEEDED, RequestState.FAILED}),
    RequestState.SUCCEEDED: frozenset({RequestState.PENDING}),
    RequestState.FAILED: frozenset({RequestState.PENDING}),
}

Signature = Tuple[str, str]


@dataclass
class ScreenSlot:
    """Request lifecycle of one screen."""

    screen: Screen
    state: RequestState = RequestState.IDLE
    error: str | None = None
    last_signature: Signature | None = None

    def _move(self, target: RequestState) -> None:
        if target not in TRANSITIONS[self.state]:
            if self.state is RequestState.PENDING and target is RequestState.PENDING:
                raise RequestInFlightError(f"The {self.screen.value} screen already has a request running.")
            raise InvalidTransitionError(f"{self.screen.value}: cannot go from {self.state.value} to {target.value}.")
        logger.debug("screen transition", screen=self.screen.value, source=self.state.value, target=target.value)
        self.state = target

    def begin(self, signature: Signature | None = None) -> bool:
        """Enter ``pending``. Returns False if ``signature`` is the request already held."""

        if signature is not None and signature == self.last_signature:
            return False
        self._move(RequestState.PENDING)
        self.error = None
        self.last_signature = signature
        return True

    def succeed(self) -> None:
        self._move(RequestState.SUCCEEDED)

    def fail(self, message: str) -> None:
        self._move(RequestState.FAILED)
        self.error = message
        self.last_signature = None

    @property
    def busy(self) -> bool:
        return self.state is RequestState.PENDING


def problem_signature(statement: str, profile: FounderProfile) -> Signature:
    return statement.strip(), profile.model_dump_json()


class Workspace:
    """Top-level state shared by the four screens of one user session."""

    def __init__(
        self,
        gateway: ForgeGateway,
        profile: FounderProfile | None = None,
        store: ConversationStore | None = None,
        workspace_id: str | None = None,
        storage: LocalStorage | None = None,
    ) -> None:
        self.id = workspace_id or str(uuid.uuid4())
        self._gateway = gateway
        self._storage = storage
        if profile is None and storage is not None:
            profile = storage.load_profile()
        self.profile = profile or FounderProfile()
        self.screen = Screen.ANALYZE
        self.analysis: AnalysisResult | None = None
        self.discovery: DiscoveryResult | None = None
        self.analyze_input = ""
        self.slots: Dict[Screen, ScreenSlot] = {screen: ScreenSlot(screen) for screen in Screen}
        self.composer = Composer(gateway)
        if store is None:
            store = ConversationStore(storage=storage)
            if storage is not None:
                store.load()
        self.chat = ChatSession(store, gateway)

    # -- navigation ---------------------------------------------------------

    @property
    def compose_enabled(self) -> bool:
        return Composer.is_available(self.analysis)

    def select_screen(self, screen: Screen | str) -> Screen:
        # Compose stays selectable without an analysis so its empty state can be shown.
        self.screen = Screen(screen)
        return self.screen

    # -- profile ------------------------------------------------------------

    def edit_profile(self, field_name: str, raw_value: Any) -> FounderProfile:
        return self.set_profile(apply_form_edit(self.profile, field_name, raw_value))

    def set_profile(self, profile: FounderProfile) -> FounderProfile:
        self.profile = profile
        if self._storage is not None:
            self._storage.save_profile(None, profile)
        return self.profile

    # -- gateway-backed screens --------------------------------------------

    def _run_analysis(self, slot: ScreenSlot, problem: str) -> AnalysisResult:
        self.analysis = None
        profile = self.profile
        try:
            result = self._gateway.analyze(problem, profile)
        except Exception as exc:
            slot.fail(error_message(exc))
            raise
        self.analysis = result
        slot.succeed()
        logger.info("analysis stored", workspace_id=self.id, chunks=len(result.chunks))
        return result

    def submit_analysis(self, problem: str) -> AnalysisResult:
        problem = problem.strip()
        if not problem:
            raise ValueError("Enter a problem to analyze.")
        slot = self.slots[Screen.ANALYZE]
        slot.begin()
        self.analyze_input = problem
        return self._run_analysis(slot, problem)

    def submit_discovery(self, sector: str) -> DiscoveryResult:
        sector = sector.strip()
        if not sector:
            raise ValueError("Enter a sector to scan.")
        slot = self.slots[Screen.DISCOVER]
        slot.begin()
        self.discovery = None
        try:
            result = self._gateway.discover(sector, self.profile)
        except Exception as exc:
            slot.fail(error_message(exc))
            raise
        self.discovery = result
        slot.succeed()
        logger.info("discovery stored", workspace_id=self.id, problems=len(result.problems))
        return result

    def select_problem(self, problem: Problem | str) -> AnalysisResult | None:
        """Seed the analyze screen with a discovered problem and analyze it once.

        Selecting the statement currently held again, with an unchanged
        profile, only switches screens and issues no second request. Any other
        selection, including an earlier one, is analyzed afresh.
        """

        statement = problem.problem_statement if isinstance(problem, Problem) else problem
        statement = statement.strip()
        if not statement:
            raise ValueError("Selected problem has no statement.")
        self.select_screen(Screen.ANALYZE)
        self.analyze_input = statement

        slot = self.slots[Screen.ANALYZE]
        if not slot.begin(problem_signature(statement, self.profile)):
            return self.analysis
        return self._run_analysis(slot, statement)

    def compose(
        self,
        live_data: Iterable[LiveData] = (),
        priority: Priority | str = Priority.HIGH,
    ) -> ActionPlan:
        slot = self.slots[Screen.COMPOSE]
        priority = Priority(priority)
        opportunities = self.discovery.problems if self.discovery else []
        if not self.compose_enabled:
            # Raises without touching the slot or the network.
            return self.composer.compose(self.analysis, opportunities, live_data, priority)
        slot.begin()
        try:
            plan = self.composer.compose(self.analysis, opportunities, live_data, priority)
        except Exception as exc:
            slot.fail(error_message(exc))
            raise
        slot.succeed()
        return plan

    def send_chat(self, text: str) -> Message:
        slot = self.slots[Screen.CHAT]
        slot.begin()
        try:
            reply = self.chat.send(text, self.profile)
        except Exception as exc:
            slot.fail(error_message(exc))
            raise
        slot.succeed()
        return reply

    # -- serialization ------------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        plan = self.composer.plan
        current = self.chat.store.current
        return {
            "id": self.id,
            "screen": self.screen.value,
            "compose_enabled": self.compose_enabled,
            "profile": self.profile.model_dump(mode="json"),
            "analyze_input": self.analyze_input,
            "screens": {
                screen.value: {"state": slot.state.value, "error": slot.error}
                for screen, slot in self.slots.items()
            },
            "analysis": self.analysis.model_dump(mode="json") if self.analysis else None,
            "discovery": self.discovery.model_dump(mode="json") if self.discovery else None,
            "composer": {
                "state": self.composer.state.value,
                "error": self.composer.error,
                "plan": plan.model_dump(mode="json") if plan else None,
                "heartbeat": self.composer.heartbeat.remaining,
                "heartbeat_display": self.composer.heartbeat.display,
            },
            "conversation": current.model_dump(mode="json", by_alias=True) if current else None,
        }


class WorkspaceRegistry:
    """Process-scoped map of live workspaces, injected through ``app.state``.

    With ``storage`` set, new workspaces restore the saved profile and chat
    history and write them back as they change.
    """

    def __init__(self, storage: LocalStorage | None = None) -> None:
        self._storage = storage
        self._workspaces: Dict[str, Workspace] = {}

    def create(self, gateway: ForgeGateway, profile: FounderProfile | None = None) -> Workspace:
        workspace = Workspace(gateway, profile, storage=self._storage)
        if profile is not None:
            workspace.set_profile(profile)
        self._workspaces[workspace.id] = workspace
        logger.info("workspace created", workspace_id=workspace.id)
        return workspace

    def get(self, workspace_id: str) -> Workspace | None:
        return self._workspaces.get(workspace_id)

    def drop(self, workspace_id: str) -> None:
        self._workspaces.pop(workspace_id, None)

    def clear(self) -> None:
        self._workspaces.clear()

    def __len__(self) -> int:
        return len(self._workspaces)
