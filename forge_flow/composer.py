"""Composer state machine: analysis in, executable action plan out."""

from __future__ import annotations

import asyncio
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, Iterable, Sequence

from .errors import ComposerUnavailableError, RequestInFlightError, error_message
from .llm import ForgeGateway
from .logging import get_logger
from .schemas import (
    ActionPlan,
    ActionStatus,
    AnalysisResult,
    FounderProfile,
    LiveData,
    Priority,
    Problem,
)

logger = get_logger(__name__)

Clock = Callable[[], datetime]


class ComposerState(str, Enum):
    EMPTY = "empty"
    LOADING = "loading"
    READY = "ready"


class HeartbeatCountdown:
    """Advisory countdown to the plan's next check-in.

    Display only: reaching zero does not trigger a new composition.
    """

    def __init__(self, seconds: int = 0) -> None:
        self.remaining = max(0, int(seconds))

    def restart(self, seconds: int) -> None:
        self.remaining = max(0, int(seconds))

    @property
    def running(self) -> bool:
        return self.remaining > 0

    def tick(self) -> int:
        if self.remaining > 0:
            self.remaining -= 1
        return self.remaining

    @property
    def display(self) -> str:
        minutes, seconds = divmod(self.remaining, 60)
        return f"{minutes:02d}:{seconds:02d}"

    async def run(self, sleep: Callable[[float], Awaitable[None]] = asyncio.sleep) -> None:
        while self.running:
            await sleep(1)
            self.tick()


class Composer:
    """Turn an analysis (plus optional opportunities) into a tracked plan."""

    def __init__(self, gateway: ForgeGateway, clock: Clock = datetime.now) -> None:
        self._gateway = gateway
        self._clock = clock
        self.state = ComposerState.EMPTY
        self.plan: ActionPlan | None = None
        self.error: str | None = None
        self.heartbeat = HeartbeatCountdown()

    @staticmethod
    def is_available(analysis: AnalysisResult | None) -> bool:
        return analysis is not None

    def compose(
        self,
        analysis: AnalysisResult | None,
        opportunities: Sequence[Problem] = (),
        live_data: Iterable[LiveData] = (),
        priority: Priority | str = Priority.HIGH,
        profile: FounderProfile | None = None,
    ) -> ActionPlan:
        if not self.is_available(analysis):
            raise ComposerUnavailableError()
        if self.state is ComposerState.LOADING:
            raise RequestInFlightError("A composition request is already running.")
        priority = Priority(priority)

        self.state = ComposerState.LOADING
        self.plan = None
        self.error = None
        self.heartbeat.restart(0)
        try:
            plan = self._gateway.compose(
                analysis,
                list(opportunities),
                list(live_data),
                profile or analysis.founder_profile,
                priority,
            )
        except Exception as exc:
            self.state = ComposerState.EMPTY
            self.error = error_message(exc)
            raise

        self.plan = plan
        self.state = ComposerState.READY
        self.heartbeat.restart(plan.next_heartbeat_in_seconds)
        logger.info(
            "action plan ready",
            cap_id=plan.cap_id,
            tasks=len(plan.action_plan),
            heartbeat_seconds=plan.next_heartbeat_in_seconds,
        )
        return plan

    def mark_complete(self, task_id: int) -> bool:
        """Flip a task to done and log it. Returns False when nothing changed."""

        if self.state is not ComposerState.READY or self.plan is None:
            return False
        task = next((item for item in self.plan.action_plan if item.id == task_id), None)
        if task is None or task.status is ActionStatus.DONE:
            return False

        entry = f"[{self._clock().strftime('%H:%M:%S')}] Task #{task.id} completed: {task.title}"
        tasks = [
            item.model_copy(update={"status": ActionStatus.DONE}) if item.id == task_id else item
            for item in self.plan.action_plan
        ]
        self.plan = self.plan.model_copy(
            update={"action_plan": tasks, "execution_log": [*self.plan.execution_log, entry]}
        )
        return True
