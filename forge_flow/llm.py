"""OpenAI-powered gateway for the analyze, discover, compose and chat operations."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Sequence

from openai import APIStatusError, OpenAI, OpenAIError, RateLimitError

from .config import ForgeSettings, get_settings
from .contracts import (
    ANALYSIS_SCHEMA,
    COMPOSITION_SCHEMA,
    DISCOVERY_SCHEMA,
    decode,
    response_format,
)
from .errors import GatewayError, GatewayNotConfiguredError, QuotaExceededError, UpstreamError
from .logging import get_logger
from .prompts import (
    COMPOSITION_USER_PROMPT,
    analysis_instruction,
    analysis_user_prompt,
    chat_instruction,
    composition_instruction,
    discovery_instruction,
    discovery_user_prompt,
    heartbeat_for_priority,
)
from .schemas import (
    ActionPlan,
    AnalysisResult,
    ChatTurn,
    DiscoveryResult,
    FounderProfile,
    LiveData,
    Priority,
    Problem,
)

logger = get_logger(__name__)

QUOTA_MARKERS = ("429", "RESOURCE_EXHAUSTED", "insufficient_quota")


@dataclass(frozen=True)
class PromptSpec:
    """Container describing how to call the LLM for one operation."""

    system_prompt: str
    user_prompt: str
    model: str
    temperature: float = 0.7
    max_tokens: int = 4000
    response_format: Dict[str, Any] | None = None


def classify_error(exc: BaseException, context: str) -> GatewayError:
    """Map a transport/API failure onto the gateway error taxonomy."""

    if isinstance(exc, GatewayError):
        return exc
    if isinstance(exc, RateLimitError):
        return QuotaExceededError()
    if isinstance(exc, APIStatusError) and exc.status_code == 429:
        return QuotaExceededError()
    text = str(exc)
    if any(marker in text for marker in QUOTA_MARKERS):
        return QuotaExceededError()
    return UpstreamError(context)


class ForgeGateway:
    """Stateless wrapper around the chat-completions API.

    Each operation issues exactly one request and either returns a fully
    decoded result or raises a :class:`GatewayError`. Nothing is retried.
    """

    def __init__(self, client: Any, settings: ForgeSettings | None = None) -> None:
        self._client = client
        self._settings = settings or get_settings()

    def _invoke(self, spec: PromptSpec, context: str) -> str | None:
        started = time.perf_counter()
        kwargs: Dict[str, Any] = {
            "model": spec.model,
            "messages": [
                {"role": "system", "content": spec.system_prompt.strip()},
                {"role": "user", "content": spec.user_prompt.strip()},
            ],
            "temperature": spec.temperature,
            "max_tokens": spec.max_tokens,
        }
        if spec.response_format:
            kwargs["response_format"] = spec.response_format
        return self._complete(kwargs, context, started)

    def _complete(self, kwargs: Dict[str, Any], context: str, started: float) -> str | None:
        try:
            response = self._client.chat.completions.create(**kwargs)
        except OpenAIError as exc:
            error = classify_error(exc, context)
            log = logger.warning if isinstance(error, QuotaExceededError) else logger.error
            log(
                "gateway call failed",
                operation=context,
                model=kwargs["model"],
                error_type=type(exc).__name__,
                classified=type(error).__name__,
            )
            raise error from exc

        logger.info(
            "gateway call completed",
            operation=context,
            model=kwargs["model"],
            duration_ms=int((time.perf_counter() - started) * 1000),
        )
        choices = getattr(response, "choices", None) or []
        if not choices:
            return None
        return choices[0].message.content

    def analyze(self, problem: str, profile: FounderProfile) -> AnalysisResult:
        context = "analyze the problem"
        spec = PromptSpec(
            system_prompt=analysis_instruction(profile),
            user_prompt=analysis_user_prompt(problem),
            model=self._settings.analysis_model,
            temperature=0.7,
            max_tokens=6000,
            response_format=response_format("user_driven_response", ANALYSIS_SCHEMA),
        )
        return decode(self._invoke(spec, context), AnalysisResult).unwrap(context)

    def discover(self, sector: str, profile: FounderProfile) -> DiscoveryResult:
        context = "discover opportunities"
        spec = PromptSpec(
            system_prompt=discovery_instruction(profile),
            user_prompt=discovery_user_prompt(sector),
            model=self._settings.discovery_model,
            temperature=0.8,
            max_tokens=2500,
            response_format=response_format("proactive_discovery_response", DISCOVERY_SCHEMA),
        )
        # The result model keeps at most five problems.
        return decode(self._invoke(spec, context), DiscoveryResult).unwrap(context)

    def compose(
        self,
        analysis: AnalysisResult,
        opportunities: Sequence[Problem],
        live_data: Iterable[LiveData],
        profile: FounderProfile | None = None,
        priority: Priority | str = Priority.HIGH,
    ) -> ActionPlan:
        context = "compose the action plan"
        resolved_priority = Priority(priority)
        resolved_profile = profile or analysis.founder_profile
        spec = PromptSpec(
            system_prompt=composition_instruction(
                analysis,
                list(opportunities),
                list(live_data),
                resolved_profile,
                resolved_priority,
            ),
            user_prompt=COMPOSITION_USER_PROMPT,
            model=self._settings.compose_model,
            temperature=0.6,
            max_tokens=5000,
            response_format=response_format("composed_action_plan", COMPOSITION_SCHEMA),
        )
        plan = decode(self._invoke(spec, context), ActionPlan).unwrap(context)
        heartbeat = heartbeat_for_priority(plan.priority)
        if plan.next_heartbeat_in_seconds != heartbeat:
            plan = plan.model_copy(update={"next_heartbeat_in_seconds": heartbeat})
        return plan

    def chat(
        self,
        message: str,
        history: Sequence[ChatTurn] = (),
        profile: FounderProfile | None = None,
    ) -> str:
        context = "get a reply"
        messages: List[Dict[str, str]] = [{"role": "system", "content": chat_instruction(profile)}]
        messages.extend({"role": turn.role.value, "content": turn.content} for turn in history)
        messages.append({"role": "user", "content": message.strip()})
        kwargs = {
            "model": self._settings.chat_model,
            "messages": messages,
            "temperature": 0.7,
            "max_tokens": 1500,
        }
        reply = self._complete(kwargs, context, time.perf_counter())
        if not reply:
            raise UpstreamError(context)
        return reply.strip()


ClientCache = tuple[str, ForgeGateway]
_gateway_cache: ClientCache | None = None


def get_gateway(settings: ForgeSettings | None = None) -> ForgeGateway:
    """Return a cached gateway bound to the configured API key."""

    global _gateway_cache
    settings = settings or get_settings()
    api_key = settings.openai_api_key
    if not api_key:
        raise GatewayNotConfiguredError()
    if _gateway_cache and _gateway_cache[0] == api_key:
        return _gateway_cache[1]
    gateway = ForgeGateway(OpenAI(api_key=api_key, max_retries=0), settings)
    _gateway_cache = (api_key, gateway)
    return gateway
