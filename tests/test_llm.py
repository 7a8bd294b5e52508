from __future__ import annotations

import httpx
import openai
import pytest

from conftest import MILK_PROBLEM, analysis_payload, discovery_payload, plan_payload
from forge_flow.errors import GatewayNotConfiguredError, QuotaExceededError, SchemaDecodeError, UpstreamError
from forge_flow.llm import classify_error, get_gateway
from forge_flow.config import get_settings
from forge_flow.prompts import CHUNK_TITLES, heartbeat_for_priority, mvp_cost_bucket, mvp_timeline_bucket
from forge_flow.schemas import AnalysisResult, ChatTurn, FounderProfile, LiveData, Priority, Role

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _status_error(status: int, message: str) -> openai.APIStatusError:
    response = httpx.Response(status, request=_REQUEST)
    if status == 429:
        return openai.RateLimitError(message, response=response, body=None)
    return openai.APIStatusError(message, response=response, body=None)


def test_analyze_sends_profile_and_strict_schema(gateway, completions) -> None:
    completions.queue_json(analysis_payload())
    profile = FounderProfile(runway_months=3, location="Ludhiana")

    result = gateway.analyze(MILK_PROBLEM, profile)

    assert isinstance(result, AnalysisResult)
    assert [chunk.title for chunk in result.chunks] == list(CHUNK_TITLES)
    call = completions.calls[0]
    assert call["model"] == "gpt-4o"
    assert call["response_format"]["json_schema"]["name"] == "user_driven_response"
    system_prompt = call["messages"][0]["content"]
    assert '"location": "Ludhiana"' in system_prompt
    assert mvp_cost_bucket(3) in system_prompt
    assert MILK_PROBLEM in call["messages"][1]["content"]


def test_discover_uses_discovery_model(gateway, completions) -> None:
    completions.queue_json(discovery_payload())

    result = gateway.discover("Agritech", FounderProfile())

    assert len(result.problems) == 5
    assert completions.calls[0]["model"] == "gpt-4o-mini"


def test_compose_enforces_heartbeat_for_priority(gateway, completions) -> None:
    completions.queue_json(plan_payload(priority="urgent", heartbeat=42))
    analysis = AnalysisResult.model_validate(analysis_payload())
    live = [LiveData(source="slack", content="Pilot farmer asked for pricing", timestamp="2026-10-18T07:00:00Z")]

    plan = gateway.compose(analysis, [], live, priority=Priority.URGENT)

    assert plan.next_heartbeat_in_seconds == heartbeat_for_priority(Priority.URGENT) == 300
    assert "Pilot farmer asked for pricing" in completions.calls[0]["messages"][0]["content"]


def test_rate_limit_becomes_quota_error(gateway, completions) -> None:
    completions.queue(_status_error(429, "Rate limit reached"))

    with pytest.raises(QuotaExceededError) as info:
        gateway.analyze(MILK_PROBLEM, FounderProfile())

    assert info.value.status_code == 429
    assert len(completions.calls) == 1


def test_quota_markers_in_message_are_detected() -> None:
    error = classify_error(_status_error(400, "insufficient_quota: billing hard limit"), "discover opportunities")

    assert isinstance(error, QuotaExceededError)


def test_connection_failure_becomes_upstream_error(gateway, completions) -> None:
    completions.queue(openai.APIConnectionError(request=_REQUEST))

    with pytest.raises(UpstreamError) as info:
        gateway.discover("Agritech", FounderProfile())

    assert info.value.message == (
        "Failed to discover opportunities. Please check your network connection and try again."
    )


def test_server_error_is_not_retried(gateway, completions) -> None:
    completions.queue(_status_error(500, "Internal error"))

    with pytest.raises(UpstreamError):
        gateway.analyze(MILK_PROBLEM, FounderProfile())

    assert len(completions.calls) == 1


def test_malformed_output_is_a_schema_error(gateway, completions) -> None:
    completions.queue('{"mode": "user_driven", "chunks": "nope"}')

    with pytest.raises(SchemaDecodeError):
        gateway.analyze(MILK_PROBLEM, FounderProfile())


def test_chat_passes_history_and_strips_reply(gateway, completions) -> None:
    completions.queue("  Start with ten customer calls.  ")
    history = [ChatTurn(role=Role.USER, content="Hi"), ChatTurn(role=Role.ASSISTANT, content="Hello!")]

    reply = gateway.chat("How do I validate?", history, FounderProfile(team_size=2))

    assert reply == "Start with ten customer calls."
    messages = completions.calls[0]["messages"]
    assert [message["role"] for message in messages] == ["system", "user", "assistant", "user"]
    assert "response_format" not in completions.calls[0]


def test_empty_chat_reply_is_an_upstream_error(gateway, completions) -> None:
    completions.queue("")

    with pytest.raises(UpstreamError):
        gateway.chat("Hello")


@pytest.mark.parametrize(
    ("months", "cost", "timeline"),
    [(3, "< ₹50,000", "2-3 weeks"), (6, "₹50K - ₹2 Lakh", "4-6 weeks"), (12, "₹2L - ₹10L", "2-3 months")],
)
def test_runway_buckets(months: int, cost: str, timeline: str) -> None:
    assert mvp_cost_bucket(months) == cost
    assert mvp_timeline_bucket(months) == timeline


def test_get_gateway_requires_api_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    get_settings.cache_clear()
    try:
        with pytest.raises(GatewayNotConfiguredError):
            get_gateway()
    finally:
        get_settings.cache_clear()
