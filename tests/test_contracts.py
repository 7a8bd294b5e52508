import json

import pytest

from conftest import analysis_payload, discovery_payload, plan_payload
from forge_flow.contracts import ANALYSIS_SCHEMA, COMPOSITION_SCHEMA, Decoded, SchemaFailure, decode, response_format
from forge_flow.errors import SchemaDecodeError
from forge_flow.schemas import ActionPlan, AnalysisResult, DiscoveryResult


def test_schemas_are_closed_and_fully_required() -> None:
    assert ANALYSIS_SCHEMA["additionalProperties"] is False
    assert set(ANALYSIS_SCHEMA["required"]) == set(ANALYSIS_SCHEMA["properties"])
    task_schema = COMPOSITION_SCHEMA["properties"]["action_plan"]["items"]
    assert task_schema["properties"]["command"]["type"] == ["string", "null"]


def test_response_format_is_strict_json_schema() -> None:
    wrapped = response_format("user_driven_response", ANALYSIS_SCHEMA)

    assert wrapped["type"] == "json_schema"
    assert wrapped["json_schema"]["strict"] is True
    assert wrapped["json_schema"]["schema"] is ANALYSIS_SCHEMA


def test_decode_accepts_fenced_json() -> None:
    raw = "```json\n" + json.dumps(analysis_payload()) + "\n```"

    result = decode(raw, AnalysisResult)

    assert isinstance(result, Decoded)
    assert len(result.payload.chunks) == 5


@pytest.mark.parametrize(
    ("raw", "fragment"),
    [
        (None, "empty"),
        ("   ", "empty"),
        ("{not json", "invalid JSON"),
        ("[1, 2]", "expected a JSON object"),
        ('{"mode": "user_driven"}', "validation error"),
    ],
)
def test_decode_reports_failures_without_raising(raw, fragment: str) -> None:
    result = decode(raw, AnalysisResult)

    assert isinstance(result, SchemaFailure)
    assert fragment in result.details


def test_schema_failure_unwrap_raises_decode_error() -> None:
    with pytest.raises(SchemaDecodeError) as info:
        decode("{}", AnalysisResult).unwrap("analyze the problem")

    assert info.value.status_code == 502
    assert "analyze the problem" in info.value.message


def test_discovery_keeps_at_most_five_problems() -> None:
    result = decode(json.dumps(discovery_payload(count=7)), DiscoveryResult)

    assert [problem.id for problem in result.payload.problems] == [1, 2, 3, 4, 5]


def test_plan_rejects_out_of_range_confidence() -> None:
    payload = plan_payload()
    payload["fused_insights"][0]["confidence"] = 1.5

    assert isinstance(decode(json.dumps(payload), ActionPlan), SchemaFailure)


def test_plan_normalizes_blank_command() -> None:
    payload = plan_payload()
    payload["action_plan"][1]["command"] = ""

    plan = decode(json.dumps(payload), ActionPlan).payload

    assert plan.action_plan[1].command is None
