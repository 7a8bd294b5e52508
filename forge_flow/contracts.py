"""JSON-schema contracts sent to the generation API and the decode step.

The schemas are handed to the model through ``response_format`` so that the
returned text is constrained to the expected shape. Decoding still runs the
payload through the pydantic models so that malformed output becomes a
reportable :class:`SchemaFailure` instead of a late attribute error.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Generic, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from .errors import SchemaDecodeError
from .schemas import ActionOwner, ActionStatus, FundingStage, Priority, RunwayUnit


def _string(**extra: Any) -> Dict[str, Any]:
    return {"type": "string", **extra}


def _array(items: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": "array", "items": items}


def _object(properties: Dict[str, Any]) -> Dict[str, Any]:
    """Closed object with every property required."""

    return {
        "type": "object",
        "properties": properties,
        "required": list(properties),
        "additionalProperties": False,
    }


def _enum(enum_cls) -> Dict[str, Any]:
    return _string(enum=[member.value for member in enum_cls])


FOUNDER_PROFILE_SCHEMA = _object(
    {
        "experience_years": {"type": "integer"},
        "team_size": {"type": "integer"},
        "runway_months": {"type": "integer"},
        "runway_unit": {
            "type": ["string", "null"],
            "enum": [member.value for member in RunwayUnit] + [None],
        },
        "tech_stack": _array(_string()),
        "location": _string(),
        "funding_stage": _enum(FundingStage),
    }
)

ANALYSIS_SCHEMA = _object(
    {
        "mode": _string(enum=["user_driven"]),
        "input_problem": _string(),
        "refined_problem": _string(),
        "founder_profile": FOUNDER_PROFILE_SCHEMA,
        "chunks": _array(
            _object(
                {
                    "id": {"type": "integer"},
                    "title": _string(),
                    "analysis": _string(),
                    "key_insights": _array(_string()),
                }
            )
        ),
        "synthesis": _object({"solution_guide": _array(_string())}),
    }
)

DISCOVERY_SCHEMA = _object(
    {
        "mode": _string(enum=["proactive_discovery"]),
        "sector": _string(),
        "founder_profile": FOUNDER_PROFILE_SCHEMA,
        "problems": _array(
            _object(
                {
                    "id": {"type": "integer"},
                    "problem_statement": _string(),
                    "simulated_source": _string(),
                    "freshness_timestamp": _string(description="ISO 8601 timestamp"),
                    "personalization_note": _string(),
                }
            )
        ),
    }
)

COMPOSITION_SCHEMA = _object(
    {
        "mode": _string(enum=["compose"]),
        "cap_id": _string(description="UUID v4"),
        "generated_at": _string(description="ISO 8601 UTC"),
        "founder_profile": FOUNDER_PROFILE_SCHEMA,
        "priority": _enum(Priority),
        "fusion_summary": _string(),
        "fused_insights": _array(
            _object(
                {
                    "from_sources": _array(_string()),
                    "insight": _string(),
                    "confidence": {"type": "number"},
                }
            )
        ),
        "action_plan": _array(
            _object(
                {
                    "id": {"type": "integer"},
                    "title": _string(),
                    "description": _string(),
                    "owner": _enum(ActionOwner),
                    "executable": {"type": "boolean"},
                    "command": {"type": ["string", "null"]},
                    "status": _enum(ActionStatus),
                    "due_in_hours": {"type": "integer"},
                }
            )
        ),
        "execution_log": _array(_string()),
        "next_heartbeat_in_seconds": {"type": "integer"},
        "key_considerations": _object(
            {
                "financial": _array(_string()),
                "governmental": _array(_string()),
            }
        ),
    }
)


def response_format(name: str, schema: Dict[str, Any]) -> Dict[str, Any]:
    """Wrap a schema in the chat-completions ``json_schema`` response format."""

    return {
        "type": "json_schema",
        "json_schema": {"name": name, "schema": schema, "strict": True},
    }


# ---------------------------------------------------------------------------
# Decode step
# ---------------------------------------------------------------------------

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass(frozen=True)
class Decoded(Generic[ModelT]):
    payload: ModelT

    ok = True

    def unwrap(self, context: str) -> ModelT:
        return self.payload


@dataclass(frozen=True)
class SchemaFailure:
    details: str

    ok = False

    def unwrap(self, context: str):
        raise SchemaDecodeError(context, self.details)


DecodeResult = Union[Decoded[ModelT], SchemaFailure]


def strip_code_fence(raw_text: str) -> str:
    text = raw_text.strip()
    if text.startswith("```"):
        lines = [line.rstrip() for line in text.splitlines()]
        if len(lines) >= 2:
            lines = lines[1:]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            text = "\n".join(lines).strip()
    return text


def decode(raw_text: str | None, model: Type[ModelT]) -> DecodeResult:
    """Parse upstream text into ``model`` without raising."""

    if not raw_text or not raw_text.strip():
        return SchemaFailure("empty response")
    try:
        data = json.loads(strip_code_fence(raw_text))
    except json.JSONDecodeError as exc:
        return SchemaFailure(f"invalid JSON: {exc.msg} at position {exc.pos}")
    if not isinstance(data, dict):
        return SchemaFailure(f"expected a JSON object, got {type(data).__name__}")
    try:
        return Decoded(model.model_validate(data))
    except ValidationError as exc:
        return SchemaFailure(f"{exc.error_count()} validation error(s): {exc.errors()[0]['msg']}")
