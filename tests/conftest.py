from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient

from forge_flow.app import create_app
from forge_flow.config import ForgeSettings
from forge_flow.db import Database
from forge_flow.llm import ForgeGateway
from forge_flow.prompts import CHUNK_TITLES

PROFILE: Dict[str, Any] = {
    "experience_years": 3,
    "team_size": 2,
    "runway_months": 6,
    "runway_unit": "months",
    "tech_stack": ["Python", "IoT"],
    "location": "Ludhiana, Punjab",
    "funding_stage": "pre-seed",
}

MILK_PROBLEM = "Dairy farmers in Punjab lose 30% of milk to spoilage before collection"


def analysis_payload(problem: str = MILK_PROBLEM) -> Dict[str, Any]:
    return {
        "mode": "user_driven",
        "input_problem": problem,
        "refined_problem": f"Refined: {problem}",
        "founder_profile": PROFILE,
        "chunks": [
            {
                "id": index,
                "title": title,
                "analysis": f"Analysis for {title}.",
                "key_insights": [f"{title} insight A", f"{title} insight B"],
            }
            for index, title in enumerate(CHUNK_TITLES, start=1)
        ],
        "synthesis": {"solution_guide": ["Talk to 20 farmers", "Pilot a solar chiller", "Price per litre saved"]},
    }


def discovery_payload(count: int = 5) -> Dict[str, Any]:
    return {
        "mode": "proactive_discovery",
        "sector": "Agritech",
        "founder_profile": PROFILE,
        "problems": [
            {
                "id": index,
                "problem_statement": MILK_PROBLEM if index == 1 else f"Agritech problem {index}",
                "simulated_source": "r/IndiaAgri",
                "freshness_timestamp": "2026-10-18T08:00:00Z",
                "personalization_note": "Your IoT background fits cold-chain sensing.",
            }
            for index in range(1, count + 1)
        ],
    }


def plan_payload(priority: str = "high", heartbeat: int = 900) -> Dict[str, Any]:
    return {
        "mode": "compose",
        "cap_id": "cap-001",
        "generated_at": "2026-10-18T09:00:00Z",
        "founder_profile": PROFILE,
        "priority": priority,
        "fusion_summary": "Spoilage is a cold-chain gap that a sensor pilot can close.",
        "fused_insights": [
            {"from_sources": ["analysis", "slack"], "insight": "Farmers pay for reliability.", "confidence": 0.8}
        ],
        "action_plan": [
            {
                "id": 1,
                "title": "Interview farmers",
                "description": "Visit five collection centres.",
                "owner": "founder",
                "executable": False,
                "command": None,
                "status": "pending",
                "due_in_hours": 48,
            },
            {
                "id": 2,
                "title": "Scaffold sensor dashboard",
                "description": "Create the repo.",
                "owner": "tool",
                "executable": True,
                "command": "git init milk-chain",
                "status": "pending",
                "due_in_hours": 4,
            },
        ],
        "execution_log": [],
        "next_heartbeat_in_seconds": heartbeat,
        "key_considerations": {
            "financial": ["Budget for 10 sensors"],
            "governmental": ["FSSAI cold-chain rules"],
        },
    }


def completion(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class FakeCompletions:
    """Stands in for ``client.chat.completions``; replays queued outcomes."""

    def __init__(self) -> None:
        self.outcomes: List[Any] = []
        self.calls: List[Dict[str, Any]] = []

    def queue(self, *outcomes: Any) -> None:
        self.outcomes.extend(outcomes)

    def queue_json(self, *payloads: Dict[str, Any]) -> None:
        self.outcomes.extend(json.dumps(payload) for payload in payloads)

    def create(self, **kwargs: Any) -> SimpleNamespace:
        self.calls.append(kwargs)
        if not self.outcomes:
            raise AssertionError("Unexpected call to the completion API.")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return completion(outcome)


class FakeClient:
    def __init__(self) -> None:
        self.completions = FakeCompletions()
        self.chat = SimpleNamespace(completions=self.completions)


@pytest.fixture
def settings(tmp_path) -> ForgeSettings:
    return ForgeSettings(openai_api_key="test-key", json_logs=False, storage_dir=str(tmp_path / "storage"))


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def completions(fake_client: FakeClient) -> FakeCompletions:
    return fake_client.completions


@pytest.fixture
def gateway(fake_client: FakeClient, settings: ForgeSettings) -> ForgeGateway:
    return ForgeGateway(fake_client, settings)


@pytest.fixture
def database() -> Database:
    database = Database("sqlite://")
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture
def client(settings: ForgeSettings, gateway: ForgeGateway, database: Database) -> TestClient:
    with TestClient(create_app(settings=settings, gateway=gateway, database=database)) as test_client:
        yield test_client
