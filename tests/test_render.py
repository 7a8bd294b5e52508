from __future__ import annotations

import math
from datetime import datetime, timezone

import pytest

from conftest import analysis_payload, discovery_payload, plan_payload
from forge_flow.render import (
    format_action_plan_markdown,
    format_analysis_markdown,
    format_discovery_markdown,
    time_ago,
)
from forge_flow.schemas import ActionPlan, AnalysisResult, DiscoveryResult
from forge_flow.visualizer import CENTER_X, CENTER_Y, CHUNK_RADIUS, build_analysis_graph

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    ("timestamp", "expected"),
    [
        ("2026-10-18T11:59:30Z", "just now"),
        ("2026-10-18T11:15:00Z", "45m ago"),
        ("2026-10-18T07:00:00+00:00", "5h ago"),
        ("2026-10-15T12:00:00Z", "3d ago"),
        ("yesterday-ish", "a moment ago"),
    ],
)
def test_time_ago(timestamp: str, expected: str) -> None:
    assert time_ago(timestamp, NOW) == expected


def test_analysis_markdown_lists_chunks_and_guide() -> None:
    markdown = format_analysis_markdown(AnalysisResult.model_validate(analysis_payload()))

    assert "## Market & Edge" in markdown
    assert "- Market & Edge insight A" in markdown
    assert "1. Talk to 20 farmers" in markdown


def test_discovery_markdown_shows_freshness() -> None:
    markdown = format_discovery_markdown(DiscoveryResult.model_validate(discovery_payload()), NOW)

    assert markdown.startswith("## Opportunities in Agritech")
    assert "r/IndiaAgri · 4h ago" in markdown


def test_action_plan_markdown_marks_done_tasks_and_commands() -> None:
    payload = plan_payload()
    payload["action_plan"][0]["status"] = "done"

    markdown = format_action_plan_markdown(ActionPlan.model_validate(payload), heartbeat_display="15:00")

    assert "- [x] **#1 Interview farmers**" in markdown
    assert "- [ ] **#2 Scaffold sensor dashboard**" in markdown
    assert "`$ git init milk-chain`" in markdown
    assert "confidence 80%" in markdown
    assert "Next heartbeat in 15:00" in markdown
    assert "## Governmental Considerations" in markdown


def test_graph_places_chunks_on_inner_ring() -> None:
    graph = build_analysis_graph(AnalysisResult.model_validate(analysis_payload()))
    nodes = {node.id: node for node in graph.nodes}

    assert (nodes["problem"].x, nodes["problem"].y) == (CENTER_X, CENTER_Y)
    first = nodes["chunk-1"]
    assert first.x == pytest.approx(CENTER_X + CHUNK_RADIUS)
    assert first.y == pytest.approx(CENTER_Y)
    for chunk_id in ("chunk-2", "chunk-3", "chunk-4", "chunk-5"):
        node = nodes[chunk_id]
        assert math.hypot(node.x - CENTER_X, node.y - CENTER_Y) == pytest.approx(CHUNK_RADIUS)


def test_graph_edges_connect_problem_chunks_insights_and_solution() -> None:
    graph = build_analysis_graph(AnalysisResult.model_validate(analysis_payload()))
    pairs = {(edge.source, edge.target) for edge in graph.edges}

    assert ("problem", "chunk-3") in pairs
    assert ("chunk-3", "chunk-3-insight-1") in pairs
    assert ("chunk-5", "solution") in pairs
    insight = next(node for node in graph.nodes if node.id == "chunk-1-insight-0")
    assert math.hypot(insight.x - CENTER_X, insight.y - CENTER_Y) == pytest.approx(500)
