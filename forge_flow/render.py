"""Markdown card renderers for analysis, discovery and composition results."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable

from .schemas import ActionPlan, ActionStatus, AnalysisResult, DiscoveryResult


def _bullet_list(items: Iterable[str]) -> str:
    return "\n".join(f"- {item}" for item in items if item)


def _numbered_list(items: Iterable[str]) -> str:
    return "\n".join(f"{index}. {item}" for index, item in enumerate((i for i in items if i), start=1))


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def time_ago(timestamp: str, now: datetime | None = None) -> str:
    """Human-friendly age of an ISO-8601 timestamp."""

    try:
        moment = _parse_timestamp(timestamp)
    except (TypeError, ValueError):
        return "a moment ago"
    reference = now or datetime.now(timezone.utc)
    if reference.tzinfo is None:
        reference = reference.replace(tzinfo=timezone.utc)

    seconds = int((reference - moment).total_seconds())
    if seconds < 60:
        return "just now"
    minutes = seconds // 60
    if minutes < 60:
        return f"{minutes}m ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours}h ago"
    return f"{hours // 24}d ago"


def format_analysis_markdown(result: AnalysisResult) -> str:
    sections = [f"## Refined Problem\n\n{result.refined_problem}"]
    for chunk in result.chunks:
        body = [f"## {chunk.title}", chunk.analysis]
        if chunk.key_insights:
            body.append(f"### Key Insights\n\n{_bullet_list(chunk.key_insights)}")
        sections.append("\n\n".join(part for part in body if part))
    if result.synthesis.solution_guide:
        sections.append(f"## Solution Guide\n\n{_numbered_list(result.synthesis.solution_guide)}")
    return "\n\n".join(sections)


def format_discovery_markdown(result: DiscoveryResult, now: datetime | None = None) -> str:
    cards = []
    for problem in result.problems:
        cards.append(
            "\n".join(
                [
                    f"### {problem.id}. {problem.problem_statement}",
                    f"*Why it fits you:* {problem.personalization_note}",
                    f"*Source:* {problem.simulated_source} · {time_ago(problem.freshness_timestamp, now)}",
                ]
            )
        )
    header = f"## Opportunities in {result.sector}"
    return "\n\n".join([header, *cards])


def format_action_plan_markdown(plan: ActionPlan, heartbeat_display: str | None = None) -> str:
    insight_lines = [
        f"{insight.insight} (sources: {', '.join(insight.from_sources)}; confidence {insight.confidence * 100:.0f}%)"
        for insight in plan.fused_insights
    ]

    task_lines = []
    for task in plan.action_plan:
        mark = "x" if task.status is ActionStatus.DONE else " "
        line = f"- [{mark}] **#{task.id} {task.title}** ({task.owner.value}, due in {task.due_in_hours}h)"
        if task.executable and task.command:
            line += f"\n  `$ {task.command}`"
        task_lines.append(line)

    considerations = plan.key_considerations
    return "\n\n".join(
        section
        for section in [
            f"## Composed Action Plan ({plan.priority.value})\n\n{plan.fusion_summary}",
            f"Next heartbeat in {heartbeat_display}" if heartbeat_display else "",
            f"## Fused Insights\n\n{_bullet_list(insight_lines)}" if insight_lines else "",
            "## Action Plan\n\n" + "\n".join(task_lines) if task_lines else "",
            f"## Execution Log\n\n{_bullet_list(plan.execution_log)}" if plan.execution_log else "",
            f"## Financial Considerations\n\n{_bullet_list(considerations.financial)}"
            if considerations.financial
            else "",
            f"## Governmental Considerations\n\n{_bullet_list(considerations.governmental)}"
            if considerations.governmental
            else "",
        ]
        if section
    )
