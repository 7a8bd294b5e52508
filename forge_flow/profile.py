"""Founder profile form semantics.

The profile is edited one field at a time the way the profile form sends
changes. Every edit returns a fresh, validated snapshot so that requests that
already captured the previous profile never observe the change.
"""

from __future__ import annotations

from typing import Any

from .schemas import FounderProfile, FundingStage, PROFILE_MINIMUMS, RunwayUnit

HOURS_PER_MONTH = 730
DAYS_PER_MONTH = 30

EDITABLE_FIELDS = frozenset(FounderProfile.model_fields)


def _rebuild(profile: FounderProfile, **changes: Any) -> FounderProfile:
    data = profile.model_dump()
    data.update(changes)
    return FounderProfile.model_validate(data)


def apply_form_edit(profile: FounderProfile, field: str, raw_value: Any) -> FounderProfile:
    """Apply a single form change and return the new profile snapshot."""

    if field not in EDITABLE_FIELDS:
        raise ValueError(f"Unknown profile field '{field}'.")

    if field in PROFILE_MINIMUMS:
        # Clamping happens in the model validator.
        return _rebuild(profile, **{field: raw_value})

    if field == "tech_stack":
        if isinstance(raw_value, str):
            tags = [part.strip() for part in raw_value.split(",")]
        else:
            tags = [str(part).strip() for part in raw_value or []]
        return _rebuild(profile, tech_stack=[tag for tag in tags if tag])

    if field == "runway_unit":
        return _rebuild(profile, runway_unit=RunwayUnit(raw_value))

    if field == "funding_stage":
        return _rebuild(profile, funding_stage=FundingStage(raw_value))

    return _rebuild(profile, location=str(raw_value or "").strip())


def add_tech_tag(profile: FounderProfile, tag: str) -> FounderProfile:
    cleaned = tag.strip()
    if not cleaned or cleaned in profile.tech_stack:
        return profile
    return _rebuild(profile, tech_stack=[*profile.tech_stack, cleaned])


def remove_tech_tag(profile: FounderProfile, index: int) -> FounderProfile:
    if not 0 <= index < len(profile.tech_stack):
        return profile
    stack = [tag for position, tag in enumerate(profile.tech_stack) if position != index]
    return _rebuild(profile, tech_stack=stack)


def pop_tech_tag(profile: FounderProfile) -> FounderProfile:
    """Drop the most recent tag, as backspace on an empty tag input does."""

    if not profile.tech_stack:
        return profile
    return _rebuild(profile, tech_stack=profile.tech_stack[:-1])


def runway_in_months(profile: FounderProfile) -> float:
    """Express the runway in months regardless of the unit it was entered in."""

    value = profile.runway_months
    unit = profile.runway_unit
    if unit is RunwayUnit.HOURS:
        return value / HOURS_PER_MONTH
    if unit is RunwayUnit.DAYS:
        return value / DAYS_PER_MONTH
    if unit is RunwayUnit.YEARS:
        return float(value * 12)
    return float(value)
