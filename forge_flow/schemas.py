"""Pydantic models and enums for the Forge AI founder co-pilot API."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FundingStage(str, Enum):
    PRE_SEED = "pre-seed"
    SEED = "seed"
    PRE_SERIES_A = "pre-series-a"
    SERIES_A_PLUS = "series-a+"


class RunwayUnit(str, Enum):
    HOURS = "hours"
    DAYS = "days"
    MONTHS = "months"
    YEARS = "years"


class Priority(str, Enum):
    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ActionOwner(str, Enum):
    FOUNDER = "founder"
    AI = "ai"
    TOOL = "tool"


class ActionStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class LiveDataSource(str, Enum):
    SLACK = "slack"
    GITHUB = "github"
    NOTION = "notion"
    EMAIL = "email"
    MARKET_NEWS = "market_news"


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


# Minimum accepted value for every numeric profile field.
PROFILE_MINIMUMS = {
    "experience_years": 0,
    "team_size": 1,
    "runway_months": 1,
}


def clamp_profile_number(field_name: str, value: Any) -> int:
    """Coerce a raw form value into an int no lower than the field minimum."""

    minimum = PROFILE_MINIMUMS[field_name]
    if isinstance(value, bool):
        return minimum
    try:
        number = int(str(value).strip()) if not isinstance(value, (int, float)) else int(value)
    except (TypeError, ValueError):
        return minimum
    return max(minimum, number)


def unique_tags(tags: List[str]) -> List[str]:
    seen: List[str] = []
    for tag in tags:
        cleaned = tag.strip()
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    return seen


class FounderProfile(BaseModel):
    """Structured context about the founder used to personalize every request."""

    model_config = ConfigDict(frozen=True)

    experience_years: int = 0
    team_size: int = 1
    runway_months: int = 1
    runway_unit: RunwayUnit = RunwayUnit.MONTHS
    tech_stack: List[str] = Field(default_factory=list)
    location: str = ""
    funding_stage: FundingStage = FundingStage.PRE_SEED

    @field_validator("experience_years", "team_size", "runway_months", mode="before")
    @classmethod
    def _clamp_numbers(cls, value: Any, info) -> int:
        return clamp_profile_number(info.field_name, value)

    @field_validator("runway_unit", mode="before")
    @classmethod
    def _default_unit(cls, value: Any) -> Any:
        return RunwayUnit.MONTHS if value in (None, "") else value

    @field_validator("tech_stack", mode="after")
    @classmethod
    def _dedupe_stack(cls, value: List[str]) -> List[str]:
        return unique_tags(value)


# ---------------------------------------------------------------------------
# Analysis contract
# ---------------------------------------------------------------------------


class AnalysisChunk(BaseModel):
    id: int
    title: str
    analysis: str
    key_insights: List[str]


class Synthesis(BaseModel):
    solution_guide: List[str]


class AnalysisResult(BaseModel):
    """Personalized multi-dimension analysis of a single problem."""

    model_config = ConfigDict(frozen=True)

    mode: Literal["user_driven"] = "user_driven"
    input_problem: str
    refined_problem: str
    founder_profile: FounderProfile
    chunks: List[AnalysisChunk]
    synthesis: Synthesis


# ---------------------------------------------------------------------------
# Discovery contract
# ---------------------------------------------------------------------------

MAX_DISCOVERED_PROBLEMS = 5


class Problem(BaseModel):
    id: int
    problem_statement: str
    simulated_source: str
    freshness_timestamp: str
    personalization_note: str


class DiscoveryResult(BaseModel):
    """Five personalized opportunities found in a sector."""

    model_config = ConfigDict(frozen=True)

    mode: Literal["proactive_discovery"] = "proactive_discovery"
    sector: str
    founder_profile: FounderProfile
    problems: List[Problem]

    @field_validator("problems", mode="after")
    @classmethod
    def _truncate(cls, value: List[Problem]) -> List[Problem]:
        return value[:MAX_DISCOVERED_PROBLEMS]


# ---------------------------------------------------------------------------
# Composition contract
# ---------------------------------------------------------------------------


class ActionTask(BaseModel):
    id: int
    title: str
    description: str
    owner: ActionOwner
    executable: bool
    command: Optional[str] = None
    status: ActionStatus = ActionStatus.PENDING
    due_in_hours: int

    @field_validator("command", mode="after")
    @classmethod
    def _blank_command(cls, value: Optional[str]) -> Optional[str]:
        return value or None


class FusedInsight(BaseModel):
    from_sources: List[str]
    insight: str
    confidence: float = Field(ge=0.0, le=1.0)


class LiveData(BaseModel):
    """Stub signal from an external source fed into composition."""

    source: LiveDataSource
    content: str
    timestamp: str


class KeyConsiderations(BaseModel):
    financial: List[str] = Field(default_factory=list)
    governmental: List[str] = Field(default_factory=list)


class ActionPlan(BaseModel):
    """Executable plan fused from analysis, opportunities and live data."""

    mode: Literal["compose"] = "compose"
    cap_id: str
    generated_at: str
    founder_profile: FounderProfile
    priority: Priority
    fusion_summary: str
    fused_insights: List[FusedInsight]
    action_plan: List[ActionTask]
    execution_log: List[str] = Field(default_factory=list)
    next_heartbeat_in_seconds: int = Field(ge=0)
    key_considerations: KeyConsiderations = Field(default_factory=KeyConsiderations)


# ---------------------------------------------------------------------------
# Gateway request payloads
# ---------------------------------------------------------------------------


class AnalyzeRequest(BaseModel):
    problem: str = Field(..., min_length=1, description="Problem statement to analyze.")
    founder_profile: FounderProfile = Field(default_factory=FounderProfile)


class DiscoverRequest(BaseModel):
    sector: str = Field(..., min_length=1, description="Sector to scan for opportunities.")
    founder_profile: FounderProfile = Field(default_factory=FounderProfile)


class ComposeRequest(BaseModel):
    analysis: AnalysisResult
    opportunities: List[Problem] = Field(default_factory=list)
    live_data: List[LiveData] = Field(default_factory=list)
    founder_profile: Optional[FounderProfile] = Field(
        default=None,
        description="Defaults to the profile snapshot embedded in the analysis.",
    )
    priority: Priority = Priority.HIGH


class ChatTurn(BaseModel):
    role: Role
    content: str


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1)
    history: List[ChatTurn] = Field(default_factory=list)
    founder_profile: Optional[FounderProfile] = None


class ChatReply(BaseModel):
    reply: str


# ---------------------------------------------------------------------------
# Workspace payloads
# ---------------------------------------------------------------------------


class WorkspaceCreateRequest(BaseModel):
    founder_profile: Optional[FounderProfile] = None


class ProfileUpdateRequest(BaseModel):
    """Either a whole profile or a single form edit (`field` plus raw `value`)."""

    founder_profile: Optional[FounderProfile] = None
    field: Optional[str] = None
    value: Any = None


class ScreenRequest(BaseModel):
    screen: str


class ProblemInput(BaseModel):
    problem: str


class SectorInput(BaseModel):
    sector: str


class SelectProblemRequest(BaseModel):
    problem_id: Optional[int] = None
    problem_statement: Optional[str] = None


class WorkspaceComposeRequest(BaseModel):
    live_data: List[LiveData] = Field(default_factory=list)
    priority: Priority = Priority.HIGH


class MessageInput(BaseModel):
    message: str


# ---------------------------------------------------------------------------
# Conversations and accounts
# ---------------------------------------------------------------------------


class Message(BaseModel):
    id: str
    role: Role
    content: str
    timestamp: datetime


class Conversation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    messages: List[Message] = Field(default_factory=list)
    created_at: datetime = Field(alias="createdAt")


class UserOut(BaseModel):
    id: int
    email: str
    name: str


class RegisterRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class AuthResponse(BaseModel):
    user: UserOut
    token: str


class CreateConversationRequest(BaseModel):
    title: Optional[str] = None


class AddMessageRequest(BaseModel):
    role: Role
    content: str


class SuccessResponse(BaseModel):
    success: bool = True
