"""Gateway and workspace endpoints for the Forge AI backend."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request

from ..llm import ForgeGateway, get_gateway
from ..render import format_action_plan_markdown, format_analysis_markdown, format_discovery_markdown
from ..schemas import (
    ActionPlan,
    AnalysisResult,
    AnalyzeRequest,
    ChatReply,
    ChatRequest,
    ComposeRequest,
    DiscoverRequest,
    DiscoveryResult,
    MessageInput,
    ProblemInput,
    ProfileUpdateRequest,
    ScreenRequest,
    SectorInput,
    SelectProblemRequest,
    WorkspaceComposeRequest,
    WorkspaceCreateRequest,
)
from ..visualizer import AnalysisGraph, build_analysis_graph
from ..workspace import Screen, Workspace, WorkspaceRegistry


router = APIRouter(prefix="/forge", tags=["forge"])


def get_forge_gateway(request: Request) -> ForgeGateway:
    """Gateway set on the app (tests, embedding) or the configured default."""

    gateway = request.app.state.gateway
    return gateway if gateway is not None else get_gateway(request.app.state.settings)


def get_workspaces(request: Request) -> WorkspaceRegistry:
    return request.app.state.workspaces


def get_workspace(workspace_id: str, workspaces: WorkspaceRegistry = Depends(get_workspaces)) -> Workspace:
    workspace = workspaces.get(workspace_id)
    if workspace is None:
        raise HTTPException(status_code=404, detail=f"No workspace found with id '{workspace_id}'.")
    return workspace


@router.get("/health")
async def healthcheck(request: Request) -> dict[str, object]:
    """Simple health check endpoint."""

    settings = request.app.state.settings
    gateway_ready = settings.has_llm or request.app.state.gateway is not None
    return {"status": "ok", "gateway": gateway_ready}


# -- stateless gateway calls ------------------------------------------------


@router.post("/analyze", response_model=AnalysisResult)
def analyze(payload: AnalyzeRequest, gateway: ForgeGateway = Depends(get_forge_gateway)) -> AnalysisResult:
    """Run the five-dimension analysis of a problem."""

    return gateway.analyze(payload.problem, payload.founder_profile)


@router.post("/analyze/graph", response_model=AnalysisGraph)
async def analysis_graph(result: AnalysisResult) -> AnalysisGraph:
    return build_analysis_graph(result)


@router.post("/analyze/markdown")
async def analysis_markdown(result: AnalysisResult) -> dict[str, str]:
    return {"markdown": format_analysis_markdown(result)}


@router.post("/discover", response_model=DiscoveryResult)
def discover(payload: DiscoverRequest, gateway: ForgeGateway = Depends(get_forge_gateway)) -> DiscoveryResult:
    """Surface personalized opportunities in a sector."""

    return gateway.discover(payload.sector, payload.founder_profile)


@router.post("/discover/markdown")
async def discovery_markdown(result: DiscoveryResult) -> dict[str, str]:
    return {"markdown": format_discovery_markdown(result)}


@router.post("/compose", response_model=ActionPlan)
def compose(payload: ComposeRequest, gateway: ForgeGateway = Depends(get_forge_gateway)) -> ActionPlan:
    return gateway.compose(
        payload.analysis,
        payload.opportunities,
        payload.live_data,
        payload.founder_profile,
        payload.priority,
    )


@router.post("/compose/markdown")
async def action_plan_markdown(plan: ActionPlan) -> dict[str, str]:
    return {"markdown": format_action_plan_markdown(plan)}


@router.post("/chat", response_model=ChatReply)
def chat(payload: ChatRequest, gateway: ForgeGateway = Depends(get_forge_gateway)) -> ChatReply:
    return ChatReply(reply=gateway.chat(payload.message, payload.history, payload.founder_profile))


# -- workspaces ---------------------------------------------------------------


def _bad_request(exc: ValueError) -> HTTPException:
    return HTTPException(status_code=400, detail=str(exc))


@router.post("/workspaces")
def create_workspace(
    payload: WorkspaceCreateRequest | None = None,
    workspaces: WorkspaceRegistry = Depends(get_workspaces),
    gateway: ForgeGateway = Depends(get_forge_gateway),
) -> Dict[str, Any]:
    """Open a workspace holding the state of the four screens."""

    profile = payload.founder_profile if payload else None
    return workspaces.create(gateway, profile).snapshot()


@router.get("/workspaces/{workspace_id}")
async def fetch_workspace(workspace: Workspace = Depends(get_workspace)) -> Dict[str, Any]:
    return workspace.snapshot()


@router.put("/workspaces/{workspace_id}/profile")
async def update_profile(
    payload: ProfileUpdateRequest,
    workspace: Workspace = Depends(get_workspace),
) -> Dict[str, Any]:
    """Replace the profile or apply one form edit to it."""

    if payload.founder_profile is not None:
        workspace.set_profile(payload.founder_profile)
    elif payload.field:
        try:
            workspace.edit_profile(payload.field, payload.value)
        except ValueError as exc:
            raise _bad_request(exc) from exc
    else:
        raise HTTPException(status_code=400, detail="Provide founder_profile or a field to edit.")
    return workspace.snapshot()


@router.post("/workspaces/{workspace_id}/screen")
async def select_screen(payload: ScreenRequest, workspace: Workspace = Depends(get_workspace)) -> Dict[str, Any]:
    try:
        workspace.select_screen(payload.screen)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"Unknown screen '{payload.screen}'.") from exc
    return workspace.snapshot()


@router.post("/workspaces/{workspace_id}/analyze")
def analyze_in_workspace(payload: ProblemInput, workspace: Workspace = Depends(get_workspace)) -> Dict[str, Any]:
    try:
        workspace.submit_analysis(payload.problem)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return workspace.snapshot()


@router.post("/workspaces/{workspace_id}/discover")
def discover_in_workspace(payload: SectorInput, workspace: Workspace = Depends(get_workspace)) -> Dict[str, Any]:
    try:
        workspace.submit_discovery(payload.sector)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return workspace.snapshot()


@router.post("/workspaces/{workspace_id}/select-problem")
def select_problem(payload: SelectProblemRequest, workspace: Workspace = Depends(get_workspace)) -> Dict[str, Any]:
    """Analyze a discovered problem, by id from the last discovery or by statement."""

    if payload.problem_id is not None:
        problems = workspace.discovery.problems if workspace.discovery else []
        selected = next((item for item in problems if item.id == payload.problem_id), None)
        if selected is None:
            raise HTTPException(status_code=404, detail=f"No discovered problem with id {payload.problem_id}.")
    elif payload.problem_statement:
        selected = payload.problem_statement
    else:
        raise HTTPException(status_code=400, detail="Provide problem_id or problem_statement.")

    try:
        workspace.select_problem(selected)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return workspace.snapshot()


@router.post("/workspaces/{workspace_id}/compose")
def compose_in_workspace(
    payload: WorkspaceComposeRequest,
    workspace: Workspace = Depends(get_workspace),
) -> Dict[str, Any]:
    workspace.select_screen(Screen.COMPOSE)
    workspace.compose(payload.live_data, payload.priority)
    return workspace.snapshot()


@router.post("/workspaces/{workspace_id}/tasks/{task_id}/complete")
async def complete_task(task_id: int, workspace: Workspace = Depends(get_workspace)) -> Dict[str, Any]:
    changed = workspace.composer.mark_complete(task_id)
    return {"changed": changed, **workspace.snapshot()}


@router.post("/workspaces/{workspace_id}/heartbeat/tick")
async def tick_heartbeat(workspace: Workspace = Depends(get_workspace)) -> Dict[str, Any]:
    heartbeat = workspace.composer.heartbeat
    return {"remaining": heartbeat.tick(), "display": heartbeat.display}


@router.post("/workspaces/{workspace_id}/chat")
def chat_in_workspace(payload: MessageInput, workspace: Workspace = Depends(get_workspace)) -> Dict[str, Any]:
    try:
        reply = workspace.send_chat(payload.message)
    except ValueError as exc:
        raise _bad_request(exc) from exc
    return {"reply": reply.model_dump(mode="json"), **workspace.snapshot()}


@router.delete("/workspaces/{workspace_id}")
async def close_workspace(workspace_id: str, workspaces: WorkspaceRegistry = Depends(get_workspaces)) -> dict[str, bool]:
    workspaces.drop(workspace_id)
    return {"success": True}
