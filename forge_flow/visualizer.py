"""Radial node graph of an analysis result.

The problem sits in the centre, each chunk on an inner ring, its key insights
fanned out on an outer ring, and every chunk feeds the solution guide node.
"""

from __future__ import annotations

import math
from typing import List, Literal

from pydantic import BaseModel

from .schemas import AnalysisResult

CENTER_X = 550.0
CENTER_Y = 250.0
CHUNK_RADIUS = 300.0
INSIGHT_RADIUS = 500.0
INSIGHT_SPREAD = 0.3

NodeKind = Literal["problem", "chunk", "insight", "solution"]


class GraphNode(BaseModel):
    id: str
    kind: NodeKind
    label: str
    x: float
    y: float


class GraphEdge(BaseModel):
    id: str
    source: str
    target: str
    animated: bool = False


class AnalysisGraph(BaseModel):
    nodes: List[GraphNode]
    edges: List[GraphEdge]


def _point(radius: float, angle: float) -> tuple[float, float]:
    return CENTER_X + radius * math.cos(angle), CENTER_Y + radius * math.sin(angle)


def build_analysis_graph(result: AnalysisResult) -> AnalysisGraph:
    nodes = [GraphNode(id="problem", kind="problem", label=result.refined_problem, x=CENTER_X, y=CENTER_Y)]
    edges: List[GraphEdge] = []
    count = len(result.chunks)

    for index, chunk in enumerate(result.chunks):
        chunk_id = f"chunk-{chunk.id}"
        angle = (index * 2 * math.pi) / count
        x, y = _point(CHUNK_RADIUS, angle)
        nodes.append(GraphNode(id=chunk_id, kind="chunk", label=chunk.title, x=x, y=y))
        edges.append(GraphEdge(id=f"problem-{chunk_id}", source="problem", target=chunk_id, animated=True))

        offset = (len(chunk.key_insights) - 1) / 2
        for insight_index, insight in enumerate(chunk.key_insights):
            insight_id = f"{chunk_id}-insight-{insight_index}"
            ix, iy = _point(INSIGHT_RADIUS, angle + (insight_index - offset) * INSIGHT_SPREAD)
            nodes.append(GraphNode(id=insight_id, kind="insight", label=insight, x=ix, y=iy))
            edges.append(GraphEdge(id=f"{chunk_id}-{insight_id}", source=chunk_id, target=insight_id))

    solution_label = "\n".join(result.synthesis.solution_guide) or "Solution Guide"
    nodes.append(
        GraphNode(id="solution", kind="solution", label=solution_label, x=CENTER_X, y=CENTER_Y + CHUNK_RADIUS + 350)
    )
    edges.extend(
        GraphEdge(id=f"chunk-{chunk.id}-solution", source=f"chunk-{chunk.id}", target="solution")
        for chunk in result.chunks
    )
    return AnalysisGraph(nodes=nodes, edges=edges)
