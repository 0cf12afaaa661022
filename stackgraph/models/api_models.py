"""
API Request/Response Models — Public HTTP contract schemas.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from stackgraph.models.graph_models import Edge, EdgeScore, Node, NodeScore
from stackgraph.models.report_models import ReportData
from stackgraph.models.share_models import SharePayload


class GraphRequest(BaseModel):
    """A graph submitted for scoring."""

    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)


class ReportRequest(GraphRequest):
    timestamp: str | None = Field(
        default=None, description="Fixed timestamp for reproducible output"
    )


class ShareRequest(GraphRequest):
    base_url: str | None = Field(default=None, description="Overrides the configured base URL")


class AuditResponse(BaseModel):
    node_scores: dict[str, NodeScore] = Field(default_factory=dict)
    edge_scores: dict[str, EdgeScore] = Field(default_factory=dict)
    global_score: int
    components: int = Field(default=0, description="Number of connected components")


class ReportResponse(BaseModel):
    message: str = "report_complete"
    report_id: str = ""
    report: ReportData
    markdown: str


class DemoResponse(BaseModel):
    payload: SharePayload
    audit: AuditResponse
