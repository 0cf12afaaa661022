"""
StackGraph — POST /audit endpoint.

Scores a submitted graph: edge statuses, node scores and the global score.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from stackgraph.api.dependencies import get_context
from stackgraph.core.context import AnalysisContext
from stackgraph.core.graph import build_adjacency, connected_components
from stackgraph.core.scoring import GraphError
from stackgraph.models.api_models import AuditResponse, GraphRequest
from stackgraph.models.graph_models import GraphSnapshot

logger = logging.getLogger("stackgraph.api.audit")
router = APIRouter()


def to_audit_response(snapshot: GraphSnapshot) -> AuditResponse:
    adjacency = build_adjacency(snapshot.edges)
    return AuditResponse(
        node_scores=snapshot.node_scores,
        edge_scores=snapshot.edge_scores,
        global_score=snapshot.global_score,
        components=len(connected_components([n.id for n in snapshot.nodes], adjacency)),
    )


def audit_graph(ctx: AnalysisContext, req: GraphRequest) -> GraphSnapshot:
    """Score a request graph, mapping structural errors to HTTP 422."""
    try:
        return ctx.audit(req.nodes, req.edges)
    except GraphError as e:
        logger.info(f"Rejected graph: {e}")
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/audit", response_model=AuditResponse)
async def audit(req: GraphRequest, ctx: AnalysisContext = Depends(get_context)):
    """Score every node and edge of the submitted graph."""
    return to_audit_response(audit_graph(ctx, req))
