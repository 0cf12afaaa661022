"""
StackGraph — share link endpoints.

  POST /share → encode a graph into a /demo?data=... link
  GET  /demo  → decode a share link and score the graph it carries
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from stackgraph.api.dependencies import get_context
from stackgraph.api.routes.audit import to_audit_response
from stackgraph.core.context import AnalysisContext
from stackgraph.core.scoring import GraphError
from stackgraph.core.share import deserialize_graph, generate_share_url
from stackgraph.models.api_models import DemoResponse, ShareRequest
from stackgraph.models.share_models import ShareUrlResult

logger = logging.getLogger("stackgraph.api.share")
router = APIRouter()


@router.post("/share", response_model=ShareUrlResult)
async def share(req: ShareRequest, ctx: AnalysisContext = Depends(get_context)):
    """Encode a graph. Failures come back as success=false, not HTTP errors."""
    return generate_share_url(req.nodes, req.edges, base_url=req.base_url, registry=ctx.registry)


@router.get("/demo", response_model=DemoResponse)
async def demo(
    data: str | None = Query(default=None, description="Encoded share payload"),
    ctx: AnalysisContext = Depends(get_context),
):
    """Load a shared graph and return it with fresh scores."""
    if not data:
        raise HTTPException(
            status_code=400,
            detail="Missing data parameter. Share links must include ?data=<encoded-graph>",
        )

    result = deserialize_graph(data)
    if not result.success:
        raise HTTPException(status_code=400, detail=f"Invalid share data: {result.error}")

    graph = result.payload.graph
    try:
        snapshot = ctx.audit(graph.nodes, graph.edges)
    except GraphError as e:
        raise HTTPException(status_code=400, detail=f"Invalid share data: {e}")

    return DemoResponse(payload=result.payload, audit=to_audit_response(snapshot))
