"""
Health Check Route — GET /health
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from stackgraph.api.dependencies import get_context
from stackgraph.core.context import AnalysisContext

router = APIRouter()


@router.get("/health")
async def health(ctx: AnalysisContext = Depends(get_context)):
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": "1.0.0",
        "tools": len(ctx.registry),
        "evidence_packs": len(ctx.evidence),
    }
