"""
StackGraph — POST /report endpoint.

Scores the graph, builds the evidence-backed report, renders Markdown,
and records an audit entry.
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import APIRouter, Depends

from stackgraph.api.dependencies import get_audit_logger, get_context
from stackgraph.api.routes.audit import audit_graph
from stackgraph.audit.logger import AuditLogger
from stackgraph.core.context import AnalysisContext
from stackgraph.core.report import render_report_markdown
from stackgraph.models.api_models import ReportRequest, ReportResponse

logger = logging.getLogger("stackgraph.api.report")
router = APIRouter()


@router.post("/report", response_model=ReportResponse)
async def report(
    req: ReportRequest,
    ctx: AnalysisContext = Depends(get_context),
    audit_logger: AuditLogger = Depends(get_audit_logger),
):
    """Build the JSON report and its Markdown rendering."""
    start = time.monotonic()
    report_id = uuid.uuid4().hex[:12]

    snapshot = audit_graph(ctx, req)
    data = ctx.report(snapshot, timestamp=req.timestamp)
    markdown = render_report_markdown(data)

    elapsed = (time.monotonic() - start) * 1000
    entry = audit_logger.log_report(
        report_id, data, node_count=len(req.nodes), edge_count=len(req.edges), duration_ms=elapsed
    )
    logger.info(
        f"Report {report_id}: {entry.findings_count} finding(s), tier {entry.tier}, "
        f"{len(entry.rule_ids)} evidence rule(s) in {elapsed:.1f}ms"
    )

    return ReportResponse(report_id=report_id, report=data, markdown=markdown)
