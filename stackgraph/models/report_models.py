"""
Report Data Models — Findings, swaps, manifest and the audit record.

These are the JSON-exported shapes; field order here is the key order
in every export.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from stackgraph.models.evidence_models import EvidencePack
from stackgraph.models.graph_models import EdgeStatus


class FindingType(str, Enum):
    COLLISION = "collision"
    RISK = "risk"
    FIX = "fix"
    POSITIVE = "positive"
    LOW_SCORE = "low-score"


class ReportFinding(BaseModel):
    type: FindingType
    severity: Literal["high", "medium", "low", "info"]
    what: str
    why: str
    evidence: str
    suggested_fix: str
    rule_id: str | None = None
    confidence: str | None = None
    node_id: str | None = None
    edge_id: str | None = None
    evidence_pack: EvidencePack | None = None


class SwapAlternative(BaseModel):
    tool_id: str
    tool_name: str
    reason: str
    affects_node_id: str
    category: str
    confirmed: bool = Field(
        default=False, description="The other endpoint's tool reciprocates the affinity"
    )


class ReportSwap(BaseModel):
    edge_id: str
    source_tool: str
    target_tool: str
    alternatives: list[SwapAlternative] = Field(default_factory=list)


class ManifestTool(BaseModel):
    id: str
    name: str
    category: str
    install: str


class ManifestNode(BaseModel):
    id: str
    category: str
    tool_id: str


class ManifestEdge(BaseModel):
    id: str
    source: str
    target: str
    status: EdgeStatus | None = None
    weight: int = 0


class Manifest(BaseModel):
    version: Literal[1] = 1
    generated_at: str
    tools: list[ManifestTool] = Field(default_factory=list)
    nodes: list[ManifestNode] = Field(default_factory=list)
    edges: list[ManifestEdge] = Field(default_factory=list)
    global_score: int


class ReportData(BaseModel):
    timestamp: str
    global_score: int
    tier: str
    findings: list[ReportFinding] = Field(default_factory=list)
    swaps: list[ReportSwap] = Field(default_factory=list)
    manifest: Manifest


class AuditEntry(BaseModel):
    """One line of the report audit trail."""

    logged_at: str = ""
    report_id: str
    report_timestamp: str = ""
    node_count: int
    edge_count: int
    findings_count: int
    collisions: int
    low_score_nodes: list[str] = Field(
        default_factory=list, description="Node ids flagged RISKY or CRITICAL, worst first"
    )
    rule_ids: list[str] = Field(
        default_factory=list, description="Evidence rule ids that surfaced, in report order"
    )
    global_score: int
    tier: str = ""
    duration_ms: float = 0.0
