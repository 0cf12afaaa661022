"""
Analysis Context — Registry, evidence index and scoring rules bundled together.

Built once at startup and passed explicitly to the engine and report code.
Everything inside is read-only after construction, so one context can be
shared by any number of readers.
"""

from __future__ import annotations

from dataclasses import dataclass

from stackgraph.core.evidence import EvidenceIndex, get_default_evidence_index
from stackgraph.core.registry import ToolRegistry, get_default_registry
from stackgraph.core.report import build_report_data
from stackgraph.core.scoring import CompatibilityEngine, ScoringRules
from stackgraph.models.graph_models import Edge, GraphSnapshot, Node
from stackgraph.models.report_models import ReportData


@dataclass(frozen=True)
class AnalysisContext:
    registry: ToolRegistry
    evidence: EvidenceIndex
    rules: ScoringRules

    @classmethod
    def default(cls) -> "AnalysisContext":
        return cls(
            registry=get_default_registry(),
            evidence=get_default_evidence_index(),
            rules=ScoringRules.from_settings(),
        )

    def new_engine(self) -> CompatibilityEngine:
        return CompatibilityEngine(self.registry, self.rules)

    def audit(self, nodes: list[Node], edges: list[Edge]) -> GraphSnapshot:
        """Score a whole graph in one go and return the snapshot."""
        engine = self.new_engine()
        engine.init(nodes, edges)
        return engine.snapshot()

    def report(self, snapshot: GraphSnapshot, timestamp: str | None = None) -> ReportData:
        return build_report_data(
            snapshot,
            self.registry,
            evidence_index=self.evidence,
            timestamp=timestamp,
            rules=self.rules,
        )
