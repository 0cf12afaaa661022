"""
Report Audit Trail — One JSON line per report build.

Each line is an AuditEntry: graph size, the global score and tier, which
collisions and low-score nodes were reported, and which evidence rules
surfaced. Lines that no longer parse as an AuditEntry are skipped on read.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from stackgraph.config import settings
from stackgraph.models.report_models import AuditEntry, FindingType, ReportData

logger = logging.getLogger("stackgraph.audit")


def entry_for_report(
    report_id: str,
    report: ReportData,
    node_count: int,
    edge_count: int,
    duration_ms: float = 0.0,
) -> AuditEntry:
    """Summarize a built report for the audit trail."""
    collisions = 0
    low_score_nodes: list[str] = []
    rule_ids: list[str] = []
    for finding in report.findings:
        if finding.type == FindingType.COLLISION:
            collisions += 1
        elif finding.type == FindingType.LOW_SCORE and finding.node_id:
            low_score_nodes.append(finding.node_id)
        elif finding.rule_id:
            rule_ids.append(finding.rule_id)

    return AuditEntry(
        report_id=report_id,
        report_timestamp=report.timestamp,
        node_count=node_count,
        edge_count=edge_count,
        findings_count=len(report.findings),
        collisions=collisions,
        low_score_nodes=low_score_nodes,
        rule_ids=rule_ids,
        global_score=report.global_score,
        tier=report.tier,
        duration_ms=round(duration_ms, 2),
    )


class AuditLogger:
    """Appends report summaries to a JSON-lines file. Write failures are logged, never raised."""

    def __init__(self, log_path: str | None = None) -> None:
        self.log_path = Path(log_path or settings.audit_log_path)

    def log(self, entry: AuditEntry) -> AuditEntry:
        stamped = entry.model_copy(
            update={"logged_at": entry.logged_at or datetime.now(timezone.utc).isoformat()}
        )
        try:
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(stamped.model_dump_json() + "\n")
        except OSError as e:
            logger.error(f"Failed to write audit entry {entry.report_id}: {e}")
        return stamped

    def log_report(
        self,
        report_id: str,
        report: ReportData,
        node_count: int,
        edge_count: int,
        duration_ms: float = 0.0,
    ) -> AuditEntry:
        return self.log(entry_for_report(report_id, report, node_count, edge_count, duration_ms))

    def read_recent(self, count: int = 50) -> list[AuditEntry]:
        """The last ``count`` readable entries, oldest first."""
        if not self.log_path.exists():
            return []

        entries: list[AuditEntry] = []
        try:
            with open(self.log_path, encoding="utf-8") as f:
                for lineno, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entries.append(AuditEntry.model_validate(json.loads(line)))
                    except (json.JSONDecodeError, ValidationError):
                        logger.warning(f"Skipping malformed audit line {lineno} in {self.log_path.name}")
        except OSError as e:
            logger.error(f"Failed to read audit log: {e}")
            return []

        return entries[-count:]
