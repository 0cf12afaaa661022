"""
Tests for Graph Store and the report audit trail — local JSON persistence.
"""

import json

from stackgraph.audit.logger import AuditLogger, entry_for_report
from stackgraph.core.context import AnalysisContext
from stackgraph.models.report_models import AuditEntry
from stackgraph.storage.graph_store import STORAGE_VERSION, GraphStore


# --- GraphStore ---

def test_save_and_load(tmp_path, next_prisma_postgres):
    nodes, edges = next_prisma_postgres
    store = GraphStore(tmp_path / "nested" / "graph.json")
    store.save(nodes, edges, saved_at="2024-01-01T00:00:00Z")

    loaded = store.load()
    assert loaded.version == STORAGE_VERSION
    assert loaded.nodes == nodes
    assert loaded.edges == edges
    assert loaded.saved_at == "2024-01-01T00:00:00Z"


def test_missing_file_loads_none(tmp_path):
    assert GraphStore(tmp_path / "absent.json").load() is None


def test_corrupt_file_loads_none(tmp_path):
    path = tmp_path / "graph.json"
    path.write_text("{broken")
    assert GraphStore(path).load() is None


def test_wrong_shape_loads_none(tmp_path):
    path = tmp_path / "graph.json"
    path.write_text(json.dumps({"version": 1, "nodes": "nope"}))
    assert GraphStore(path).load() is None


def test_unsupported_version_loads_none(tmp_path):
    path = tmp_path / "graph.json"
    path.write_text(json.dumps({"version": 99, "nodes": [], "edges": [], "saved_at": "x"}))
    assert GraphStore(path).load() is None


def test_clear(tmp_path):
    store = GraphStore(tmp_path / "graph.json")
    store.save([], [])
    store.clear()
    assert store.load() is None
    store.clear()


# --- AuditLogger ---

def _entry(report_id):
    return AuditEntry(
        report_id=report_id,
        node_count=2,
        edge_count=1,
        findings_count=3,
        collisions=1,
        global_score=38,
    )


def test_audit_log_round_trip(tmp_path):
    audit_logger = AuditLogger(str(tmp_path / "audit.jsonl"))
    for i in range(3):
        audit_logger.log(_entry(f"r{i}"))

    recent = audit_logger.read_recent(2)
    assert [e.report_id for e in recent] == ["r1", "r2"]
    assert recent[0].logged_at


def test_audit_log_skips_malformed_lines(tmp_path):
    path = tmp_path / "audit.jsonl"
    audit_logger = AuditLogger(str(path))
    audit_logger.log(_entry("good"))
    with open(path, "a") as f:
        f.write("not json\n\n")
        f.write(json.dumps({"report_id": "no-counts"}) + "\n")

    assert [e.report_id for e in audit_logger.read_recent()] == ["good"]


def test_audit_log_missing_file(tmp_path):
    assert AuditLogger(str(tmp_path / "none.jsonl")).read_recent() == []


def test_audit_log_unwritable_path_does_not_raise(tmp_path):
    audit_logger = AuditLogger(str(tmp_path / "missing-dir" / "audit.jsonl"))
    entry = audit_logger.log(_entry("lost"))
    assert entry.report_id == "lost"
    assert audit_logger.read_recent() == []


def test_report_summary(registry, evidence_index, rules, collision_graph):
    ctx = AnalysisContext(registry=registry, evidence=evidence_index, rules=rules)
    nodes, edges = collision_graph
    report = ctx.report(ctx.audit(nodes, edges), timestamp="2024-01-01T00:00:00.000Z")

    entry = entry_for_report("r1", report, len(nodes), len(edges), duration_ms=1.234)

    assert entry.collisions == 1
    assert entry.low_score_nodes == ["orm", "frontend"]
    assert entry.rule_ids == [
        "edge-runtime-response-timeout",
        "next-edge-node-apis",
        "vercel-serverless-connection-limits",
        "connection-pooler",
        "route-segment-node-runtime",
        "serverless-http-db-drivers",
    ]
    assert entry.tier == "CRITICAL"
    assert entry.global_score == 38
    assert entry.findings_count == len(report.findings)
    assert entry.duration_ms == 1.23
