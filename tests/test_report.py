"""
Tests for Report Builder — finding order, fix gating, swaps, manifest and Markdown.
"""

from stackgraph.core.context import AnalysisContext
from stackgraph.core.evidence import build_evidence_index
from stackgraph.core.report import (
    build_install_command,
    build_manifest,
    build_readme_snippet,
    build_report_data,
    manifest_to_json,
    render_report_markdown,
    report_to_json,
)
from stackgraph.core.suggest import generate_collision_suggestions
from stackgraph.models.graph_models import EdgeStatus
from stackgraph.models.report_models import FindingType

TS = "2024-01-01T00:00:00.000Z"


def _report(registry, evidence_index, rules, nodes, edges):
    ctx = AnalysisContext(registry=registry, evidence=evidence_index, rules=rules)
    return ctx.report(ctx.audit(nodes, edges), timestamp=TS)


def _ids(report, finding_type):
    return [f.rule_id for f in report.findings if f.type == finding_type]


# --- Findings ---

def test_collision_report(registry, evidence_index, rules, collision_graph):
    report = _report(registry, evidence_index, rules, *collision_graph)
    types = [f.type for f in report.findings]

    assert types[0] == FindingType.COLLISION
    collision = report.findings[0]
    assert collision.severity == "high"
    assert collision.what == "Friction between Frontend Framework and ORM"
    assert collision.evidence == "Next.js <-> TypeORM"
    assert collision.edge_id == "e-frontend-orm"

    low = [f for f in report.findings if f.type == FindingType.LOW_SCORE]
    assert [(f.node_id, f.severity) for f in low] == [("orm", "high"), ("frontend", "medium")]
    assert low[0].evidence == "Score: 25/100, Tool: TypeORM"

    assert report.global_score == 38
    assert report.tier == "CRITICAL"


def test_findings_follow_type_order(registry, evidence_index, rules, collision_graph):
    report = _report(registry, evidence_index, rules, *collision_graph)
    order = [
        FindingType.COLLISION,
        FindingType.RISK,
        FindingType.FIX,
        FindingType.POSITIVE,
        FindingType.LOW_SCORE,
    ]
    ranks = [order.index(f.type) for f in report.findings]
    assert ranks == sorted(ranks)


def test_risks_and_gated_fixes(registry, evidence_index, rules, next_prisma_postgres):
    report = _report(registry, evidence_index, rules, *next_prisma_postgres)

    assert _ids(report, FindingType.RISK) == [
        "edge-runtime-response-timeout",
        "native-db-drivers-tcp-failure",
        "next-edge-node-apis",
        "prisma-orm-edge-incompatibility",
        "vercel-serverless-connection-limits",
    ]
    fixes = _ids(report, FindingType.FIX)
    assert fixes == [
        "connection-pooler",
        "prisma-accelerate-edge",
        "route-segment-node-runtime",
        "serverless-http-db-drivers",
    ]
    assert "authjs-split-config" not in fixes
    assert "turso-embedded-replicas" not in fixes
    assert _ids(report, FindingType.POSITIVE) == []
    assert _ids(report, FindingType.LOW_SCORE) == []
    assert report.global_score == 98


def test_every_fix_is_referenced_by_a_fired_risk(registry, evidence_index, rules, next_prisma_postgres):
    report = _report(registry, evidence_index, rules, *next_prisma_postgres)
    referenced = {
        fix_id
        for f in report.findings
        if f.type == FindingType.RISK
        for fix_id in f.evidence_pack.fix_rule_ids
    }
    assert set(_ids(report, FindingType.FIX)) <= referenced


def test_ungrounded_risk_is_labelled(registry, evidence_index, rules, make_node, make_edge):
    report = _report(
        registry, evidence_index, rules,
        [make_node("f", "nextjs"), make_node("o", "drizzle")],
        [make_edge("e1", "f", "o")],
    )
    drizzle = next(f for f in report.findings if f.rule_id == "drizzle-orm-nodejs-dependencies")
    assert drizzle.evidence == "Ungrounded claim (needs verification)"
    assert drizzle.confidence == "low"


def test_positive_only_stack(registry, evidence_index, rules, svelte_turso):
    report = _report(registry, evidence_index, rules, *svelte_turso)
    assert _ids(report, FindingType.RISK) == []
    assert _ids(report, FindingType.FIX) == []
    positives = [f for f in report.findings if f.type == FindingType.POSITIVE]
    assert [f.rule_id for f in positives] == ["turso-libsql-edge-native"]
    assert positives[0].severity == "info"


def test_without_evidence_index_only_graph_findings(registry, rules, next_prisma_postgres, engine):
    engine.init(*next_prisma_postgres)
    report = build_report_data(engine.snapshot(), registry, timestamp=TS, rules=rules)
    assert report.findings == []


def test_empty_graph(registry, evidence_index, rules):
    report = _report(registry, evidence_index, rules, [], [])
    assert report.global_score == 100
    assert report.tier == "EXCELLENT"
    assert report.findings == []
    assert report.swaps == []
    assert "## Sources" not in render_report_markdown(report)


# --- Swaps ---

def test_collision_swap(registry, evidence_index, rules, collision_graph):
    report = _report(registry, evidence_index, rules, *collision_graph)
    assert len(report.swaps) == 1
    swap = report.swaps[0]
    assert (swap.source_tool, swap.target_tool) == ("Next.js", "TypeORM")
    assert [a.tool_id for a in swap.alternatives] == ["prisma"]
    alt = swap.alternatives[0]
    assert alt.confirmed
    assert alt.reason == "Mutual native support with Next.js"
    assert alt.affects_node_id == "orm"


def test_swap_ranking(registry):
    alternatives = generate_collision_suggestions(registry, "f", "sveltekit", "a", "clerk")
    assert [a.tool_name for a in alternatives] == [
        "Next.js", "Better Auth", "Lucia", "React + Vite", "Supabase Auth",
    ]
    assert [a.confirmed for a in alternatives] == [True, True, True, True, False]
    assert alternatives[-1].reason == "Native support for SvelteKit"


def test_swap_limits(registry):
    alternatives = generate_collision_suggestions(
        registry, "f", "sveltekit", "a", "clerk", max_per_side=1, max_total=1
    )
    assert [a.tool_id for a in alternatives] == ["nextjs"]


def test_swap_alternatives_never_clash(registry):
    other = registry.get("clerk")
    for alt in generate_collision_suggestions(registry, "f", "sveltekit", "a", "clerk"):
        candidate = registry.get(alt.tool_id)
        if alt.affects_node_id == "f":
            assert not registry.has_friction(candidate, other)
            assert candidate.category == registry.get("sveltekit").category


def test_unknown_tool_has_no_swaps(registry):
    assert generate_collision_suggestions(registry, "f", "jquery", "a", "clerk") == []


# --- Manifest ---

def test_manifest_ordering_and_weights(registry, engine, make_node, make_edge):
    engine.init(
        [
            make_node("db", "postgres", "Database"),
            make_node("orm", "prisma", "ORM"),
            make_node("web", "nextjs", "Frontend"),
            make_node("old", "typeorm", "ORM"),
        ],
        [
            make_edge("z", "web", "orm"),
            make_edge("a", "orm", "db"),
            make_edge("m", "old", "web"),
        ],
    )
    manifest = build_manifest(engine.snapshot(), registry, TS)

    assert [t.id for t in manifest.tools] == ["nextjs", "prisma", "typeorm", "postgres"]
    assert [n.id for n in manifest.nodes] == ["web", "old", "orm", "db"]
    assert [e.id for e in manifest.edges] == ["m", "a", "z"]
    weights = {e.id: e.weight for e in manifest.edges}
    assert weights == {"m": -1, "a": 1, "z": 1}
    assert manifest.edges[0].status == EdgeStatus.COLLISION
    assert manifest.generated_at == TS


def test_install_command(registry, engine, next_prisma_postgres):
    engine.init(*next_prisma_postgres)
    manifest = build_manifest(engine.snapshot(), registry, TS)
    assert build_install_command(manifest) == "pnpm add next prisma"


def test_install_command_without_npm_tools(registry, engine, make_node):
    engine.init([make_node("db", "postgres"), make_node("host", "vercel")], [])
    manifest = build_manifest(engine.snapshot(), registry, TS)
    assert build_install_command(manifest) == "# No npm packages to install"


def test_readme_snippet(registry, engine, collision_graph):
    engine.init(*collision_graph)
    snippet = build_readme_snippet(build_manifest(engine.snapshot(), registry, TS))
    assert snippet.startswith("# Stack Blueprint\n")
    assert "**Frontend:** Next.js" in snippet
    assert "1 collision(s) detected." in snippet


# --- Rendering ---

def test_markdown_sections(registry, evidence_index, rules, next_prisma_postgres):
    md = render_report_markdown(_report(registry, evidence_index, rules, *next_prisma_postgres))
    assert md.startswith("# Stack Compatibility Report\n")
    assert "_No major issues detected._" in md
    assert "## Risks" in md
    assert "### 1. [MEDIUM]" in md
    assert "[HIGH] Prisma Client cannot open direct database connections" in md
    assert "## Fixes" in md
    assert "<details>" in md
    assert "_No collisions detected. No swaps needed._" in md
    assert md.index("## Risks") < md.index("## Fixes") < md.index("## Recommended Swaps")


def test_markdown_sources_are_sorted_and_canonical(registry, evidence_index, rules, next_prisma_postgres):
    md = render_report_markdown(_report(registry, evidence_index, rules, *next_prisma_postgres))
    sources = md.split("## Sources\n\n", 1)[1].strip().splitlines()
    urls = [line[2:] for line in sources]
    assert urls == sorted(urls)
    assert len(urls) == len(set(urls))
    assert "https://www.prisma.io/docs/orm/overview/databases/database-drivers" in urls
    assert all("?" not in u and "#" not in u for u in urls)


def test_greenlights_use_ok_marker(registry, evidence_index, rules, svelte_turso):
    md = render_report_markdown(_report(registry, evidence_index, rules, *svelte_turso))
    assert "## Greenlights" in md
    assert "### 1. [OK]" in md


def test_swaps_rendered(registry, evidence_index, rules, collision_graph):
    md = render_report_markdown(_report(registry, evidence_index, rules, *collision_graph))
    assert "### Next.js <-> TypeORM" in md
    assert "- **Prisma**: Mutual native support with Next.js" in md


def test_output_is_deterministic(registry, evidence_index, rules, next_prisma_postgres):
    first = _report(registry, evidence_index, rules, *next_prisma_postgres)
    second = _report(registry, evidence_index, rules, *reversed_graph(next_prisma_postgres))
    assert render_report_markdown(first) == render_report_markdown(second)
    assert manifest_to_json(first.manifest) == manifest_to_json(second.manifest)
    assert report_to_json(first) == report_to_json(_report(
        registry, evidence_index, rules, *next_prisma_postgres
    ))


def reversed_graph(graph):
    nodes, edges = graph
    return list(reversed(nodes)), list(reversed(edges))


def test_sources_footer_canonicalizes_supplied_urls(registry, rules, engine, make_node):
    index = build_evidence_index([("timeout.json", {
        "rule_id": "edge-runtime-response-timeout",
        "kind": "risk",
        "claim": "Edge routes time out.",
        "scope": "Edge routes",
        "severity": "medium",
        "confidence": "medium",
        "evidence": [{
            "url": "https://docs.example.com/a",
            "canonical_url": "https://Docs.Example.com/a/?utm=1",
            "source_type": "official_docs",
            "excerpt": "Responses must start quickly.",
        }],
    })])
    engine.init([make_node("web", "nextjs")], [])
    report = build_report_data(engine.snapshot(), registry, index, timestamp=TS, rules=rules)

    md = render_report_markdown(report)
    assert md.endswith("## Sources\n\n- https://docs.example.com/a\n\n")
