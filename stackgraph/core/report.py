"""
Report Builder — Turns a scored graph snapshot into ordered findings.

build_report_data() is a pure function of (snapshot, registry, evidence
index, timestamp). Findings are emitted strictly in this order:

    1. collision: one per COLLISION edge, snapshot edge order
    2. risk: evidence packs whose trigger matches the tools present
    3. fix: fix packs named by a fired risk (never otherwise)
    4. positive: evidence packs whose trigger matches
    5. low-score: nodes in the two lowest tiers, worst first

Risk, fix and positive findings are sorted by rule id. Rendering to
Markdown and JSON is a second pure step over ReportData.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from stackgraph.core.evidence import EvidenceIndex, canonicalize_url
from stackgraph.core.matchers import positive_fires, risk_fires
from stackgraph.core.registry import ToolRegistry
from stackgraph.core.scoring import ScoringRules
from stackgraph.core.suggest import generate_collision_suggestions
from stackgraph.models.evidence_models import EvidenceItem, EvidencePack, PackKind
from stackgraph.models.graph_models import (
    LOW_TIERS,
    EdgeStatus,
    GraphSnapshot,
    Node,
    NodeTier,
)
from stackgraph.models.registry_models import CATEGORY_ORDER
from stackgraph.models.report_models import (
    FindingType,
    Manifest,
    ManifestEdge,
    ManifestNode,
    ManifestTool,
    ReportData,
    ReportFinding,
    ReportSwap,
)

logger = logging.getLogger("stackgraph.report")

WHAT_MAX_CHARS = 80

_EDGE_WEIGHTS: dict[EdgeStatus, int] = {
    EdgeStatus.NATIVE: 1,
    EdgeStatus.COLLISION: -1,
    EdgeStatus.NEUTRAL: 0,
}

_SEVERITY_MARKERS = {"high": "[HIGH]", "medium": "[MEDIUM]", "low": "[LOW]", "info": "[INFO]"}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _category_rank(category: str) -> int:
    return CATEGORY_ORDER.index(category) if category in CATEGORY_ORDER else len(CATEGORY_ORDER)


def _truncate(text: str, limit: int = WHAT_MAX_CHARS) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def _label(node: Node) -> str:
    return node.data.label or node.id


# -------------------------
# MANIFEST
# -------------------------


def build_manifest(
    snapshot: GraphSnapshot,
    registry: ToolRegistry,
    timestamp: str | None = None,
) -> Manifest:
    """Versioned, stably sorted description of the stack."""
    tool_ids = {n.data.tool_id for n in snapshot.nodes if n.data.tool_id}
    tools = [
        ManifestTool(
            id=tool.id,
            name=tool.name,
            category=tool.category.value,
            install=tool.install_hint,
        )
        for tool in (registry.get(tid) for tid in tool_ids)
        if tool is not None
    ]
    tools.sort(key=lambda t: (_category_rank(t.category), t.name, t.id))

    nodes = [
        ManifestNode(id=n.id, category=n.data.category or "", tool_id=n.data.tool_id or "")
        for n in snapshot.nodes
    ]
    nodes.sort(key=lambda n: (_category_rank(n.category), n.id))

    edges = []
    for e in snapshot.edges:
        edge_score = snapshot.edge_scores.get(e.id)
        status = edge_score.status if edge_score else None
        edges.append(
            ManifestEdge(
                id=e.id,
                source=e.source,
                target=e.target,
                status=status,
                weight=_EDGE_WEIGHTS.get(status, 0) if status else 0,
            )
        )
    edges.sort(key=lambda e: (e.source, e.target, e.id))

    return Manifest(
        generated_at=timestamp or _now_iso(),
        tools=tools,
        nodes=nodes,
        edges=edges,
        global_score=snapshot.global_score,
    )


def build_install_command(manifest: Manifest) -> str:
    """Single pnpm command for every npm-installable tool, deduplicated and sorted."""
    packages: set[str] = set()
    for tool in manifest.tools:
        parts = tool.install.split()
        if len(parts) >= 3 and parts[0] == "npm" and parts[1] in ("i", "install"):
            packages.update(p for p in parts[2:] if p != "n/a")

    if not packages:
        return "# No npm packages to install"
    return f"pnpm add {' '.join(sorted(packages))}"


def build_readme_snippet(manifest: Manifest) -> str:
    """Short README section listing the stack by category."""
    md = "# Stack Blueprint\n\n"
    md += f"Generated at: {manifest.generated_at}\n"
    md += f"Global Compatibility Score: {manifest.global_score}/100\n\n"

    by_category: dict[str, list[str]] = {}
    for tool in manifest.tools:
        by_category.setdefault(tool.category, []).append(tool.name)

    md += "## Stack\n\n"
    for category in CATEGORY_ORDER:
        names = by_category.get(category)
        if names:
            md += f"**{category}:** {', '.join(names)}\n\n"

    collisions = [e for e in manifest.edges if e.status == EdgeStatus.COLLISION]
    if collisions:
        md += "## Known Collisions\n\n"
        md += (
            f"{len(collisions)} collision(s) detected. "
            "Review your stack for compatibility issues.\n\n"
        )
    return md


# -------------------------
# FINDINGS
# -------------------------


def _collision_findings(snapshot: GraphSnapshot, registry: ToolRegistry) -> list[ReportFinding]:
    nodes = {n.id: n for n in snapshot.nodes}
    findings: list[ReportFinding] = []

    for edge in snapshot.edges:
        edge_score = snapshot.edge_scores.get(edge.id)
        if edge_score is None or edge_score.status != EdgeStatus.COLLISION:
            continue
        source, target = nodes.get(edge.source), nodes.get(edge.target)
        if source is None or target is None:
            continue

        source_tool = registry.get(source.data.tool_id)
        target_tool = registry.get(target.data.tool_id)
        findings.append(
            ReportFinding(
                type=FindingType.COLLISION,
                severity="high",
                what=f"Friction between {_label(source)} and {_label(target)}",
                why=edge_score.reason or "Incompatible tools",
                evidence=(
                    f"{source_tool.name if source_tool else '?'} <-> "
                    f"{target_tool.name if target_tool else '?'}"
                ),
                suggested_fix=(
                    "Consider swapping one of these tools for a compatible "
                    "alternative (see Recommended Swaps)"
                ),
                edge_id=edge.id,
            )
        )
    return findings


def _pack_finding(
    finding_type: FindingType,
    pack: EvidencePack,
    severity: str,
    evidence: str,
    suggested_fix: str,
) -> ReportFinding:
    return ReportFinding(
        type=finding_type,
        severity=severity,
        what=_truncate(pack.claim),
        why=pack.claim,
        evidence=evidence,
        suggested_fix=suggested_fix,
        rule_id=pack.rule_id,
        confidence=pack.confidence.value,
        evidence_pack=pack,
    )


def _source_count(pack: EvidencePack) -> str:
    if pack.needs_verification:
        return "Ungrounded claim (needs verification)"
    return f"{len(pack.evidence)} source(s)"


def _evidence_findings(
    evidence_index: EvidenceIndex, tool_ids: set[str]
) -> tuple[list[ReportFinding], list[ReportFinding], list[ReportFinding]]:
    risks: list[ReportFinding] = []
    fixes: list[ReportFinding] = []
    positives: list[ReportFinding] = []

    fired: list[EvidencePack] = []
    for pack in evidence_index.by_kind(PackKind.RISK):
        if not risk_fires(pack.rule_id, tool_ids):
            continue
        fired.append(pack)
        suggested = (
            f"See recommended fixes: {', '.join(pack.fix_rule_ids)}"
            if pack.fix_rule_ids
            else "Review evidence and consider alternative approaches"
        )
        risks.append(
            _pack_finding(FindingType.RISK, pack, pack.severity.value, _source_count(pack), suggested)
        )

    # Fix gating: only fixes named by a fired risk
    referenced = {fix_id for risk in fired for fix_id in risk.fix_rule_ids}
    for pack in evidence_index.by_kind(PackKind.FIX):
        if pack.rule_id not in referenced:
            continue
        fixes.append(
            _pack_finding(FindingType.FIX, pack, pack.severity.value, _source_count(pack), pack.scope)
        )

    for pack in evidence_index.by_kind(PackKind.POSITIVE):
        if not positive_fires(pack.rule_id, tool_ids):
            continue
        positives.append(
            _pack_finding(FindingType.POSITIVE, pack, "info", _source_count(pack), pack.scope)
        )

    for group in (risks, fixes, positives):
        group.sort(key=lambda f: f.rule_id or "")
    return risks, fixes, positives


def _low_score_findings(snapshot: GraphSnapshot, registry: ToolRegistry) -> list[ReportFinding]:
    nodes = {n.id: n for n in snapshot.nodes}
    low = sorted(
        (
            (node_id, score)
            for node_id, score in snapshot.node_scores.items()
            if score.tier in LOW_TIERS and node_id in nodes
        ),
        key=lambda pair: (pair[1].score, pair[0]),
    )

    findings: list[ReportFinding] = []
    for node_id, score in low:
        node = nodes[node_id]
        tool = registry.get(node.data.tool_id)
        findings.append(
            ReportFinding(
                type=FindingType.LOW_SCORE,
                severity="high" if score.tier == NodeTier.CRITICAL else "medium",
                what=f"Low compatibility score for {_label(node)}",
                why="; ".join(score.notes) or "Multiple friction points detected",
                evidence=f"Score: {score.score}/100, Tool: {tool.name if tool else '?'}",
                suggested_fix="Review connections and consider alternative tools",
                node_id=node_id,
            )
        )
    return findings


def _swaps(snapshot: GraphSnapshot, registry: ToolRegistry) -> list[ReportSwap]:
    nodes = {n.id: n for n in snapshot.nodes}
    swaps: list[ReportSwap] = []

    for edge in snapshot.edges:
        edge_score = snapshot.edge_scores.get(edge.id)
        if edge_score is None or edge_score.status != EdgeStatus.COLLISION:
            continue
        source, target = nodes.get(edge.source), nodes.get(edge.target)
        if source is None or target is None:
            continue
        source_tool_id, target_tool_id = source.data.tool_id, target.data.tool_id
        if not source_tool_id or not target_tool_id:
            continue

        source_tool = registry.get(source_tool_id)
        target_tool = registry.get(target_tool_id)
        swaps.append(
            ReportSwap(
                edge_id=edge.id,
                source_tool=source_tool.name if source_tool else source_tool_id,
                target_tool=target_tool.name if target_tool else target_tool_id,
                alternatives=generate_collision_suggestions(
                    registry, source.id, source_tool_id, target.id, target_tool_id
                ),
            )
        )
    return swaps


def build_report_data(
    snapshot: GraphSnapshot,
    registry: ToolRegistry,
    evidence_index: EvidenceIndex | None = None,
    timestamp: str | None = None,
    rules: ScoringRules | None = None,
) -> ReportData:
    """
    Build structured report data from a scored snapshot.

    Pass ``timestamp`` for byte-identical output across calls; without it the
    current UTC time is used. Without an evidence index only collision and
    low-score findings are produced.
    """
    rules = rules or ScoringRules.from_settings()
    ts = timestamp or _now_iso()
    manifest = build_manifest(snapshot, registry, ts)

    tool_ids = {n.data.tool_id for n in snapshot.nodes if n.data.tool_id}

    collisions = _collision_findings(snapshot, registry)
    risks: list[ReportFinding] = []
    fixes: list[ReportFinding] = []
    positives: list[ReportFinding] = []
    if evidence_index is not None:
        risks, fixes, positives = _evidence_findings(evidence_index, tool_ids)
    low_scores = _low_score_findings(snapshot, registry)

    findings = [*collisions, *risks, *fixes, *positives, *low_scores]
    logger.info(
        f"Report built: {len(collisions)} collision, {len(risks)} risk, {len(fixes)} fix, "
        f"{len(positives)} positive, {len(low_scores)} low-score finding(s)"
    )

    return ReportData(
        timestamp=ts,
        global_score=snapshot.global_score,
        tier=rules.tier_for(snapshot.global_score).value,
        findings=findings,
        swaps=_swaps(snapshot, registry),
        manifest=manifest,
    )


# -------------------------
# RENDERING
# -------------------------


def _render_items(title: str, items: list[EvidenceItem], urls: set[str]) -> str:
    if not items:
        return ""
    md = f"**{title}:**\n\n"
    for item in items:
        md += f"- [{item.source_type}] {item.excerpt}\n"
        md += f"  - Source: {item.url}\n"
        if item.note:
            md += f"  - Note: {item.note}\n"
        urls.add(canonicalize_url(item.canonical_url or item.url))
    return md + "\n"


def _render_evidence_details(pack: EvidencePack, urls: set[str]) -> str:
    md = "<details>\n<summary>Evidence Details</summary>\n\n"
    if pack.needs_verification:
        md += "_This claim needs verification: insufficient primary evidence._\n\n"
    md += f"**Confidence:** {pack.confidence.value}\n\n"
    md += f"**Scope:** {pack.scope}\n\n"
    md += _render_items("Supporting Evidence", pack.evidence, urls)
    md += _render_items("Counter-Evidence", pack.counter_evidence, urls)
    return md + "</details>\n\n"


def _render_section(
    findings: list[ReportFinding],
    urls: set[str],
    labels: tuple[str, str, str],
    marker: str | None = None,
) -> str:
    first, second, third = labels
    md = ""
    for i, f in enumerate(findings, start=1):
        prefix = marker if marker is not None else _SEVERITY_MARKERS.get(f.severity, "")
        heading = f"{prefix} {f.what}" if prefix else f.what
        md += f"### {i}. {heading}\n\n"
        md += f"**{first}:** {f.why}\n\n"
        md += f"**{second}:** {f.evidence}\n\n"
        md += f"**{third}:** {f.suggested_fix}\n\n"
        if f.evidence_pack is not None:
            md += _render_evidence_details(f.evidence_pack, urls)
    return md


def render_report_markdown(report: ReportData) -> str:
    """Render report data as Markdown. Same input, same bytes."""
    urls: set[str] = set()
    by_type: dict[FindingType, list[ReportFinding]] = {t: [] for t in FindingType}
    for f in report.findings:
        by_type[f.type].append(f)

    md = "# Stack Compatibility Report\n\n"
    md += f"**Generated:** {report.timestamp}\n\n"
    md += f"**Global Score:** {report.global_score}/100 ({report.tier})\n\n"

    md += "## Top Findings\n\n"
    top = by_type[FindingType.COLLISION] + by_type[FindingType.LOW_SCORE]
    if not top:
        md += "_No major issues detected._\n\n"
    else:
        md += _render_section(top, urls, ("Why", "Evidence", "Suggested Fix"))

    if by_type[FindingType.RISK]:
        md += "## Risks\n\n"
        md += _render_section(by_type[FindingType.RISK], urls, ("Why", "Evidence", "Suggested Fix"))

    if by_type[FindingType.FIX]:
        md += "## Fixes\n\n"
        md += _render_section(by_type[FindingType.FIX], urls, ("What", "Evidence", "Scope"), marker="")

    if by_type[FindingType.POSITIVE]:
        md += "## Greenlights\n\n"
        md += _render_section(
            by_type[FindingType.POSITIVE], urls, ("What", "Evidence", "Scope"), marker="[OK]"
        )

    md += "## Recommended Swaps\n\n"
    if not report.swaps:
        md += "_No collisions detected. No swaps needed._\n\n"
    for swap in report.swaps:
        md += f"### {swap.source_tool} <-> {swap.target_tool}\n\n"
        if not swap.alternatives:
            md += "_No compatible alternatives found in registry._\n\n"
            continue
        md += "Consider:\n\n"
        for alt in swap.alternatives:
            md += f"- **{alt.tool_name}**: {alt.reason}\n"
        md += "\n"

    md += "## Stack Tools\n\n"
    for tool in report.manifest.tools:
        md += f"- **{tool.name}** ({tool.category})\n"
    md += "\n"

    if urls:
        md += "## Sources\n\n"
        for url in sorted(urls):
            md += f"- {url}\n"
        md += "\n"

    return md


def report_to_json(report: ReportData) -> str:
    return report.model_dump_json(indent=2)


def manifest_to_json(manifest: Manifest) -> str:
    return manifest.model_dump_json(indent=2)
