"""
Compatibility Scoring Engine — Edge, node and global scores for a stack graph.

Score per node:
    score = base_score
            + affinity_bonus   × (neighbours with a native relation)
            - friction_penalty × (neighbours with a declared clash)
            - unknown_penalty  × (neighbours with no relation or no tool)
    clamped to [0, 100]

Every mutation triggers a ripple audit: only the connected component
reachable from the touched nodes is rescored. Scores in disjoint components
are left exactly as they were.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Literal

from stackgraph.config import settings
from stackgraph.core.graph import build_adjacency, connected_component
from stackgraph.core.registry import ToolRegistry
from stackgraph.models.graph_models import (
    Edge,
    EdgeScore,
    EdgeStatus,
    GraphSnapshot,
    Node,
    NodeScore,
    NodeTier,
)

logger = logging.getLogger("stackgraph.scoring")


class GraphError(ValueError):
    """Raised for mutations that would leave the graph structurally invalid."""


@dataclass(frozen=True)
class ScoringRules:
    """Scoring constants. Defaults come from settings."""

    affinity_bonus: int = 12
    friction_penalty: int = 35
    unknown_penalty: int = 3
    excellent_min: int = 80
    solid_min: int = 60
    risky_min: int = 40

    @classmethod
    def from_settings(cls) -> "ScoringRules":
        return cls(
            affinity_bonus=settings.affinity_bonus,
            friction_penalty=settings.friction_penalty,
            unknown_penalty=settings.unknown_penalty,
            excellent_min=settings.tier_excellent_min,
            solid_min=settings.tier_solid_min,
            risky_min=settings.tier_risky_min,
        )

    def tier_for(self, score: int) -> NodeTier:
        if score >= self.excellent_min:
            return NodeTier.EXCELLENT
        if score >= self.solid_min:
            return NodeTier.SOLID
        if score >= self.risky_min:
            return NodeTier.RISKY
        return NodeTier.CRITICAL


@dataclass(frozen=True)
class EngineEvent:
    """Record of the last mutation, kept for debugging."""

    type: Literal[
        "INIT",
        "NODE_TOOL_CHANGED",
        "NODE_NOTES_CHANGED",
        "NODE_ADDED",
        "NODE_REMOVED",
        "EDGE_CONNECTED",
        "EDGE_REMOVED",
    ]
    node_id: str | None = None
    tool_id: str | None = None
    edge_id: str | None = None


def clamp_score(value: float) -> int:
    """Round half up and clamp to [0, 100]."""
    return max(0, min(100, int(math.floor(value + 0.5))))


def score_tools(registry: ToolRegistry, tool_a: str | None, tool_b: str | None) -> EdgeScore:
    """
    Classify the relation between two tool ids.

    Friction wins over affinity. Either side declaring a relation is enough.
    Missing or unknown ids are NEUTRAL, never an error.
    """
    if not tool_a or not tool_b:
        return EdgeScore(status=EdgeStatus.NEUTRAL, reason="Missing tool selection.")

    a = registry.get(tool_a)
    b = registry.get(tool_b)
    if a is None or b is None:
        unknown = sorted(t for t in (tool_a, tool_b) if registry.get(t) is None)
        return EdgeScore(
            status=EdgeStatus.NEUTRAL,
            reason=f"Unknown tool: {', '.join(unknown)}.",
        )

    if registry.has_friction(a, b):
        return EdgeScore(status=EdgeStatus.COLLISION, reason=registry.friction_note(a, b))

    if registry.has_affinity(a, b):
        return EdgeScore(status=EdgeStatus.NATIVE, reason=f"{a.name} works natively with {b.name}")

    return EdgeScore(status=EdgeStatus.NEUTRAL, reason="No explicit relationship.")


class CompatibilityEngine:
    """
    Single-writer owner of a stack graph and its derived scores.

    Every public mutation recomputes the affected component before it
    returns, so callers never observe a half-updated score map.
    """

    def __init__(self, registry: ToolRegistry, rules: ScoringRules | None = None) -> None:
        self.registry = registry
        self.rules = rules or ScoringRules.from_settings()
        self._nodes: dict[str, Node] = {}
        self._edges: dict[str, Edge] = {}
        self._node_scores: dict[str, NodeScore] = {}
        self._edge_scores: dict[str, EdgeScore] = {}
        self.last_event = EngineEvent(type="INIT")

    # -------------------------
    # READ
    # -------------------------

    @property
    def nodes(self) -> list[Node]:
        return list(self._nodes.values())

    @property
    def edges(self) -> list[Edge]:
        return list(self._edges.values())

    @property
    def node_scores(self) -> dict[str, NodeScore]:
        return dict(self._node_scores)

    @property
    def edge_scores(self) -> dict[str, EdgeScore]:
        return dict(self._edge_scores)

    @property
    def global_score(self) -> int:
        """Mean of all node scores, broken nodes included. 100 for an empty graph."""
        if not self._node_scores:
            return 100
        total = sum(s.score for s in self._node_scores.values())
        return clamp_score(total / len(self._node_scores))

    def snapshot(self) -> GraphSnapshot:
        """Deep copy of the current graph and scores."""
        return GraphSnapshot(
            nodes=[n.model_copy(deep=True) for n in self._nodes.values()],
            edges=[e.model_copy(deep=True) for e in self._edges.values()],
            node_scores={k: v.model_copy(deep=True) for k, v in self._node_scores.items()},
            edge_scores={k: v.model_copy(deep=True) for k, v in self._edge_scores.items()},
            global_score=self.global_score,
        )

    # -------------------------
    # MUTATIONS
    # -------------------------

    def init(self, nodes: list[Node], edges: list[Edge]) -> None:
        """Replace the whole graph and audit everything. On error nothing changes."""
        new_nodes: dict[str, Node] = {}
        new_edges: dict[str, Edge] = {}
        for node in nodes:
            if node.id in new_nodes:
                raise GraphError(f"Duplicate node id: {node.id}")
            new_nodes[node.id] = node.model_copy(deep=True)
        for edge in edges:
            self._validate_edge(edge, new_nodes, new_edges)
            new_edges[edge.id] = edge.model_copy(deep=True)

        self._nodes = new_nodes
        self._edges = new_edges
        self._node_scores = {}
        self._edge_scores = {}
        self.last_event = EngineEvent(type="INIT")
        self._audit_all()

    def update_tool(self, node_id: str, tool_id: str | None) -> None:
        node = self._require_node(node_id)
        if tool_id and tool_id not in self.registry:
            logger.warning(f"Node {node_id} set to unknown tool '{tool_id}'")
        node.data = node.data.model_copy(update={"tool_id": tool_id})
        self.last_event = EngineEvent(type="NODE_TOOL_CHANGED", node_id=node_id, tool_id=tool_id)
        self._audit_ripple([node_id])

    def update_notes(self, node_id: str, notes: str | None) -> None:
        """Notes never affect scoring, so nothing is recomputed."""
        node = self._require_node(node_id)
        node.data = node.data.model_copy(update={"notes": notes})
        self.last_event = EngineEvent(type="NODE_NOTES_CHANGED", node_id=node_id)

    def add_node(self, node: Node) -> None:
        if node.id in self._nodes:
            raise GraphError(f"Duplicate node id: {node.id}")
        self._nodes[node.id] = node.model_copy(deep=True)
        self.last_event = EngineEvent(
            type="NODE_ADDED", node_id=node.id, tool_id=node.data.tool_id
        )
        self._audit_ripple([node.id])

    def remove_node(self, node_id: str) -> None:
        """Drop a node, its incident edges and their scores; rescore former neighbours."""
        self._require_node(node_id)
        neighbours: set[str] = set()
        for edge_id, edge in list(self._edges.items()):
            if node_id in (edge.source, edge.target):
                neighbours.add(edge.target if edge.source == node_id else edge.source)
                del self._edges[edge_id]
                self._edge_scores.pop(edge_id, None)

        del self._nodes[node_id]
        self._node_scores.pop(node_id, None)
        self.last_event = EngineEvent(type="NODE_REMOVED", node_id=node_id)
        self._audit_ripple(sorted(neighbours))

    def connect_edge(self, edge: Edge) -> None:
        self._validate_edge(edge)
        self._edges[edge.id] = edge.model_copy(deep=True)
        self.last_event = EngineEvent(type="EDGE_CONNECTED", edge_id=edge.id)
        self._audit_ripple([edge.source, edge.target])

    def remove_edge(self, edge_id: str) -> None:
        removed = self._edges.pop(edge_id, None)
        self._edge_scores.pop(edge_id, None)
        self.last_event = EngineEvent(type="EDGE_REMOVED", edge_id=edge_id)
        if removed is None:
            logger.warning(f"remove_edge: unknown edge '{edge_id}', running full audit")
            self._audit_all()
            return
        # Both endpoints seed the ripple, so a split yields two consistent components
        self._audit_ripple([removed.source, removed.target])

    # -------------------------
    # SCORING
    # -------------------------

    def score_edge(self, edge_id: str) -> EdgeScore:
        edge = self._edges[edge_id]
        return score_tools(
            self.registry,
            self._tool_id_of(edge.source),
            self._tool_id_of(edge.target),
        )

    def score_node(self, node_id: str, adjacency: dict[str, set[str]]) -> NodeScore:
        node = self._nodes.get(node_id)
        tool = self.registry.get(node.data.tool_id) if node else None

        if node is None or tool is None:
            if node is not None and node.data.tool_id:
                note = f"Unknown tool '{node.data.tool_id}'."
            else:
                note = "Select a tool to compute a score."
            return NodeScore(score=0, tier=NodeTier.BROKEN, notes=[note])

        score = tool.base_score
        unknown = 0
        notes: list[str] = []

        for nb in sorted(adjacency.get(node_id, ())):
            nb_tool = self.registry.get(self._tool_id_of(nb))
            if nb_tool is None:
                unknown += 1
                continue
            if self.registry.has_friction(tool, nb_tool):
                score -= self.rules.friction_penalty
                notes.append(f"Friction: {tool.name} <-> {nb_tool.name}")
                continue
            if self.registry.has_affinity(tool, nb_tool):
                score += self.rules.affinity_bonus
                continue
            unknown += 1

        score -= unknown * self.rules.unknown_penalty
        clipped = clamp_score(score)
        return NodeScore(score=clipped, tier=self.rules.tier_for(clipped), notes=notes)

    # -------------------------
    # AUDIT CORE
    # -------------------------

    def _audit_all(self) -> None:
        self._audit_ripple(list(self._nodes))

    def _audit_ripple(self, seeds: list[str]) -> None:
        adjacency = build_adjacency(self._edges.values())
        component = connected_component(adjacency, [s for s in seeds if s in self._nodes])

        for edge_id, edge in self._edges.items():
            if edge.source in component or edge.target in component:
                self._edge_scores[edge_id] = self.score_edge(edge_id)

        for node_id in component:
            self._node_scores[node_id] = self.score_node(node_id, adjacency)

        logger.debug(
            f"Ripple audit ({self.last_event.type}): "
            f"{len(component)} node(s) rescored from {len(seeds)} seed(s)"
        )

    # -------------------------
    # HELPERS
    # -------------------------

    def _require_node(self, node_id: str) -> Node:
        node = self._nodes.get(node_id)
        if node is None:
            raise GraphError(f"Unknown node: {node_id}")
        return node

    def _tool_id_of(self, node_id: str) -> str | None:
        node = self._nodes.get(node_id)
        return node.data.tool_id if node else None

    def _validate_edge(
        self,
        edge: Edge,
        nodes: dict[str, Node] | None = None,
        edges: dict[str, Edge] | None = None,
    ) -> None:
        nodes = self._nodes if nodes is None else nodes
        edges = self._edges if edges is None else edges
        if edge.source == edge.target:
            raise GraphError(f"Self-loop not allowed: {edge.id}")
        if edge.id in edges:
            raise GraphError(f"Duplicate edge id: {edge.id}")
        for endpoint in (edge.source, edge.target):
            if endpoint not in nodes:
                raise GraphError(f"Edge {edge.id} references unknown node: {endpoint}")
        pair = {edge.source, edge.target}
        for existing in edges.values():
            if {existing.source, existing.target} == pair:
                raise GraphError(
                    f"Duplicate connection between {edge.source} and {edge.target}"
                )
