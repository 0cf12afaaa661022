"""
Graph Data Models — Nodes, edges and the scores derived from them.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class Position(BaseModel):
    """Canvas position. Owned by the editor, carried through untouched."""

    x: float = 0.0
    y: float = 0.0


class NodeData(BaseModel):
    tool_id: str | None = None
    label: str | None = None
    category: str | None = None
    notes: str | None = None


class Node(BaseModel):
    """One category slot in the stack graph."""

    id: str
    type: str = "stack"
    position: Position = Field(default_factory=Position)
    data: NodeData = Field(default_factory=NodeData)


class Edge(BaseModel):
    """Undirected connection between two nodes."""

    id: str
    source: str
    target: str


class EdgeStatus(str, Enum):
    NATIVE = "NATIVE"
    COLLISION = "COLLISION"
    NEUTRAL = "NEUTRAL"


class EdgeScore(BaseModel):
    status: EdgeStatus
    reason: str


class NodeTier(str, Enum):
    EXCELLENT = "EXCELLENT"
    SOLID = "SOLID"
    RISKY = "RISKY"
    CRITICAL = "CRITICAL"
    BROKEN = "BROKEN"  # no resolvable tool selected


# Tiers that surface as low-score findings
LOW_TIERS: frozenset[NodeTier] = frozenset({NodeTier.RISKY, NodeTier.CRITICAL})


class NodeScore(BaseModel):
    score: int = Field(..., ge=0, le=100)
    tier: NodeTier
    notes: list[str] = Field(default_factory=list)


class GraphSnapshot(BaseModel):
    """Plain copy of the engine state handed to report and export code."""

    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    node_scores: dict[str, NodeScore] = Field(default_factory=dict)
    edge_scores: dict[str, EdgeScore] = Field(default_factory=dict)
    global_score: int = Field(default=100, ge=0, le=100)


class PersistedGraph(BaseModel):
    """Versioned blob written by the local graph store."""

    version: int
    nodes: list[Node]
    edges: list[Edge]
    saved_at: str
