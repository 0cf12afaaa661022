"""
Test fixtures shared across all StackGraph tests.
"""

import pytest

from stackgraph.core.evidence import load_evidence_index
from stackgraph.core.registry import load_registry
from stackgraph.core.scoring import CompatibilityEngine, ScoringRules
from stackgraph.models.graph_models import Edge, Node, NodeData, Position


@pytest.fixture(scope="session")
def registry():
    """The shipped tool registry."""
    return load_registry()


@pytest.fixture(scope="session")
def evidence_index():
    """The shipped evidence packs, validated."""
    return load_evidence_index()


@pytest.fixture
def rules():
    """Default scoring constants, independent of the environment."""
    return ScoringRules()


@pytest.fixture
def engine(registry, rules):
    return CompatibilityEngine(registry, rules)


@pytest.fixture
def make_node():
    def _make(node_id, tool_id=None, category=None, label=None, x=0.0, y=0.0):
        return Node(
            id=node_id,
            position=Position(x=x, y=y),
            data=NodeData(tool_id=tool_id, category=category, label=label or node_id),
        )
    return _make


@pytest.fixture
def make_edge():
    def _make(edge_id, source, target):
        return Edge(id=edge_id, source=source, target=target)
    return _make


@pytest.fixture
def collision_graph(make_node, make_edge):
    """Next.js wired to TypeORM, a declared friction."""
    nodes = [
        make_node("frontend", "nextjs", "Frontend", "Frontend Framework"),
        make_node("orm", "typeorm", "ORM", "ORM"),
    ]
    edges = [make_edge("e-frontend-orm", "frontend", "orm")]
    return nodes, edges


@pytest.fixture
def next_prisma_postgres(make_node, make_edge):
    """Next.js → Prisma → PostgreSQL, all native."""
    nodes = [
        make_node("frontend", "nextjs", "Frontend"),
        make_node("orm", "prisma", "ORM"),
        make_node("database", "postgres", "Database"),
    ]
    edges = [
        make_edge("e1", "frontend", "orm"),
        make_edge("e2", "orm", "database"),
    ]
    return nodes, edges


@pytest.fixture
def svelte_turso(make_node, make_edge):
    """SvelteKit → Turso, native and free of any evidence risk."""
    nodes = [
        make_node("frontend", "sveltekit", "Frontend"),
        make_node("database", "turso", "Database"),
    ]
    edges = [make_edge("e1", "frontend", "database")]
    return nodes, edges
