"""
Graph Store — Versioned local save/load of a graph.

Stores ``{version, nodes, edges, saved_at}`` as a JSON file. Loading never
raises: a missing, corrupt or wrongly shaped file yields None.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from stackgraph.models.graph_models import Edge, Node, PersistedGraph

logger = logging.getLogger("stackgraph.storage")

STORAGE_VERSION = 1


class GraphStore:
    """Single-slot graph persistence backed by one JSON file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def save(self, nodes: list[Node], edges: list[Edge], saved_at: str | None = None) -> PersistedGraph:
        record = PersistedGraph(
            version=STORAGE_VERSION,
            nodes=nodes,
            edges=edges,
            saved_at=saved_at or datetime.now(timezone.utc).isoformat(),
        )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(record.model_dump_json(indent=2), encoding="utf-8")
        return record

    def load(self) -> PersistedGraph | None:
        if not self.path.exists():
            return None
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            record = PersistedGraph.model_validate(raw)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Ignoring unreadable saved graph {self.path}: {e}")
            return None
        if record.version != STORAGE_VERSION:
            logger.warning(f"Ignoring saved graph with unsupported version {record.version}")
            return None
        return record

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
