"""
Tool Registry — Static catalog of tools and their declared relations.

Loaded once from ``data/registry.json`` and treated as read-only afterwards.
Relations are declared per tool but read symmetrically: if either side
declares friction (or affinity) toward the other, the pair has it.
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Iterable, Iterator

from stackgraph.config import settings
from stackgraph.models.registry_models import Tool

logger = logging.getLogger("stackgraph.registry")


class ToolRegistry:
    """Read-only lookup over a list of tools."""

    def __init__(self, tools: Iterable[Tool]) -> None:
        self._tools: tuple[Tool, ...] = tuple(tools)
        self._by_id: dict[str, Tool] = {}
        for tool in self._tools:
            if tool.id in self._by_id:
                raise ValueError(f"Duplicate tool id in registry: {tool.id}")
            self._by_id[tool.id] = tool

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools)

    def __contains__(self, tool_id: object) -> bool:
        return tool_id in self._by_id

    @property
    def tools(self) -> tuple[Tool, ...]:
        return self._tools

    def get(self, tool_id: str | None) -> Tool | None:
        """Resolve a tool id. Missing or unknown ids return None."""
        if not tool_id:
            return None
        return self._by_id.get(tool_id)

    def by_category(self, category: str) -> list[Tool]:
        return [t for t in self._tools if t.category.value == category]

    @staticmethod
    def has_friction(a: Tool, b: Tool) -> bool:
        return b.id in a.friction or a.id in b.friction

    @staticmethod
    def has_affinity(a: Tool, b: Tool) -> bool:
        return b.id in a.affinity or a.id in b.affinity

    @staticmethod
    def friction_note(a: Tool, b: Tool) -> str:
        """Best explanation for a clash, falling back to a generic line."""
        note = a.friction_notes.get(b.id) or b.friction_notes.get(a.id)
        return note or f"{a.name} has friction with {b.name}"


def load_registry(path: str | Path | None = None) -> ToolRegistry:
    """
    Load the tool registry from a JSON file.

    The file holds ``{"tools": [...]}``. Malformed data raises; the registry
    is required for every analysis, so there is nothing to degrade to.
    """
    registry_path = Path(path or settings.registry_path)
    with open(registry_path, encoding="utf-8") as f:
        raw = json.load(f)

    tools = [Tool.model_validate(entry) for entry in raw.get("tools", [])]
    registry = ToolRegistry(tools)
    logger.info(f"Loaded {len(registry)} tools from {registry_path.name}")
    return registry


@lru_cache
def get_default_registry() -> ToolRegistry:
    """Shared registry loaded from the configured path."""
    return load_registry()
