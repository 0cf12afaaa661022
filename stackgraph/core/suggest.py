"""
Swap Suggestions — Rule-based alternatives for colliding tools.

For a collision edge, each endpoint may be swapped for a tool that:
  - sits in the same category,
  - is not the tool already selected,
  - declares affinity toward the other endpoint's tool,
  - has no friction with that tool in either direction.

Ranking: confirmed matches (the other tool reciprocates the affinity) first,
then base score descending, then name.
"""

from __future__ import annotations

from stackgraph.config import settings
from stackgraph.core.registry import ToolRegistry
from stackgraph.models.registry_models import Tool
from stackgraph.models.report_models import SwapAlternative


def _rank_key(alt: SwapAlternative, registry: ToolRegistry) -> tuple[int, int, str]:
    tool = registry.get(alt.tool_id)
    base = tool.base_score if tool else 0
    return (0 if alt.confirmed else 1, -base, alt.tool_name)


def _alternatives_for_side(
    registry: ToolRegistry,
    node_id: str,
    current: Tool,
    other: Tool,
) -> list[SwapAlternative]:
    """Candidates replacing ``current`` so that it no longer clashes with ``other``."""
    found: list[SwapAlternative] = []
    for candidate in registry.by_category(current.category.value):
        if candidate.id == current.id:
            continue
        if other.id not in candidate.affinity:
            continue
        if registry.has_friction(candidate, other):
            continue

        confirmed = candidate.id in other.affinity
        reason = (
            f"Mutual native support with {other.name}"
            if confirmed
            else f"Native support for {other.name}"
        )
        found.append(
            SwapAlternative(
                tool_id=candidate.id,
                tool_name=candidate.name,
                reason=reason,
                affects_node_id=node_id,
                category=candidate.category.value,
                confirmed=confirmed,
            )
        )
    return found


def generate_collision_suggestions(
    registry: ToolRegistry,
    source_node_id: str,
    source_tool_id: str,
    target_node_id: str,
    target_tool_id: str,
    max_per_side: int | None = None,
    max_total: int | None = None,
) -> list[SwapAlternative]:
    """
    Suggest swaps that would resolve a collision between two tools.

    Unknown tool ids produce no suggestions.
    """
    per_side = max_per_side if max_per_side is not None else settings.swap_max_per_side
    total = max_total if max_total is not None else settings.swap_max_total

    source = registry.get(source_tool_id)
    target = registry.get(target_tool_id)
    if source is None or target is None:
        return []

    suggestions: list[SwapAlternative] = []
    for node_id, current, other in (
        (source_node_id, source, target),
        (target_node_id, target, source),
    ):
        side = _alternatives_for_side(registry, node_id, current, other)
        side.sort(key=lambda a: _rank_key(a, registry))
        suggestions.extend(side[:per_side])

    suggestions.sort(key=lambda a: _rank_key(a, registry))
    return suggestions[:total]
