"""
Share Codec — Deterministic, size-bounded, URL-safe graph encoding.

Encoding pipeline:
    canonical order → compact JSON (sorted keys) → lz-string (URI-safe alphabet)

Graphs that differ only in node/edge insertion order encode to the same
string. Every public function returns a result model and never raises.
"""

from __future__ import annotations

import json
import logging
import math
from typing import Any

from lzstring import LZString
from pydantic import ValidationError

from stackgraph.config import settings
from stackgraph.core.registry import ToolRegistry
from stackgraph.models.graph_models import Edge, Node
from stackgraph.models.share_models import (
    SHARE_VERSION,
    DeserializeResult,
    SerializeResult,
    ShareErrorKind,
    ShareGraph,
    SharePayload,
    ShareStats,
    ShareUrlResult,
)

logger = logging.getLogger("stackgraph.share")


def canonicalize_nodes(nodes: list[Node]) -> list[Node]:
    """Sort nodes by id (code-point order)."""
    return sorted(nodes, key=lambda n: n.id)


def canonicalize_edges(edges: list[Edge]) -> list[Edge]:
    """Sort edges by source, then target, then id."""
    return sorted(edges, key=lambda e: (e.source, e.target, e.id))


def canonicalize_graph(nodes: list[Node], edges: list[Edge]) -> ShareGraph:
    return ShareGraph(nodes=canonicalize_nodes(nodes), edges=canonicalize_edges(edges))


def _failure(kind: ShareErrorKind, error: str, result_cls: type) -> Any:
    logger.warning(f"Share codec failure ({kind.value}): {error}")
    return result_cls(success=False, error=error, error_kind=kind)


def _compress(raw: str) -> str:
    return LZString().compressToEncodedURIComponent(raw)


def _decompress(encoded: str) -> str:
    """Inverse of _compress. Raises ValueError when nothing can be recovered."""
    try:
        raw = LZString().decompressFromEncodedURIComponent(encoded)
    except (KeyError, IndexError, TypeError) as e:
        raise ValueError(f"unreadable input ({type(e).__name__})") from e
    if not raw:
        raise ValueError("empty result")
    return raw


def _check_limits(node_count: int, edge_count: int) -> tuple[ShareErrorKind, str] | None:
    if node_count > settings.share_max_nodes:
        return (
            ShareErrorKind.TOO_MANY_NODES,
            f"Too many nodes (max {settings.share_max_nodes}, got {node_count})",
        )
    if edge_count > settings.share_max_edges:
        return (
            ShareErrorKind.TOO_MANY_EDGES,
            f"Too many edges (max {settings.share_max_edges}, got {edge_count})",
        )
    return None


def serialize_graph(
    nodes: list[Node],
    edges: list[Edge],
    registry: ToolRegistry | None = None,
) -> SerializeResult:
    """
    Serialize a graph into a URL-safe compressed string.

    Args:
        nodes: Graph nodes, any order.
        edges: Graph edges, any order.
        registry: When given, every selected tool id must resolve in it.

    Returns:
        SerializeResult with the encoded string and stats, or an error.
    """
    limit_error = _check_limits(len(nodes), len(edges))
    if limit_error:
        return _failure(*limit_error, SerializeResult)

    if registry is not None:
        unknown = sorted(
            {n.data.tool_id for n in nodes if n.data.tool_id and n.data.tool_id not in registry}
        )
        if unknown:
            return _failure(
                ShareErrorKind.UNKNOWN_TOOL,
                f"Unknown tool reference(s): {', '.join(unknown)}",
                SerializeResult,
            )

    try:
        payload = SharePayload(graph=canonicalize_graph(nodes, edges))
        raw = json.dumps(
            payload.model_dump(mode="json", exclude_none=True),
            separators=(",", ":"),
            sort_keys=True,
            ensure_ascii=False,
            allow_nan=False,
        )
        encoded = _compress(raw)
    except (ValueError, TypeError) as e:
        return _failure(
            ShareErrorKind.SERIALIZATION_FAILED, f"Serialization failed: {e}", SerializeResult
        )

    if len(encoded) > settings.share_max_encoded_length:
        return _failure(
            ShareErrorKind.ENCODED_TOO_LARGE,
            f"Encoded payload too large (max {settings.share_max_encoded_length} chars, "
            f"got {len(encoded)})",
            SerializeResult,
        )

    return SerializeResult(
        success=True,
        encoded=encoded,
        stats=ShareStats(
            node_count=len(nodes),
            edge_count=len(edges),
            raw_length=len(raw),
            encoded_length=len(encoded),
        ),
    )


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and bool(value)


def validate_payload(payload: Any) -> str | None:
    """Return a description of the first structural problem, or None."""
    if not isinstance(payload, dict):
        return "Payload must be an object"
    version = payload.get("v")
    # bool is an int subclass, and 1.0 == 1
    if type(version) is not int or version != SHARE_VERSION:
        return f"Invalid or missing version field (expected v={SHARE_VERSION})"

    graph = payload.get("graph")
    if not isinstance(graph, dict):
        return "Missing or invalid graph field"

    nodes, edges = graph.get("nodes"), graph.get("edges")
    if not isinstance(nodes, list):
        return "Nodes must be an array"
    if not isinstance(edges, list):
        return "Edges must be an array"

    limit_error = _check_limits(len(nodes), len(edges))
    if limit_error:
        return limit_error[1]

    for i, node in enumerate(nodes):
        if not isinstance(node, dict):
            return f"Invalid node at index {i}: not an object"
        if not _non_empty_str(node.get("id")):
            return f"Invalid node at index {i}: missing or invalid id"
        if not _non_empty_str(node.get("type")):
            return f"Invalid node at index {i}: missing or invalid type"
        position = node.get("position")
        if not isinstance(position, dict):
            return f"Invalid node at index {i}: missing or invalid position"
        if not (_is_number(position.get("x")) and _is_number(position.get("y"))):
            return f"Invalid node at index {i}: position must have numeric x and y"
        if not isinstance(node.get("data"), dict):
            return f"Invalid node at index {i}: missing or invalid data"

    for i, edge in enumerate(edges):
        if not isinstance(edge, dict):
            return f"Invalid edge at index {i}: not an object"
        for field in ("id", "source", "target"):
            if not _non_empty_str(edge.get(field)):
                return f"Invalid edge at index {i}: missing or invalid {field}"

    return None


def deserialize_graph(encoded: str) -> DeserializeResult:
    """
    Decode a share string back into a validated payload.

    Decompression failures and structural failures are reported with
    distinct error kinds.
    """
    if not encoded or not isinstance(encoded, str):
        return _failure(ShareErrorKind.EMPTY_INPUT, "Encoded string is required", DeserializeResult)

    if len(encoded) > settings.share_max_encoded_length:
        return _failure(
            ShareErrorKind.ENCODED_TOO_LARGE,
            f"Encoded string too long (max {settings.share_max_encoded_length} chars, "
            f"got {len(encoded)})",
            DeserializeResult,
        )

    try:
        raw = _decompress(encoded)
    except ValueError as e:
        return _failure(
            ShareErrorKind.DECOMPRESSION_FAILED,
            f"Failed to decompress data (corrupted or invalid encoding): {e}",
            DeserializeResult,
        )

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        return _failure(ShareErrorKind.INVALID_JSON, f"Invalid JSON: {e}", DeserializeResult)

    problem = validate_payload(data)
    if problem:
        return _failure(ShareErrorKind.INVALID_PAYLOAD, problem, DeserializeResult)

    try:
        payload = SharePayload.model_validate(data)
    except ValidationError as e:
        return _failure(
            ShareErrorKind.INVALID_PAYLOAD, f"Invalid payload: {e}", DeserializeResult
        )

    return DeserializeResult(success=True, payload=payload)


def generate_share_url(
    nodes: list[Node],
    edges: list[Edge],
    base_url: str | None = None,
    registry: ToolRegistry | None = None,
) -> ShareUrlResult:
    """Build ``<base>/demo?data=<encoded>`` for a graph."""
    result = serialize_graph(nodes, edges, registry=registry)
    if not result.success:
        return ShareUrlResult(success=False, error=result.error, error_kind=result.error_kind)

    base = (base_url or settings.public_base_url).rstrip("/")
    return ShareUrlResult(
        success=True,
        url=f"{base}/demo?data={result.encoded}",
        encoded=result.encoded,
    )
