"""
Share Codec Models — Payload schema and discriminated codec results.

Every public codec operation returns one of the result models below;
callers branch on ``success`` instead of catching exceptions.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from stackgraph.models.graph_models import Edge, Node

SHARE_VERSION = 1


class ShareGraph(BaseModel):
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)


class SharePayload(BaseModel):
    v: Literal[1] = SHARE_VERSION
    graph: ShareGraph


class ShareErrorKind(str, Enum):
    EMPTY_INPUT = "empty_input"
    TOO_MANY_NODES = "too_many_nodes"
    TOO_MANY_EDGES = "too_many_edges"
    UNKNOWN_TOOL = "unknown_tool"
    ENCODED_TOO_LARGE = "encoded_too_large"
    DECOMPRESSION_FAILED = "decompression_failed"
    INVALID_JSON = "invalid_json"
    INVALID_PAYLOAD = "invalid_payload"
    SERIALIZATION_FAILED = "serialization_failed"


class ShareStats(BaseModel):
    node_count: int
    edge_count: int
    raw_length: int
    encoded_length: int


class SerializeResult(BaseModel):
    success: bool
    encoded: str | None = None
    stats: ShareStats | None = None
    error: str | None = None
    error_kind: ShareErrorKind | None = None


class DeserializeResult(BaseModel):
    success: bool
    payload: SharePayload | None = None
    error: str | None = None
    error_kind: ShareErrorKind | None = None


class ShareUrlResult(BaseModel):
    success: bool
    url: str | None = None
    encoded: str | None = None
    error: str | None = None
    error_kind: ShareErrorKind | None = None
