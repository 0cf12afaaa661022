"""
Tool Registry Data Models — Catalog entries and their declared relations.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class ToolCategory(str, Enum):
    FRONTEND = "Frontend"
    BACKEND = "Backend"
    AUTH = "Auth"
    ORM = "ORM"
    DATABASE = "Database"
    HOSTING = "Hosting"


# Display order used by manifests and reports
CATEGORY_ORDER: list[str] = [c.value for c in ToolCategory]


class Tool(BaseModel):
    """A single catalog entry. Immutable once loaded."""

    id: str = Field(..., description="Stable tool identifier, e.g. 'drizzle'")
    name: str
    category: ToolCategory
    base_score: int = Field(default=50, ge=0, le=100)
    affinity: frozenset[str] = Field(
        default_factory=frozenset, description="Tool ids this tool works natively with"
    )
    friction: frozenset[str] = Field(
        default_factory=frozenset, description="Tool ids this tool is known to clash with"
    )
    friction_notes: dict[str, str] = Field(
        default_factory=dict, description="Optional explanation per frictional tool id"
    )
    install_hint: str = Field(default="n/a", description="e.g. 'npm i drizzle-orm'")

    model_config = {"frozen": True}
