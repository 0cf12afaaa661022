"""
Evidence Data Models — Sourced claims backing risk, fix and positive findings.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class SourceType(str, Enum):
    OFFICIAL_DOCS = "official_docs"
    VENDOR_DOCS = "vendor_docs"
    GITHUB_MAINTAINER = "github_maintainer"
    RELEASE_NOTES = "release_notes"
    USER_REPORT = "user_report"
    COMMUNITY = "community"


VALID_SOURCE_TYPES: frozenset[str] = frozenset(s.value for s in SourceType)

# Lowest-trust source; packs backed only by it get downgraded
LOWEST_TRUST_SOURCE = SourceType.COMMUNITY.value


class PackKind(str, Enum):
    RISK = "risk"
    FIX = "fix"
    POSITIVE = "positive"


class PackSeverity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class EvidenceItem(BaseModel):
    """A single quoted source."""

    url: str
    canonical_url: str | None = None
    # Kept as plain text so unknown values survive loading and get flagged
    source_type: str
    excerpt: str = Field(default="", description="Short quote, at most 25 words")
    note: str | None = None
    retrieved_date: str | None = None

    @property
    def is_invalid(self) -> bool:
        return bool(self.note) and "INVALID" in self.note


class EvidencePack(BaseModel):
    """One claim, keyed by rule id, with supporting and counter evidence."""

    rule_id: str
    kind: PackKind
    claim: str
    scope: str
    severity: PackSeverity
    confidence: Confidence
    tags: list[str] = Field(default_factory=list)
    evidence: list[EvidenceItem] = Field(default_factory=list)
    counter_evidence: list[EvidenceItem] = Field(default_factory=list)
    fix_rule_ids: list[str] = Field(
        default_factory=list, description="Fix packs this risk points to (risk packs only)"
    )
    needs_verification: bool = False
