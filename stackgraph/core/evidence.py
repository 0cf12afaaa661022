"""
Evidence Store — Loads evidence packs with a quality gate and stable ordering.

Packs are read once from an explicit list of JSON files. Every item URL is
canonicalized, oversize excerpts and unknown source types are flagged (never
dropped), and packs without usable primary evidence are downgraded to low
confidence and marked as needing verification.

Packs that cannot be parsed into the pack schema at all are handled by the
configured load policy:
    skip  → log an error and leave the pack out of the index
    raise → raise EvidenceLoadError
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable, Iterator, Literal
from urllib.parse import urlsplit, urlunsplit

from pydantic import ValidationError

from stackgraph.config import settings
from stackgraph.models.evidence_models import (
    LOWEST_TRUST_SOURCE,
    VALID_SOURCE_TYPES,
    Confidence,
    EvidenceItem,
    EvidencePack,
    PackKind,
)

logger = logging.getLogger("stackgraph.evidence")

MAX_EXCERPT_WORDS = 25

LoadPolicy = Literal["skip", "raise"]

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


class EvidenceLoadError(Exception):
    """A pack could not be loaded and the load policy is 'raise'."""


def canonicalize_url(url: str) -> str:
    """
    Normalize a URL for stable sorting and deduplication.

    https scheme, lowercase host, no query, no fragment, no trailing slash
    (bare root keeps "/"). Never raises: input that does not parse falls back
    to a lowercased string with the scheme coerced to https.
    """
    candidate = url if _SCHEME_RE.match(url) else f"https://{url}"
    try:
        parts = urlsplit(candidate)
        if not parts.hostname:
            raise ValueError(f"no host in {candidate!r}")
        parts.port  # raises ValueError on a malformed port

        userinfo, at, hostport = parts.netloc.rpartition("@")
        hostport = hostport.lower()
        if hostport.endswith(":443"):
            hostport = hostport[: -len(":443")]
        netloc = f"{userinfo}{at}{hostport}"

        path = parts.path.rstrip("/") or "/"
        return urlunsplit(("https", netloc, path, "", ""))
    except ValueError:
        return re.sub(r"^http:", "https:", candidate.lower())


def count_words(text: str) -> int:
    return len(text.split())


def _append_note(note: str | None, addition: str) -> str:
    return f"{note} | {addition}" if note else addition


def process_items(items: list[EvidenceItem]) -> list[EvidenceItem]:
    """Flag invalid items, canonicalize URLs, and sort by canonical URL."""
    processed: list[EvidenceItem] = []
    for item in items:
        note = item.note or None

        if count_words(item.excerpt) > MAX_EXCERPT_WORDS:
            note = _append_note(note, f"INVALID: Excerpt exceeds {MAX_EXCERPT_WORDS} words")

        if item.source_type not in VALID_SOURCE_TYPES:
            note = _append_note(note, f"INVALID_SOURCE_TYPE: {item.source_type}")

        processed.append(
            item.model_copy(
                update={
                    "url": canonicalize_url(item.url),
                    "canonical_url": canonicalize_url(item.canonical_url or item.url),
                    "note": note,
                }
            )
        )

    # Code-point order, independent of locale
    processed.sort(key=lambda i: i.canonical_url or i.url)
    return processed


def apply_quality_gate(pack: EvidencePack) -> EvidencePack:
    """Downgrade confidence for packs lacking primary or trustworthy evidence."""
    has_primary = any(
        item.excerpt.strip() and not item.is_invalid for item in pack.evidence
    )
    if not has_primary:
        logger.warning(f"Pack '{pack.rule_id}' has no primary evidence; needs verification")
        return pack.model_copy(
            update={"confidence": Confidence.LOW, "needs_verification": True}
        )

    valid = [item for item in pack.evidence if not item.is_invalid]
    lowest_trust_only = all(item.source_type == LOWEST_TRUST_SOURCE for item in valid)
    if valid and lowest_trust_only and pack.confidence == Confidence.HIGH:
        logger.warning(f"Pack '{pack.rule_id}' backed only by community sources; high -> medium")
        return pack.model_copy(update={"confidence": Confidence.MEDIUM})

    return pack


class EvidenceIndex(Mapping[str, EvidencePack]):
    """Immutable rule_id → pack mapping. Iterates in rule-id order."""

    def __init__(self, packs: Iterable[EvidencePack] = ()) -> None:
        self._packs: dict[str, EvidencePack] = {
            p.rule_id: p for p in sorted(packs, key=lambda p: p.rule_id)
        }

    def __getitem__(self, rule_id: str) -> EvidencePack:
        return self._packs[rule_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._packs)

    def __len__(self) -> int:
        return len(self._packs)

    def by_kind(self, kind: PackKind) -> list[EvidencePack]:
        return [p for p in self._packs.values() if p.kind == kind]


def _reject(policy: LoadPolicy, message: str) -> None:
    if policy == "raise":
        raise EvidenceLoadError(message)
    logger.error(f"{message} (skipped)")


def build_evidence_index(
    raw_packs: Iterable[tuple[str, Any]],
    policy: LoadPolicy | None = None,
) -> EvidenceIndex:
    """
    Validate raw pack records and build the index.

    Args:
        raw_packs: (source label, decoded JSON) pairs, in load order.
        policy: 'skip' or 'raise'; defaults to settings.evidence_load_policy.
    """
    policy = policy or settings.evidence_load_policy
    packs: dict[str, EvidencePack] = {}

    for source, raw in raw_packs:
        try:
            pack = EvidencePack.model_validate(raw)
        except ValidationError as e:
            _reject(policy, f"Evidence pack {source} does not match the pack schema: {e}")
            continue

        if pack.rule_id in packs:
            _reject(policy, f"Evidence pack {source} duplicates rule id '{pack.rule_id}'")
            continue

        packs[pack.rule_id] = pack

    # Fix references must point at existing fix packs
    for rule_id, pack in list(packs.items()):
        if not pack.fix_rule_ids:
            continue
        if pack.kind != PackKind.RISK:
            logger.warning(f"Pack '{rule_id}' is not a risk; ignoring its fix_rule_ids")
            packs[rule_id] = pack.model_copy(update={"fix_rule_ids": []})
            continue
        valid_refs: list[str] = []
        for fix_id in pack.fix_rule_ids:
            target = packs.get(fix_id)
            if target is None or target.kind != PackKind.FIX:
                _reject(policy, f"Risk '{rule_id}' references missing fix pack '{fix_id}'")
                continue
            valid_refs.append(fix_id)
        if valid_refs != pack.fix_rule_ids:
            packs[rule_id] = pack.model_copy(update={"fix_rule_ids": valid_refs})

    processed: list[EvidencePack] = []
    for pack in packs.values():
        pack = pack.model_copy(
            update={
                "evidence": process_items(pack.evidence),
                "counter_evidence": process_items(pack.counter_evidence),
            }
        )
        for item in pack.evidence + pack.counter_evidence:
            if item.is_invalid:
                logger.warning(f"Pack '{pack.rule_id}': {item.url}: {item.note}")
        processed.append(apply_quality_gate(pack))

    return EvidenceIndex(processed)


def default_pack_sources() -> list[Path]:
    """Pack files in the configured directory, sorted by name."""
    packs_dir = Path(settings.evidence_packs_dir)
    return sorted(packs_dir.glob("*.json"))


def load_evidence_index(
    sources: Iterable[str | Path] | None = None,
    policy: LoadPolicy | None = None,
) -> EvidenceIndex:
    """Read pack files and build the validated index."""
    policy = policy or settings.evidence_load_policy
    paths = [Path(p) for p in sources] if sources is not None else default_pack_sources()

    raw_packs: list[tuple[str, Any]] = []
    for path in paths:
        try:
            with open(path, encoding="utf-8") as f:
                raw_packs.append((path.name, json.load(f)))
        except (OSError, json.JSONDecodeError) as e:
            _reject(policy, f"Evidence pack {path.name} could not be read: {e}")

    index = build_evidence_index(raw_packs, policy=policy)
    logger.info(f"Loaded {len(index)} evidence pack(s) from {len(paths)} file(s)")
    return index


@lru_cache
def get_default_evidence_index() -> EvidenceIndex:
    """Shared evidence index loaded from the configured directory."""
    return load_evidence_index()
