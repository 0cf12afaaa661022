"""
Evidence Matchers — Deterministic trigger predicates for risk and positive packs.

Each rule id maps to a tuple of tool-id groups. A rule fires when at least
one of its groups is fully present in the graph. Packs without an entry
here never fire.
"""

from __future__ import annotations

from typing import AbstractSet

TriggerGroups = tuple[frozenset[str], ...]


def _groups(*groups: tuple[str, ...]) -> TriggerGroups:
    return tuple(frozenset(g) for g in groups)


RISK_TRIGGERS: dict[str, TriggerGroups] = {
    "prisma-orm-edge-incompatibility": _groups(("nextjs", "prisma")),
    "authjs-database-adapter-edge-failure": _groups(("nextjs", "authjs")),
    "drizzle-orm-nodejs-dependencies": _groups(("nextjs", "drizzle")),
    "native-db-drivers-tcp-failure": _groups(
        ("nextjs", "postgres"),
        ("nextjs", "mysql"),
        ("nextjs", "prisma"),
    ),
    "edge-runtime-response-timeout": _groups(("nextjs",)),
    "next-edge-node-apis": _groups(("nextjs",)),
    "vercel-serverless-connection-limits": _groups(("nextjs",), ("vercel",)),
}

POSITIVE_TRIGGERS: dict[str, TriggerGroups] = {
    "turso-libsql-edge-native": _groups(("turso",)),
    "neon-serverless-edge-driver": _groups(("neon",)),
    "hono-workers-native": _groups(("hono", "cloudflare-workers")),
}


def matches(triggers: dict[str, TriggerGroups], rule_id: str, tool_ids: AbstractSet[str]) -> bool:
    """True if any trigger group for ``rule_id`` is a subset of ``tool_ids``."""
    return any(group <= tool_ids for group in triggers.get(rule_id, ()))


def risk_fires(rule_id: str, tool_ids: AbstractSet[str]) -> bool:
    return matches(RISK_TRIGGERS, rule_id, tool_ids)


def positive_fires(rule_id: str, tool_ids: AbstractSet[str]) -> bool:
    return matches(POSITIVE_TRIGGERS, rule_id, tool_ids)
