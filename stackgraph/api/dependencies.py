"""
FastAPI Dependencies — Shared singletons injected via Depends().
"""

from __future__ import annotations

from functools import lru_cache

from stackgraph.audit.logger import AuditLogger
from stackgraph.core.context import AnalysisContext


@lru_cache
def get_context() -> AnalysisContext:
    """Registry + evidence index, loaded once per process."""
    return AnalysisContext.default()


@lru_cache
def get_audit_logger() -> AuditLogger:
    """Shared audit logger singleton."""
    return AuditLogger()
