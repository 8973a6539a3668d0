"""Runtime settings read from SPM_AUDIT_* environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass

BACKENDS = ("auto", "syntax", "pattern")


def default_max_workers() -> int:
    return min(os.cpu_count() or 1, 8)


def _env_int(key: str, default: int) -> int:
    return int(os.environ.get(key, default))


def _env_list(key: str) -> frozenset[str]:
    return parse_name_list(os.environ.get(key, ""))


def parse_name_list(raw: str) -> frozenset[str]:
    """Split a comma-separated list, trimming entries and dropping empties."""
    return frozenset(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class AuditSettings:
    backend: str = "auto"
    max_workers: int = 8
    checkout_depth: int = 5
    whitelist: frozenset[str] = frozenset()


def load_settings() -> AuditSettings:
    """Build settings from the environment.

    Reads:
        SPM_AUDIT_BACKEND        : auto | syntax | pattern (default: auto)
        SPM_AUDIT_MAX_WORKERS    : worker cap (default: min(cpu_count, 8))
        SPM_AUDIT_CHECKOUT_DEPTH : parent levels searched for .build/checkouts (default: 5)
        SPM_AUDIT_WHITELIST      : comma-separated module names never reported
    """
    backend = os.environ.get("SPM_AUDIT_BACKEND", "auto").lower()
    if backend not in BACKENDS:
        raise ValueError(f"SPM_AUDIT_BACKEND must be one of {BACKENDS}, got {backend!r}")
    return AuditSettings(
        backend=backend,
        max_workers=max(1, _env_int("SPM_AUDIT_MAX_WORKERS", default_max_workers())),
        checkout_depth=max(0, _env_int("SPM_AUDIT_CHECKOUT_DEPTH", 5)),
        whitelist=_env_list("SPM_AUDIT_WHITELIST"),
    )
