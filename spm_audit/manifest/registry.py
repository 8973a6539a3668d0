"""Backend registry: every manifest backend registers itself on import."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from spm_audit.models import PackageModel


@runtime_checkable
class ManifestBackend(Protocol):
    """Interface that every manifest backend must satisfy."""

    name: str

    def parse(self, text: str, root: Path) -> PackageModel: ...


BACKEND_REGISTRY: dict[str, ManifestBackend] = {}


def register_backend(backend: ManifestBackend) -> None:
    """Register a backend instance by its name."""
    BACKEND_REGISTRY[backend.name] = backend


def get_backend(name: str) -> ManifestBackend:
    try:
        return BACKEND_REGISTRY[name]
    except KeyError:
        raise ValueError(
            f"unknown manifest backend {name!r}; available: {sorted(BACKEND_REGISTRY)}"
        ) from None
