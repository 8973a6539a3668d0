"""Manifest parser facade: picks a backend and falls back in ``auto`` mode."""

from __future__ import annotations

from pathlib import Path

import structlog

# Ensure backends are registered before any parse runs.
import spm_audit.manifest.pattern_backend  # noqa: F401
import spm_audit.manifest.syntax_backend  # noqa: F401
from spm_audit.config import BACKENDS
from spm_audit.exceptions import FileReadError, InvalidManifest, ManifestNotFound
from spm_audit.manifest.registry import get_backend
from spm_audit.models import PackageModel

log = structlog.get_logger("spm_audit.manifest")

MANIFEST_FILE = "Package.swift"


def manifest_path(path: str | Path) -> Path:
    """Accept a package directory or a ``Package.swift`` path."""
    path = Path(path)
    return path if path.name == MANIFEST_FILE else path / MANIFEST_FILE


class ManifestParser:
    """Parse ``Package.swift`` into a :class:`PackageModel`.

    ``backend="auto"`` tries the syntax-tree backend and silently retries
    with the pattern backend when it raises :class:`InvalidManifest`.
    Naming a backend explicitly propagates its failures.
    """

    def __init__(self, backend: str = "auto") -> None:
        if backend not in BACKENDS:
            raise ValueError(f"backend must be one of {BACKENDS}, got {backend!r}")
        self.backend = backend

    def parse(self, text: str, root: str | Path = ".") -> PackageModel:
        root = Path(root)
        if self.backend != "auto":
            return get_backend(self.backend).parse(text, root)
        try:
            return get_backend("syntax").parse(text, root)
        except InvalidManifest as exc:
            log.debug("manifest.fallback", root=str(root), reason=str(exc))
            return get_backend("pattern").parse(text, root)

    def parse_path(self, path: str | Path) -> PackageModel:
        manifest = manifest_path(path)
        if not manifest.is_file():
            raise ManifestNotFound(manifest)
        try:
            text = manifest.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise FileReadError(manifest, exc) from exc
        model = self.parse(text, manifest.parent)
        log.debug(
            "manifest.parsed",
            package=model.name,
            targets=len(model.targets),
            backend=self.backend,
        )
        return model
