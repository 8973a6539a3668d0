"""External package resolver: map declared package references to on-disk
checkouts and read their products.
"""

from __future__ import annotations

import threading
from pathlib import Path

import structlog

from spm_audit.exceptions import AuditError
from spm_audit.manifest import ManifestParser
from spm_audit.models import ExternalDependencyRef, ExternalPackage, PackageModel

log = structlog.get_logger("spm_audit.resolver")

CHECKOUTS_DIR = Path(".build") / "checkouts"


class ExternalPackageResolver:
    """Resolve a package's external dependencies to :class:`ExternalPackage` values.

    Results are cached by declared package name for the resolver's lifetime.
    Each name is parsed at most once, even when several threads ask for it
    at the same time; failures are cached too.
    """

    def __init__(self, parser: ManifestParser | None = None, max_depth: int = 5) -> None:
        self._parser = parser or ManifestParser()
        self._max_depth = max_depth
        self._cache: dict[str, ExternalPackage | None] = {}
        self._key_locks: dict[str, threading.Lock] = {}
        self._lock = threading.Lock()

    # ── lookup ──────────────────────────────────────────────────────────

    def find_checkouts_dir(self, start: Path) -> Path | None:
        """Walk up from *start* (at most ``max_depth`` parents) to ``.build/checkouts``."""
        current = Path(start).resolve()
        for _ in range(self._max_depth + 1):
            candidate = current / CHECKOUTS_DIR
            if candidate.is_dir():
                return candidate
            if current.parent == current:
                break
            current = current.parent
        return None

    @staticmethod
    def match_checkout(name: str, checkouts: Path) -> Path | None:
        """Exact, then case-insensitive, then substring match; first hit wins."""
        dirs = sorted(p for p in checkouts.iterdir() if p.is_dir() and not p.name.startswith("."))
        lowered = name.lower()
        for p in dirs:
            if p.name == name:
                return p
        for p in dirs:
            if p.name.lower() == lowered:
                return p
        for p in dirs:
            dir_name = p.name.lower()
            if lowered in dir_name or dir_name in lowered:
                return p
        return None

    # ── resolution ──────────────────────────────────────────────────────

    def resolve(self, model: PackageModel) -> list[ExternalPackage]:
        """Resolve every external reference of *model*; unresolvable ones are skipped."""
        checkouts = self.find_checkouts_dir(model.root)
        if checkouts is None:
            log.debug("resolver.no_checkouts", package=model.name, root=str(model.root))
        packages = []
        for ref in model.dependencies:
            if checkouts is None and not ref.is_local:
                continue
            package = self.resolve_ref(ref, model.root, checkouts)
            if package is not None:
                packages.append(package)
        return packages

    def resolve_ref(
        self, ref: ExternalDependencyRef, root: Path, checkouts: Path | None
    ) -> ExternalPackage | None:
        with self._lock:
            if ref.name in self._cache:
                return self._cache[ref.name]
            key_lock = self._key_locks.setdefault(ref.name, threading.Lock())
        with key_lock:
            with self._lock:
                if ref.name in self._cache:
                    return self._cache[ref.name]
            package = self._load(ref, root, checkouts)
            with self._lock:
                self._cache[ref.name] = package
        return package

    def _load(
        self, ref: ExternalDependencyRef, root: Path, checkouts: Path | None
    ) -> ExternalPackage | None:
        if ref.is_local:
            directory: Path | None = (root / ref.origin).resolve()
        elif checkouts is not None:
            directory = self.match_checkout(ref.name, checkouts)
        else:
            directory = None
        if directory is None or not directory.is_dir():
            log.debug("resolver.package_unmatched", package=ref.name)
            return None
        try:
            model = self._parser.parse_path(directory)
        except AuditError as exc:
            log.debug("resolver.package_skipped", package=ref.name, reason=str(exc))
            return None
        log.debug(
            "resolver.package_resolved",
            package=ref.name,
            path=str(directory),
            products=[p.name for p in model.products],
        )
        return ExternalPackage(name=ref.name, products=model.products, path=directory)


def build_product_to_target_map(packages: list[ExternalPackage]) -> dict[str, list[str]]:
    """Flatten products of all *packages* into ``{product: [member targets]}``.

    On a product name collision the later package wins; the collision is
    logged as a warning.
    """
    mapping: dict[str, list[str]] = {}
    owners: dict[str, str] = {}
    for package in packages:
        for product in package.products:
            if product.name in mapping and owners[product.name] != package.name:
                log.warning(
                    "resolver.product_collision",
                    product=product.name,
                    kept=package.name,
                    dropped=owners[product.name],
                )
            mapping[product.name] = list(product.targets)
            owners[product.name] = package.name
    return mapping
