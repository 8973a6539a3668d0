"""Data models shared by the parser, scanner, resolver and analyzer."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path


class TargetKind(str, enum.Enum):
    LIBRARY = "library"
    EXECUTABLE = "executable"
    TEST = "test"
    MACRO = "macro"
    PLUGIN = "plugin"
    SYSTEM_LIBRARY = "system-library"
    BINARY = "binary"


# Kinds that never own source files.
SOURCELESS_KINDS = frozenset({TargetKind.SYSTEM_LIBRARY, TargetKind.BINARY})


class ProductKind(str, enum.Enum):
    LIBRARY = "library"
    EXECUTABLE = "executable"
    PLUGIN = "plugin"


class DependencyKind(str, enum.Enum):
    TARGET = "target"
    PRODUCT = "product"


# ── manifest model ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class DependencyDeclaration:
    """One entry of a target's ``dependencies:`` list."""

    name: str
    kind: DependencyKind = DependencyKind.TARGET
    package: str | None = None
    line: int | None = None

    @property
    def is_product(self) -> bool:
        return self.kind is DependencyKind.PRODUCT


@dataclass(frozen=True)
class Target:
    name: str
    kind: TargetKind = TargetKind.LIBRARY
    dependencies: tuple[DependencyDeclaration, ...] = ()
    path: str | None = None

    @property
    def has_sources(self) -> bool:
        return self.kind not in SOURCELESS_KINDS

    @property
    def dependency_names(self) -> list[str]:
        return [d.name for d in self.dependencies]


@dataclass(frozen=True)
class Product:
    name: str
    kind: ProductKind = ProductKind.LIBRARY
    targets: tuple[str, ...] = ()
    package: str = ""


@dataclass(frozen=True)
class ExternalDependencyRef:
    """A ``.package(...)`` entry of the manifest."""

    name: str
    origin: str
    is_local: bool = False


@dataclass(frozen=True)
class PackageModel:
    name: str
    root: Path
    targets: tuple[Target, ...] = ()
    products: tuple[Product, ...] = ()
    dependencies: tuple[ExternalDependencyRef, ...] = ()

    def target(self, name: str) -> Target | None:
        for t in self.targets:
            if t.name == name:
                return t
        return None

    @property
    def manifest_path(self) -> Path:
        return self.root / "Package.swift"


@dataclass(frozen=True)
class ExternalPackage:
    """A resolved checkout of an external package."""

    name: str
    products: tuple[Product, ...]
    path: Path


# ── import scan ─────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ImportStatement:
    module: str
    line: int
    testable: bool = False


@dataclass(frozen=True)
class SourceFile:
    path: Path
    imports: tuple[ImportStatement, ...] = ()

    @property
    def modules(self) -> set[str]:
        return {imp.module for imp in self.imports}


# ── analysis ────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ProductSatisfiedDependency:
    """An import reached through a declared product rather than directly."""

    import_name: str
    product_name: str
    package_name: str


@dataclass(frozen=True)
class RedundantDependency:
    """A direct dependency that a declared product already provides."""

    target_name: str
    providing_product: str
    package_name: str


@dataclass(frozen=True)
class AnalysisResult:
    """Classification of one target's dependencies.

    ``missing`` is error severity; ``unused`` and ``redundant`` are warning
    severity.
    """

    target: Target
    missing: frozenset[str] = frozenset()
    unused: frozenset[str] = frozenset()
    correct: frozenset[str] = frozenset()
    product_satisfied: tuple[ProductSatisfiedDependency, ...] = ()
    redundant: tuple[RedundantDependency, ...] = ()
    source_files: tuple[SourceFile, ...] = ()

    @property
    def target_name(self) -> str:
        return self.target.name

    @property
    def redundant_names(self) -> frozenset[str]:
        return frozenset(r.target_name for r in self.redundant)

    @property
    def has_error(self) -> bool:
        return bool(self.missing)

    @property
    def has_warning(self) -> bool:
        return bool(self.unused or self.redundant)

    @property
    def has_issues(self) -> bool:
        return self.has_error or self.has_warning

    def import_sites(self, module: str) -> list[tuple[Path, int]]:
        """Every (file, line) where *module* is imported, in scan order."""
        return [
            (sf.path, imp.line)
            for sf in self.source_files
            for imp in sf.imports
            if imp.module == module
        ]


@dataclass(frozen=True)
class TargetFailure:
    target: str
    error: Exception


@dataclass
class AuditReport:
    """Result of a whole-package run."""

    package: PackageModel
    results: list[AnalysisResult] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failures: list[TargetFailure] = field(default_factory=list)

    @property
    def has_issues(self) -> bool:
        return bool(self.failures) or any(r.has_issues for r in self.results)
