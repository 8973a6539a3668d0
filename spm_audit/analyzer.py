"""Dependency analyzer: classify a target's declared dependencies against
the modules its sources import.

Categories:
    missing           imported, but nothing declares or provides it (error)
    unused            declared, but never imported (warning)
    correct           declared and imported
    product-satisfied imported module provided by a declared product
    redundant         direct dependency a declared product already provides (warning)
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass

import structlog

from spm_audit.imports import STANDARD_MODULES, ImportScanner, source_root_for
from spm_audit.models import (
    AnalysisResult,
    ExternalPackage,
    PackageModel,
    ProductSatisfiedDependency,
    RedundantDependency,
    SourceFile,
    Target,
    TargetKind,
)

log = structlog.get_logger("spm_audit.analyzer")

# Sibling kinds that are never importable from another target.
_NON_MODULE_KINDS = frozenset({TargetKind.TEST, TargetKind.SYSTEM_LIBRARY, TargetKind.BINARY})


@dataclass(frozen=True)
class _ProductDependency:
    name: str
    package: str
    # Declared as a bare name that resolved to an external product.
    by_name: bool = False


def internal_modules(target: Target, model: PackageModel) -> frozenset[str]:
    """Sibling targets *target* can import without declaring them."""
    return frozenset(
        t.name
        for t in model.targets
        if t.name != target.name and t.kind not in _NON_MODULE_KINDS
    )


def _product_owners(packages: Iterable[ExternalPackage]) -> dict[str, str]:
    owners: dict[str, str] = {}
    for package in packages:
        for product in package.products:
            owners[product.name] = package.name
    return owners


class DependencyAnalyzer:
    def analyze(
        self,
        target: Target,
        model: PackageModel,
        external_packages: Iterable[ExternalPackage],
        product_map: dict[str, list[str]],
        source_files: Iterable[SourceFile],
        allow_list: Iterable[str] = (),
    ) -> AnalysisResult:
        files = tuple(source_files)
        if not target.has_sources:
            return AnalysisResult(target=target)

        ignored = STANDARD_MODULES | frozenset(allow_list)
        observed = {imp.module for sf in files for imp in sf.imports} - ignored
        internal = internal_modules(target, model)

        product_deps = self._partition_products(target, model, external_packages, product_map)
        by_name = {p.name for p in product_deps if p.by_name}
        direct_counts = Counter(d.name for d in target.dependencies if not d.is_product)
        target_deps = set(direct_counts) - by_name
        product_names = {p.name for p in product_deps}

        # ── product-satisfied ───────────────────────────────────────────
        satisfied: set[str] = set()
        findings: list[ProductSatisfiedDependency] = []
        for module in sorted(observed - internal):
            for product in product_deps:
                if module in product_map.get(product.name, ()):
                    findings.append(
                        ProductSatisfiedDependency(module, product.name, product.package)
                    )
                    satisfied.add(module)
                    break

        missing = observed - satisfied - target_deps - product_names - internal

        # ── redundant ───────────────────────────────────────────────────
        redundant: list[RedundantDependency] = []
        for product in product_deps:
            for member in product_map.get(product.name, ()):
                # A by-name product is its own direct declaration; only a
                # second declaration of the same name is a duplicate.
                separate = direct_counts[member] - (
                    1 if product.by_name and member == product.name else 0
                )
                if separate <= 0 or any(r.target_name == member for r in redundant):
                    continue
                redundant.append(RedundantDependency(member, product.name, product.package))
        redundant_names = {r.target_name for r in redundant}

        used_products = {f.product_name for f in findings}
        unused = (target_deps - redundant_names - observed - ignored) | (
            product_names - observed - satisfied - used_products - ignored
        )
        correct = ((target_deps - redundant_names) & observed) | (product_names & observed)

        result = AnalysisResult(
            target=target,
            missing=frozenset(missing),
            unused=frozenset(unused),
            correct=frozenset(correct),
            product_satisfied=tuple(findings),
            redundant=tuple(redundant),
            source_files=files,
        )
        log.debug(
            "analyzer.target_done",
            target=target.name,
            files=len(files),
            missing=sorted(result.missing),
            unused=sorted(result.unused),
            redundant=sorted(redundant_names),
        )
        return result

    def analyze_target(
        self,
        target: Target,
        model: PackageModel,
        external_packages: Iterable[ExternalPackage],
        product_map: dict[str, list[str]],
        scanner: ImportScanner,
    ) -> AnalysisResult:
        """Locate, scan and analyze one target.

        Raises :class:`SourceDirectoryNotFound` when the target has no
        source directory.
        """
        if not target.has_sources:
            return AnalysisResult(target=target)
        files = scanner.scan(source_root_for(model.root, target))
        return self.analyze(
            target, model, external_packages, product_map, files, scanner.allow_list
        )

    def _partition_products(
        self,
        target: Target,
        model: PackageModel,
        external_packages: Iterable[ExternalPackage],
        product_map: dict[str, list[str]],
    ) -> list[_ProductDependency]:
        owners = _product_owners(external_packages)
        siblings = {t.name for t in model.targets}
        products: list[_ProductDependency] = []
        for decl in target.dependencies:
            if decl.is_product:
                package = decl.package or owners.get(decl.name, decl.name)
                products.append(_ProductDependency(decl.name, package))
            elif decl.name not in siblings and (decl.name in owners or decl.name in product_map):
                package = owners.get(decl.name, decl.name)
                products.append(_ProductDependency(decl.name, package, by_name=True))
        return products
