"""AuditRunner: parse, resolve, then scan and analyze every target concurrently."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable
from pathlib import Path

import structlog

from spm_audit.analyzer import DependencyAnalyzer
from spm_audit.config import AuditSettings, default_max_workers
from spm_audit.exceptions import FileReadError, SourceDirectoryNotFound, TargetNotFound
from spm_audit.imports import ImportScanner, source_root_for, swift_files
from spm_audit.manifest import ManifestParser
from spm_audit.models import (
    AnalysisResult,
    AuditReport,
    PackageModel,
    SourceFile,
    Target,
    TargetFailure,
    TargetKind,
)
from spm_audit.resolver import ExternalPackageResolver, build_product_to_target_map

log = structlog.get_logger("spm_audit.runner")


def select_targets(
    model: PackageModel, target_name: str | None = None, exclude_tests: bool = False
) -> list[Target]:
    if target_name is not None:
        target = model.target(target_name)
        if target is None:
            raise TargetNotFound(target_name, model.name)
        return [target]
    return [t for t in model.targets if not (exclude_tests and t.kind is TargetKind.TEST)]


class AuditRunner:
    """Whole-package audit with bounded parallelism.

    Blocking filesystem work runs in worker threads; at most *max_workers*
    targets and *max_workers* file reads are in flight at once.
    """

    def __init__(
        self,
        backend: str = "auto",
        allow_list: Iterable[str] = (),
        max_workers: int | None = None,
        checkout_depth: int = 5,
    ) -> None:
        self.parser = ManifestParser(backend)
        self.scanner = ImportScanner(allow_list)
        self.resolver = ExternalPackageResolver(self.parser, max_depth=checkout_depth)
        self.analyzer = DependencyAnalyzer()
        self.max_workers = max_workers or default_max_workers()

    @classmethod
    def from_settings(cls, settings: AuditSettings) -> AuditRunner:
        return cls(
            backend=settings.backend,
            allow_list=settings.whitelist,
            max_workers=settings.max_workers,
            checkout_depth=settings.checkout_depth,
        )

    async def run(
        self,
        path: str | Path,
        target_name: str | None = None,
        exclude_tests: bool = False,
    ) -> AuditReport:
        """Audit the package at *path*.

        Targets without a source directory are skipped; a file-read failure
        is recorded against its own target only. Any other error is raised
        once every sibling target has finished.
        """
        model = await asyncio.to_thread(self.parser.parse_path, path)
        targets = select_targets(model, target_name, exclude_tests)
        packages = await asyncio.to_thread(self.resolver.resolve, model)
        product_map = build_product_to_target_map(packages)
        log.info(
            "runner.start",
            package=model.name,
            targets=len(targets),
            external_packages=len(packages),
            max_workers=self.max_workers,
        )

        target_sem = asyncio.Semaphore(self.max_workers)
        file_sem = asyncio.Semaphore(self.max_workers)

        async def _run_one(target: Target) -> AnalysisResult | None:
            async with target_sem:
                if not target.has_sources:
                    return AnalysisResult(target=target)
                try:
                    root = await asyncio.to_thread(source_root_for, model.root, target)
                except SourceDirectoryNotFound as exc:
                    log.info("runner.target_skipped", target=target.name, reason=str(exc))
                    return None
                files = await self._scan_files(root, file_sem)
                return self.analyzer.analyze(
                    target, model, packages, product_map, files, self.scanner.allow_list
                )

        outcomes = await asyncio.gather(
            *(_run_one(t) for t in targets), return_exceptions=True
        )
        return self._collect(model, targets, outcomes)

    async def _scan_files(self, root: Path, sem: asyncio.Semaphore) -> list[SourceFile]:
        paths = await asyncio.to_thread(swift_files, root)

        async def _scan_one(path: Path) -> SourceFile:
            async with sem:
                return await asyncio.to_thread(self.scanner.scan_file, path)

        return list(await asyncio.gather(*(_scan_one(p) for p in paths)))

    def _collect(
        self,
        model: PackageModel,
        targets: list[Target],
        outcomes: list[AnalysisResult | BaseException | None],
    ) -> AuditReport:
        report = AuditReport(package=model)
        unexpected: list[BaseException] = []
        for target, outcome in zip(targets, outcomes):
            if isinstance(outcome, FileReadError):
                log.error("runner.target_failed", target=target.name, error=str(outcome))
                report.failures.append(TargetFailure(target.name, outcome))
            elif isinstance(outcome, BaseException):
                unexpected.append(outcome)
            elif outcome is None:
                report.skipped.append(target.name)
            else:
                report.results.append(outcome)
        if unexpected:
            raise unexpected[0]
        log.info(
            "runner.done",
            package=model.name,
            analyzed=len(report.results),
            skipped=len(report.skipped),
            failed=len(report.failures),
        )
        return report


def audit(
    path: str | Path,
    *,
    backend: str = "auto",
    allow_list: Iterable[str] = (),
    target_name: str | None = None,
    exclude_tests: bool = False,
    max_workers: int | None = None,
) -> AuditReport:
    """Synchronous entry point around :meth:`AuditRunner.run`."""
    runner = AuditRunner(backend=backend, allow_list=allow_list, max_workers=max_workers)
    return asyncio.run(runner.run(path, target_name=target_name, exclude_tests=exclude_tests))

