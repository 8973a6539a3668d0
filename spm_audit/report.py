"""Report renderers: terminal, JSON, Xcode and GitHub Actions annotations.

Renderers sort targets and names so the output is deterministic regardless
of the order in which concurrent analyses finished.
"""

from __future__ import annotations

import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import click
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from spm_audit.models import AnalysisResult, AuditReport, DependencyDeclaration

OUTPUT_FORMATS = ("terminal", "json", "xcode", "github-actions")


@dataclass(frozen=True)
class ReportOptions:
    color: bool = True
    quiet: bool = False
    verbose: bool = False


def _sorted_results(report: AuditReport) -> list[AnalysisResult]:
    return sorted(report.results, key=lambda r: r.target_name)


def _display_path(path: Path, root: Path) -> str:
    try:
        return os.path.relpath(path, root)
    except ValueError:
        return str(path)


def _declaration(result: AnalysisResult, name: str) -> DependencyDeclaration | None:
    for decl in result.target.dependencies:
        if decl.name == name:
            return decl
    return None


# ── messages ────────────────────────────────────────────────────────────


def missing_message(module: str) -> str:
    return f"Missing dependency '{module}' is imported but not declared in Package.swift"


def unused_message(name: str, target: str) -> str:
    return f"Unused dependency '{name}' is declared but never imported into {target} target"


def redundant_message(name: str, product: str, package: str) -> str:
    return (
        f"Redundant dependency '{name}' is already provided by product "
        f"'{product}' ({package})"
    )


# ── JSON ────────────────────────────────────────────────────────────────


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class JsonProductSatisfied(_CamelModel):
    import_name: str
    product_name: str
    package_name: str


class JsonRedundant(_CamelModel):
    target_name: str
    providing_product: str
    package_name: str


class JsonTargetReport(_CamelModel):
    name: str
    kind: str
    has_error: bool
    has_warning: bool
    missing: list[str]
    unused: list[str]
    correct: list[str]
    product_satisfied: list[JsonProductSatisfied]
    redundant: list[JsonRedundant]
    source_files: int


class JsonFailure(_CamelModel):
    target: str
    error: str


class JsonReport(_CamelModel):
    package_name: str
    targets: list[JsonTargetReport]
    skipped: list[str] = []
    failures: list[JsonFailure] = []

    @classmethod
    def from_report(cls, report: AuditReport) -> JsonReport:
        return cls(
            package_name=report.package.name,
            targets=[
                JsonTargetReport(
                    name=r.target_name,
                    kind=r.target.kind.value,
                    has_error=r.has_error,
                    has_warning=r.has_warning,
                    missing=sorted(r.missing),
                    unused=sorted(r.unused),
                    correct=sorted(r.correct),
                    product_satisfied=[
                        JsonProductSatisfied(
                            import_name=p.import_name,
                            product_name=p.product_name,
                            package_name=p.package_name,
                        )
                        for p in sorted(r.product_satisfied, key=lambda p: p.import_name)
                    ],
                    redundant=[
                        JsonRedundant(
                            target_name=d.target_name,
                            providing_product=d.providing_product,
                            package_name=d.package_name,
                        )
                        for d in sorted(r.redundant, key=lambda d: d.target_name)
                    ],
                    source_files=len(r.source_files),
                )
                for r in _sorted_results(report)
            ],
            skipped=sorted(report.skipped),
            failures=[
                JsonFailure(target=f.target, error=str(f.error))
                for f in sorted(report.failures, key=lambda f: f.target)
            ],
        )


def render_json(report: AuditReport, options: ReportOptions) -> str:
    return JsonReport.from_report(report).model_dump_json(by_alias=True, indent=2)


# ── terminal ────────────────────────────────────────────────────────────


def render_terminal(report: AuditReport, options: ReportOptions) -> str:
    def style(text: str, **kwargs: object) -> str:
        return click.style(text, **kwargs) if options.color else text

    root = report.package.root
    lines: list[str] = []
    if not options.quiet:
        lines.append(style(f"Analyzing package: {report.package.name}", bold=True))

    for result in _sorted_results(report):
        if options.quiet and not result.has_issues:
            continue
        lines.append("")
        lines.append(style(f"Target: {result.target_name}", bold=True) + f" ({result.target.kind.value})")

        if result.missing:
            lines.append(style("  ✗ Missing dependencies:", fg="red"))
            for module in sorted(result.missing):
                sites = result.import_sites(module)
                where = ""
                if sites:
                    path, line = sites[0]
                    where = f" (imported in {_display_path(path, root)}:{line})"
                lines.append(f"    - {module}{where}")
        if result.unused:
            lines.append(style("  ! Unused dependencies:", fg="yellow"))
            lines.extend(f"    - {name}" for name in sorted(result.unused))
        if result.redundant:
            lines.append(style("  ! Redundant dependencies:", fg="yellow"))
            for r in sorted(result.redundant, key=lambda r: r.target_name):
                lines.append(
                    f"    - {r.target_name} (already provided by {r.providing_product}"
                    f" from {r.package_name})"
                )
        if options.verbose:
            if result.correct:
                lines.append(style("  ✓ Correct dependencies:", fg="green"))
                lines.extend(f"    - {name}" for name in sorted(result.correct))
            for p in sorted(result.product_satisfied, key=lambda p: p.import_name):
                lines.append(
                    style("  ✓ ", fg="green")
                    + f"{p.import_name} satisfied by product {p.product_name} ({p.package_name})"
                )
        if not result.has_issues:
            lines.append(style("  ✓ All dependencies are correctly declared", fg="green"))

    for failure in sorted(report.failures, key=lambda f: f.target):
        lines.append("")
        lines.append(style(f"Target: {failure.target}", bold=True))
        lines.append(style(f"  ✗ {failure.error}", fg="red"))

    if options.verbose and report.skipped:
        lines.append("")
        lines.append(f"Skipped (no source directory): {', '.join(sorted(report.skipped))}")

    if not options.quiet:
        errors = sum(1 for r in report.results if r.has_error) + len(report.failures)
        warnings = sum(1 for r in report.results if r.has_warning)
        lines.append("")
        summary = (
            f"Summary: {len(report.results)} targets analyzed, "
            f"{errors} with errors, {warnings} with warnings"
        )
        lines.append(style(summary, fg="red" if errors else ("yellow" if warnings else "green")))
    return "\n".join(lines)


# ── IDE annotations ─────────────────────────────────────────────────────


def _annotations(report: AuditReport) -> list[tuple[str, str, int | None, str]]:
    """``(severity, file, line, message)`` for every finding."""
    root = report.package.root
    manifest = _display_path(report.package.manifest_path, root)
    items: list[tuple[str, str, int | None, str]] = []
    for result in _sorted_results(report):
        for module in sorted(result.missing):
            sites = result.import_sites(module) or [(report.package.manifest_path, None)]
            for path, line in sites:
                items.append(("error", _display_path(path, root), line, missing_message(module)))
        for name in sorted(result.unused):
            decl = _declaration(result, name)
            line = decl.line if decl else None
            items.append(("warning", manifest, line, unused_message(name, result.target_name)))
        for r in sorted(result.redundant, key=lambda r: r.target_name):
            decl = _declaration(result, r.target_name)
            line = decl.line if decl else None
            message = redundant_message(r.target_name, r.providing_product, r.package_name)
            items.append(("warning", manifest, line, message))
    for failure in sorted(report.failures, key=lambda f: f.target):
        path = getattr(failure.error, "path", manifest)
        items.append(("error", _display_path(Path(path), root), None, str(failure.error)))
    return items


def render_xcode(report: AuditReport, options: ReportOptions) -> str:
    lines = []
    for severity, path, line, message in _annotations(report):
        location = f"{path}:{line}" if line is not None else path
        lines.append(f"{location}: {severity}: {message}")
    return "\n".join(lines)


def render_github_actions(report: AuditReport, options: ReportOptions) -> str:
    lines = []
    for severity, path, line, message in _annotations(report):
        location = f"file={path},line={line}" if line is not None else f"file={path}"
        lines.append(f"::{severity} {location}::{message}")
    return "\n".join(lines)


RENDERERS: dict[str, Callable[[AuditReport, ReportOptions], str]] = {
    "terminal": render_terminal,
    "json": render_json,
    "xcode": render_xcode,
    "github-actions": render_github_actions,
}


def render(report: AuditReport, output_format: str, options: ReportOptions | None = None) -> str:
    try:
        renderer = RENDERERS[output_format]
    except KeyError:
        raise ValueError(f"unknown output format {output_format!r}") from None
    return renderer(report, options or ReportOptions())
