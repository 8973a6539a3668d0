"""CLI entry point: spm-audit.

Usage:
    spm-audit                                   # audit the package in the current directory
    spm-audit path/to/Package --target App      # a single target
    spm-audit . --output-format github-actions  # CI annotations
"""

from __future__ import annotations

import asyncio
import sys

import click

from spm_audit.config import BACKENDS, load_settings, parse_name_list
from spm_audit.core.logging import setup_logging
from spm_audit.exceptions import AuditError
from spm_audit.report import OUTPUT_FORMATS, ReportOptions, render
from spm_audit.runner import AuditRunner


@click.command()
@click.argument("path", default=".", type=click.Path(file_okay=True, dir_okay=True))
@click.option("--target", "target_name", default=None, help="Analyze only this target")
@click.option("--exclude-tests", is_flag=True, help="Skip test targets")
@click.option(
    "--whitelist",
    default=None,
    help="Comma-separated module names to ignore (case-sensitive)",
)
@click.option(
    "--output-format",
    type=click.Choice(OUTPUT_FORMATS),
    default="terminal",
    show_default=True,
    help="Report format",
)
@click.option(
    "--backend",
    type=click.Choice(BACKENDS),
    default=None,
    help="Manifest parser backend [default: auto]",
)
@click.option("--max-workers", type=click.IntRange(min=1), default=None, help="Parallel worker cap")
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.option("-q", "--quiet", is_flag=True, help="Only report targets with issues")
@click.option("-v", "--verbose", is_flag=True, help="Show correct dependencies and debug logs")
def main(
    path: str,
    target_name: str | None,
    exclude_tests: bool,
    whitelist: str | None,
    output_format: str,
    backend: str | None,
    max_workers: int | None,
    no_color: bool,
    quiet: bool,
    verbose: bool,
) -> None:
    """Audit a Swift package's declared dependencies against its imports."""
    setup_logging(level="DEBUG" if verbose else None)
    try:
        settings = load_settings()
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    allow_list = settings.whitelist | (parse_name_list(whitelist) if whitelist else frozenset())
    runner = AuditRunner(
        backend=backend or settings.backend,
        allow_list=allow_list,
        max_workers=max_workers or settings.max_workers,
        checkout_depth=settings.checkout_depth,
    )

    try:
        report = asyncio.run(
            runner.run(path, target_name=target_name, exclude_tests=exclude_tests)
        )
    except AuditError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    options = ReportOptions(color=not no_color, quiet=quiet, verbose=verbose)
    output = render(report, output_format, options)
    if output:
        click.echo(output)

    if report.has_issues:
        sys.exit(1)


if __name__ == "__main__":
    main()
