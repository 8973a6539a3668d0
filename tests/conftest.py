"""Shared pytest fixtures for spm-audit tests."""

from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def read_fixture():
    def _read(name: str) -> str:
        return (FIXTURES_DIR / name).read_text(encoding="utf-8")

    return _read


@pytest.fixture
def make_package(tmp_path):
    """Write a package tree: ``Package.swift`` plus ``{relative_path: content}`` files."""

    def _make(manifest: str, files: dict[str, str] | None = None, root: Path | None = None) -> Path:
        root = root or tmp_path / "pkg"
        root.mkdir(parents=True, exist_ok=True)
        (root / "Package.swift").write_text(textwrap.dedent(manifest), encoding="utf-8")
        for rel, content in (files or {}).items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(content), encoding="utf-8")
        return root

    return _make
