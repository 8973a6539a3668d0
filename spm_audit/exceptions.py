"""Custom exceptions for spm-audit."""

from __future__ import annotations

from pathlib import Path


class AuditError(Exception):
    """Base exception for all audit errors."""


class ManifestNotFound(AuditError):
    """Raised when no Package.swift exists at the given location."""

    def __init__(self, path: str | Path):
        self.path = str(path)
        super().__init__(f"Package.swift not found at path: {self.path}")


class InvalidManifest(AuditError):
    """Raised when a manifest cannot be turned into a package model."""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid Package.swift: {reason}")


class ManifestSyntaxError(InvalidManifest):
    """Raised by the syntax-tree backend when the tree yields no package."""


class SourceDirectoryNotFound(AuditError):
    """Raised when a target has neither a Sources/ nor a Tests/ directory."""

    def __init__(self, path: str | Path):
        self.path = str(path)
        super().__init__(f"Source directory not found at: {self.path}")


class FileReadError(AuditError):
    """Raised when a source file cannot be read during an import scan."""

    def __init__(self, path: str | Path, cause: Exception):
        self.path = str(path)
        self.cause = cause
        super().__init__(f"Failed to read file {self.path}: {cause}")


class TargetNotFound(AuditError):
    """Raised when a requested target is not declared in the package."""

    def __init__(self, name: str, package: str):
        self.name = name
        self.package = package
        super().__init__(f"Target '{name}' not found in package '{package}'")
