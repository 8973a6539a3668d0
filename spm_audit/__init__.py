"""spm-audit: check a Swift package's declared dependencies against its imports."""

from spm_audit.analyzer import DependencyAnalyzer
from spm_audit.exceptions import (
    AuditError,
    FileReadError,
    InvalidManifest,
    ManifestNotFound,
    SourceDirectoryNotFound,
    TargetNotFound,
)
from spm_audit.imports import STANDARD_MODULES, ImportScanner
from spm_audit.manifest import ManifestParser
from spm_audit.models import AnalysisResult, AuditReport, PackageModel
from spm_audit.resolver import ExternalPackageResolver, build_product_to_target_map
from spm_audit.runner import AuditRunner, audit

__all__ = [
    "STANDARD_MODULES",
    "AnalysisResult",
    "AuditError",
    "AuditReport",
    "AuditRunner",
    "DependencyAnalyzer",
    "ExternalPackageResolver",
    "FileReadError",
    "ImportScanner",
    "InvalidManifest",
    "ManifestNotFound",
    "ManifestParser",
    "PackageModel",
    "SourceDirectoryNotFound",
    "TargetNotFound",
    "audit",
    "build_product_to_target_map",
]
