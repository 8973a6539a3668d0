"""Package.swift parsing: pattern and syntax-tree backends behind one facade."""

from spm_audit.manifest.parser import MANIFEST_FILE, ManifestParser, manifest_path
from spm_audit.manifest.registry import BACKEND_REGISTRY, ManifestBackend, get_backend

__all__ = [
    "BACKEND_REGISTRY",
    "MANIFEST_FILE",
    "ManifestBackend",
    "ManifestParser",
    "get_backend",
    "manifest_path",
]
