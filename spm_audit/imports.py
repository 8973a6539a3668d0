"""Import scanner: find ``import`` statements in a target's Swift sources."""

from __future__ import annotations

import os
import re
from collections.abc import Iterable
from pathlib import Path

import structlog

from spm_audit.exceptions import FileReadError, SourceDirectoryNotFound
from spm_audit.models import ImportStatement, SourceFile, Target

log = structlog.get_logger("spm_audit.imports")

# Toolchain and platform SDK modules; never reported as missing or unused.
STANDARD_MODULES = frozenset(
    {
        # Swift runtime and core libraries
        "Swift",
        "_Concurrency",
        "_StringProcessing",
        "Distributed",
        "Observation",
        "RegexBuilder",
        "Synchronization",
        "Foundation",
        "FoundationEssentials",
        "FoundationInternationalization",
        "FoundationNetworking",
        "FoundationXML",
        "Dispatch",
        "CoreFoundation",
        "ObjectiveC",
        "XCTest",
        "Testing",
        # SwiftPM manifest and plugin APIs
        "PackageDescription",
        "PackagePlugin",
        # C libraries and OS shims
        "Darwin",
        "Glibc",
        "Musl",
        "Android",
        "WASILibc",
        "WinSDK",
        "ucrt",
        "CRT",
        "os",
        "OSLog",
        "MachO",
        "libkern",
        "simd",
        "zlib",
        "SQLite3",
        # Apple SDK frameworks
        "Accelerate",
        "AppIntents",
        "AppKit",
        "ARKit",
        "AuthenticationServices",
        "AVFoundation",
        "AVKit",
        "CloudKit",
        "Cocoa",
        "Combine",
        "Contacts",
        "CoreAudio",
        "CoreBluetooth",
        "CoreData",
        "CoreGraphics",
        "CoreImage",
        "CoreLocation",
        "CoreML",
        "CoreMedia",
        "CoreMotion",
        "CoreServices",
        "CoreText",
        "CoreVideo",
        "CryptoKit",
        "EventKit",
        "GameKit",
        "HealthKit",
        "Intents",
        "IOKit",
        "LocalAuthentication",
        "MapKit",
        "MessageUI",
        "Metal",
        "MetalKit",
        "NaturalLanguage",
        "Network",
        "Photos",
        "PhotosUI",
        "QuartzCore",
        "RealityKit",
        "SafariServices",
        "SceneKit",
        "Security",
        "Speech",
        "SpriteKit",
        "StoreKit",
        "SwiftData",
        "SwiftUI",
        "SystemConfiguration",
        "UIKit",
        "UniformTypeIdentifiers",
        "UserNotifications",
        "Vision",
        "WebKit",
        "WidgetKit",
    }
)

_COMMENT_PREFIXES = ("//", "/*")

# [@attr[(args)] ...] [access] import [kind] Module[.Sub ...] [// comment]
_IMPORT_RE = re.compile(
    r"^\s*"
    r"(?:@\w+(?:\([^)]*\))?\s+)*"
    r"(?:(?:public|package|internal|fileprivate|private|open)\s+)?"
    r"import\s+"
    r"(?:(?:typealias|struct|class|enum|protocol|let|var|func)\s+)?"
    r"([A-Za-z_]\w*)"  # module: first path segment only
    r"(?:\.[A-Za-z_]\w*)*"
    r"\s*;?\s*(?://.*)?$"
)


def source_root_for(package_root: Path, target: Target) -> Path:
    """Locate a target's sources: custom ``path:``, then Sources/<name>, then Tests/<name>."""
    candidates = []
    if target.path:
        candidates.append(package_root / target.path.lstrip("/"))
    candidates.append(package_root / "Sources" / target.name)
    candidates.append(package_root / "Tests" / target.name)
    for candidate in candidates:
        if candidate.is_dir():
            return candidate
    raise SourceDirectoryNotFound(candidates[0])


def swift_files(root: Path) -> list[Path]:
    """All non-hidden ``*.swift`` files below *root*, in a stable order."""
    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
        for filename in sorted(filenames):
            if filename.startswith(".") or not filename.endswith(".swift"):
                continue
            files.append(Path(dirpath) / filename)
    return files


class ImportScanner:
    """Extract non-standard imports from Swift sources.

    *allow_list* names extra modules to suppress. Matching against it and
    against :data:`STANDARD_MODULES` is exact and case-sensitive.
    """

    def __init__(self, allow_list: Iterable[str] = ()) -> None:
        self.allow_list = frozenset(allow_list)

    def is_ignored(self, module: str) -> bool:
        return module in STANDARD_MODULES or module in self.allow_list

    def parse_imports(self, content: str) -> tuple[ImportStatement, ...]:
        imports = []
        for lineno, line in enumerate(content.splitlines(), start=1):
            stripped = line.strip()
            if not stripped or stripped.startswith(_COMMENT_PREFIXES):
                continue
            m = _IMPORT_RE.match(line)
            if m is None:
                continue
            module = m.group(1)
            if self.is_ignored(module):
                continue
            imports.append(
                ImportStatement(module=module, line=lineno, testable="@testable" in line)
            )
        return tuple(imports)

    def scan_file(self, path: Path) -> SourceFile:
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise FileReadError(path, exc) from exc
        return SourceFile(path=path, imports=self.parse_imports(content))

    def scan(self, source_root: Path) -> list[SourceFile]:
        """Scan every Swift file below *source_root* sequentially."""
        files = swift_files(source_root)
        log.debug("imports.scan", root=str(source_root), files=len(files))
        return [self.scan_file(path) for path in files]


def scan(source_root: Path, allow_list: Iterable[str] = ()) -> list[SourceFile]:
    """Scan a source directory without constructing a scanner."""
    return ImportScanner(allow_list).scan(Path(source_root))
