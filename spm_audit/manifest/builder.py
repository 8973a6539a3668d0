"""Turn lowered manifest expressions into a :class:`PackageModel`.

Shared by both backends so that they agree on every interpretation rule;
a backend only decides how source text becomes :mod:`nodes`.
"""

from __future__ import annotations

import posixpath
import re
from pathlib import Path
from typing import Iterator

from spm_audit.exceptions import InvalidManifest
from spm_audit.manifest.brackets import locate_line, name_tokens
from spm_audit.manifest.nodes import Array, Bindings, Call, Expr, Ident, Str
from spm_audit.models import (
    DependencyDeclaration,
    DependencyKind,
    ExternalDependencyRef,
    PackageModel,
    Product,
    ProductKind,
    Target,
    TargetKind,
)

TARGET_KINDS: dict[str, TargetKind] = {
    "target": TargetKind.LIBRARY,
    "executableTarget": TargetKind.EXECUTABLE,
    "testTarget": TargetKind.TEST,
    "macro": TargetKind.MACRO,
    "plugin": TargetKind.PLUGIN,
    "systemLibrary": TargetKind.SYSTEM_LIBRARY,
    "binaryTarget": TargetKind.BINARY,
}

PRODUCT_KINDS: dict[str, ProductKind] = {
    "library": ProductKind.LIBRARY,
    "executable": ProductKind.EXECUTABLE,
    "plugin": ProductKind.PLUGIN,
}

# .target(name:) and .byName(name:) both point at a target in this package
_DIRECT_CALLEES = frozenset({"target", "byName"})

_ANY_NAME_RE = re.compile(r'\bname\s*:\s*"([^"\\\n]+)"')


def package_name_from_url(url: str) -> str:
    """``https://github.com/apple/swift-nio.git`` -> ``swift-nio``."""
    tail = re.split(r"[/:]", url.rstrip("/"))[-1]
    return tail[:-4] if tail.endswith(".git") else tail


class ModelBuilder:
    """Interprets a ``Package(...)`` call against the manifest's top-level bindings.

    *clean_text* is the manifest with comments blanked; it backs the
    ``name:`` fallback and dependency line lookup.
    """

    def __init__(self, bindings: Bindings, clean_text: str) -> None:
        self._bindings = bindings
        self._clean = clean_text
        self._lines = clean_text.splitlines()

    def build(self, package_call: Call | None, root: Path) -> PackageModel:
        name = self._package_name(package_call)
        return PackageModel(
            name=name,
            root=root,
            targets=tuple(self._targets(package_call)),
            products=tuple(self._products(package_call, name)),
            dependencies=tuple(self._external_refs(package_call)),
        )

    # ── name ────────────────────────────────────────────────────────────

    def _package_name(self, package_call: Call | None) -> str:
        name = self._bindings.string("name")
        if name is None and package_call is not None:
            name = self._string(package_call.arg("name"))
        if name is None:
            m = _ANY_NAME_RE.search(self._clean)
            name = m.group(1) if m else None
        if not name:
            raise InvalidManifest("Could not find package name")
        return name

    # ── sections ────────────────────────────────────────────────────────

    def _section(self, package_call: Call | None, label: str, element_type: str) -> list[Expr]:
        # let targets: [Target] = [...] wins over the inline argument
        typed = self._bindings.typed_arrays(element_type)
        if typed is not None:
            return typed
        if package_call is None:
            return []
        return self._array_items(package_call.arg(label))

    def _targets(self, package_call: Call | None) -> Iterator[Target]:
        for element in self._section(package_call, "targets", "Target"):
            call = self._deref(element)
            if not isinstance(call, Call) or call.callee not in TARGET_KINDS:
                continue
            name = self._string(call.arg("name"))
            if not name:
                continue
            yield Target(
                name=name,
                kind=TARGET_KINDS[call.callee],
                dependencies=tuple(self._dependencies(call)),
                path=self._string(call.arg("path")),
            )

    def _products(self, package_call: Call | None, package_name: str) -> Iterator[Product]:
        for element in self._section(package_call, "products", "Product"):
            call = self._deref(element)
            if not isinstance(call, Call) or call.callee not in PRODUCT_KINDS:
                continue
            name = self._string(call.arg("name"))
            if not name:
                continue
            members = [self._string(t) for t in self._array_items(call.arg("targets"))]
            yield Product(
                name=name,
                kind=PRODUCT_KINDS[call.callee],
                targets=tuple(m for m in members if m),
                package=package_name,
            )

    def _external_refs(self, package_call: Call | None) -> Iterator[ExternalDependencyRef]:
        for element in self._section(package_call, "dependencies", "Package.Dependency"):
            call = self._deref(element)
            if not isinstance(call, Call) or call.callee != "package":
                continue
            explicit = self._string(call.arg("name"))
            url = self._string(call.arg("url"))
            path = self._string(call.arg("path"))
            registry_id = self._string(call.arg("id"))
            if url:
                yield ExternalDependencyRef(explicit or package_name_from_url(url), url)
            elif path:
                name = explicit or posixpath.basename(path.rstrip("/"))
                yield ExternalDependencyRef(name, path, is_local=True)
            elif registry_id:
                yield ExternalDependencyRef(explicit or registry_id.rsplit(".", 1)[-1], registry_id)

    # ── target dependencies ─────────────────────────────────────────────

    def _dependencies(self, target_call: Call) -> Iterator[DependencyDeclaration]:
        for element in self._array_items(target_call.arg("dependencies")):
            for decl, identifier in self._declarations(element, frozenset()):
                line = locate_line(self._lines, target_call.span, name_tokens(decl.name, identifier))
                yield DependencyDeclaration(decl.name, decl.kind, decl.package, line)

    def _declarations(
        self, expr: Expr, seen: frozenset[str]
    ) -> Iterator[tuple[DependencyDeclaration, str | None]]:
        """Yield ``(declaration, constant_identifier)`` pairs for one list element."""
        if isinstance(expr, Str):
            yield DependencyDeclaration(expr.value), None
        elif isinstance(expr, Ident):
            if expr.name in seen:
                return
            bound = self._bindings.get(expr.name)
            if bound is None:
                return
            for decl, _ in self._declarations(bound, seen | {expr.name}):
                yield decl, expr.name
        elif isinstance(expr, Array):
            for item in expr.items:
                yield from self._declarations(item, seen)
        elif isinstance(expr, Call):
            if expr.callee == "product":
                name = self._string(expr.arg("name"))
                if name:
                    package = self._string(expr.arg("package"))
                    yield DependencyDeclaration(name, DependencyKind.PRODUCT, package), None
            elif expr.callee in _DIRECT_CALLEES:
                name = self._string(expr.arg("name"))
                if name:
                    yield DependencyDeclaration(name), None
            else:
                # helper(...) wrapping a list of dependencies
                for arg in expr.args:
                    if isinstance(arg.value, Array):
                        yield from self._declarations(arg.value, seen)

    # ── values ──────────────────────────────────────────────────────────

    def _deref(self, expr: Expr) -> Expr:
        if isinstance(expr, Ident):
            bound = self._bindings.get(expr.name)
            if bound is not None:
                return bound
        return expr

    def _string(self, expr: Expr | None) -> str | None:
        if isinstance(expr, Str):
            return expr.value
        if isinstance(expr, Ident):
            return self._bindings.string(expr.name)
        return None

    def _array_items(self, expr: Expr | None) -> list[Expr]:
        expr = self._deref(expr) if expr is not None else None
        if isinstance(expr, Array):
            return list(expr.items)
        return []
