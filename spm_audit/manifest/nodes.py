"""Backend-neutral expression nodes for the manifest subset we interpret.

Both backends lower ``Package.swift`` into these nodes; the model builder
only ever sees this representation. ``span`` is a 1-based inclusive
``(first_line, last_line)`` pair.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Union

Span = tuple[int, int]


@dataclass(frozen=True)
class Str:
    value: str
    span: Span = (0, 0)


@dataclass(frozen=True)
class Ident:
    name: str
    span: Span = (0, 0)


@dataclass(frozen=True)
class Array:
    items: tuple[Expr, ...]
    span: Span = (0, 0)


@dataclass(frozen=True)
class Arg:
    label: str | None
    value: Expr


@dataclass(frozen=True)
class Call:
    """A call; ``callee`` keeps only the last dotted segment (``.product`` -> ``product``)."""

    callee: str
    args: tuple[Arg, ...] = ()
    span: Span = (0, 0)

    def arg(self, label: str) -> Expr | None:
        for a in self.args:
            if a.label == label:
                return a.value
        return None


@dataclass(frozen=True)
class Other:
    """Anything outside the interpreted subset."""

    text: str = ""
    span: Span = (0, 0)


Expr = Union[Str, Ident, Array, Call, Other]


def callee_name(text: str) -> str:
    return text.strip().rsplit(".", 1)[-1].strip()


# ── top-level bindings ──────────────────────────────────────────────────

# [Target], [PackageDescription.Target], [Package.Dependency], ...
_ARRAY_TYPE_RE = re.compile(r"^\[(?:PackageDescription\.)?([A-Za-z_][\w.]*)\]$")


def normalize_annotation(text: str | None) -> str | None:
    """``": [ Target ]"`` -> ``"Target"``; ``None`` for non-array annotations."""
    if not text:
        return None
    compact = re.sub(r"\s+", "", text).lstrip(":")
    m = _ARRAY_TYPE_RE.match(compact)
    return m.group(1) if m else None


@dataclass(frozen=True)
class Binding:
    name: str
    value: Expr
    element_type: str | None = None


@dataclass(frozen=True)
class Bindings:
    """Immutable accumulator threaded through the top-level fold."""

    items: tuple[Binding, ...] = ()

    def add(self, binding: Binding) -> Bindings:
        return replace(self, items=self.items + (binding,))

    def get(self, name: str) -> Expr | None:
        for b in self.items:
            if b.name == name:
                return b.value
        return None

    def string(self, name: str) -> str | None:
        value = self.get(name)
        return value.value if isinstance(value, Str) else None

    def typed_arrays(self, element_type: str) -> list[Expr] | None:
        """Items of every ``let x: [element_type] = [...]`` binding, in order.

        ``None`` when no such binding exists.
        """
        found = [
            b.value
            for b in self.items
            if b.element_type == element_type and isinstance(b.value, Array)
        ]
        if not found:
            return None
        return [item for array in found for item in array.items]
