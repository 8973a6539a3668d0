"""Pattern-based manifest backend: regular expressions plus balanced-bracket
section extraction over comment- and string-scrubbed text.

Sections (``targets:``, ``products:``, ``dependencies:``) are located by
keyword at the ``Package(...)`` argument level, then read forward while
counting every bracket kind until the depth returns to zero.
"""

from __future__ import annotations

import re
from functools import reduce
from pathlib import Path

from spm_audit.manifest.brackets import (
    Scrubbed,
    match_bracket,
    scrub,
    split_top_level,
    string_value,
    trim,
)
from spm_audit.manifest.builder import ModelBuilder
from spm_audit.manifest.nodes import (
    Arg,
    Array,
    Binding,
    Bindings,
    Call,
    Expr,
    Ident,
    Other,
    Str,
    callee_name,
    normalize_annotation,
)
from spm_audit.manifest.registry import register_backend
from spm_audit.models import PackageModel

# [@attr ...] [access] let|var NAME [: Type] =
_BINDING_RE = re.compile(
    r"^[ \t]*(?:@\w+\s+)*"
    r"(?:(?:public|private|internal|fileprivate|open|package)\s+)?"
    r"(?:let|var)\s+([A-Za-z_]\w*)"  # binding name
    r"\s*(:\s*[^=\n]+?)?\s*=(?!=)",  # optional type annotation
    re.MULTILINE,
)
_PACKAGE_RE = re.compile(r"(?<![\w.])Package\s*\(")
_IDENT_RE = re.compile(r"[A-Za-z_]\w*")
_CALLEE_RE = re.compile(r"\.?[A-Za-z_][\w.]*\s*\(")
_LABEL_RE = re.compile(r"([A-Za-z_]\w*)\s*:(?!:)")

SECTION_LABELS = ("name", "targets", "products", "dependencies")


class PatternManifestBackend:
    name = "pattern"

    def parse(self, text: str, root: Path) -> PackageModel:
        src = scrub(text)
        bindings = reduce(
            lambda acc, m: self._collect(src, acc, m),
            _BINDING_RE.finditer(src.masked),
            Bindings(),
        )
        return ModelBuilder(bindings, src.clean).build(self._package_call(src), root)

    # ── top-level bindings ──────────────────────────────────────────────

    def _collect(self, src: Scrubbed, bindings: Bindings, m: re.Match[str]) -> Bindings:
        if src.depth[m.start()] != 0:
            return bindings
        start = m.end()
        end = _expression_end(src, start)
        return bindings.add(
            Binding(
                name=m.group(1),
                value=self._lower(src, start, end),
                element_type=normalize_annotation(m.group(2)),
            )
        )

    # ── Package(...) ────────────────────────────────────────────────────

    def _package_call(self, src: Scrubbed) -> Call | None:
        m = _PACKAGE_RE.search(src.masked)
        if m is None:
            return None
        open_index = m.end() - 1
        close = match_bracket(src.masked, open_index)
        if close == -1:
            close = len(src.masked)
        args = []
        for label in SECTION_LABELS:
            section = _find_section(src, label, open_index + 1, close)
            if section is not None:
                args.append(Arg(label, self._lower(src, *section)))
        return Call("Package", tuple(args), (src.line_of(m.start()), src.line_of(close)))

    # ── expressions ─────────────────────────────────────────────────────

    def _lower(self, src: Scrubbed, start: int, end: int) -> Expr:
        masked = src.masked
        start, end = trim(masked, start, end)
        if start >= end:
            return Other()
        span = (src.line_of(start), src.line_of(end - 1))

        if src.strings.get(start) == end:
            value = string_value(src.clean[start:end])
            return Str(value, span) if value is not None else Other(src.clean[start:end], span)

        if masked[start] == "[" and match_bracket(masked, start) == end - 1:
            items = [self._lower(src, s, e) for s, e in split_top_level(masked, start + 1, end - 1)]
            return Array(tuple(items), span)

        if _IDENT_RE.fullmatch(masked, start, end):
            return Ident(masked[start:end], span)

        m = _CALLEE_RE.match(masked, start, end)
        if m is not None and match_bracket(masked, m.end() - 1) == end - 1:
            callee = callee_name(masked[start : m.end() - 1])
            return Call(callee, tuple(self._args(src, m.end(), end - 1)), span)

        return Other(src.clean[start:end], span)

    def _args(self, src: Scrubbed, start: int, end: int) -> list[Arg]:
        args = []
        for s, e in split_top_level(src.masked, start, end):
            m = _LABEL_RE.match(src.masked, s, e)
            if m is not None:
                args.append(Arg(m.group(1), self._lower(src, m.end(), e)))
            else:
                args.append(Arg(None, self._lower(src, s, e)))
        return args


def _find_section(src: Scrubbed, keyword: str, start: int, end: int) -> tuple[int, int] | None:
    """Locate ``keyword:`` at the argument level of ``[start, end)``.

    Returns the value's ``(start, end)``; an opening bracket is followed to
    its balanced close so nested sub-expressions never cut the section short.
    """
    level = src.depth[start]
    pattern = re.compile(rf"(?<![\w.]){keyword}\s*:(?!:)")
    for m in pattern.finditer(src.masked, start, end):
        if src.depth[m.start()] != level:
            continue
        value_start, _ = trim(src.masked, m.end(), end)
        if value_start < end and src.masked[value_start] in "[(":
            close = match_bracket(src.masked, value_start)
            if close != -1:
                return value_start, close + 1
        return value_start, _argument_end(src, value_start, end)
    return None


def _argument_end(src: Scrubbed, start: int, end: int) -> int:
    level = 0
    for j in range(start, end):
        ch = src.masked[j]
        if ch in "([{":
            level += 1
        elif ch in ")]}":
            level -= 1
        elif ch == "," and level == 0:
            return j
    return end


def _expression_end(src: Scrubbed, start: int) -> int:
    """End of a top-level binding's value.

    The value ends at a newline or ``;`` outside brackets, unless the next
    line continues it with a member access or operator.
    """
    masked = src.masked
    n = len(masked)
    level = 0
    j = start
    seen_token = False
    while j < n:
        ch = masked[j]
        if ch in "([{":
            level += 1
        elif ch in ")]}":
            level -= 1
            if level < 0:
                return j
        elif level == 0 and ch == ";":
            return j
        elif level == 0 and ch == "\n" and seen_token:
            nxt, _ = trim(masked, j, n)
            if nxt >= n or masked[nxt] not in ".+?:":
                return j
        if not ch.isspace():
            seen_token = True
        j += 1
    return n


register_backend(PatternManifestBackend())
