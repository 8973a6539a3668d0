"""Lexical helpers for manifest text: comment/string scrubbing, balanced
bracket matching, top-level splitting and line lookup.

Every helper works on offsets into texts of identical length, so a position
found in the masked text can be read back from the clean text.
"""

from __future__ import annotations

import bisect
import re
from dataclasses import dataclass
from typing import Iterator

OPENERS = "([{"
CLOSERS = ")]}"

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0", '"': '"', "'": "'", "\\": "\\"}


@dataclass(frozen=True)
class Scrubbed:
    """Views of one manifest text with equal lengths.

    ``clean``: comments blanked out (newlines kept).
    ``masked``: ``clean`` with string literal interiors blanked too, so that
    brackets, commas and keywords inside strings are invisible.
    ``strings``: start offset -> end offset (exclusive) of each string literal.
    """

    text: str
    clean: str
    masked: str
    strings: dict[int, int]
    depth: tuple[int, ...]
    line_starts: tuple[int, ...]

    def line_of(self, offset: int) -> int:
        """1-based line number of *offset*."""
        return bisect.bisect_right(self.line_starts, offset)

    def lines(self) -> list[str]:
        return self.clean.splitlines()


def scrub(text: str) -> Scrubbed:
    clean = list(text)
    masked = list(text)
    strings: dict[int, int] = {}
    for kind, start, end in _literal_spans(text):
        if kind == "comment":
            for i in range(start, end):
                if text[i] != "\n":
                    clean[i] = " "
                    masked[i] = " "
        else:
            strings[start] = end
            for i in range(start + 1, end - 1):
                if text[i] != "\n":
                    masked[i] = " "
    masked_text = "".join(masked)
    return Scrubbed(
        text=text,
        clean="".join(clean),
        masked=masked_text,
        strings=strings,
        depth=_depth_profile(masked_text),
        line_starts=(0,) + tuple(m.end() for m in re.finditer("\n", text)),
    )


def _depth_profile(masked: str) -> tuple[int, ...]:
    """``depth[i]`` is the bracket nesting depth just before offset ``i``."""
    depth = [0] * (len(masked) + 1)
    level = 0
    for i, ch in enumerate(masked):
        depth[i] = level
        if ch in OPENERS:
            level += 1
        elif ch in CLOSERS:
            level = max(0, level - 1)
    depth[len(masked)] = level
    return tuple(depth)


# ── literal lexing ──────────────────────────────────────────────────────


def _literal_spans(text: str) -> Iterator[tuple[str, int, int]]:
    i, n = 0, len(text)
    while i < n:
        if text.startswith("//", i):
            end = text.find("\n", i)
            end = n if end == -1 else end
            yield "comment", i, end
            i = end
        elif text.startswith("/*", i):
            end = _block_comment_end(text, i)
            yield "comment", i, end
            i = end
        elif text[i] == '"' or _raw_string_start(text, i):
            end = _string_end(text, i)
            yield "string", i, end
            i = end
        else:
            i += 1


def _block_comment_end(text: str, i: int) -> int:
    # Swift block comments nest.
    level, j, n = 0, i, len(text)
    while j < n:
        if text.startswith("/*", j):
            level += 1
            j += 2
        elif text.startswith("*/", j):
            level -= 1
            j += 2
            if level == 0:
                return j
        else:
            j += 1
    return n


def _raw_string_start(text: str, i: int) -> bool:
    if text[i] != "#":
        return False
    j = i
    while j < len(text) and text[j] == "#":
        j += 1
    return j < len(text) and text[j] == '"'


def _string_end(text: str, i: int) -> int:
    n = len(text)
    hashes = 0
    while text[i + hashes] == "#":
        hashes += 1
    quote = i + hashes
    multiline = text.startswith('"""', quote)
    delimiter = ('"""' if multiline else '"') + "#" * hashes
    j = quote + len(delimiter) - hashes
    while j < n:
        ch = text[j]
        if ch == "\\" and hashes == 0:
            if text.startswith("\\(", j):
                j = _interpolation_end(text, j + 2)
            else:
                j += 2
            continue
        if text.startswith(delimiter, j):
            return j + len(delimiter)
        if ch == "\n" and not multiline:
            return j
        j += 1
    return n


def _interpolation_end(text: str, j: int) -> int:
    level, n = 1, len(text)
    while j < n and level:
        ch = text[j]
        if ch == '"':
            j = _string_end(text, j)
            continue
        if ch == "(":
            level += 1
        elif ch == ")":
            level -= 1
        j += 1
    return j


def string_value(literal: str) -> str | None:
    """Value of a string literal's source text; ``None`` if it interpolates."""
    body = literal.strip()
    hashes = len(body) - len(body.lstrip("#"))
    if hashes:
        body = body[hashes:-hashes]
    if body.startswith('"""') and body.endswith('"""') and len(body) >= 6:
        body = body[3:-3].strip("\n")
    elif body.startswith('"') and body.endswith('"') and len(body) >= 2:
        body = body[1:-1]
    else:
        return None
    if hashes:
        return body
    if "\\(" in body:
        return None
    return re.sub(r"\\(.)", lambda m: _ESCAPES.get(m.group(1), m.group(1)), body)


# ── bracket structure ───────────────────────────────────────────────────


def match_bracket(masked: str, open_index: int) -> int:
    """Index of the bracket closing the one at *open_index*, or -1.

    All bracket kinds are counted, so a ``]`` inside a nested ``(...)``
    never ends an enclosing ``[...]`` section early.
    """
    level = 0
    for j in range(open_index, len(masked)):
        ch = masked[j]
        if ch in OPENERS:
            level += 1
        elif ch in CLOSERS:
            level -= 1
            if level == 0:
                return j
    return -1


def trim(masked: str, start: int, end: int) -> tuple[int, int]:
    while start < end and masked[start].isspace():
        start += 1
    while end > start and masked[end - 1].isspace():
        end -= 1
    return start, end


def split_top_level(masked: str, start: int, end: int, sep: str = ",") -> list[tuple[int, int]]:
    """Split ``masked[start:end]`` on *sep* at bracket depth zero.

    Returns trimmed ``(start, end)`` pieces; empty pieces (trailing commas)
    are dropped.
    """
    pieces: list[tuple[int, int]] = []
    level = 0
    piece_start = start
    for j in range(start, end):
        ch = masked[j]
        if ch in OPENERS:
            level += 1
        elif ch in CLOSERS:
            level -= 1
        elif ch == sep and level == 0:
            pieces.append(trim(masked, piece_start, j))
            piece_start = j + 1
    pieces.append(trim(masked, piece_start, end))
    return [(s, e) for s, e in pieces if s < e]


# ── line lookup ─────────────────────────────────────────────────────────


def name_tokens(name: str, identifier: str | None = None) -> list[re.Pattern[str]]:
    """Patterns a dependency's name can appear as: the quoted name, then a constant."""
    tokens = [re.compile(re.escape(f'"{name}"'))]
    if identifier:
        tokens.append(re.compile(rf"(?<![\w.]){re.escape(identifier)}\b"))
    return tokens


def locate_line(
    lines: list[str], span: tuple[int, int], tokens: list[re.Pattern[str]]
) -> int | None:
    """First line within *span* (1-based, inclusive) on which a token appears."""
    first, last = span
    if first < 1:
        return None
    for token in tokens:
        for lineno in range(first, min(last, len(lines)) + 1):
            if token.search(lines[lineno - 1]):
                return lineno
    return None
