"""Syntax-tree manifest backend built on tree-sitter's Swift grammar.

Top-level statements are folded into an immutable :class:`Bindings` value;
the ``Package(...)`` initializer is lowered into :mod:`nodes` and handed to
the shared model builder.
"""

from __future__ import annotations

from collections.abc import Iterator
from functools import reduce
from pathlib import Path

import tree_sitter_swift as tsswift
from tree_sitter import Language, Node, Parser

from spm_audit.exceptions import ManifestSyntaxError
from spm_audit.manifest.brackets import scrub, string_value
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

_SWIFT_LANGUAGE = Language(tsswift.language())

_STRING_NODES = frozenset(
    {"line_string_literal", "multi_line_string_literal", "raw_string_literal"}
)
_COMMENT_NODES = frozenset({"comment", "multiline_comment"})
_CALL_NODES = frozenset({"call_expression", "constructor_expression"})
_SUFFIX_NODES = frozenset({"call_suffix", "constructor_suffix"})
_DECLARATION_PARTS = frozenset(
    {"modifiers", "value_binding_pattern", "pattern", "type_annotation", "simple_identifier"}
)


def _text(node: Node) -> str:
    return node.text.decode("utf-8") if node.text is not None else ""


def _span(node: Node) -> tuple[int, int]:
    return node.start_point[0] + 1, node.end_point[0] + 1


def _walk_tree(node: Node) -> Iterator[Node]:
    yield node
    for child in node.children:
        yield from _walk_tree(child)


def _named(node: Node) -> list[Node]:
    return [c for c in node.named_children if c.type not in _COMMENT_NODES]


class SyntaxManifestBackend:
    name = "syntax"

    def parse(self, text: str, root: Path) -> PackageModel:
        tree = Parser(_SWIFT_LANGUAGE).parse(text.encode("utf-8"))
        if tree.root_node.has_error:
            raise ManifestSyntaxError("manifest does not parse as Swift")

        bindings = reduce(self._collect, _named(tree.root_node), Bindings())
        package_node = self._find_package_call(tree.root_node)
        if package_node is None:
            raise ManifestSyntaxError("no Package(...) initializer found")
        package_call = self._lower(package_node)
        if not isinstance(package_call, Call):
            raise ManifestSyntaxError("Package initializer has no argument list")
        return ModelBuilder(bindings, scrub(text).clean).build(package_call, root)

    # ── fold over top-level statements ──────────────────────────────────

    def _collect(self, bindings: Bindings, node: Node) -> Bindings:
        if node.type != "property_declaration":
            return bindings
        name_node = node.child_by_field_name("name")
        if name_node is None:
            name_node = next(
                (c for c in node.named_children if c.type in ("pattern", "simple_identifier")),
                None,
            )
        value_node = node.child_by_field_name("value")
        if value_node is None:
            rest = [c for c in _named(node) if c.type not in _DECLARATION_PARTS]
            value_node = rest[-1] if rest else None
        if name_node is None or value_node is None:
            return bindings
        annotation = next((c for c in node.named_children if c.type == "type_annotation"), None)
        return bindings.add(
            Binding(
                name=_text(name_node).strip(),
                value=self._lower(value_node),
                element_type=normalize_annotation(_text(annotation)) if annotation else None,
            )
        )

    def _find_package_call(self, root: Node) -> Node | None:
        for node in _walk_tree(root):
            if node.type in _CALL_NODES and node.named_children:
                if _text(node.named_children[0]).strip() == "Package":
                    return node
        return None

    # ── lowering ────────────────────────────────────────────────────────

    def _lower(self, node: Node) -> Expr:
        span = _span(node)
        kind = node.type

        if kind in _STRING_NODES:
            value = string_value(_text(node))
            return Str(value, span) if value is not None else Other(_text(node), span)

        if kind == "simple_identifier":
            return Ident(_text(node), span)

        if kind == "array_literal":
            return Array(tuple(self._lower(c) for c in _named(node)), span)

        if kind == "prefix_expression" and _text(node).lstrip().startswith("."):
            # .product(...) parses as "." applied to the call
            inner = _named(node)
            if inner and inner[-1].type in _CALL_NODES:
                return self._lower(inner[-1])

        if kind in _CALL_NODES:
            children = _named(node)
            suffix = next((c for c in children if c.type in _SUFFIX_NODES), None)
            if children and suffix is not None:
                return Call(callee_name(_text(children[0])), tuple(self._args(suffix)), span)

        return Other(_text(node), span)

    def _args(self, suffix: Node) -> list[Arg]:
        arguments = next(
            (c for c in suffix.named_children if c.type == "value_arguments"), suffix
        )
        args = []
        for arg in arguments.named_children:
            if arg.type != "value_argument":
                continue
            label_node = arg.child_by_field_name("name")
            if label_node is None:
                label_node = next(
                    (c for c in arg.named_children if c.type == "value_argument_label"), None
                )
            value_node = arg.child_by_field_name("value")
            if value_node is None:
                rest = [c for c in _named(arg) if c.type != "value_argument_label"]
                value_node = rest[-1] if rest else None
            label = _text(label_node).strip() if label_node is not None else None
            value = self._lower(value_node) if value_node is not None else Other()
            args.append(Arg(label, value))
        return args


register_backend(SyntaxManifestBackend())
