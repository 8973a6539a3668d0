"""Tests for the manifest parser backends and facade."""

from __future__ import annotations

from pathlib import Path

import pytest

from spm_audit.exceptions import InvalidManifest, ManifestNotFound, ManifestSyntaxError
from spm_audit.manifest import BACKEND_REGISTRY, ManifestBackend, ManifestParser, get_backend
from spm_audit.manifest.builder import package_name_from_url
from spm_audit.models import DependencyDeclaration, DependencyKind, ProductKind, TargetKind

ROOT = Path("/work/pkg")

EQUIVALENCE_FIXTURES = [
    "basic.swift",
    "conditional.swift",
    "constants.swift",
    "typed_bindings.swift",
    "nested_helper.swift",
]

BROKEN_TAIL = """\
let package = Package(
    name: "Broken",
    targets: [
        .target(name: "A", dependencies: ["B"]),
        .target(name: "B"),
    ]
)
@@@ ???
"""


def _deps(model, target_name):
    return [(d.name, d.kind, d.package) for d in model.target(target_name).dependencies]


class TestBackends:
    @pytest.fixture(params=["pattern", "syntax"])
    def parser(self, request):
        return ManifestParser(backend=request.param)

    def test_basic_package(self, parser, read_fixture):
        model = parser.parse(read_fixture("basic.swift"), ROOT)

        assert model.name == "BasicPackage"
        assert model.root == ROOT
        assert [(t.name, t.kind) for t in model.targets] == [
            ("BasicTool", TargetKind.EXECUTABLE),
            ("BasicKit", TargetKind.LIBRARY),
            ("BasicKitTests", TargetKind.TEST),
        ]
        assert _deps(model, "BasicTool") == [
            ("BasicKit", DependencyKind.TARGET, None),
            ("ArgumentParser", DependencyKind.PRODUCT, "swift-argument-parser"),
        ]

    def test_target_without_dependencies_key_is_kept(self, parser, read_fixture):
        model = parser.parse(read_fixture("basic.swift"), ROOT)
        kit = model.target("BasicKit")
        assert kit is not None
        assert kit.dependencies == ()

    def test_dependency_lines(self, parser, read_fixture):
        model = parser.parse(read_fixture("basic.swift"), ROOT)
        assert [d.line for d in model.target("BasicTool").dependencies] == [19, 20]
        assert [d.line for d in model.target("BasicKitTests").dependencies] == [26]

    def test_products(self, parser, read_fixture):
        model = parser.parse(read_fixture("basic.swift"), ROOT)
        assert [(p.name, p.kind, p.targets, p.package) for p in model.products] == [
            ("basic-tool", ProductKind.EXECUTABLE, ("BasicTool",), "BasicPackage"),
            ("BasicKit", ProductKind.LIBRARY, ("BasicKit",), "BasicPackage"),
        ]

    def test_external_references(self, parser, read_fixture):
        model = parser.parse(read_fixture("basic.swift"), ROOT)
        assert [(d.name, d.is_local) for d in model.dependencies] == [
            ("swift-argument-parser", False),
            ("LocalUtilities", True),
        ]
        assert model.dependencies[0].origin == "https://github.com/apple/swift-argument-parser.git"

    def test_declarations_after_conditional_are_kept(self, parser, read_fixture):
        model = parser.parse(read_fixture("conditional.swift"), ROOT)

        assert _deps(model, "Player") == [
            ("TVKit", DependencyKind.PRODUCT, "TVKit"),
            ("RxSwift", DependencyKind.PRODUCT, "RxSwift"),
            ("AnotherProduct", DependencyKind.PRODUCT, "AnotherPackage"),
        ]
        assert _deps(model, "Core") == [
            ("Shared", DependencyKind.TARGET, None),
            ("SharedUI", DependencyKind.TARGET, None),
        ]
        # .target(name:) inside a dependency list is not a target declaration
        assert [t.name for t in model.targets] == ["Player", "Core", "Shared", "SharedUI"]

    def test_constant_dependencies(self, parser, read_fixture):
        text = read_fixture("constants.swift")
        model = parser.parse(text, ROOT)

        assert _deps(model, "Feature") == [
            ("ComposableArchitecture", DependencyKind.PRODUCT, "swift-composable-architecture"),
            ("AsyncAlgorithms", DependencyKind.PRODUCT, "swift-async-algorithms"),
            ("iOSFramework", DependencyKind.PRODUCT, "ios-framework"),
            ("Models", DependencyKind.TARGET, None),
        ]
        assert _deps(model, "FeatureTests") == [
            ("Feature", DependencyKind.TARGET, None),
            ("ComposableArchitecture", DependencyKind.PRODUCT, "swift-composable-architecture"),
        ]

    def test_constant_dependency_line_is_the_reference(self, parser, read_fixture):
        text = read_fixture("constants.swift")
        model = parser.parse(text, ROOT)
        lines = text.splitlines()
        for decl in model.target("Feature").dependencies[:3]:
            assert decl.line is not None
            assert lines[decl.line - 1].strip().endswith(",")
            assert "Target.Dependency" not in lines[decl.line - 1]

    def test_typed_bindings_win_over_inline_sections(self, parser, read_fixture):
        model = parser.parse(read_fixture("typed_bindings.swift"), ROOT)

        assert model.name == "BindingsPackage"
        names = [t.name for t in model.targets]
        assert "IgnoredInline" not in names
        assert names[0] == "NetworkClient"
        assert {t.kind for t in model.targets} == set(TargetKind)
        assert [p.name for p in model.products] == ["NetworkKit", "DataProcessor", "CLITool"]
        assert model.products[0].targets == ("NetworkClient", "NetworkCore")
        assert [d.name for d in model.dependencies] == [
            "swift-algorithms",
            "UtilityLibrary",
            "networking-kit",
        ]

    def test_custom_path_and_mixed_dependencies(self, parser, read_fixture):
        model = parser.parse(read_fixture("typed_bindings.swift"), ROOT)
        storage = model.target("DataStorage")
        assert storage.path == "/Sources/Storage"
        assert _deps(model, "DataStorage") == [
            ("DataModels", DependencyKind.TARGET, None),
            ("Algorithms", DependencyKind.PRODUCT, "swift-algorithms"),
        ]

    def test_sourceless_kinds(self, parser, read_fixture):
        model = parser.parse(read_fixture("typed_bindings.swift"), ROOT)
        assert not model.target("CZlib").has_sources
        assert not model.target("Prebuilt").has_sources
        assert model.target("BindingsMacros").has_sources

    def test_helper_call_and_comments(self, parser, read_fixture):
        model = parser.parse(read_fixture("nested_helper.swift"), ROOT)

        assert [t.name for t in model.targets] == ["App", "Core", "Shared"]
        assert model.target("App").dependency_names == ["Shared", "Core"]

    def test_package_name_from_let_binding(self, parser):
        text = 'let name = "FromBinding"\nlet package = Package(name: name, targets: [])\n'
        assert parser.parse(text, ROOT).name == "FromBinding"

    def test_missing_name_raises(self, parser):
        with pytest.raises(InvalidManifest):
            parser.parse("let package = Package(targets: [])\n", ROOT)


class TestBackendEquivalence:
    @pytest.mark.parametrize("fixture", EQUIVALENCE_FIXTURES)
    def test_same_model(self, fixture, read_fixture):
        text = read_fixture(fixture)
        syntax = ManifestParser("syntax").parse(text, ROOT)
        pattern = ManifestParser("pattern").parse(text, ROOT)
        assert syntax == pattern


class TestPatternBackend:
    @pytest.fixture
    def parser(self):
        return ManifestParser(backend="pattern")

    def test_every_access_modifier(self, parser, read_fixture):
        model = parser.parse(read_fixture("open_access.swift"), ROOT)
        assert _deps(model, "OpenTarget") == [
            ("OpenFramework", DependencyKind.PRODUCT, "open-package"),
            ("Fileprivate", DependencyKind.PRODUCT, "fileprivate-package"),
            ("Internal", DependencyKind.PRODUCT, "internal-package"),
        ]

    def test_name_fallback_to_any_name_argument(self, parser):
        text = 'let pkg = Package(\n    "positional",\n    targets: [.target(name: "Lib")]\n)\n'
        assert parser.parse(text, ROOT).name == "Lib"

    def test_brackets_inside_strings_do_not_confuse_sections(self, parser):
        text = (
            "let package = Package(\n"
            '    name: "Odd]Name",\n'
            "    targets: [\n"
            '        .target(name: "A", dependencies: ["B"], path: "src/[a]"),\n'
            '        .target(name: "B"),\n'
            "    ]\n"
            ")\n"
        )
        model = parser.parse(text, ROOT)
        assert model.name == "Odd]Name"
        assert [t.name for t in model.targets] == ["A", "B"]
        assert model.target("A").path == "src/[a]"


class TestFacade:
    def test_registry_holds_both_backends(self):
        assert set(BACKEND_REGISTRY) >= {"pattern", "syntax"}
        for backend in BACKEND_REGISTRY.values():
            assert isinstance(backend, ManifestBackend)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            ManifestParser(backend="regex")
        with pytest.raises(ValueError):
            get_backend("regex")

    def test_auto_falls_back_to_pattern(self):
        model = ManifestParser("auto").parse(BROKEN_TAIL, ROOT)
        assert model == ManifestParser("pattern").parse(BROKEN_TAIL, ROOT)
        assert model.target("A").dependency_names == ["B"]

    def test_explicit_syntax_backend_propagates(self):
        with pytest.raises(ManifestSyntaxError):
            ManifestParser("syntax").parse(BROKEN_TAIL, ROOT)

    def test_auto_uses_pattern_result_when_syntax_raises(self, monkeypatch):
        def _fail(text, root):
            raise ManifestSyntaxError("boom")

        monkeypatch.setattr(get_backend("syntax"), "parse", _fail)
        text = 'let package = Package(name: "P", targets: [.target(name: "T")])\n'
        model = ManifestParser("auto").parse(text, ROOT)
        assert model.name == "P"
        with pytest.raises(ManifestSyntaxError, match="boom"):
            ManifestParser("syntax").parse(text, ROOT)

    def test_auto_reports_invalid_manifest_when_both_fail(self):
        with pytest.raises(InvalidManifest, match="Could not find package name"):
            ManifestParser("auto").parse("let x = 1\n", ROOT)

    def test_parse_path_accepts_directory_and_file(self, make_package):
        root = make_package('let package = Package(name: "OnDisk", targets: [])\n')
        parser = ManifestParser()
        assert parser.parse_path(root).name == "OnDisk"
        model = parser.parse_path(root / "Package.swift")
        assert model.name == "OnDisk"
        assert model.root == root

    def test_parse_path_missing(self, tmp_path):
        with pytest.raises(ManifestNotFound) as exc_info:
            ManifestParser().parse_path(tmp_path)
        assert "Package.swift not found at path:" in str(exc_info.value)


class TestPackageNameFromUrl:
    @pytest.mark.parametrize(
        "url, expected",
        [
            ("https://github.com/apple/swift-nio.git", "swift-nio"),
            ("https://github.com/apple/swift-nio", "swift-nio"),
            ("https://github.com/apple/swift-nio/", "swift-nio"),
            ("git@github.com:org/networking-kit.git", "networking-kit"),
        ],
    )
    def test_last_component(self, url, expected):
        assert package_name_from_url(url) == expected


def test_declaration_defaults():
    decl = DependencyDeclaration("Foo")
    assert decl.kind is DependencyKind.TARGET
    assert decl.line is None
    assert not decl.is_product
