"""Tests for manifest lexical helpers."""

from __future__ import annotations

from spm_audit.manifest.brackets import (
    locate_line,
    match_bracket,
    name_tokens,
    scrub,
    split_top_level,
    string_value,
)


class TestScrub:
    def test_views_keep_length_and_newlines(self):
        text = 'let a = "x]" // trailing ]\n/* block\n ] */ let b = [1]\n'
        src = scrub(text)
        assert len(src.clean) == len(src.masked) == len(text)
        assert src.clean.count("\n") == text.count("\n")

    def test_comments_blanked_in_clean(self):
        src = scrub('let a = 1 // note "quoted"\n')
        assert "note" not in src.clean
        assert "let a = 1" in src.clean

    def test_strings_masked_but_quotes_kept(self):
        src = scrub('name: "Foo[Bar]"')
        assert "[" not in src.masked
        assert src.masked.count('"') == 2
        assert src.clean == 'name: "Foo[Bar]"'

    def test_comment_marker_inside_string_is_not_a_comment(self):
        src = scrub('url: "https://github.com/a/b"')
        assert "github.com" in src.clean

    def test_string_spans_recorded(self):
        text = 'x("a", "b")'
        src = scrub(text)
        assert src.strings == {2: 5, 7: 10}

    def test_nested_block_comment(self):
        src = scrub("/* outer /* inner */ still */ let x = 1")
        assert src.clean.strip() == "let x = 1"

    def test_line_of(self):
        src = scrub("a\nbb\nccc")
        assert src.line_of(0) == 1
        assert src.line_of(2) == 2
        assert src.line_of(5) == 3

    def test_depth_profile(self):
        src = scrub("a([b])")
        assert src.depth[0] == 0
        assert src.depth[2] == 1
        assert src.depth[3] == 2
        assert src.depth[6] == 0


class TestMatchBracket:
    def test_simple(self):
        assert match_bracket("[a, b]", 0) == 5

    def test_nested_mixed_kinds(self):
        text = '[.product(name: "A", condition: .when(platforms: [.tvOS])), "B"]'
        assert match_bracket(text, 0) == len(text) - 1

    def test_inner_close_does_not_end_section(self):
        text = "[x(y: [1]), z]"
        # The first "]" closes the inner array, not the section.
        assert match_bracket(text, 0) == len(text) - 1

    def test_unbalanced(self):
        assert match_bracket("[a, (b]", 0) == -1


class TestSplitTopLevel:
    def test_split_ignores_nested_commas(self):
        masked = 'a(b, c), [d, e], f'
        pieces = [masked[s:e] for s, e in split_top_level(masked, 0, len(masked))]
        assert pieces == ["a(b, c)", "[d, e]", "f"]

    def test_trailing_comma_dropped(self):
        masked = "a,\n  b,\n"
        pieces = [masked[s:e] for s, e in split_top_level(masked, 0, len(masked))]
        assert pieces == ["a", "b"]

    def test_empty(self):
        assert split_top_level("   ", 0, 3) == []


class TestStringValue:
    def test_plain(self):
        assert string_value('"Foo"') == "Foo"

    def test_escapes(self):
        assert string_value(r'"a\"b"') == 'a"b'

    def test_raw(self):
        assert string_value('#"a\\b"#') == "a\\b"

    def test_multiline(self):
        assert string_value('"""\nFoo\n"""') == "Foo"

    def test_interpolation_is_not_a_constant(self):
        assert string_value(r'"\(name)Tests"') is None

    def test_not_a_string(self):
        assert string_value("Foo") is None


class TestLocateLine:
    LINES = [
        ".target(",
        '    name: "App",',
        "    dependencies: [",
        '        "Utils",',
        "        TCA,",
        "    ]",
        ")",
    ]

    def test_quoted_name(self):
        assert locate_line(self.LINES, (1, 7), name_tokens("Utils")) == 4

    def test_constant_identifier(self):
        tokens = name_tokens("ComposableArchitecture", "TCA")
        assert locate_line(self.LINES, (1, 7), tokens) == 5

    def test_outside_span(self):
        assert locate_line(self.LINES, (1, 3), name_tokens("Utils")) is None

    def test_unknown_span(self):
        assert locate_line(self.LINES, (0, 0), name_tokens("Utils")) is None

    def test_quoted_prefix_does_not_match_longer_name(self):
        lines = ['    name: "UtilsTests",', '    dependencies: ["Utils"]']
        assert locate_line(lines, (1, 2), name_tokens("Utils")) == 2
