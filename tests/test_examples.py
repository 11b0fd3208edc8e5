"""Integration tests: parse and render each example, compare to expected HTML."""

from __future__ import annotations

from pathlib import Path

import pytest

import deimos
from deimos.errors import LexError
from deimos.lexer import tokenize
from deimos.tokens import TokenType

EXAMPLES_DIR = Path(__file__).resolve().parent.parent / "examples"


def _find_examples() -> list[Path]:
    return sorted(EXAMPLES_DIR.glob("*.md"))


@pytest.fixture(params=_find_examples(), ids=lambda p: p.stem)
def example(request: pytest.FixtureRequest) -> Path:
    return request.param


class TestExampleFiles:
    def test_matches_expected_html(self, example: Path):
        source = example.read_text(encoding="utf-8")
        expected = example.with_suffix(".html").read_text(encoding="utf-8")
        assert deimos.parse(source) == expected.removesuffix("\n")

    def test_tokenizes_to_single_eoi(self, example: Path):
        tokens = tokenize(example.read_text(encoding="utf-8"), filename=example.name)
        assert tokens[-1].type == TokenType.EOI
        assert [t.type for t in tokens].count(TokenType.EOI) == 1

    def test_bytes_and_text_agree(self, example: Path):
        assert deimos.parse(example.read_bytes()) == deimos.parse(example.read_text("utf-8"))


class TestEndToEnd:
    @pytest.mark.parametrize("level", range(1, 7))
    def test_heading_levels(self, level: int):
        assert deimos.parse("#" * level + " text") == f"<h{level}>text<h{level}/>"

    @pytest.mark.parametrize("source", ["####### text", "#text"])
    def test_bad_heading_is_error_text(self, source: str):
        assert deimos.parse(source) == "The given source has invalid syntax."

    @pytest.mark.parametrize(
        ("source", "expected"),
        [
            ("**bold**", "<strong>bold</strong>"),
            ("*italic*", "<em>italic</em>"),
            ("~~gone~~", "<del>gone</del>"),
            ("^up^", "<sup>up</sup>"),
            ("___down___", "<sub>down</sub>"),
            ("`x`", "<code>x</code>"),
            ("![logo](a.png)", '<img src="a.png" alt="logo" />'),
            ("{name}", "<var>name</var>"),
            ("{!name}", "<span>name</span>"),
            ("{ not var }", "{ not var }"),
            ("---", "<hr>"),
        ],
    )
    def test_inline_mapping(self, source: str, expected: str):
        assert deimos.parse(source) == expected

    def test_table(self):
        result = deimos.parse("| Test | Second Heading |\n| Value | Other Value |")
        assert result == (
            "<table><tr><th>Test</th><th>Second Heading</th></tr>"
            "<tr><td>Value</td><td>Other Value</td></tr></table>"
        )

    def test_ragged_table(self):
        result = deimos.parse("| a | b |\n| 1 |\n| 1 | 2 | 3 |")
        assert result == (
            "<table><tr><th>a</th><th>b</th></tr>"
            "<tr><td>1</td></tr><tr><td>1</td><td>2</td><td>3</td></tr></table>"
        )

    def test_dash_row_inside_table_is_data(self):
        result = deimos.parse("| item | qty |\n| apple | 3 |\n| - | - |\n| pear | 1 |")
        assert result.count("<tr>") == 4
        assert "<tr><td>-</td><td>-</td></tr>" in result

    def test_alignment_row_under_header_is_skipped(self):
        result = deimos.parse("| item | qty |\n|:---|---:|\n| apple | 3 |")
        assert result == (
            "<table><tr><th>item</th><th>qty</th></tr>"
            "<tr><td>apple</td><td>3</td></tr></table>"
        )

    def test_heading_then_paragraph(self):
        result = deimos.parse("# Doc\nSome **bold** and *italic* text.\n")
        assert result == "<h1>Doc<h1/>Some <strong>bold</strong> and <em>italic</em> text."

    def test_lists(self):
        assert deimos.parse("- one\n- two") == "<ul><li>one</li><li>two</li></ul>"
        assert deimos.parse("- a\n1. b") == "<ul><li>a</li></ul><ol><li>b</li></ol>"

    def test_aside_and_details(self):
        assert deimos.parse("> note\n> more") == "<aside>note\nmore</aside>"
        assert deimos.parse("??? Summary\nBody text\n???") == (
            "<details><summary>Summary</summary>Body text</details>"
        )

    def test_unterminated_fence(self):
        assert deimos.parse("```\nabc\ndef") == "<pre><code>abc\ndef</code></pre>"

    def test_unterminated_delimiters_are_literal(self):
        assert deimos.parse("*foo") == "*foo"
        assert deimos.parse("**foo") == "**foo"

    def test_paragraph_breaks(self):
        assert deimos.parse("a\nb") == "a\nb"
        assert deimos.parse("a\n\nb") == "ab"

    def test_comments_and_metadata_dropped(self):
        assert deimos.parse("// hidden\ntext") == "text"
        assert deimos.parse("---\ntitle: Hello\n---\n# Hi") == "<h1>Hi<h1/>"

    def test_escape_html(self):
        assert deimos.parse("<b>&") == "<b>&"
        assert deimos.parse("<b>&", escape_html=True) == "&lt;b&gt;&amp;"

    def test_idempotent(self):
        source = "# T\n- a\n| x |\n> q\n**b** *i* `c`"
        assert deimos.parse(source) == deimos.parse(source)


class TestFatal:
    def test_invalid_utf8(self):
        with pytest.raises(LexError):
            deimos.parse(b"\xff")

    def test_lone_surrogate(self):
        with pytest.raises(LexError) as info:
            deimos.parse("a\ud800b")
        assert info.value.position.column == 2


class TestNulCharacter:
    def test_rest_of_document_survives(self):
        assert deimos.parse("# ok\nbody \0 text") == (
            "<h1>ok<h1/>body The given source has invalid syntax. text"
        )

    def test_nul_alone_on_a_line(self):
        assert deimos.parse("a\n\0\nb") == "aThe given source has invalid syntax.b"
