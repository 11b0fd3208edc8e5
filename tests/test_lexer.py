"""Test lexer mechanics: scanning primitives, spans and fallbacks."""

import pytest

from deimos import nodes
from deimos.errors import LexError
from deimos.lexer import Lexer, decode_source, tokenize
from deimos.tokens import Position, Span, TokenType

from .conftest import assert_types

ODD_INPUTS = [
    "",
    "*",
    "**",
    "`",
    "{",
    "{}",
    "{!}",
    "![",
    "![a](",
    "#",
    "|",
    "???",
    "---",
    "```",
    "\r",
    "a\rb",
    "> ",
    "1.",
    "- ",
    "^^",
    "~~~",
    "__",
    "___",
    "\t//",
    "a\0b",
    "\0\n\0",
    "---\na: b\n---\nx",
    "# a\n\n\n- b\n| c |\n> d\n??? e\n???\n",
]


class TestPrimitives:
    def test_peek(self):
        lexer = Lexer("abc")
        assert lexer.peek() == "a"
        assert lexer.peek_nth(2) == "c"
        assert lexer.peek_nth(3) == ""

    def test_advance(self):
        lexer = Lexer("abc")
        assert lexer.advance() == "a"
        assert lexer.index == 1
        assert lexer.peek() == "b"

    def test_advance_at_end_is_noop(self):
        lexer = Lexer("a")
        lexer.advance()
        assert lexer.advance() == ""
        assert lexer.index == 1

    def test_scan_until_found(self):
        lexer = Lexer("abc")
        lexer.advance()
        assert lexer.scan_until("c") == ("b", 1, True)
        assert lexer.index == 2

    def test_scan_until_missing_runs_to_end(self):
        lexer = Lexer("abc")
        lexer.advance()
        lexer.scan_until("c")
        assert lexer.scan_until("z") == ("c", 1, False)
        assert lexer.index == 3

    def test_scan_until_respects_limit(self):
        lexer = Lexer("ab|cd")
        assert lexer.scan_until("d", limit=2) == ("ab", 2, False)
        assert lexer.index == 2

    def test_advance_line(self):
        lexer = Lexer("a\nb")
        lexer.advance()
        lexer.advance()
        lexer.advance_line()
        assert lexer.line == 2
        assert lexer.start == Position(2, 1, 2)


class TestTermination:
    @pytest.mark.parametrize("source", ODD_INPUTS)
    def test_single_trailing_eoi(self, source):
        tokens = tokenize(source)
        assert tokens[-1].type == TokenType.EOI
        assert sum(1 for t in tokens if t.type == TokenType.EOI) == 1

    @pytest.mark.parametrize("source", ODD_INPUTS)
    def test_raw_text_reproduces_source(self, source):
        tokens = tokenize(source)
        assert "".join(t.raw for t in tokens) == source

    @pytest.mark.parametrize("source", ODD_INPUTS)
    def test_spans_are_monotonic(self, source):
        tokens = tokenize(source)
        offsets = [(t.span.start.offset, t.span.end.offset) for t in tokens]
        for start, end in offsets:
            assert start <= end
        for (_, prev_end), (next_start, _) in zip(offsets, offsets[1:]):
            assert prev_end <= next_start


class TestPositions:
    def test_first_token(self, lex):
        tokens = lex("ab")
        assert tokens[0].span.start == Position(1, 1, 0)
        assert tokens[0].span.end == Position(1, 3, 2)

    def test_second_line(self, lex):
        tokens = lex("ab\ncd")
        assert tokens[2].span.start == Position(2, 1, 3)

    def test_after_fenced_block(self, lex):
        tokens = lex("```\nx\n```\nafter")
        assert_types(tokens, [TokenType.FENCED_CODE, TokenType.NEWLINE, TokenType.TEXT])
        assert tokens[0].span.start == Position(1, 1, 0)
        assert tokens[0].span.end == Position(3, 4, 9)
        assert tokens[2].span.start == Position(4, 1, 10)

    def test_after_alignment_row(self, lex):
        tokens = lex("| a |\n|---|\nx")
        assert tokens[-1].value == "x"
        assert tokens[-1].span.start == Position(3, 1, 12)


class TestUnterminated:
    def test_italics_falls_back_to_text(self, lex):
        tokens = lex("*foo")
        assert_types(tokens, [TokenType.TEXT, TokenType.TEXT])
        assert tokens[0].node == nodes.Text("*")

    def test_bold_falls_back_to_text(self, lex):
        tokens = lex("**foo")
        assert tokens[0].node == nodes.Text("**")

    def test_delimiter_does_not_cross_lines(self, lex):
        tokens = lex("*a\nb*")
        assert TokenType.ITALICS not in [t.type for t in tokens]

    def test_trace_event(self, events):
        hook, recorded = events
        tokenize("~~foo", trace=hook)
        fallbacks = [fields for event, fields in recorded if event == "unterminated_delimiter"]
        assert fallbacks == [{"delimiter": "~~", "line": 1}]

    def test_fence_runs_to_end_of_input(self, events):
        hook, recorded = events
        tokens = tokenize("```\nabc\ndef", trace=hook)
        assert tokens[0].type == TokenType.FENCED_CODE
        assert tokens[0].value == "abc\ndef"
        assert ("unterminated_fence", {"line": 1}) in recorded

    def test_image_without_source_is_text(self, lex):
        tokens = lex("![alt]")
        assert all(t.type == TokenType.TEXT for t in tokens)
        assert tokens[0].value == "!"


class TestMetadata:
    def test_front_matter(self, lex):
        tokens = lex("---\ntitle: Hello\nauthor: Me\n---\n# Hi")
        assert_types(tokens, [TokenType.METADATA, TokenType.NEWLINE, TokenType.HEADING])
        assert tokens[0].node == nodes.Metadata((("title", "Hello"), ("author", "Me")))

    def test_value_may_contain_colon(self, lex):
        tokens = lex("---\nurl: http://x\n---")
        assert tokens[0].node.as_dict() == {"url": "http://x"}

    def test_blank_lines_ignored(self, lex):
        tokens = lex("---\n\na: b\n\n---")
        assert tokens[0].node.as_dict() == {"a": "b"}

    def test_crlf(self, lex):
        tokens = lex("---\r\na: b\r\n---\r\nx")
        assert_types(tokens, [TokenType.METADATA, TokenType.NEWLINE, TokenType.TEXT])
        assert tokens[0].node.as_dict() == {"a": "b"}

    def test_only_at_start_of_input(self, lex):
        tokens = lex("x\n---\na: b\n---")
        assert TokenType.METADATA not in [t.type for t in tokens]

    def test_unclosed_is_horizontal_break(self, lex):
        tokens = lex("---\na: b")
        assert tokens[0].type == TokenType.HORIZONTAL_BREAK

    def test_malformed_line_is_error(self, events):
        hook, recorded = events
        tokens = tokenize("---\nkey value\n---", trace=hook)
        assert tokens[0].type == TokenType.ERROR
        assert "key value" in tokens[0].node.detail
        assert ("invalid_metadata", {"line": "key value"}) in recorded


class TestSourceChecks:
    def test_decode_valid(self):
        assert decode_source("héllo".encode()) == "héllo"

    def test_decode_invalid_utf8(self):
        with pytest.raises(LexError) as info:
            decode_source(b"ab\xff")
        assert info.value.position == Position(1, 3, 2)
        assert "0xFF" in info.value.message

    def test_nul_is_an_error_token(self, lex):
        tokens = lex("a\0b")
        assert_types(tokens, [TokenType.TEXT, TokenType.ERROR, TokenType.TEXT])
        assert tokens[1].raw == "\0"
        assert tokens[1].span == Span(Position(1, 2, 1), Position(1, 3, 2))
        assert "NUL" in tokens[1].node.detail

    def test_nul_on_later_line(self, lex):
        tokens = lex("ok\nx\0")
        assert tokens[-1].type == TokenType.ERROR
        assert tokens[-1].span.start == Position(2, 2, 4)

    def test_lone_surrogate(self):
        with pytest.raises(LexError) as info:
            tokenize("a\ud800")
        assert "U+D800" in info.value.message
        assert info.value.position == Position(1, 2, 1)

    def test_lone_surrogate_keeps_filename(self):
        with pytest.raises(LexError) as info:
            tokenize("a\ud800", filename="notes.md")
        assert info.value.filename == "notes.md"
        assert "--> notes.md:1:2" in info.value.format()


class TestTokenTrace:
    def test_one_event_per_token(self, events):
        hook, recorded = events
        tokens = tokenize("# a\nb", trace=hook)
        token_events = [fields["type"] for event, fields in recorded if event == "token"]
        assert token_events == [t.type.name for t in tokens]
