"""Deimos lexer: converts source text into a flat token stream."""

from __future__ import annotations

from collections.abc import Callable

from deimos import nodes
from deimos.errors import ErrorKind, LexError
from deimos.tokens import LINE_BLANKS, Position, Span, Token, TokenType, is_blank, is_marker_char
from deimos.trace import TraceHook, emit

_FENCE = "```"
_RULE = "---"
_DETAILS = "???"


class Lexer:
    """Tokenize Deimos source text into a stream of Token objects.

    Every scanning step consumes at least one character, so tokenizing
    always terminates. Constructs that fail to close degrade instead of
    raising: an unterminated inline delimiter is emitted as plain text and
    an unterminated fence runs to the end of input.
    """

    def __init__(
        self,
        source: str,
        filename: str = "input.md",
        trace: TraceHook | None = None,
    ) -> None:
        self._source = source
        self._filename = filename
        self._trace = trace
        self._pos = 0
        self._line = 1
        self._col = 1
        self._start = Position(1, 1, 0)
        self._at_line_start = True
        self._tokens: list[Token] = []

    @property
    def index(self) -> int:
        return self._pos

    @property
    def line(self) -> int:
        return self._line

    @property
    def start(self) -> Position:
        """Where the span of the token being built begins."""
        return self._start

    def tokenize(self) -> list[Token]:
        """Tokenize the full source and return the token list."""
        self._check_source()
        while self._pos < len(self._source):
            if self._at_line_start:
                self._lex_line_start()
            else:
                self._lex_inline()

        self._mark()
        self._emit(TokenType.EOI, "", nodes.EOI())
        return self._tokens

    # ------------------------------------------------------------------
    # Scanning primitives
    # ------------------------------------------------------------------

    def peek(self) -> str:
        """Return the current character, or "" at end of input."""
        return self.peek_nth(0)

    def peek_nth(self, k: int) -> str:
        idx = self._pos + k
        if idx < len(self._source):
            return self._source[idx]
        return ""

    def advance(self) -> str:
        """Consume one character; a no-op once input is exhausted."""
        if self._pos >= len(self._source):
            return ""
        ch = self._source[self._pos]
        self._pos += 1
        self._col += 1
        return ch

    def advance_line(self) -> None:
        """Move to the start of the next line and restart span tracking there."""
        self._next_line()
        self._mark()

    def _next_line(self) -> None:
        # Keeps the span start, so fences and front matter can span lines
        self._line += 1
        self._col = 1
        self._at_line_start = True

    def scan_until(self, delimiter: str, limit: int | None = None) -> tuple[str, int, bool]:
        """Consume characters up to (not including) delimiter.

        The scan stops at ``limit`` (default: end of input) when the
        delimiter is absent. Returns the consumed text, its length and
        whether the delimiter was found.
        """
        if limit is None:
            limit = len(self._source)
        idx = self._source.find(delimiter, self._pos, limit)
        found = idx != -1
        stop = idx if found else limit
        text = self._source[self._pos : stop]
        self._advance_to(stop)
        return text, len(text), found

    def _step(self) -> str:
        ch = self.advance()
        if ch == "\n":
            self._next_line()
        return ch

    def _advance_to(self, offset: int) -> None:
        while self._pos < offset:
            self._step()

    def _startswith(self, text: str) -> bool:
        return self._source.startswith(text, self._pos)

    def _line_end(self) -> int:
        idx = self._source.find("\n", self._pos)
        return len(self._source) if idx == -1 else idx

    def _content_end(self) -> int:
        """End of the current line's content, before any \\r\\n."""
        end = self._line_end()
        if end > self._pos and self._source[end - 1] == "\r":
            return end - 1
        return end

    def _skip_newline(self) -> None:
        if self.peek() == "\r" and self.peek_nth(1) == "\n":
            self.advance()
        if self.peek() == "\n":
            self._step()

    # ------------------------------------------------------------------
    # Position helpers
    # ------------------------------------------------------------------

    def _current_pos(self) -> Position:
        return Position(self._line, self._col, self._pos)

    def _mark(self) -> None:
        self._start = self._current_pos()

    def _span(self) -> Span:
        return Span(self._start, self._current_pos())

    def _emit(self, tt: TokenType, value: str, node: nodes.Node | None = None) -> Token:
        span = self._span()
        raw = self._source[span.start.offset : span.end.offset]
        tok = Token(tt, value, raw, span, node)
        self._tokens.append(tok)
        emit(self._trace, "token", type=tt.name, span=(span.start.offset, span.end.offset))
        return tok

    def _emit_error(self, detail: str) -> Token:
        node = nodes.Error(ErrorKind.INVALID, detail=detail, span=self._span())
        return self._emit(TokenType.ERROR, detail, node)

    def _check_source(self) -> None:
        for offset, ch in enumerate(self._source):
            if "\ud800" <= ch <= "\udfff":
                raise LexError(
                    f"lone surrogate U+{ord(ch):04X} in source",
                    _position_at(self._source, offset),
                    self._source,
                    self._filename,
                )

    # ------------------------------------------------------------------
    # Line-start constructs
    # ------------------------------------------------------------------

    def _lex_line_start(self) -> None:
        if self._pos == 0 and self._lex_metadata():
            return

        self._at_line_start = False
        ch = self.peek()

        if ch in LINE_BLANKS:
            self._lex_ws()
            if self._startswith("//"):
                self._lex_comment()
            return

        if ch == "#":
            self._lex_heading()
            return

        if self._startswith(_FENCE):
            self._lex_fence()
            return

        if self._startswith("//"):
            self._lex_comment()
            return

        if ch == "-" and self._is_rule_line():
            self._mark()
            self._advance_to(self._content_end())
            self._emit(TokenType.HORIZONTAL_BREAK, "", nodes.HorizontalBreak())
            return

        if ch == "|":
            self._lex_table_row()
            return

        if ch in "-*" and self.peek_nth(1) == " ":
            self._mark()
            self.advance()
            self.advance()
            self._emit(TokenType.BULLET, ch)
            return

        if ch.isdigit() and self._lex_ordinal():
            return

        if ch == ">":
            self._mark()
            self.advance()
            if self.peek() == " ":
                self.advance()
            self._emit(TokenType.ASIDE, ">")
            return

        if self._startswith(_DETAILS) and self._lex_details_marker():
            return

        self._lex_inline()

    def _is_rule_line(self) -> bool:
        content = self._source[self._pos : self._content_end()].rstrip(LINE_BLANKS)
        return len(content) >= len(_RULE) and set(content) == {"-"}

    def _lex_metadata(self) -> bool:
        """Front matter: --- on the first line, key: value lines, closing ---."""
        if self._source[: self._content_end()].rstrip(LINE_BLANKS) != _RULE:
            return False

        lines = self._source.split("\n")
        offset = len(lines[0]) + 1
        close_offset = -1
        for line in lines[1:]:
            if line.rstrip("\r").rstrip(LINE_BLANKS) == _RULE:
                close_offset = offset
                break
            offset += len(line) + 1
        if close_offset == -1:
            return False

        body = self._source[len(lines[0]) + 1 : close_offset]
        entries: list[tuple[str, str]] = []
        bad_line: str | None = None
        for line in body.split("\n"):
            if is_blank(line):
                continue
            key, sep, value = line.partition(":")
            if not sep or not key.strip():
                bad_line = line
                break
            entries.append((key.strip(), value.strip()))

        self._mark()
        self._advance_to(close_offset)
        self._advance_to(self._content_end())
        self._at_line_start = False

        if bad_line is not None:
            emit(self._trace, "invalid_metadata", line=bad_line)
            self._emit_error(f"metadata line without 'key: value': {bad_line.strip()!r}")
        else:
            self._emit(TokenType.METADATA, body, nodes.Metadata(tuple(entries)))
        return True

    def _lex_heading(self) -> None:
        self._mark()
        count = 0
        while self.peek_nth(count) == "#":
            count += 1

        if 1 <= count <= 6 and self.peek_nth(count) == " ":
            self._advance_to(self._pos + count + 1)
            text, _, _ = self.scan_until("\n", self._content_end())
            self._emit(TokenType.HEADING, text, nodes.Heading(count, text))
            return

        self._advance_to(self._content_end())
        emit(self._trace, "invalid_heading", level=count, line=self._start.line)
        if count > 6:
            self._emit_error(f"heading marker has {count} '#', at most 6 are allowed")
        else:
            self._emit_error("heading marker must be followed by a space")

    def _lex_fence(self) -> None:
        self._mark()
        self._advance_to(self._pos + len(_FENCE))
        language = self._source[self._pos : self._content_end()].strip()
        self._advance_to(self._content_end())
        self._skip_newline()

        body_start = self._pos
        body_end = -1
        while self._pos < len(self._source):
            line_start = self._pos
            line = self._source[line_start : self._line_end()]
            if line.strip() == _FENCE:
                body_end = line_start
                self._advance_to(self._content_end())
                break
            self._advance_to(self._line_end())
            self._skip_newline()

        if body_end == -1:
            body_end = len(self._source)
            emit(self._trace, "unterminated_fence", line=self._start.line)

        contents = self._source[body_start:body_end]
        if contents.endswith("\n"):
            contents = contents[:-1]
        if contents.endswith("\r"):
            contents = contents[:-1]

        self._at_line_start = False
        self._emit(
            TokenType.FENCED_CODE,
            contents,
            nodes.Code(nodes.CodeType.FENCED, contents, language),
        )

    def _lex_comment(self) -> None:
        self._mark()
        self._advance_to(self._pos + 2)
        text, _, _ = self.scan_until("\n", self._content_end())
        self._emit(TokenType.COMMENT, text, nodes.Comment())

    def _lex_table_row(self) -> None:
        self._mark()
        line, _, _ = self.scan_until("\n", self._content_end())
        row = nodes.RichText(tuple(nodes.Text(cell) for cell in _split_row(line)))
        self._emit(TokenType.TABLE_ROW, line, row)

    def _lex_ordinal(self) -> bool:
        count = 0
        while self.peek_nth(count).isdigit():
            count += 1
        if self.peek_nth(count) != "." or self.peek_nth(count + 1) != " ":
            return False
        self._mark()
        digits = self._source[self._pos : self._pos + count]
        self._advance_to(self._pos + count + 2)
        self._emit(TokenType.ORDINAL, digits)
        return True

    def _lex_details_marker(self) -> bool:
        rest = self._source[self._pos + len(_DETAILS) : self._content_end()]
        if is_blank(rest):
            self._mark()
            self._advance_to(self._content_end())
            self._emit(TokenType.DETAILS_CLOSE, _DETAILS)
            return True
        if rest[0] == " ":
            self._mark()
            self._advance_to(self._pos + len(_DETAILS) + 1)
            self._emit(TokenType.DETAILS_OPEN, _DETAILS)
            return True
        return False

    # ------------------------------------------------------------------
    # Inline content
    # ------------------------------------------------------------------

    def _lex_inline(self) -> None:
        ch = self.peek()

        if ch == "\n" or (ch == "\r" and self.peek_nth(1) == "\n"):
            self._mark()
            if ch == "\r":
                self.advance()
            self.advance()
            self._emit(TokenType.NEWLINE, "\n", nodes.Whitespace())
            self.advance_line()
            return

        if ch in " \t\r":
            self._lex_ws()
            return

        if ch == "\0":
            self._mark()
            self.advance()
            self._emit_error("NUL character in source")
            return

        if ch == "*":
            if self.peek_nth(1) == "*":
                self._lex_span("**", TokenType.BOLD, nodes.Bold)
            else:
                self._lex_span("*", TokenType.ITALICS, nodes.Italics)
            return

        if ch == "_" and self._startswith("___"):
            self._lex_span("___", TokenType.SUBSCRIPT, nodes.Subscript)
            return

        if ch == "~" and self.peek_nth(1) == "~":
            self._lex_span("~~", TokenType.STRIKETHROUGH, nodes.StrikeThrough)
            return

        if ch == "^":
            self._lex_span("^", TokenType.SUPERSCRIPT, nodes.Superscript)
            return

        if ch == "`":
            count = 0
            while self.peek_nth(count) == "`":
                count += 1
            self._lex_span("`" * count, TokenType.INLINE_CODE, _inline_code)
            return

        if ch == "!" and self.peek_nth(1) == "[":
            self._lex_image()
            return

        if ch == "{":
            self._lex_variable()
            return

        self._lex_text()

    def _lex_ws(self) -> None:
        self._mark()
        while self.peek() in (" ", "\t") or (self.peek() == "\r" and self.peek_nth(1) != "\n"):
            self.advance()
        text = self._source[self._start.offset : self._pos]
        self._emit(TokenType.WHITESPACE, text, nodes.Whitespace())

    def _lex_text(self) -> None:
        self._mark()
        # The first character is always taken, even a marker that opened nothing
        self.advance()
        while self._pos < len(self._source) and not is_marker_char(self.peek()):
            self.advance()
        text = self._source[self._start.offset : self._pos]
        self._emit(TokenType.TEXT, text, nodes.Text(text))

    def _lex_literal(self, text: str) -> None:
        """Emit an opening delimiter that never closed as plain text."""
        self._advance_to(self._pos + len(text))
        emit(self._trace, "unterminated_delimiter", delimiter=text, line=self._start.line)
        self._emit(TokenType.TEXT, text, nodes.Text(text))

    def _lex_span(
        self,
        delimiter: str,
        tt: TokenType,
        make: Callable[[str], nodes.Node],
    ) -> None:
        self._mark()
        limit = self._content_end()
        content_start = self._pos + len(delimiter)
        if self._source.find(delimiter, content_start, limit) == -1:
            self._lex_literal(delimiter)
            return

        self._advance_to(content_start)
        text, _, _ = self.scan_until(delimiter, limit)
        self._advance_to(self._pos + len(delimiter))
        self._emit(tt, text, make(text))

    def _lex_image(self) -> None:
        self._mark()
        limit = self._content_end()
        alt_end = self._source.find("](", self._pos + 2, limit)
        src_end = self._source.find(")", alt_end + 2, limit) if alt_end != -1 else -1
        if src_end == -1:
            self._lex_literal("!")
            return

        self._advance_to(self._pos + 2)
        alt, _, _ = self.scan_until("](", limit)
        self._advance_to(self._pos + 2)
        src, _, _ = self.scan_until(")", limit)
        self.advance()
        self._emit(TokenType.IMAGE, alt, nodes.Image(alt, src))

    def _lex_variable(self) -> None:
        self._mark()
        close = self._source.find("}", self._pos + 1, self._content_end())
        name = self._source[self._pos + 1 : close] if close != -1 else ""
        negated = name.startswith("!")
        if negated:
            name = name[1:]
        if not name or "{" in name or any(ch.isspace() for ch in name):
            self._lex_literal("{")
            return

        self._advance_to(close + 1)
        if negated:
            self._emit(TokenType.NEGATED_VARIABLE, name, nodes.NegatedVariable(name))
        else:
            self._emit(TokenType.VARIABLE, name, nodes.Variable(name))


def _inline_code(contents: str) -> nodes.Code:
    return nodes.Code(nodes.CodeType.INLINE, contents)


def _split_row(line: str) -> list[str]:
    body = line.strip()
    if body.startswith("|"):
        body = body[1:]
    if body.endswith("|"):
        body = body[:-1]
    return [cell.strip() for cell in body.split("|")]


def _position_at(source: str, offset: int) -> Position:
    line = source.count("\n", 0, offset) + 1
    column = offset - (source.rfind("\n", 0, offset) + 1) + 1
    return Position(line, column, offset)


def decode_source(data: bytes) -> str:
    """Decode UTF-8 source bytes, raising LexError on invalid input."""
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        text = data[: exc.start].decode("utf-8")
        raise LexError(
            f"source is not valid UTF-8 (byte 0x{data[exc.start]:02X} at offset {exc.start})",
            _position_at(text, len(text)),
            text,
        ) from exc


def tokenize(
    source: str,
    filename: str = "input.md",
    trace: TraceHook | None = None,
) -> list[Token]:
    """Convenience function: tokenize source text and return token list."""
    return Lexer(source, filename, trace).tokenize()
