"""Deimos parser: groups a token stream into a document tree."""

from __future__ import annotations

from deimos import nodes
from deimos.errors import ErrorKind
from deimos.lexer import tokenize
from deimos.tokens import Span, Token, TokenType
from deimos.trace import TraceHook, emit


class Parser:
    """Block-level parser for Deimos token streams.

    Blocks are line-oriented. A construct that cannot start a block becomes
    an ``Error`` block covering the rest of its line, and parsing carries on
    with the next line.
    """

    def __init__(self, tokens: list[Token], trace: TraceHook | None = None) -> None:
        self._tokens = tokens
        self._trace = trace
        self._pos = 0

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def _peek(self, offset: int = 0) -> Token:
        idx = self._pos + offset
        if idx < len(self._tokens):
            return self._tokens[idx]
        return self._tokens[-1]  # EOI

    def _at(self, *types: TokenType) -> bool:
        return self._peek().type in types

    def _at_eoi(self) -> bool:
        return self._peek().type == TokenType.EOI

    def _advance(self) -> Token:
        tok = self._tokens[self._pos]
        if tok.type != TokenType.EOI:
            self._pos += 1
        return tok

    def _skip_newline(self) -> None:
        if self._at(TokenType.NEWLINE):
            self._advance()

    # ------------------------------------------------------------------
    # Document level
    # ------------------------------------------------------------------

    def parse(self) -> nodes.Document:
        start = self._peek().span.start
        metadata: nodes.Metadata | None = None
        children: list[nodes.Block] = []

        while not self._at_eoi():
            block = self._parse_block()
            if isinstance(block, nodes.Metadata):
                metadata = block
            if block is not None:
                children.append(block)

        end = self._peek().span.end
        return nodes.Document(tuple(children), metadata, Span(start, end))

    def _parse_block(self) -> nodes.Block | None:
        self._skip_blank_lines()
        if self._at_eoi():
            return None

        tok = self._peek()
        block: nodes.Block

        match tok.type:
            case (
                TokenType.METADATA
                | TokenType.HEADING
                | TokenType.FENCED_CODE
                | TokenType.HORIZONTAL_BREAK
            ):
                self._advance()
                assert tok.node is not None
                block = tok.node  # type: ignore[assignment]
                self._end_line()
            case TokenType.ERROR if self._is_error_line():
                self._advance()
                assert isinstance(tok.node, nodes.Error)
                block = tok.node
                self._end_line()
            case TokenType.TABLE_ROW:
                block = self._parse_table()
            case TokenType.BULLET | TokenType.ORDINAL:
                block = self._parse_list()
            case TokenType.ASIDE:
                block = self._parse_aside()
            case TokenType.DETAILS_OPEN:
                block = self._parse_details()
            case TokenType.DETAILS_CLOSE:
                self._advance()
                emit(self._trace, "stray_details_close", line=tok.span.start.line)
                block = self._error_line(tok, "'???' closes a details block that was never opened")
            case _:
                block = self._parse_paragraph()

        emit(self._trace, "block", kind=type(block).__name__, line=tok.span.start.line)
        return block

    def _skip_blank_lines(self) -> None:
        while self._at(TokenType.NEWLINE, TokenType.WHITESPACE, TokenType.COMMENT):
            self._advance()

    def _end_line(self) -> None:
        """Consume the rest of a line-level block's line."""
        while not self._at(TokenType.NEWLINE, TokenType.EOI):
            self._advance()
        self._skip_newline()

    def _error_line(self, tok: Token, detail: str) -> nodes.Error:
        start = tok.span.start
        end = tok.span.end
        while not self._at(TokenType.NEWLINE, TokenType.EOI):
            end = self._advance().span.end
        self._skip_newline()
        return nodes.Error(ErrorKind.INVALID, detail=detail, span=Span(start, end))

    # ------------------------------------------------------------------
    # Blocks
    # ------------------------------------------------------------------

    def _parse_table(self) -> nodes.Table:
        header = self._advance()
        assert isinstance(header.node, nodes.RichText)
        headers = tuple(_plain(cell) for cell in header.node.children)
        self._skip_newline()

        # Only the row directly under the header can be an alignment row
        if self._at(TokenType.TABLE_ROW) and _is_alignment_row(self._peek()):
            self._advance()
            self._skip_newline()

        rows: list[nodes.RichText] = []
        while self._at(TokenType.TABLE_ROW):
            row = self._advance()
            assert isinstance(row.node, nodes.RichText)
            rows.append(row.node)
            self._skip_newline()

        return nodes.Table(headers, tuple(rows))

    def _parse_list(self) -> nodes.List:
        marker = self._peek().type
        list_type = nodes.ListType.UNORDERED
        if marker == TokenType.ORDINAL:
            list_type = nodes.ListType.ORDERED

        items: list[nodes.RichText] = []
        while self._at(marker):
            self._advance()
            items.append(nodes.RichText(tuple(_coalesce_text(self._parse_inline_line()))))
            self._skip_newline()

        return nodes.List(list_type, tuple(items))

    def _parse_aside(self) -> nodes.Aside:
        children: list[nodes.Inline] = []
        while self._at(TokenType.ASIDE):
            self._advance()
            if children:
                children.append(nodes.Text("\n"))
            children.extend(self._parse_inline_line())
            self._skip_newline()

        return nodes.Aside(nodes.RichText(tuple(_coalesce_text(children))))

    def _parse_details(self) -> nodes.Details:
        open_tok = self._advance()
        summary = nodes.RichText(tuple(_coalesce_text(self._parse_inline_line())))
        self._skip_newline()

        body: list[nodes.Block] = []
        while True:
            self._skip_blank_lines()
            if self._at_eoi():
                emit(self._trace, "unterminated_details", line=open_tok.span.start.line)
                break
            if self._at(TokenType.DETAILS_CLOSE):
                self._advance()
                self._end_line()
                break
            block = self._parse_block()
            if block is not None:
                body.append(block)

        return nodes.Details(summary, tuple(body))

    def _parse_paragraph(self) -> nodes.Paragraph:
        children: list[nodes.Inline] = []

        while not self._at_eoi() and not self._is_blank_line() and not self._at_block_start():
            children.extend(self._parse_inline_line())

            if self._at(TokenType.NEWLINE):
                self._advance()
                # If paragraph continues, keep the line break as text
                if not self._at_eoi() and not self._is_blank_line() and not self._at_block_start():
                    children.append(nodes.Text("\n"))

        return nodes.Paragraph(nodes.RichText(tuple(_coalesce_text(children))))

    # ------------------------------------------------------------------
    # Inline content
    # ------------------------------------------------------------------

    def _parse_inline_line(self) -> list[nodes.Inline]:
        """Collect inline leaves up to (not including) the end of the line."""
        result: list[nodes.Inline] = []
        while not self._at(TokenType.NEWLINE, TokenType.EOI):
            tok = self._advance()
            if tok.type in _INLINE_TOKENS:
                assert tok.node is not None
                result.append(tok.node)  # type: ignore[arg-type]
            elif tok.type == TokenType.ERROR:
                assert isinstance(tok.node, nodes.Error)
                result.append(tok.node)
            else:
                # Whitespace, or a line marker met mid-line: keep its source text
                result.append(nodes.Text(tok.raw))
        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _is_blank_line(self) -> bool:
        if self._at(TokenType.NEWLINE):
            return True
        if self._at(TokenType.WHITESPACE):
            return self._peek(1).type in (TokenType.NEWLINE, TokenType.EOI)
        return False

    def _at_block_start(self) -> bool:
        """Check if the current line opens a block other than a paragraph."""
        if self._at(TokenType.WHITESPACE) and self._peek(1).type == TokenType.COMMENT:
            return True
        if self._is_error_line():
            return True
        return self._peek().type in _BLOCK_START

    def _is_error_line(self) -> bool:
        """An error token that fills its line stands as a block of its own."""
        return self._at(TokenType.ERROR) and self._peek(1).type in (TokenType.NEWLINE, TokenType.EOI)


# Module-level constants
_INLINE_TOKENS: frozenset[TokenType] = frozenset(
    {
        TokenType.TEXT,
        TokenType.BOLD,
        TokenType.ITALICS,
        TokenType.SUBSCRIPT,
        TokenType.SUPERSCRIPT,
        TokenType.STRIKETHROUGH,
        TokenType.INLINE_CODE,
        TokenType.IMAGE,
        TokenType.VARIABLE,
        TokenType.NEGATED_VARIABLE,
    }
)
_BLOCK_START: frozenset[TokenType] = frozenset(
    {
        TokenType.METADATA,
        TokenType.HEADING,
        TokenType.FENCED_CODE,
        TokenType.COMMENT,
        TokenType.HORIZONTAL_BREAK,
        TokenType.TABLE_ROW,
        TokenType.BULLET,
        TokenType.ORDINAL,
        TokenType.ASIDE,
        TokenType.DETAILS_OPEN,
        TokenType.DETAILS_CLOSE,
    }
)


def _is_alignment_row(tok: Token) -> bool:
    assert isinstance(tok.node, nodes.RichText)
    cells = [_plain(cell) for cell in tok.node.children]
    return all(cell and set(cell) <= {"-", ":"} for cell in cells) and any("-" in c for c in cells)


def _plain(node: nodes.Inline) -> str:
    return node.value if isinstance(node, nodes.Text) else ""


def _coalesce_text(children: list[nodes.Inline]) -> list[nodes.Inline]:
    """Coalesce adjacent Text leaves into single leaves."""
    result: list[nodes.Inline] = []
    for child in children:
        if isinstance(child, nodes.Text) and result and isinstance(result[-1], nodes.Text):
            result[-1] = nodes.Text(result[-1].value + child.value)
        else:
            result.append(child)
    return result


def parse_document(
    source: str,
    filename: str = "input.md",
    trace: TraceHook | None = None,
) -> nodes.Document:
    """Convenience function: tokenize and parse source into a Document."""
    tokens = tokenize(source, filename, trace)
    return Parser(tokens, trace).parse()
