"""Error kinds and exception types with formatted source context."""

from __future__ import annotations

from enum import Enum, auto

from deimos.tokens import Position, Span

INVALID_MESSAGE = "The given source has invalid syntax."


class ErrorKind(Enum):
    INVALID = auto()  # source violates the grammar
    OTHER = auto()  # niche failure carrying its own message


def describe(kind: ErrorKind, message: str | None = None) -> str:
    """Return the display text for an error kind."""
    if kind is ErrorKind.OTHER:
        return message or ""
    return INVALID_MESSAGE


class DeimosError(Exception):
    """Base class for errors raised out of the pipeline."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str | None = None,
        span: Span | None = None,
        source: str = "",
        filename: str = "input.md",
    ) -> None:
        self.kind = kind
        self.message = message or describe(kind)
        self.span = span
        self.source = source
        self.filename = filename
        super().__init__(self.message)

    @property
    def display(self) -> str:
        """Text shown in place of a construct that failed."""
        return describe(self.kind, self.message)

    def format(self, filename: str | None = None) -> str:
        """Render the error with a source snippet; filename defaults to the one raised with."""
        name = filename if filename is not None else self.filename
        if self.span is None:
            return f"error: {self.message}\n  --> {name}"
        return _format_context(self.message, self.span, self.source, name)


class LexError(DeimosError):
    """Raised when source cannot be tokenized at all."""

    def __init__(
        self,
        message: str,
        position: Position,
        source: str,
        filename: str = "input.md",
    ) -> None:
        self.position = position
        super().__init__(ErrorKind.OTHER, message, Span(position, position), source, filename)


class RenderError(DeimosError):
    """Raised when a node has no HTML mapping."""


def _format_context(message: str, span: Span, source: str, filename: str) -> str:
    lines = source.splitlines(keepends=True)
    line_idx = span.start.line - 1
    col = span.start.column

    if 0 <= line_idx < len(lines):
        source_line = lines[line_idx].rstrip("\n").rstrip("\r")
    else:
        source_line = ""

    # Underline the full span when on one line, otherwise to end of line
    if span.end.line == span.start.line:
        underline_len = max(1, span.end.column - col)
    else:
        underline_len = max(1, len(source_line) - col + 1)

    pad = " " * (col - 1)
    carets = "^" * underline_len

    line_num = str(span.start.line)
    gutter_width = len(line_num) + 1

    blank_gutter = " " * gutter_width + "|"
    line_gutter = f"{line_num:>{gutter_width - 1}} |"

    return (
        f"error: {message}\n"
        f"{' ' * gutter_width}--> {filename}:{span.start.line}:{col}\n"
        f"{blank_gutter}\n"
        f"{line_gutter} {source_line}\n"
        f"{blank_gutter} {pad}{carets}"
    )
