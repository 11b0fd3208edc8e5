"""Token types, source positions, and character classification helpers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from deimos.nodes import Node


class TokenType(Enum):
    # Line-level (recognised at the start of a line)
    METADATA = auto()  # --- key: value --- at offset 0
    HEADING = auto()  # #{1,6} text
    FENCED_CODE = auto()  # ```lang ... ```
    COMMENT = auto()  # // to end of line
    HORIZONTAL_BREAK = auto()  # ---
    TABLE_ROW = auto()  # | a | b |
    BULLET = auto()  # "- " or "* "
    ORDINAL = auto()  # "1. "
    ASIDE = auto()  # "> "
    DETAILS_OPEN = auto()  # ??? summary
    DETAILS_CLOSE = auto()  # ???

    # Inline spans
    TEXT = auto()
    BOLD = auto()  # **b**
    ITALICS = auto()  # *i*
    SUBSCRIPT = auto()  # ___s___
    SUPERSCRIPT = auto()  # ^s^
    STRIKETHROUGH = auto()  # ~~s~~
    INLINE_CODE = auto()  # `c`
    IMAGE = auto()  # ![alt](src)
    VARIABLE = auto()  # {name}
    NEGATED_VARIABLE = auto()  # {!name}

    # Whitespace
    WHITESPACE = auto()  # spaces, tabs, lone \r
    NEWLINE = auto()  # \n or \r\n

    ERROR = auto()
    EOI = auto()


@dataclass(frozen=True, slots=True)
class Position:
    """Source position, 1-based line and column, 0-based offset."""

    line: int
    column: int
    offset: int


@dataclass(frozen=True, slots=True)
class Span:
    """Source range from start to end position."""

    start: Position
    end: Position


@dataclass(frozen=True, slots=True)
class Token:
    """A single lexer token.

    ``raw`` is the exact slice of source the token covers, ``value`` the
    resolved text (delimiters removed), and ``node`` the document node the
    token stands for, when it stands for one.
    """

    type: TokenType
    value: str
    raw: str
    span: Span
    node: Node | None = None


# Characters that end a plain text run
INLINE_MARKERS = frozenset("*_~^`!{\n\r\0")

LINE_BLANKS = " \t"


def is_marker_char(ch: str) -> bool:
    """Return True if ch may open an inline span or a line break."""
    return ch in INLINE_MARKERS


def is_blank(text: str) -> bool:
    """Return True if text contains only spaces and tabs (or is empty)."""
    return all(ch in LINE_BLANKS for ch in text)
