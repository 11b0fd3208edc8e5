"""Document node types shared by the lexer, the parser and the renderer."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum, auto

from deimos.errors import ErrorKind, describe
from deimos.tokens import Span


class CodeType(Enum):
    INLINE = auto()  # `code` within a run of text
    FENCED = auto()  # ``` block


class ListType(Enum):
    ORDERED = auto()  # <ol>
    UNORDERED = auto()  # <ul>


# ---------------------------------------------------------------------------
# Inline leaves
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Text:
    """Plain text."""

    value: str


@dataclass(frozen=True, slots=True)
class Bold:
    """Bold text, delimited by ``**``."""

    value: str


@dataclass(frozen=True, slots=True)
class Italics:
    """Italic text, delimited by ``*``."""

    value: str


@dataclass(frozen=True, slots=True)
class StrikeThrough:
    """Struck-out text, delimited by ``~~``."""

    value: str


@dataclass(frozen=True, slots=True)
class Subscript:
    """Subscript, delimited by ``___``."""

    value: str


@dataclass(frozen=True, slots=True)
class Superscript:
    """Superscript, delimited by ``^``."""

    value: str


@dataclass(frozen=True, slots=True)
class Code:
    """Inline code span or fenced code block."""

    block_type: CodeType
    contents: str
    language: str = ""


@dataclass(frozen=True, slots=True)
class Image:
    alt: str
    src: str


@dataclass(frozen=True, slots=True)
class Variable:
    name: str


@dataclass(frozen=True, slots=True)
class NegatedVariable:
    name: str


@dataclass(frozen=True, slots=True)
class Error:
    """A construct that failed to parse, rendered as its display text.

    ``detail`` and ``span`` locate the failure for diagnostics and do not
    take part in equality.
    """

    kind: ErrorKind
    message: str | None = None
    detail: str = field(default="", compare=False)
    span: Span | None = field(default=None, compare=False)

    @property
    def display(self) -> str:
        return describe(self.kind, self.message)


# ---------------------------------------------------------------------------
# Control
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Whitespace:
    pass


@dataclass(frozen=True, slots=True)
class Comment:
    pass


@dataclass(frozen=True, slots=True)
class EOI:
    """End of input."""


# ---------------------------------------------------------------------------
# Containers and blocks
# ---------------------------------------------------------------------------


Inline = (
    Text
    | Bold
    | Italics
    | StrikeThrough
    | Subscript
    | Superscript
    | Code
    | Image
    | Variable
    | NegatedVariable
    | Error
)


@dataclass(frozen=True, slots=True)
class RichText:
    """An ordered run of inline leaves."""

    children: tuple[Inline, ...]


@dataclass(frozen=True, slots=True)
class Heading:
    level: int
    text: str


@dataclass(frozen=True, slots=True)
class Paragraph:
    content: RichText


@dataclass(frozen=True, slots=True)
class List:
    """Ordered or unordered list; each item is one run of rich text."""

    list_type: ListType
    items: tuple[RichText, ...]


@dataclass(frozen=True, slots=True)
class Table:
    """Table with a header row; each row holds one Text per cell."""

    headers: tuple[str, ...]
    rows: tuple[RichText, ...]


@dataclass(frozen=True, slots=True)
class Aside:
    content: RichText


@dataclass(frozen=True, slots=True)
class Details:
    """Collapsible section with a summary line and nested blocks."""

    summary: RichText
    body: tuple[Block, ...]


@dataclass(frozen=True, slots=True)
class HorizontalBreak:
    pass


@dataclass(frozen=True, slots=True)
class Metadata:
    """Front-matter key/value pairs, in source order."""

    entries: tuple[tuple[str, str], ...]

    def as_dict(self) -> dict[str, str]:
        return dict(self.entries)


Block = (
    Heading | Paragraph | List | Table | Code | Aside | Details | HorizontalBreak | Metadata | Error
)

Node = Inline | Block | RichText | Whitespace | Comment | EOI


@dataclass(frozen=True, slots=True)
class Document:
    """Root document node."""

    children: tuple[Block, ...]
    metadata: Metadata | None
    span: Span

    @property
    def meta(self) -> Mapping[str, str]:
        return self.metadata.as_dict() if self.metadata is not None else {}


def walk(node: Node | Document) -> Iterator[Node | Document]:
    """Yield node and all of its descendants, depth first."""
    yield node
    match node:
        case Document(children=children):
            for child in children:
                yield from walk(child)
        case Details(summary=summary, body=body):
            yield from walk(summary)
            for child in body:
                yield from walk(child)
        case RichText(children=children):
            for child in children:
                yield from walk(child)
        case Paragraph(content=content) | Aside(content=content):
            yield from walk(content)
        case List(items=items):
            for item in items:
                yield from walk(item)
        case Table(rows=rows):
            for row in rows:
                yield from walk(row)
