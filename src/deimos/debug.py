"""--debug AST and token dumps to stderr."""

from __future__ import annotations

import sys
from typing import TextIO

from deimos import nodes
from deimos.tokens import Token


def dump_ast(doc: nodes.Document, *, file: TextIO | None = None) -> None:
    """Print a human-readable AST tree to *file* (default: stderr)."""
    f = file if file is not None else sys.stderr
    f.write("Document\n")
    for key, value in doc.meta.items():
        f.write(f"{_indent(1)}Meta {key}={value!r}\n")
    for child in doc.children:
        _dump_node(child, 1, f)


def dump_tokens(tokens: list[Token], *, file: TextIO | None = None) -> None:
    """Print one line per token: position, type and raw text."""
    f = file if file is not None else sys.stderr
    for tok in tokens:
        start = tok.span.start
        f.write(f"{start.line}:{start.column} {tok.type.name} {tok.raw!r}\n")


def _indent(depth: int) -> str:
    return "  " * depth


def _dump_node(node: object, depth: int, f: TextIO) -> None:
    pad = _indent(depth)
    match node:
        case nodes.Heading(level=level, text=text):
            f.write(f"{pad}Heading h{level} {text!r}\n")
        case nodes.Paragraph(content=content):
            f.write(f"{pad}Paragraph\n")
            _dump_inline(content, depth + 1, f)
        case nodes.List(list_type=list_type, items=items):
            f.write(f"{pad}List {list_type.name.lower()}\n")
            for item in items:
                f.write(f"{_indent(depth + 1)}Item\n")
                _dump_inline(item, depth + 2, f)
        case nodes.Table(headers=headers, rows=rows):
            f.write(f"{pad}Table {list(headers)!r}\n")
            for row in rows:
                cells = [_leaf_text(cell) for cell in row.children]
                f.write(f"{_indent(depth + 1)}Row {cells!r}\n")
        case nodes.Code(block_type=nodes.CodeType.FENCED, language=language, contents=contents):
            f.write(f"{pad}Code fenced lang={language!r} {contents!r}\n")
        case nodes.Aside(content=content):
            f.write(f"{pad}Aside\n")
            _dump_inline(content, depth + 1, f)
        case nodes.Details(summary=summary, body=body):
            f.write(f"{pad}Details\n")
            f.write(f"{_indent(depth + 1)}Summary\n")
            _dump_inline(summary, depth + 2, f)
            for child in body:
                _dump_node(child, depth + 1, f)
        case nodes.Error():
            f.write(f"{pad}Error {node.kind.name} {node.detail or node.display!r}\n")
        case nodes.Metadata():
            f.write(f"{pad}Metadata ({len(node.entries)} entries)\n")
        case _:
            f.write(f"{pad}{type(node).__name__}\n")


def _dump_inline(text: nodes.RichText, depth: int, f: TextIO) -> None:
    for child in text.children:
        f.write(f"{_indent(depth)}{type(child).__name__}({_leaf_text(child)!r})\n")


def _leaf_text(node: object) -> str:
    """Best-effort plain text of an inline leaf."""
    for attr in ("value", "contents", "name", "alt"):
        if hasattr(node, attr):
            return str(getattr(node, attr))
    if isinstance(node, nodes.Error):
        return node.display
    return ""
