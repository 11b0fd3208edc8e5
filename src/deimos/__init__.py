"""Deimos markup language processor."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from deimos.trace import TraceHook

__version__ = "0.1.0"


def parse(
    source: str | bytes,
    *,
    escape_html: bool = False,
    trace: TraceHook | None = None,
) -> str:
    """Tokenize, parse, and render Deimos source to an HTML string.

    Raises LexError when the source cannot be tokenized at all; every other
    problem is rendered inline as error text.
    """
    from deimos.lexer import decode_source
    from deimos.parser import parse_document
    from deimos.render import render

    if isinstance(source, bytes):
        source = decode_source(source)
    doc = parse_document(source, trace=trace)
    return render(doc, escape_html=escape_html, trace=trace)
