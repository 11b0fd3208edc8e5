"""Shared test fixtures and helpers."""

from __future__ import annotations

import pytest

from deimos import nodes
from deimos.lexer import tokenize
from deimos.parser import parse_document
from deimos.tokens import Token, TokenType


@pytest.fixture
def lex():
    """Return a helper that tokenizes source and returns tokens (excluding EOI)."""

    def _lex(source: str) -> list[Token]:
        tokens = tokenize(source)
        # Strip trailing EOI for convenience
        return [t for t in tokens if t.type != TokenType.EOI]

    return _lex


@pytest.fixture
def parse_source():
    """Return a helper that parses source and returns a Document."""

    def _parse(source: str, filename: str = "test.md") -> nodes.Document:
        return parse_document(source, filename)

    return _parse


@pytest.fixture
def events():
    """Return a trace hook that records (event, fields) pairs, and the record."""
    recorded: list[tuple[str, dict]] = []

    def hook(event: str, fields) -> None:
        recorded.append((event, dict(fields)))

    return hook, recorded


def assert_types(tokens: list[Token], expected: list[TokenType]) -> None:
    """Assert that the token types match the expected list."""
    actual = [t.type for t in tokens]
    assert actual == expected, f"Expected {expected}, got {actual}"


def assert_values(tokens: list[Token], expected: list[str]) -> None:
    """Assert that the token values match the expected list."""
    actual = [t.value for t in tokens]
    assert actual == expected, f"Expected {expected}, got {actual}"


def rich(*children: nodes.Inline) -> nodes.RichText:
    return nodes.RichText(children)


def plain_text(text: nodes.RichText) -> str:
    """Concatenate the plain Text leaves of a rich text run."""
    return "".join(c.value for c in text.children if isinstance(c, nodes.Text))
