"""Minimal LSP server for Deimos: diagnostics only."""

from __future__ import annotations

from lsprotocol.types import (
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_OPEN,
    Diagnostic,
    DiagnosticSeverity,
    DidChangeTextDocumentParams,
    DidOpenTextDocumentParams,
    Position,
    PublishDiagnosticsParams,
    Range,
    TextDocumentSyncKind,
)
from pygls.lsp.server import LanguageServer

from deimos import __version__, nodes
from deimos.errors import LexError
from deimos.parser import parse_document
from deimos.tokens import Span

server = LanguageServer(
    "deimos-lsp", __version__, text_document_sync_kind=TextDocumentSyncKind.Full
)


def _range(span: Span) -> Range:
    """Convert a 1-based source span to a 0-based LSP range."""
    return Range(
        start=Position(line=span.start.line - 1, character=span.start.column - 1),
        end=Position(line=span.end.line - 1, character=span.end.column - 1),
    )


def diagnostics_for(source: str, filename: str = "input.md") -> list[Diagnostic]:
    """Run the parser and collect one diagnostic per problem found."""
    try:
        doc = parse_document(source, filename)
    except LexError as exc:
        line = exc.position.line - 1
        col = exc.position.column - 1
        return [
            Diagnostic(
                range=Range(
                    start=Position(line=line, character=col),
                    end=Position(line=line, character=col + 1),
                ),
                message=exc.message,
                severity=DiagnosticSeverity.Error,
                source="deimos",
            )
        ]

    diagnostics: list[Diagnostic] = []
    for node in nodes.walk(doc):
        if not isinstance(node, nodes.Error) or node.span is None:
            continue
        diagnostics.append(
            Diagnostic(
                range=_range(node.span),
                message=node.detail or node.display,
                severity=DiagnosticSeverity.Warning,
                source="deimos",
            )
        )
    return diagnostics


def _validate(ls: LanguageServer, uri: str) -> None:
    """Run the Deimos pipeline and publish diagnostics."""
    doc = ls.workspace.get_text_document(uri)
    filename = uri.rsplit("/", 1)[-1] if "/" in uri else uri
    ls.text_document_publish_diagnostics(
        PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics_for(doc.source, filename))
    )


@server.feature(TEXT_DOCUMENT_DID_OPEN)
def did_open(ls: LanguageServer, params: DidOpenTextDocumentParams) -> None:
    _validate(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_DID_CHANGE)
def did_change(ls: LanguageServer, params: DidChangeTextDocumentParams) -> None:
    _validate(ls, params.text_document.uri)


def main() -> None:
    server.start_io()
