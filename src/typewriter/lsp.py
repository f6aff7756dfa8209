"""Minimal LSP server for typewriter markup: diagnostics only."""

from __future__ import annotations

from lsprotocol.types import (
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_CLOSE,
    TEXT_DOCUMENT_DID_OPEN,
    Diagnostic,
    DiagnosticSeverity,
    DidChangeTextDocumentParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    Position,
    PublishDiagnosticsParams,
    Range,
    TextDocumentSyncKind,
)
from pygls.lsp.server import LanguageServer

from typewriter import __version__
from typewriter.analysis import DocumentStore
from typewriter.errors import Diagnostic as TwDiagnostic

server = LanguageServer(
    "typewriter-lsp", __version__, text_document_sync_kind=TextDocumentSyncKind.Full
)
store = DocumentStore()


def to_lsp(diagnostic: TwDiagnostic) -> Diagnostic:
    """Convert a 1-based analysis diagnostic to a 0-based LSP diagnostic."""
    span = diagnostic.span
    return Diagnostic(
        range=Range(
            start=Position(line=span.start.line - 1, character=span.start.column - 1),
            end=Position(line=span.end.line - 1, character=span.end.column - 1),
        ),
        message=diagnostic.message,
        severity=DiagnosticSeverity(int(diagnostic.severity)),
        source=diagnostic.source,
    )


def _validate(ls: LanguageServer, uri: str, documents: DocumentStore = store) -> None:
    """Re-analyze a document and publish its diagnostics."""
    doc = ls.workspace.get_text_document(uri)
    context = documents.change(uri, doc.source, doc.version)
    diagnostics = [to_lsp(d) for d in context.analysis.diagnostics]
    ls.text_document_publish_diagnostics(
        PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
    )


def _dispose(ls: LanguageServer, uri: str, documents: DocumentStore = store) -> None:
    """Forget a closed document and clear its diagnostics."""
    documents.close(uri)
    ls.text_document_publish_diagnostics(PublishDiagnosticsParams(uri=uri, diagnostics=[]))


@server.feature(TEXT_DOCUMENT_DID_OPEN)
def did_open(ls: LanguageServer, params: DidOpenTextDocumentParams) -> None:
    _validate(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_DID_CHANGE)
def did_change(ls: LanguageServer, params: DidChangeTextDocumentParams) -> None:
    _validate(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_DID_CLOSE)
def did_close(ls: LanguageServer, params: DidCloseTextDocumentParams) -> None:
    _dispose(ls, params.text_document.uri)


def main() -> None:
    server.start_io()
