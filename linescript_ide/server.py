"""pygls wiring — document events in, published diagnostics out.

Everything LineScript-specific lives in ``DiagnosticsSession``; this module
converts between ``lsprotocol`` types and ours, pulls per-document
settings from the client, and answers quick-fix code actions.
"""

from __future__ import annotations

import logging
from typing import Any

from lsprotocol import types
from pygls.lsp.server import LanguageServer

from linescript_ide import __version__
from linescript_ide.config import ValidationSettings
from linescript_ide.contracts import Diagnostic, QuickFix
from linescript_ide.session import (
    SETTINGS_SECTION,
    DiagnosticsSession,
    SessionHolder,
    editor_section,
)

logger = logging.getLogger(__name__)

SOURCE_LABELS = {"heuristic": "linescript", "compiler": "lsc"}

_SEVERITIES = {
    "error": types.DiagnosticSeverity.Error,
    "warning": types.DiagnosticSeverity.Warning,
    "info": types.DiagnosticSeverity.Information,
    "hint": types.DiagnosticSeverity.Hint,
}


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------


def to_lsp_diagnostic(diag: Diagnostic) -> types.Diagnostic:
    r = diag.range
    data: dict[str, Any] = {"origin": diag.source}
    if diag.quick_fix is not None:
        data["quickFix"] = {
            "title": diag.quick_fix.title,
            "newText": diag.quick_fix.replacement_text,
        }
    return types.Diagnostic(
        range=types.Range(
            start=types.Position(line=r.start_line, character=r.start_col),
            end=types.Position(line=r.end_line, character=r.end_col),
        ),
        message=diag.message,
        severity=_SEVERITIES[diag.severity],
        code=diag.code or None,
        source=SOURCE_LABELS[diag.source],
        data=data,
    )


def quick_fix_from_data(data: Any) -> QuickFix | None:
    """Read back the ``quickFix`` payload the client echoes in a code-action request."""
    if not isinstance(data, dict):
        return None
    fix = data.get("quickFix")
    if not isinstance(fix, dict) or not isinstance(fix.get("newText"), str):
        return None
    title = fix.get("title") or QuickFix.model_fields["title"].default
    return QuickFix(title=title, replacement_text=fix["newText"])


def quick_fix_actions(
    uri: str,
    diagnostics: list[types.Diagnostic],
) -> list[types.CodeAction]:
    actions: list[types.CodeAction] = []
    for diag in diagnostics:
        fix = quick_fix_from_data(diag.data)
        if fix is None:
            continue
        actions.append(types.CodeAction(
            title=fix.title,
            kind=types.CodeActionKind.QuickFix,
            diagnostics=[diag],
            edit=types.WorkspaceEdit(changes={
                uri: [types.TextEdit(range=diag.range, new_text=fix.replacement_text)],
            }),
        ))
    return actions


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


class LineScriptLanguageServer(LanguageServer):
    """Language server carrying the diagnostics session holder."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.holder = SessionHolder(self._new_session)
        self.defaults = ValidationSettings()

    def _new_session(self) -> DiagnosticsSession:
        return DiagnosticsSession(self.publish, self.load_settings, defaults=self.defaults)

    @property
    def supports_configuration(self) -> bool:
        caps = self.client_capabilities
        workspace = getattr(caps, "workspace", None) if caps is not None else None
        return bool(workspace and workspace.configuration)

    def publish(self, uri: str, diagnostics: list[Diagnostic]) -> None:
        self.text_document_publish_diagnostics(types.PublishDiagnosticsParams(
            uri=uri,
            diagnostics=[to_lsp_diagnostic(d) for d in diagnostics],
        ))

    async def load_settings(self, uri: str, defaults: ValidationSettings) -> ValidationSettings:
        """Ask the client for the ``linescript`` section scoped to *uri*."""
        if not self.supports_configuration:
            return defaults
        result = await self.workspace_configuration_async(types.ConfigurationParams(
            items=[types.ConfigurationItem(scope_uri=uri, section=SETTINGS_SECTION)],
        ))
        payload = result[0] if result else None
        return ValidationSettings.from_editor(payload, base=defaults)


server = LineScriptLanguageServer("linescript-ide", __version__)


@server.feature(types.TEXT_DOCUMENT_DID_OPEN)
async def did_open(ls: LineScriptLanguageServer, params: types.DidOpenTextDocumentParams) -> None:
    doc = params.text_document
    await ls.holder.ensure().open(doc.uri, doc.text, doc.version)


@server.feature(types.TEXT_DOCUMENT_DID_CHANGE)
async def did_change(ls: LineScriptLanguageServer, params: types.DidChangeTextDocumentParams) -> None:
    uri = params.text_document.uri
    document = ls.workspace.get_text_document(uri)
    await ls.holder.ensure().change(uri, document.source, params.text_document.version)


@server.feature(types.TEXT_DOCUMENT_DID_SAVE)
async def did_save(ls: LineScriptLanguageServer, params: types.DidSaveTextDocumentParams) -> None:
    session = ls.holder.session
    if session is None:
        return
    await session.save(params.text_document.uri, params.text)


@server.feature(types.TEXT_DOCUMENT_DID_CLOSE)
async def did_close(ls: LineScriptLanguageServer, params: types.DidCloseTextDocumentParams) -> None:
    session = ls.holder.session
    if session is None:
        ls.publish(params.text_document.uri, [])
        return
    await session.close(params.text_document.uri)
    await ls.holder.release_if_idle()


@server.feature(types.WORKSPACE_DID_CHANGE_CONFIGURATION)
async def did_change_configuration(
    ls: LineScriptLanguageServer,
    params: types.DidChangeConfigurationParams,
) -> None:
    # Pull-model clients send no payload; their settings are re-fetched per document.
    section = None if ls.supports_configuration else editor_section(params.settings)
    if section is not None:
        ls.defaults = ValidationSettings.from_editor(section)
    session = ls.holder.session
    if session is not None:
        session.defaults = ls.defaults
        await session.settings_changed(None)


@server.feature(
    types.TEXT_DOCUMENT_CODE_ACTION,
    types.CodeActionOptions(code_action_kinds=[types.CodeActionKind.QuickFix]),
)
def code_action(ls: LineScriptLanguageServer, params: types.CodeActionParams) -> list[types.CodeAction]:
    return quick_fix_actions(params.text_document.uri, params.context.diagnostics)


def start() -> None:
    """Serve over stdio until the client disconnects."""
    logger.info("[server] linescript-ide %s starting on stdio", __version__)
    server.start_io()


__all__ = [
    "LineScriptLanguageServer",
    "SOURCE_LABELS",
    "quick_fix_actions",
    "quick_fix_from_data",
    "server",
    "start",
    "to_lsp_diagnostic",
]
