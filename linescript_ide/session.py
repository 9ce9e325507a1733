"""Diagnostics session — the open documents and their validation state.

One ``DiagnosticsSession`` exists while at least one LineScript document
is open.  It owns the documents, the per-document settings cache and the
scheduler; the transport layer (``server.py``) only forwards events and
provides the publish callback.

Usage::

    holder = SessionHolder(lambda: DiagnosticsSession(publish, loader))
    await holder.ensure().open(uri, text, version)
    ...
    await holder.session.close(uri)
    await holder.release_if_idle()
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable

from linescript_ide.config import SettingsCache, ValidationSettings
from linescript_ide.contracts import Document, Trigger
from linescript_ide.scheduler import Publisher, ValidationScheduler

logger = logging.getLogger(__name__)

SETTINGS_SECTION = "linescript"

# (uri, defaults) -> settings for that document
DocumentSettingsLoader = Callable[[str, ValidationSettings], Awaitable[ValidationSettings]]


async def _defaults_only(uri: str, defaults: ValidationSettings) -> ValidationSettings:
    return defaults


def editor_section(payload: Any) -> dict[str, Any] | None:
    """The ``linescript`` section of a configuration payload, or the payload itself."""
    if not isinstance(payload, dict):
        return None
    section = payload.get(SETTINGS_SECTION)
    if isinstance(section, dict):
        return section
    return payload


class DiagnosticsSession:
    """Open documents plus the machinery that validates them."""

    def __init__(
        self,
        publish: Publisher,
        loader: DocumentSettingsLoader | None = None,
        *,
        defaults: ValidationSettings | None = None,
        **scheduler_options: Any,
    ) -> None:
        self.publish = publish
        self.defaults = defaults or ValidationSettings()
        self.documents: dict[str, Document] = {}
        self._loader = loader or _defaults_only
        self.settings = SettingsCache(self._load_settings)
        self.scheduler = ValidationScheduler(publish, self.settings.get, **scheduler_options)

    async def _load_settings(self, uri: str) -> ValidationSettings:
        return await self._loader(uri, self.defaults)

    # ------------------------------------------------------------------
    # Document events
    # ------------------------------------------------------------------

    async def open(self, uri: str, text: str, version: int = 0) -> None:
        document = Document(uri=uri, text=text, version=version)
        self.documents[uri] = document
        logger.info("[session] open %s (%d open)", uri, len(self.documents))
        await self.scheduler.schedule(document, Trigger.OPEN)

    async def change(self, uri: str, text: str, version: int = 0) -> None:
        document = Document(uri=uri, text=text, version=version)
        self.documents[uri] = document
        await self.scheduler.schedule(document, Trigger.CHANGE)

    async def save(self, uri: str, text: str | None = None) -> None:
        document = self.documents.get(uri)
        if text is not None:
            version = document.version if document else 0
            document = Document(uri=uri, text=text, version=version)
            self.documents[uri] = document
        if document is None:
            logger.debug("[session] save for unknown document %s ignored", uri)
            return
        await self.scheduler.schedule(document, Trigger.SAVE)

    async def close(self, uri: str) -> None:
        """Forget *uri* and clear whatever the editor shows for it."""
        self.documents.pop(uri, None)
        self.settings.invalidate(uri)
        self.scheduler.forget(uri)
        result = self.publish(uri, [])
        if inspect.isawaitable(result):
            await result
        logger.info("[session] close %s (%d open)", uri, len(self.documents))

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    async def settings_changed(self, payload: Any = None) -> None:
        """Apply new editor defaults and re-validate every open document.

        Keys missing from *payload* revert to the environment defaults.
        """
        section = editor_section(payload)
        if section is not None:
            self.defaults = ValidationSettings.from_editor(section)
        self.settings.clear()
        logger.info("[session] settings changed, revalidating %d document(s)", len(self.documents))
        for document in list(self.documents.values()):
            await self.scheduler.schedule(document, Trigger.OPEN)

    async def flush(self) -> None:
        """Run every pending pass now (``check`` command and tests)."""
        for uri in list(self.documents):
            await self.scheduler.flush(uri)

    async def shutdown(self) -> None:
        await self.scheduler.shutdown()
        self.settings.clear()
        self.documents.clear()

    @property
    def idle(self) -> bool:
        return not self.documents


class SessionHolder:
    """Creates the session on first use and drops it once nothing is open."""

    def __init__(self, factory: Callable[[], DiagnosticsSession]) -> None:
        self._factory = factory
        self._session: DiagnosticsSession | None = None

    @property
    def session(self) -> DiagnosticsSession | None:
        return self._session

    def ensure(self) -> DiagnosticsSession:
        if self._session is None:
            self._session = self._factory()
            logger.info("[session] created")
        return self._session

    async def release_if_idle(self) -> bool:
        """Shut the session down when its last document has closed."""
        if self._session is None or not self._session.idle:
            return False
        session, self._session = self._session, None
        await session.shutdown()
        logger.info("[session] released")
        return True

    async def shutdown(self) -> None:
        if self._session is not None:
            session, self._session = self._session, None
            await session.shutdown()


__all__ = [
    "DiagnosticsSession",
    "DocumentSettingsLoader",
    "SETTINGS_SECTION",
    "SessionHolder",
    "editor_section",
]
