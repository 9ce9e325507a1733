"""Validation scheduler — debounced, jittered, generation-checked passes.

Each document has one pending timer and one generation counter.  Every
event bumps the generation and re-arms the timer, so a burst of edits
produces a single pass over the final text.  A pass that finds its
generation superseded (before it starts, or after the compiler returns)
publishes nothing.

Usage::

    scheduler = ValidationScheduler(publish, settings_cache.get)
    await scheduler.schedule(document, Trigger.CHANGE)
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import os
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from pygls.uris import to_fs_path

from linescript_ide import compiler
from linescript_ide.checker import HeuristicChecker
from linescript_ide.config import SettingsLoader, ValidationSettings
from linescript_ide.contracts import Diagnostic, Document, Trigger, ValidationRun
from linescript_ide.reconciler import reconcile

logger = logging.getLogger(__name__)

SETTINGS_FAILURE_DELAY_MS: int = 2500

Publisher = Callable[[str, list[Diagnostic]], Any]
CompilerCheck = Callable[[str, str, ValidationSettings], Awaitable[list[Diagnostic]]]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def pick_delay_ms(settings: ValidationSettings, rng: random.Random | None = None) -> int:
    """Uniform integer delay between the configured bounds (order-insensitive)."""
    a = max(0, settings.delay_min_ms)
    b = max(0, settings.delay_max_ms)
    lo, hi = min(a, b), max(a, b)
    return (rng or random).randint(lo, hi)


def document_path(document: Document) -> str | None:
    """Local file path for ``file:`` documents, else ``None``."""
    if not document.is_file:
        return None
    return to_fs_path(document.uri)


def should_run_compiler(
    document: Document,
    settings: ValidationSettings,
    trigger: Trigger,
) -> bool:
    if settings.heuristics_only:
        return False
    if trigger in (Trigger.OPEN, Trigger.SAVE):
        wanted = settings.check_on_save
    else:
        wanted = settings.check_on_type
    if not wanted:
        return False
    path = document_path(document)
    return bool(path) and os.path.isfile(path)


def _demote(diagnostics: list[Diagnostic]) -> list[Diagnostic]:
    return [
        d.model_copy(update={"severity": "warning"}) if d.severity == "error" else d
        for d in diagnostics
    ]


async def validate_document(
    document: Document,
    settings: ValidationSettings,
    trigger: Trigger,
    *,
    checker: HeuristicChecker | None = None,
    compiler_check: CompilerCheck | None = None,
) -> list[Diagnostic]:
    """One complete pass: heuristics, optional compiler, reconciliation.

    No debouncing and no generation checks; ``ValidationScheduler`` adds
    those.  The ``check`` command calls this directly.
    """
    heuristic: list[Diagnostic] = []
    if settings.heuristics_enabled:
        heuristic = (checker or HeuristicChecker()).check(document, settings)
        if settings.heuristic_errors_as_warnings:
            heuristic = _demote(heuristic)

    reported: list[Diagnostic] = []
    if should_run_compiler(document, settings, trigger):
        check = compiler_check or compiler.check_document
        reported = await check(document_path(document), document.text, settings)

    return reconcile(heuristic, reported)


# ---------------------------------------------------------------------------
# Scheduler
# ---------------------------------------------------------------------------


@dataclass
class _Pending:
    handle: asyncio.TimerHandle
    run: ValidationRun
    document: Document
    settings: ValidationSettings | None


class ValidationScheduler:
    """Debounces validation per document and publishes only current results.

    Parameters
    ----------
    publish:
        Called as ``publish(uri, diagnostics)``; may be sync or async.
    settings:
        Async loader returning the settings for a URI (usually
        ``SettingsCache.get``).  A failing loader delays the pass by
        ``SETTINGS_FAILURE_DELAY_MS`` and the pass runs on defaults.
    checker / compiler_check:
        Injection points for tests.
    """

    def __init__(
        self,
        publish: Publisher,
        settings: SettingsLoader,
        *,
        checker: HeuristicChecker | None = None,
        compiler_check: CompilerCheck | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._publish = publish
        self._settings = settings
        self._checker = checker or HeuristicChecker()
        self._compiler_check = compiler_check
        self._rng = rng
        self._generations: dict[str, int] = {}
        self._pending: dict[str, _Pending] = {}
        self._passes: dict[str, asyncio.Task] = {}
        self._tasks: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Generations
    # ------------------------------------------------------------------

    def generation(self, uri: str) -> int:
        return self._generations.get(uri, 0)

    def is_current(self, run: ValidationRun) -> bool:
        return self.generation(run.document_uri) == run.generation

    def has_pending(self, uri: str) -> bool:
        return uri in self._pending

    def _bump(self, uri: str) -> int:
        generation = self.generation(uri) + 1
        self._generations[uri] = generation
        pending = self._pending.pop(uri, None)
        if pending is not None:
            pending.handle.cancel()
        return generation

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def schedule(self, document: Document, trigger: Trigger) -> ValidationRun | None:
        """Arm a pass for *document*; returns ``None`` when superseded meanwhile."""
        uri = document.uri
        generation = self._bump(uri)

        settings: ValidationSettings | None
        try:
            settings = await self._settings(uri)
        except Exception:
            logger.warning("[scheduler] settings for %s unavailable", uri, exc_info=True)
            settings = None

        if self.generation(uri) != generation:
            return None

        if settings is None:
            delay_ms = SETTINGS_FAILURE_DELAY_MS
        else:
            delay_ms = pick_delay_ms(settings, self._rng)

        run = ValidationRun(document_uri=uri, generation=generation, trigger=trigger)
        handle = asyncio.get_running_loop().call_later(delay_ms / 1000.0, self._fire, uri)
        self._pending[uri] = _Pending(handle, run, document, settings)
        logger.debug(
            "[scheduler] %s gen=%d trigger=%s in %dms",
            uri, generation, trigger.value, delay_ms,
        )
        return run

    def cancel(self, uri: str) -> None:
        """Drop the pending timer and discard any in-flight pass for *uri*."""
        self._bump(uri)

    def forget(self, uri: str) -> None:
        """``cancel`` plus dropping the pass handle of a closed document.

        The generation counter is kept so a pass still in flight from before
        a reopen can never match the new generation.
        """
        self.cancel(uri)
        self._passes.pop(uri, None)

    async def flush(self, uri: str) -> None:
        """Fire a pending timer now and wait for the pass to finish."""
        pending = self._pending.get(uri)
        if pending is not None:
            pending.handle.cancel()
            self._fire(uri)
        task = self._passes.get(uri)
        if task is not None and not task.done():
            await asyncio.gather(task, return_exceptions=True)

    async def shutdown(self) -> None:
        for uri in list(self._generations):
            self.cancel(uri)
        running = [t for t in self._tasks if not t.done()]
        for task in running:
            task.cancel()
        if running:
            await asyncio.gather(*running, return_exceptions=True)

    # ------------------------------------------------------------------
    # Passes
    # ------------------------------------------------------------------

    def _fire(self, uri: str) -> None:
        pending = self._pending.pop(uri, None)
        if pending is None or not self.is_current(pending.run):
            return
        task = asyncio.get_running_loop().create_task(self._run_pass(pending))
        self._passes[uri] = task
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_pass(self, pending: _Pending) -> None:
        run = pending.run
        uri = run.document_uri
        try:
            diagnostics = await validate_document(
                pending.document,
                pending.settings or ValidationSettings(),
                run.trigger,
                checker=self._checker,
                compiler_check=self._compiler_check,
            )
            if not self.is_current(run):
                logger.debug("[scheduler] %s gen=%d superseded", uri, run.generation)
                return
            result = self._publish(uri, diagnostics)
            if inspect.isawaitable(result):
                await result
            logger.info(
                "[scheduler] %s gen=%d published %d diagnostic(s)",
                uri, run.generation, len(diagnostics),
            )
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("[scheduler] validation pass failed for %s", uri)


__all__ = [
    "SETTINGS_FAILURE_DELAY_MS",
    "ValidationScheduler",
    "document_path",
    "pick_delay_ms",
    "should_run_compiler",
    "validate_document",
]
