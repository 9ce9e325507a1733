"""Tests for linescript_ide.scheduler — debounce, generations, passes."""

from __future__ import annotations

import asyncio
import random

import pytest

from linescript_ide.config import ValidationSettings
from linescript_ide.contracts import Diagnostic, Document, TextRange, Trigger
from linescript_ide.scheduler import (
    ValidationScheduler,
    pick_delay_ms,
    should_run_compiler,
    validate_document,
)

URI = "untitled:scratch.lsc"


class _Recorder:
    """Publish callback that remembers every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, list[Diagnostic]]] = []

    def __call__(self, uri: str, diagnostics: list[Diagnostic]) -> None:
        self.calls.append((uri, diagnostics))


def _loader(settings: ValidationSettings):
    async def load(uri: str) -> ValidationSettings:
        return settings
    return load


def _compiler_diag(message: str) -> Diagnostic:
    return Diagnostic(
        severity="error",
        message=message,
        range=TextRange.on_line(0, 0, 1),
        source="compiler",
    )


# ═══════════════════════════════════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════════════════════════════════


class TestPickDelay:
    def test_within_bounds(self):
        rng = random.Random(7)
        s = ValidationSettings(delay_min_ms=100, delay_max_ms=200)
        for _ in range(50):
            assert 100 <= pick_delay_ms(s, rng) <= 200

    def test_swapped_bounds(self):
        rng = random.Random(7)
        s = ValidationSettings(delay_min_ms=500, delay_max_ms=100)
        for _ in range(50):
            assert 100 <= pick_delay_ms(s, rng) <= 500

    def test_negative_bounds_clamped(self):
        s = ValidationSettings(delay_min_ms=-50, delay_max_ms=-1)
        assert pick_delay_ms(s) == 0


class TestShouldRunCompiler:
    @pytest.fixture
    def on_disk(self, tmp_path) -> Document:
        path = tmp_path / "main.lsc"
        path.write_text("println(1)\n")
        return Document(uri=path.as_uri(), text="println(1)\n")

    def test_saved_file(self, on_disk):
        assert should_run_compiler(on_disk, ValidationSettings(), Trigger.SAVE)
        assert should_run_compiler(on_disk, ValidationSettings(), Trigger.CHANGE)

    def test_heuristics_only(self, on_disk):
        s = ValidationSettings(heuristics_only=True)
        assert not should_run_compiler(on_disk, s, Trigger.SAVE)

    def test_trigger_switches(self, on_disk):
        assert not should_run_compiler(on_disk, ValidationSettings(check_on_save=False), Trigger.OPEN)
        assert should_run_compiler(on_disk, ValidationSettings(check_on_save=False), Trigger.CHANGE)
        assert not should_run_compiler(on_disk, ValidationSettings(check_on_type=False), Trigger.CHANGE)

    def test_untitled_document(self):
        doc = Document(uri=URI, text="println(1)")
        assert not should_run_compiler(doc, ValidationSettings(), Trigger.SAVE)

    def test_missing_file(self, tmp_path):
        doc = Document(uri=(tmp_path / "gone.lsc").as_uri(), text="")
        assert not should_run_compiler(doc, ValidationSettings(), Trigger.SAVE)


class TestValidateDocument:
    @pytest.mark.asyncio
    async def test_heuristic_errors_demoted(self):
        doc = Document(uri=URI, text="break\n")
        diags = await validate_document(doc, ValidationSettings(), Trigger.CHANGE)
        assert [d.code for d in diags] == ["break-outside-loop"]
        assert diags[0].severity == "warning"

    @pytest.mark.asyncio
    async def test_heuristic_errors_kept(self):
        doc = Document(uri=URI, text="break\n")
        s = ValidationSettings(heuristic_errors_as_warnings=False)
        diags = await validate_document(doc, s, Trigger.CHANGE)
        assert diags[0].severity == "error"

    @pytest.mark.asyncio
    async def test_heuristics_disabled(self):
        doc = Document(uri=URI, text="break\n")
        s = ValidationSettings(heuristics_enabled=False)
        assert await validate_document(doc, s, Trigger.CHANGE) == []

    @pytest.mark.asyncio
    async def test_compiler_output_reconciled(self, tmp_path):
        path = tmp_path / "main.lsc"
        path.write_text("break\n")
        doc = Document(uri=path.as_uri(), text="break\n")
        seen: list[str] = []

        async def fake_compiler(fs_path, text, settings):
            seen.append(fs_path)
            return [_compiler_diag("break outside of a loop")]

        diags = await validate_document(
            doc, ValidationSettings(), Trigger.SAVE, compiler_check=fake_compiler,
        )
        assert seen == [str(path)]
        assert [(d.source, d.severity) for d in diags] == [("compiler", "error")]


# ═══════════════════════════════════════════════════════════════════════════
# Scheduler
# ═══════════════════════════════════════════════════════════════════════════


class TestScheduler:
    @pytest.mark.asyncio
    async def test_burst_publishes_once_with_final_text(self, fast_settings):
        publish = _Recorder()
        scheduler = ValidationScheduler(publish, _loader(fast_settings))
        for text in ("println(1)", "println(12)", "break"):
            await scheduler.schedule(Document(uri=URI, text=text), Trigger.CHANGE)
        assert scheduler.generation(URI) == 3
        await scheduler.flush(URI)
        assert len(publish.calls) == 1
        uri, diags = publish.calls[0]
        assert uri == URI
        assert [d.code for d in diags] == ["break-outside-loop"]

    @pytest.mark.asyncio
    async def test_timer_fires_on_its_own(self, fast_settings):
        publish = _Recorder()
        scheduler = ValidationScheduler(publish, _loader(fast_settings))
        await scheduler.schedule(Document(uri=URI, text="println(1)"), Trigger.OPEN)
        for _ in range(20):
            if publish.calls:
                break
            await asyncio.sleep(0.01)
        assert publish.calls == [(URI, [])]

    @pytest.mark.asyncio
    async def test_async_publisher_awaited(self, fast_settings):
        published: list[str] = []

        async def publish(uri, diagnostics):
            await asyncio.sleep(0)
            published.append(uri)

        scheduler = ValidationScheduler(publish, _loader(fast_settings))
        await scheduler.schedule(Document(uri=URI, text=""), Trigger.OPEN)
        await scheduler.flush(URI)
        assert published == [URI]

    @pytest.mark.asyncio
    async def test_stale_after_compiler_not_published(self, tmp_path, fast_settings):
        path = tmp_path / "main.lsc"
        path.write_text("println(1)\n")
        uri = path.as_uri()
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_compiler(fs_path, text, settings):
            started.set()
            await release.wait()
            return [_compiler_diag(f"report for {text.strip()}")]

        publish = _Recorder()
        scheduler = ValidationScheduler(
            publish, _loader(fast_settings), compiler_check=slow_compiler,
        )
        await scheduler.schedule(Document(uri=uri, text="println(1)"), Trigger.CHANGE)
        await asyncio.wait_for(started.wait(), timeout=5)
        first = scheduler._passes[uri]

        await scheduler.schedule(Document(uri=uri, text="println(2)"), Trigger.CHANGE)
        release.set()
        await scheduler.flush(uri)
        await first

        assert len(publish.calls) == 1
        assert [d.message for d in publish.calls[0][1]] == ["report for println(2)"]

    @pytest.mark.asyncio
    async def test_cancel_discards_in_flight_pass(self, tmp_path, fast_settings):
        path = tmp_path / "main.lsc"
        path.write_text("")
        uri = path.as_uri()
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_compiler(fs_path, text, settings):
            started.set()
            await release.wait()
            return []

        publish = _Recorder()
        scheduler = ValidationScheduler(
            publish, _loader(fast_settings), compiler_check=slow_compiler,
        )
        await scheduler.schedule(Document(uri=uri, text=""), Trigger.SAVE)
        await asyncio.wait_for(started.wait(), timeout=5)
        first = scheduler._passes[uri]
        scheduler.cancel(uri)
        release.set()
        await first
        assert publish.calls == []

    @pytest.mark.asyncio
    async def test_settings_failure_uses_long_delay_and_defaults(self):
        async def broken(uri):
            raise RuntimeError("no configuration")

        publish = _Recorder()
        scheduler = ValidationScheduler(publish, broken)
        run = await scheduler.schedule(Document(uri=URI, text="break"), Trigger.OPEN)
        assert run is not None and run.generation == 1
        await asyncio.sleep(0.05)
        assert scheduler.has_pending(URI)
        assert publish.calls == []
        await scheduler.flush(URI)
        assert [d.code for d in publish.calls[0][1]] == ["break-outside-loop"]

    @pytest.mark.asyncio
    async def test_superseded_while_loading_settings(self, fast_settings):
        gate = asyncio.Event()

        async def slow_loader(uri):
            await gate.wait()
            return fast_settings

        scheduler = ValidationScheduler(_Recorder(), slow_loader)
        first = asyncio.ensure_future(scheduler.schedule(Document(uri=URI, text="a"), Trigger.CHANGE))
        await asyncio.sleep(0)
        second = asyncio.ensure_future(scheduler.schedule(Document(uri=URI, text="b"), Trigger.CHANGE))
        await asyncio.sleep(0)
        gate.set()
        assert await first is None
        assert (await second).generation == 2
        await scheduler.shutdown()

    @pytest.mark.asyncio
    async def test_forget_keeps_generation(self, fast_settings):
        scheduler = ValidationScheduler(_Recorder(), _loader(fast_settings))
        await scheduler.schedule(Document(uri=URI, text=""), Trigger.OPEN)
        scheduler.forget(URI)
        assert not scheduler.has_pending(URI)
        assert scheduler.generation(URI) == 2

    @pytest.mark.asyncio
    async def test_failing_pass_is_logged_not_raised(self, fast_settings, caplog):
        def publish(uri, diagnostics):
            raise RuntimeError("transport closed")

        scheduler = ValidationScheduler(publish, _loader(fast_settings))
        await scheduler.schedule(Document(uri=URI, text=""), Trigger.OPEN)
        await scheduler.flush(URI)
        assert "validation pass failed" in caplog.text

    @pytest.mark.asyncio
    async def test_shutdown_cancels_timers(self):
        publish = _Recorder()
        slow = ValidationSettings(delay_min_ms=5000, delay_max_ms=5000)
        scheduler = ValidationScheduler(publish, _loader(slow))
        await scheduler.schedule(Document(uri=URI, text=""), Trigger.OPEN)
        await scheduler.shutdown()
        assert not scheduler.has_pending(URI)
        await scheduler.flush(URI)
        assert publish.calls == []
