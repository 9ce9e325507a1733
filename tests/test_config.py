"""Tests for linescript_ide.config — env defaults, editor payloads, cache."""

from __future__ import annotations

import pytest

from linescript_ide.config import (
    DEFAULT_MAX_HINTS,
    SettingsCache,
    ValidationSettings,
    clamp_max_hints,
)


# ═══════════════════════════════════════════════════════════════════════════
# Defaults and environment
# ═══════════════════════════════════════════════════════════════════════════


class TestDefaults:
    def test_values(self):
        s = ValidationSettings()
        assert s.timeout_ms == 8000
        assert (s.delay_min_ms, s.delay_max_ms) == (2000, 5000)
        assert s.heuristics_enabled
        assert not s.heuristics_only
        assert not s.style_hints_enabled
        assert s.max_hints_per_file == DEFAULT_MAX_HINTS

    def test_timeout_seconds(self):
        assert ValidationSettings(timeout_ms=1500).timeout_s == pytest.approx(1.5)

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("LINESCRIPT_TIMEOUT_MS", "3000")
        monkeypatch.setenv("LINESCRIPT_HEURISTICS_ONLY", "true")
        s = ValidationSettings()
        assert s.timeout_ms == 3000
        assert s.heuristics_only


class TestClampMaxHints:
    @pytest.mark.parametrize("raw,expected", [
        (0, 120),
        (-4, 120),
        (5000, 1000),
        (7.9, 7),
        ("12", 12),
        ("many", 120),
        (None, 120),
        (True, 120),
        (float("nan"), 120),
    ])
    def test_clamp(self, raw, expected):
        assert clamp_max_hints(raw) == expected


# ═══════════════════════════════════════════════════════════════════════════
# Editor payloads
# ═══════════════════════════════════════════════════════════════════════════


class TestFromEditor:
    def test_camel_case_keys(self):
        s = ValidationSettings.from_editor({
            "lscPath": "/opt/lsc",
            "checkTimeoutMs": 1200,
            "validationDelayMinMs": 10,
            "validationDelayMaxMs": 20,
            "styleHintsEnabled": True,
            "extraCheckArgs": ["-O2"],
        })
        assert s.compiler_path == "/opt/lsc"
        assert s.timeout_ms == 1200
        assert (s.delay_min_ms, s.delay_max_ms) == (10, 20)
        assert s.style_hints_enabled
        assert s.extra_check_args == ["-O2"]

    def test_field_names_accepted(self):
        assert ValidationSettings.from_editor({"max_speed": True}).max_speed

    @pytest.mark.parametrize("raw", [0, -5, "abc", None])
    def test_invalid_timeout_keeps_base(self, raw):
        base = ValidationSettings(timeout_ms=4321)
        assert ValidationSettings.from_editor({"checkTimeoutMs": raw}, base=base).timeout_ms == 4321

    def test_invalid_value_does_not_block_others(self):
        s = ValidationSettings.from_editor({"checkTimeoutMs": "abc", "lscPath": "lsc2"})
        assert s.timeout_ms == 8000
        assert s.compiler_path == "lsc2"

    def test_compiler_diagnostics_only(self):
        assert not ValidationSettings.from_editor({"compilerDiagnosticsOnly": True}).heuristics_enabled
        assert ValidationSettings.from_editor({"compilerDiagnosticsOnly": False}).heuristics_enabled

    @pytest.mark.parametrize("raw,expected", [(0, 120), (5000, 1000), (7.9, 7), (True, 120)])
    def test_max_hints_clamped(self, raw, expected):
        assert ValidationSettings.from_editor({"maxHintsPerFile": raw}).max_hints_per_file == expected

    def test_unknown_keys_ignored(self):
        s = ValidationSettings.from_editor({"fontSize": 14, "checkOnType": False})
        assert not s.check_on_type

    def test_non_dict_returns_base(self):
        base = ValidationSettings(timeout_ms=77)
        assert ValidationSettings.from_editor(None, base=base) is base
        assert ValidationSettings.from_editor(["x"], base=base) is base

    def test_base_is_layered(self):
        base = ValidationSettings(compiler_path="/base/lsc", timeout_ms=900)
        s = ValidationSettings.from_editor({"checkTimeoutMs": 1000}, base=base)
        assert s.compiler_path == "/base/lsc"
        assert s.timeout_ms == 1000


# ═══════════════════════════════════════════════════════════════════════════
# SettingsCache
# ═══════════════════════════════════════════════════════════════════════════


class _CountingLoader:
    def __init__(self, fail: bool = False) -> None:
        self.calls: list[str] = []
        self.fail = fail

    async def __call__(self, uri: str) -> ValidationSettings:
        self.calls.append(uri)
        if self.fail:
            raise RuntimeError("client went away")
        return ValidationSettings(timeout_ms=len(self.calls))


class TestSettingsCache:
    @pytest.mark.asyncio
    async def test_caches_per_uri(self):
        loader = _CountingLoader()
        cache = SettingsCache(loader)
        first = await cache.get("file:///a.lsc")
        assert await cache.get("file:///a.lsc") is first
        await cache.get("file:///b.lsc")
        assert loader.calls == ["file:///a.lsc", "file:///b.lsc"]
        assert len(cache) == 2
        assert "file:///a.lsc" in cache

    @pytest.mark.asyncio
    async def test_invalidate_and_clear(self):
        loader = _CountingLoader()
        cache = SettingsCache(loader)
        await cache.get("u")
        cache.invalidate("u")
        assert "u" not in cache
        assert (await cache.get("u")).timeout_ms == 2
        cache.clear()
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_errors_not_cached(self):
        loader = _CountingLoader(fail=True)
        cache = SettingsCache(loader)
        with pytest.raises(RuntimeError):
            await cache.get("u")
        assert "u" not in cache
        loader.fail = False
        assert (await cache.get("u")).timeout_ms == 2

    @pytest.mark.asyncio
    async def test_ttl_expiry(self):
        loader = _CountingLoader()
        cache = SettingsCache(loader, ttl_s=0)
        await cache.get("u")
        await cache.get("u")
        assert len(loader.calls) == 2
