"""Tests for linescript_ide.compiler — argument building, parsing, failures."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from linescript_ide.compiler import (
    FALLBACK_FAILURE_MESSAGE,
    build_check_args,
    check_document,
    clamp_line_range,
    expand_nearest_token_range,
    failure_diagnostic,
    find_call_range_nearest,
    narrow_range,
    parse_compiler_output,
    resolve_compiler_path,
)
from linescript_ide.config import ValidationSettings
from linescript_ide.errors import CompilerTimeout
from linescript_ide.runner import RunResult

SOURCE = "declare a = 1\ndeclare b = 2\nprintln(foo(a))"


# ═══════════════════════════════════════════════════════════════════════════
# Invocation
# ═══════════════════════════════════════════════════════════════════════════


class TestBuildArgs:
    def test_defaults(self):
        assert build_check_args("/w/p.lsc", ValidationSettings()) == ["/w/p.lsc", "--check"]

    def test_all_options(self):
        settings = ValidationSettings(
            max_speed=True, backend_flag=" clang ", extra_check_args=[" -O2 ", "", "  "],
        )
        assert build_check_args("p.lsc", settings) == [
            "p.lsc", "--check", "--max-speed", "--cc", "clang", "-O2",
        ]


class TestResolveCompilerPath:
    def test_configured_wins(self):
        assert resolve_compiler_path("  /opt/lsc  ", "/w/p.lsc") == "/opt/lsc"

    def test_found_walking_up(self, tmp_path):
        exe = tmp_path / "lsc"
        exe.write_text("")
        nested = tmp_path / "src" / "deep"
        nested.mkdir(parents=True)
        found = resolve_compiler_path("", str(nested / "p.lsc"))
        assert found == str(exe)

    def test_falls_back_to_bare_name(self, tmp_path):
        assert resolve_compiler_path("", str(tmp_path / "p.lsc")) in ("lsc", "lsc.exe")


# ═══════════════════════════════════════════════════════════════════════════
# Ranges
# ═══════════════════════════════════════════════════════════════════════════


class TestRanges:
    def test_clamp(self):
        assert clamp_line_range("abc", 5, 9) == (2, 3)
        assert clamp_line_range("abc", 1, 1) == (1, 2)
        assert clamp_line_range("", 3, 4) == (0, 0)

    def test_call_range_covers_arguments(self):
        assert find_call_range_nearest("println(foo(a))", "foo", 0) == (8, 14)

    def test_nearest_occurrence(self):
        line = "x + y + x"
        assert narrow_range("variable 'x' unused", line, 7) == (8, 9)

    def test_expand_identifier_under_cursor(self):
        assert expand_nearest_token_range("  value = 3", 4) == (2, 7)

    def test_expand_from_punctuation_prefers_right_on_tie(self):
        assert expand_nearest_token_range("a  +  bcd", 3) == (6, 9)

    def test_expand_from_punctuation_nearest_left(self):
        assert expand_nearest_token_range("ab +    c", 3) == (0, 2)


# ═══════════════════════════════════════════════════════════════════════════
# Parsing
# ═══════════════════════════════════════════════════════════════════════════


class TestParse:
    def test_error_without_severity_word(self):
        diags = parse_compiler_output("line 3, col 9: Unknown function 'foo'", SOURCE)
        assert len(diags) == 1
        d = diags[0]
        assert d.severity == "error"
        assert d.source == "compiler"
        assert d.code == ""
        assert (d.range.start_line, d.range.start_col, d.range.end_col) == (2, 8, 14)

    def test_warning_narrowed_to_variable(self):
        diags = parse_compiler_output("warning: line 1, col 9: variable 'a' is never used", SOURCE)
        d = diags[0]
        assert d.severity == "warning"
        assert (d.range.start_line, d.range.start_col, d.range.end_col) == (0, 8, 9)

    def test_case_insensitive(self):
        diags = parse_compiler_output("WARN: Line 2, Col 1: odd", SOURCE)
        assert diags[0].severity == "warning"
        assert diags[0].message == "odd"

    def test_multiple_reports(self):
        output = "info: line 1, col 1: a\nnoise\nhint: line 2, col 1: b\r\nline 3, col 1: c"
        assert [d.severity for d in parse_compiler_output(output, SOURCE)] == [
            "info", "hint", "error",
        ]

    def test_line_past_end_of_text(self):
        diags = parse_compiler_output("line 40, col 2: gone", SOURCE)
        assert diags[0].range.start_line == 39

    def test_no_reports(self):
        assert parse_compiler_output("Build OK", SOURCE) == []


class TestFailureDiagnostic:
    def test_first_output_line(self):
        d = failure_diagnostic("\n   boom  \nmore")
        assert d.message == "boom"
        assert d.severity == "error"
        assert (d.range.start_line, d.range.start_col, d.range.end_col) == (0, 0, 1)

    def test_error_message_when_silent(self):
        d = failure_diagnostic("", CompilerTimeout("lsc", 100))
        assert "timed out" in d.message

    def test_fallback(self):
        assert failure_diagnostic("").message == FALLBACK_FAILURE_MESSAGE


# ═══════════════════════════════════════════════════════════════════════════
# check_document
# ═══════════════════════════════════════════════════════════════════════════


def _settings() -> ValidationSettings:
    return ValidationSettings(compiler_path="lsc-test", timeout_ms=1234)


class TestCheckDocument:
    @pytest.mark.asyncio
    async def test_reports_parsed(self):
        result = RunResult(exit_code=1, stdout="line 3, col 9: Unknown function 'foo'", command="lsc")
        with patch("linescript_ide.runner.run", new=AsyncMock(return_value=result)) as run:
            diags = await check_document("/w/p.lsc", SOURCE, _settings())
        assert len(diags) == 1
        assert run.call_args.args[0] == ["lsc-test", "/w/p.lsc", "--check"]
        assert run.call_args.kwargs["timeout_s"] == pytest.approx(1.234)
        assert run.call_args.kwargs["cwd"] == "/w"

    @pytest.mark.asyncio
    async def test_clean_run(self):
        result = RunResult(exit_code=0, stdout="ok", command="lsc")
        with patch("linescript_ide.runner.run", new=AsyncMock(return_value=result)):
            assert await check_document("/w/p.lsc", SOURCE, _settings()) == []

    @pytest.mark.asyncio
    async def test_timeout_becomes_diagnostic(self):
        result = RunResult(exit_code=-1, killed=True, command="lsc")
        with patch("linescript_ide.runner.run", new=AsyncMock(return_value=result)):
            diags = await check_document("/w/p.lsc", SOURCE, _settings())
        assert len(diags) == 1
        assert "timed out after 1234ms" in diags[0].message

    @pytest.mark.asyncio
    async def test_missing_compiler_uses_output(self):
        result = RunResult(
            exit_code=-1, stderr="Error: [Errno 2] No such file", not_found=True, command="lsc",
        )
        with patch("linescript_ide.runner.run", new=AsyncMock(return_value=result)):
            diags = await check_document("/w/p.lsc", SOURCE, _settings())
        assert diags[0].message == "Error: [Errno 2] No such file"

    @pytest.mark.asyncio
    async def test_silent_failure_uses_fallback(self):
        result = RunResult(exit_code=3, command="lsc")
        with patch("linescript_ide.runner.run", new=AsyncMock(return_value=result)):
            diags = await check_document("/w/p.lsc", SOURCE, _settings())
        assert diags[0].message == FALLBACK_FAILURE_MESSAGE
