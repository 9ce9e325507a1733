"""Compiler diagnostic adapter — runs ``lsc --check`` and parses what it says.

Pure helpers (argument building, output parsing, range narrowing) are
separate from the one async entry point, ``check_document``, so the
parsing can be tested without a compiler on the machine.

The compiler reports positions as ``line N, col M`` (1-based) and often
names the offending symbol in quotes; the adapter narrows each report to
that symbol's span on the line so the squiggle lands on something
meaningful instead of a single column.
"""

from __future__ import annotations

import logging
import os
import re
import sys
from pathlib import Path

from linescript_ide import runner
from linescript_ide.config import ValidationSettings
from linescript_ide.contracts import Diagnostic, Severity, TextRange
from linescript_ide.errors import CompilerNotFound, CompilerTimeout, LineScriptError, ParseError
from linescript_ide.lexical import find_matching_paren, find_word_occurrences

logger = logging.getLogger(__name__)

FALLBACK_FAILURE_MESSAGE = "LineScript check failed."

_REPORT_RE = re.compile(
    r"(?:^|\r?\n)\s*(?:(warning|warn|info|information|hint|error)\s*:\s*)?"
    r"line\s+(\d+)\s*,\s*col\s+(\d+)\s*:\s*([^\r\n]+)",
    re.IGNORECASE,
)
_FUNCTION_SUBJECT_RE = re.compile(r"\bfunction\s+'([^']+)'", re.IGNORECASE)
_VARIABLE_SUBJECT_RE = re.compile(r"\bvariable\s+'([^']+)'", re.IGNORECASE)
_MEMBER_SUBJECT_RE = re.compile(r"\bclass\s+'([^']+)'.*?\b(field|method)\s+'([^']+)'", re.IGNORECASE)
_QUOTED_RE = re.compile(r"'([^']+)'")
_NEWLINE_RE = re.compile(r"\r?\n")

_SEVERITY_WORDS: dict[str, Severity] = {
    "error": "error",
    "warning": "warning",
    "warn": "warning",
    "info": "info",
    "information": "info",
    "hint": "hint",
}


def _compiler_exe_name() -> str:
    return "lsc.exe" if sys.platform == "win32" else "lsc"


# ---------------------------------------------------------------------------
# Invocation
# ---------------------------------------------------------------------------


def build_check_args(file_path: str, settings: ValidationSettings) -> list[str]:
    """Arguments after the executable: ``<file> --check [--max-speed] [--cc X] [extra...]``."""
    args = [file_path, "--check"]
    if settings.max_speed:
        args.append("--max-speed")
    backend = settings.backend_flag.strip()
    if backend:
        args.extend(["--cc", backend])
    args.extend(a.strip() for a in settings.extra_check_args if a and a.strip())
    return args


def resolve_compiler_path(configured: str, file_path: str | None) -> str:
    """Configured path wins; else the nearest ``lsc`` walking up from the file."""
    configured = (configured or "").strip()
    if configured:
        return configured
    exe = _compiler_exe_name()
    if file_path:
        directory = Path(file_path).parent
        for candidate_dir in (directory, *directory.parents):
            for name in dict.fromkeys((exe, "lsc")):
                candidate = candidate_dir / name
                if candidate.is_file():
                    return str(candidate)
    return exe


# ---------------------------------------------------------------------------
# Range narrowing
# ---------------------------------------------------------------------------


def _is_word_char(ch: str) -> bool:
    return bool(ch) and (ch.isalnum() or ch == "_")


def clamp_line_range(line_text: str, start: int, end: int) -> tuple[int, int]:
    """Clamp to the line and guarantee a non-empty span when the line has text."""
    length = len(line_text)
    if length <= 0:
        return 0, 0
    start = min(max(0, start), length - 1)
    if end <= start:
        end = start + 1
    return start, min(end, length)


def find_token_range_nearest(line_text: str, token: str, col: int) -> tuple[int, int] | None:
    """Whole-word occurrence of *token* whose start is closest to *col*."""
    hits = find_word_occurrences(line_text, token)
    if not hits:
        return None
    best = min(hits, key=lambda start: abs(start - col))
    return best, best + len(token)


def find_call_range_nearest(line_text: str, name: str, col: int) -> tuple[int, int] | None:
    """Like ``find_token_range_nearest`` but extends over a balanced ``(...)``."""
    tok = find_token_range_nearest(line_text, name, col)
    if tok is None:
        return None
    i = tok[1]
    while i < len(line_text) and line_text[i].isspace():
        i += 1
    if i >= len(line_text) or line_text[i] != "(":
        return tok
    close = find_matching_paren(line_text, i)
    if close < 0:
        return tok
    return tok[0], close + 1


def _word_around(line_text: str, idx: int) -> tuple[int, int]:
    s, e = idx, idx + 1
    while s > 0 and _is_word_char(line_text[s - 1]):
        s -= 1
    while e < len(line_text) and _is_word_char(line_text[e]):
        e += 1
    return clamp_line_range(line_text, s, e)


def expand_nearest_token_range(line_text: str, col: int) -> tuple[int, int]:
    """The identifier under *col*, else the nearest one, else the code on the line."""
    length = len(line_text)
    if length == 0:
        return 0, 0
    col = min(max(0, col), length - 1)
    if _is_word_char(line_text[col]):
        return _word_around(line_text, col)

    right = col
    while right < length and not _is_word_char(line_text[right]):
        right += 1
    left = col
    while left >= 0 and not _is_word_char(line_text[left]):
        left -= 1

    if right < length and (left < 0 or right - col <= col - left):
        return _word_around(line_text, right)
    if left >= 0:
        return _word_around(line_text, left)

    stripped = len(line_text) - len(line_text.lstrip())
    if stripped < length:
        return clamp_line_range(line_text, stripped, length)
    return clamp_line_range(line_text, col, col + 1)


def narrow_range(message: str, line_text: str, col: int) -> tuple[int, int]:
    """Pick the span on *line_text* that *message* is most likely about."""
    fallback = expand_nearest_token_range(line_text, col)
    if not line_text:
        return fallback

    m = _FUNCTION_SUBJECT_RE.search(message)
    if m:
        span = find_call_range_nearest(line_text, m.group(1), col)
        if span:
            return clamp_line_range(line_text, *span)

    m = _VARIABLE_SUBJECT_RE.search(message)
    if m:
        span = find_token_range_nearest(line_text, m.group(1), col)
        if span:
            return clamp_line_range(line_text, *span)

    m = _MEMBER_SUBJECT_RE.search(message)
    if m:
        span = find_token_range_nearest(line_text, m.group(3), col)
        if span:
            return clamp_line_range(line_text, *span)

    m = _QUOTED_RE.search(message)
    if m:
        span = find_token_range_nearest(line_text, m.group(1), col)
        if span:
            return clamp_line_range(line_text, *span)

    return fallback


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_compiler_output(output: str, text: str) -> list[Diagnostic]:
    """Turn ``[severity:] line N, col M: message`` reports into diagnostics.

    A missing severity word means error.  Positions are converted to
    0-based and narrowed against *text* (the document the compiler saw).
    """
    lines = _NEWLINE_RE.split(text) if text else []
    diagnostics: list[Diagnostic] = []
    for m in _REPORT_RE.finditer(output or ""):
        severity = _SEVERITY_WORDS.get((m.group(1) or "error").lower(), "error")
        line = max(0, int(m.group(2)) - 1)
        col = max(0, int(m.group(3)) - 1)
        message = m.group(4).strip()
        line_text = lines[line] if line < len(lines) else ""
        start, end = narrow_range(message, line_text, col)
        diagnostics.append(Diagnostic(
            severity=severity,
            message=message,
            range=TextRange.on_line(line, start, end),
            source="compiler",
        ))
    return diagnostics


def failure_diagnostic(output: str, error: LineScriptError | None = None) -> Diagnostic:
    """Synthetic error at the top of the file for a failed run with no reports."""
    message = next((ln.strip() for ln in _NEWLINE_RE.split(output or "") if ln.strip()), "")
    if not message:
        message = error.message if error is not None else FALLBACK_FAILURE_MESSAGE
    return Diagnostic(
        severity="error",
        message=message,
        range=TextRange.on_line(0, 0, 1),
        source="compiler",
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


async def check_document(
    file_path: str,
    text: str,
    settings: ValidationSettings,
) -> list[Diagnostic]:
    """Run the compiler on *file_path* and return its diagnostics.

    Never raises for compiler trouble: a timeout, a missing executable or
    a failing run that printed nothing recognisable becomes one synthetic
    error diagnostic.
    """
    compiler = resolve_compiler_path(settings.compiler_path, file_path)
    argv = [compiler, *build_check_args(file_path, settings)]
    result = await runner.run(
        argv,
        timeout_s=settings.timeout_s,
        cwd=os.path.dirname(file_path) or None,
    )
    output = result.output.strip()
    diagnostics = parse_compiler_output(output, text)
    logger.info(
        "[compiler] %s exit=%d killed=%s %d report(s) in %dms",
        file_path, result.exit_code, result.killed, len(diagnostics), result.duration_ms,
    )
    if result.ok or diagnostics:
        return diagnostics

    error: LineScriptError | None = None
    if result.killed:
        error = CompilerTimeout(compiler, settings.timeout_ms)
    elif result.not_found:
        error = CompilerNotFound(compiler, result.stderr)
    logged = error or ParseError(output, "lsc-check")
    logger.warning("[compiler] %s", logged, extra={"detail": logged.to_dict()})
    return [failure_diagnostic(output, error)]


__all__ = [
    "FALLBACK_FAILURE_MESSAGE",
    "build_check_args",
    "check_document",
    "clamp_line_range",
    "expand_nearest_token_range",
    "failure_diagnostic",
    "find_call_range_nearest",
    "find_token_range_nearest",
    "narrow_range",
    "parse_compiler_output",
    "resolve_compiler_path",
]
