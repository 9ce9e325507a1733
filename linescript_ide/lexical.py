"""Lexical helpers shared by the heuristic rules and the compiler adapter.

Everything here works on a single line of source and never raises on
malformed input: unterminated strings, stray parentheses and garbage all
degrade to "no match".

The central helper is ``mask_line``, which blanks string literals and a
trailing ``//`` comment while preserving column positions, so the rules
can run plain regexes without tripping over quoted text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

_CALL_RE = re.compile(r"([A-Za-z_][A-Za-z0-9_.]*)\s*\(")
_PARAM_RE = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*)(?:\s*:\s*([A-Za-z_][A-Za-z0-9_]*))?$")
_CONDITION_KW_RE = re.compile(r"\b(if|elif|while|unless)\b")
_DO_KW_RE = re.compile(r"\s+do\b")
_FIRST_CODE_RE = re.compile(r"\S")

_OPENERS = {"(": ")", "[": "]", "{": "}"}
_CLOSERS = {")": "(", "]": "[", "}": "{"}


# ---------------------------------------------------------------------------
# Masking
# ---------------------------------------------------------------------------


def mask_line(line: str) -> str:
    """Return *line* with strings and ``//`` comments replaced by spaces.

    The quotes themselves are blanked too.  A backslash escapes the next
    character inside a string; an unterminated string masks to the end of
    the line.  The result always has the same length as *line*.
    """
    out = list(line)
    in_string = False
    escaping = False
    n = len(line)
    i = 0
    while i < n:
        ch = line[i]
        if not in_string and ch == "/" and i + 1 < n and line[i + 1] == "/":
            for j in range(i, n):
                out[j] = " "
            break
        if in_string:
            out[i] = " "
            if escaping:
                escaping = False
            elif ch == "\\":
                escaping = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            out[i] = " "
            in_string = True
        i += 1
    return "".join(out)


def find_code_end(masked: str) -> int:
    """Index just past the last non-blank character of *masked* (0 if none)."""
    return len(masked.rstrip())


def first_code_col(text: str) -> int:
    m = _FIRST_CODE_RE.search(text)
    return m.start() if m else 0


# ---------------------------------------------------------------------------
# Small scanning helpers
# ---------------------------------------------------------------------------


def starts_with_word(code: str, word: str) -> bool:
    return re.match(r"\s*" + re.escape(word) + r"\b", code) is not None


def next_non_ws_char(text: str, idx: int) -> str:
    for ch in text[idx:]:
        if not ch.isspace():
            return ch
    return ""


def prev_non_ws_index(text: str, idx: int) -> int:
    for i in range(min(idx, len(text) - 1), -1, -1):
        if not text[i].isspace():
            return i
    return -1


def is_word_boundary(text: str, start: int, end: int) -> bool:
    """True when ``text[start:end]`` is not glued to identifier characters."""
    before = text[start - 1] if start > 0 else ""
    after = text[end] if end < len(text) else ""
    return not _is_ident_char(before) and not _is_ident_char(after)


def _is_ident_char(ch: str) -> bool:
    return bool(ch) and (ch.isalnum() or ch == "_")


def find_word_occurrences(text: str, word: str) -> list[int]:
    """Start columns of every whole-word occurrence of *word* in *text*."""
    if not word:
        return []
    hits: list[int] = []
    start = text.find(word)
    while start >= 0:
        if is_word_boundary(text, start, start + len(word)):
            hits.append(start)
        start = text.find(word, start + 1)
    return hits


def find_single_equals_in_condition(code: str) -> int:
    """Column of a lone ``=`` inside an ``if``/``elif``/``while``/``unless`` head.

    The head ends at the first ``do`` keyword after the condition keyword,
    so identifiers such as ``done`` stay inside it.  ``==``, ``!=``, ``<=``
    and ``>=`` are skipped.  Returns -1 when there is none.
    """
    kw = _CONDITION_KW_RE.search(code)
    if kw is None:
        return -1
    start = kw.end()
    do_kw = _DO_KW_RE.search(code, start)
    end = do_kw.start() if do_kw else len(code)
    for i in range(start, end):
        if code[i] != "=":
            continue
        prev = code[i - 1] if i > 0 else ""
        nxt = code[i + 1] if i + 1 < len(code) else ""
        if prev in ("=", "!", "<", ">") or nxt == "=":
            continue
        return i
    return -1


# ---------------------------------------------------------------------------
# Parentheses and argument lists
# ---------------------------------------------------------------------------


def find_matching_paren(text: str, open_idx: int) -> int:
    """Index of the ``)`` closing ``text[open_idx]``, or -1.

    String-aware: parentheses inside string literals are ignored.
    """
    if open_idx < 0 or open_idx >= len(text) or text[open_idx] != "(":
        return -1
    depth = 0
    in_string = False
    escaping = False
    for i in range(open_idx, len(text)):
        ch = text[i]
        if in_string:
            if escaping:
                escaping = False
            elif ch == "\\":
                escaping = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i
            if depth < 0:
                return -1
    return -1


def split_top_level_commas(text: str) -> tuple[list[str], bool]:
    """Split on commas outside brackets and strings.

    Returns ``(parts, malformed)``; parts are stripped.  *malformed* is set
    for a closer without an opener, a closer of the wrong kind, an
    unterminated string or brackets left open at the end.
    """
    parts: list[str] = []
    current: list[str] = []
    stack: list[str] = []
    in_string = False
    escaping = False
    malformed = False

    for ch in text:
        if in_string:
            current.append(ch)
            if escaping:
                escaping = False
            elif ch == "\\":
                escaping = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in _OPENERS:
            stack.append(ch)
        elif ch in _CLOSERS:
            if stack and stack[-1] == _CLOSERS[ch]:
                stack.pop()
            else:
                malformed = True
        elif ch == "," and not stack:
            parts.append("".join(current).strip())
            current = []
            continue
        current.append(ch)
    parts.append("".join(current).strip())

    if in_string or stack:
        malformed = True
    return parts, malformed


@dataclass(frozen=True)
class ArgInfo:
    """Shape of a call's argument list."""

    count: int = 0
    malformed: bool = False
    has_empty: bool = False


def analyze_call_args(args_text: str) -> ArgInfo:
    if not args_text or not args_text.strip():
        return ArgInfo()
    parts, malformed = split_top_level_commas(args_text)
    return ArgInfo(
        count=sum(1 for p in parts if p),
        malformed=malformed,
        has_empty=any(not p for p in parts),
    )


@dataclass
class ParamInfo:
    """Result of parsing a declaration's ``name[: type], ...`` list."""

    count: int = 0
    names: list[str] = field(default_factory=list)
    malformed_parts: list[str] = field(default_factory=list)
    duplicate_names: list[str] = field(default_factory=list)

    @property
    def is_clean(self) -> bool:
        return not self.malformed_parts


def analyze_parameter_list(text: str | None) -> ParamInfo:
    info = ParamInfo()
    if not text or not text.strip():
        return info
    seen: set[str] = set()
    for idx, chunk in enumerate(text.split(","), start=1):
        part = chunk.strip()
        if not part:
            info.malformed_parts.append(f"parameter {idx} is empty")
            continue
        m = _PARAM_RE.match(part)
        if m is None:
            info.malformed_parts.append(f"'{part}'")
            continue
        name = m.group(1)
        info.names.append(name)
        if name in seen:
            if name not in info.duplicate_names:
                info.duplicate_names.append(name)
        else:
            seen.add(name)
        info.count += 1
    return info


# ---------------------------------------------------------------------------
# Call sites
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CallSite:
    """One ``name(...)`` occurrence on a line."""

    name: str
    name_start: int
    name_end: int
    open_idx: int
    close_idx: int
    args: ArgInfo

    @property
    def malformed(self) -> bool:
        return self.close_idx < 0

    @property
    def is_dotted(self) -> bool:
        return "." in self.name


def collect_calls(code: str, raw: str | None = None) -> list[CallSite]:
    """Find every call on a line.

    *code* is the masked line, so calls spelled inside strings are never
    reported.  Argument text is read from *raw* (same columns) when given,
    so string arguments still count.
    """
    raw = code if raw is None else raw
    calls: list[CallSite] = []
    for m in _CALL_RE.finditer(code):
        name = m.group(1)
        name_start = m.start(1)
        name_end = m.end(1)
        open_idx = m.end() - 1
        close_idx = find_matching_paren(code, open_idx)
        if close_idx < 0:
            calls.append(CallSite(
                name, name_start, name_end, open_idx, -1,
                ArgInfo(malformed=True),
            ))
            continue
        calls.append(CallSite(
            name, name_start, name_end, open_idx, close_idx,
            analyze_call_args(raw[open_idx + 1:close_idx]),
        ))
    return calls


__all__ = [
    "ArgInfo",
    "CallSite",
    "ParamInfo",
    "analyze_call_args",
    "analyze_parameter_list",
    "collect_calls",
    "find_code_end",
    "find_matching_paren",
    "find_single_equals_in_condition",
    "find_word_occurrences",
    "first_code_col",
    "is_word_boundary",
    "mask_line",
    "next_non_ws_char",
    "prev_non_ws_index",
    "split_top_level_commas",
    "starts_with_word",
]
