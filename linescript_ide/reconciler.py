"""Diagnostic reconciler — merge heuristic and compiler diagnostics.

Pure functions: the same two input lists always produce the same output
list in the same order.  Nothing here mutates a diagnostic.

Precedence, in the order it is applied:

1. A line carrying an error shows only errors.
2. Candidates are taken strongest first (severity, then registration
   order with heuristics registered before compiler output).  A candidate
   is dropped when an already-kept diagnostic competes with it at equal or
   higher severity.
3. The one exception: at equal severity, a compiler diagnostic replaces a
   heuristic one about the same subject.

Two diagnostics compete when they start on the same line and overlap, or
share a subject, a code or a normalised message.  A compiler diagnostic
and a heuristic one also compete on a shared subject across lines.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from linescript_ide.contracts import Diagnostic

_WS_RE = re.compile(r"\s+")
_FUNCTION_RE = re.compile(r"\bfunction\s+'([^']+)'", re.IGNORECASE)
_VARIABLE_RE = re.compile(r"\bvariable\s+'([^']+)'", re.IGNORECASE)
_MEMBER_RE = re.compile(r"\b(field|method)\s+'([^']+)'", re.IGNORECASE)
_QUOTED_RE = re.compile(r"'([^']+)'")


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


def normalize_message(message: str) -> str:
    return _WS_RE.sub(" ", (message or "").lower()).strip()


def subject_key(message: str) -> str:
    """What a message is about: ``fn:``, ``var:``, ``field:``/``method:`` or ``tok:``.

    Lower-cased; empty when nothing in the message is quoted.
    """
    m = _FUNCTION_RE.search(message)
    if m:
        return "fn:" + m.group(1).lower()
    m = _VARIABLE_RE.search(message)
    if m:
        return "var:" + m.group(1).lower()
    m = _MEMBER_RE.search(message)
    if m:
        return f"{m.group(1).lower()}:{m.group(2).lower()}"
    m = _QUOTED_RE.search(message)
    if m:
        return "tok:" + m.group(1).lower()
    return ""


@dataclass(frozen=True)
class _Candidate:
    order: int
    diag: Diagnostic
    subject: str
    message: str

    @property
    def line(self) -> int:
        return self.diag.range.start_line

    @property
    def rank(self) -> int:
        return self.diag.rank


def _candidate(order: int, diag: Diagnostic) -> _Candidate:
    return _Candidate(order, diag, subject_key(diag.message), normalize_message(diag.message))


def _same_subject(a: _Candidate, b: _Candidate) -> bool:
    return bool(a.subject) and a.subject == b.subject


def competes(a: _Candidate, b: _Candidate) -> bool:
    if a.diag.source != b.diag.source and _same_subject(a, b):
        return True
    if a.line != b.line:
        return False
    return (
        a.diag.range.overlaps(b.diag.range)
        or _same_subject(a, b)
        or (bool(a.diag.code) and a.diag.code == b.diag.code)
        or a.message == b.message
    )


# ---------------------------------------------------------------------------
# Reconcile
# ---------------------------------------------------------------------------


def reconcile(
    heuristic: list[Diagnostic],
    compiler: list[Diagnostic],
) -> list[Diagnostic]:
    """Merge both streams into the list the editor should show."""
    candidates = [_candidate(i, d) for i, d in enumerate([*heuristic, *compiler])]
    if len(candidates) <= 1:
        return [c.diag for c in candidates]

    error_lines = {c.line for c in candidates if c.diag.severity == "error"}
    candidates = [
        c for c in candidates
        if c.diag.severity == "error" or c.line not in error_lines
    ]

    kept: list[_Candidate] = []
    for cand in sorted(candidates, key=lambda c: (-c.rank, c.order)):
        drop = False
        replaced: list[_Candidate] = []
        for k in kept:
            if not competes(k, cand):
                continue
            if k.rank > cand.rank:
                drop = True
                break
            if (
                cand.diag.source == "compiler"
                and k.diag.source == "heuristic"
                and _same_subject(k, cand)
            ):
                replaced.append(k)
                continue
            drop = True
            break
        if drop:
            continue
        for k in replaced:
            kept.remove(k)
        kept.append(cand)

    kept.sort(key=lambda c: (c.line, c.diag.range.start_col, -c.rank, c.order))
    return [c.diag for c in kept]


__all__ = ["competes", "normalize_message", "reconcile", "subject_key"]
