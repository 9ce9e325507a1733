"""Diagnostics runtime contracts — Pydantic models shared by every stage.

The heuristic checker, the compiler adapter, the reconciler and the
scheduler all exchange these models.  Value models are frozen (immutable
after creation); a stage that needs a variant uses ``model_copy``.

Lines and columns are 0-based throughout, matching the editor protocol.
"""

from __future__ import annotations

import enum
import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


Severity = Literal["error", "warning", "info", "hint"]
DiagnosticSource = Literal["heuristic", "compiler"]
SymbolKind = Literal["variable", "parameter", "function", "class", "iterator"]

SEVERITY_RANK: dict[str, int] = {
    "error": 4,
    "warning": 3,
    "info": 2,
    "hint": 1,
}

HINT_SEVERITIES: frozenset[str] = frozenset({"info", "hint"})

_NEWLINE_RE = re.compile(r"\r?\n")


# ---------------------------------------------------------------------------
# Ranges and quick fixes
# ---------------------------------------------------------------------------


class TextRange(BaseModel):
    """Half-open character range; single-line for every diagnostic we emit."""

    model_config = ConfigDict(frozen=True)

    start_line: int = Field(..., ge=0)
    start_col: int = Field(..., ge=0)
    end_line: int = Field(..., ge=0)
    end_col: int = Field(..., ge=0)

    @classmethod
    def on_line(cls, line: int, start: int, end: int) -> TextRange:
        """Build a range on *line*, clamping negatives and inverted ends."""
        start = max(0, start)
        return cls(
            start_line=max(0, line),
            start_col=start,
            end_line=max(0, line),
            end_col=max(start, end),
        )

    def overlaps(self, other: TextRange) -> bool:
        """True when both ranges start on the same line and share a column.

        Zero-width ranges never overlap anything.
        """
        if self.start_line != other.start_line:
            return False
        return self.start_col < other.end_col and other.start_col < self.end_col


class QuickFix(BaseModel):
    """Replacement text for a diagnostic's own range."""

    model_config = ConfigDict(frozen=True)

    title: str = "Apply suggested fix"
    replacement_text: str


# ---------------------------------------------------------------------------
# Diagnostic
# ---------------------------------------------------------------------------


class Diagnostic(BaseModel):
    """A single problem shown to the editor user."""

    model_config = ConfigDict(frozen=True)

    severity: Severity
    code: str = ""
    message: str
    range: TextRange
    source: DiagnosticSource
    quick_fix: QuickFix | None = None

    @property
    def line(self) -> int:
        return self.range.start_line

    @property
    def rank(self) -> int:
        return SEVERITY_RANK[self.severity]

    @property
    def is_hint(self) -> bool:
        return self.severity in HINT_SEVERITIES


# ---------------------------------------------------------------------------
# Documents and symbols
# ---------------------------------------------------------------------------


class Document(BaseModel):
    """Snapshot of an open editor buffer."""

    model_config = ConfigDict(frozen=True)

    uri: str = Field(..., min_length=1)
    text: str = ""
    version: int = 0

    def lines(self) -> list[str]:
        return _NEWLINE_RE.split(self.text)

    @property
    def is_file(self) -> bool:
        return self.uri.startswith("file:")


class SymbolInfo(BaseModel):
    """What the scope tracker knows about a declared name."""

    model_config = ConfigDict(frozen=True)

    kind: SymbolKind
    mutable: bool = True
    declared_line: int = Field(default=0, ge=0)
    arity: tuple[int, int] | None = None


# ---------------------------------------------------------------------------
# Scheduling
# ---------------------------------------------------------------------------


class Trigger(str, enum.Enum):
    """Editor event that scheduled a validation pass."""

    OPEN = "open"
    CHANGE = "change"
    SAVE = "save"


class ValidationRun(BaseModel):
    """One scheduled pass; its generation is captured when it is armed."""

    model_config = ConfigDict(frozen=True)

    document_uri: str
    generation: int = Field(..., ge=1)
    trigger: Trigger = Trigger.CHANGE


__all__ = [
    "Diagnostic",
    "DiagnosticSource",
    "Document",
    "HINT_SEVERITIES",
    "QuickFix",
    "SEVERITY_RANK",
    "Severity",
    "SymbolInfo",
    "SymbolKind",
    "TextRange",
    "Trigger",
    "ValidationRun",
]
