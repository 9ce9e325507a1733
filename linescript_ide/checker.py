"""Heuristic checker — one top-to-bottom pass over a document.

The checker owns block structure (closers pop a scope before the rules
run, openers push one after them) and the hint budget; everything else is
delegated to the rules in the registry.  A rule that raises is logged and
treated as having matched nothing, so the pass always completes.
"""

from __future__ import annotations

import logging
import re

from linescript_ide.catalog import BUILTIN_ARITY
from linescript_ide.config import ValidationSettings
from linescript_ide.contracts import Diagnostic, Document, TextRange
from linescript_ide.lexical import find_code_end, mask_line, starts_with_word
from linescript_ide.registry import RuleRegistry, default_registry
from linescript_ide.rules import (
    DocumentState,
    LineContext,
    block_kind,
    collect_declared_arities,
    opens_block,
)
from linescript_ide.scope import ScopeTracker

logger = logging.getLogger(__name__)

_BRACE_CLOSER_RE = re.compile(r"^\s*}")


def _starts_closer(code: str) -> bool:
    return (
        starts_with_word(code, "end")
        or starts_with_word(code, "elif")
        or starts_with_word(code, "else")
        or _BRACE_CLOSER_RE.match(code) is not None
    )


class _HintBudget:
    """Counts info/hint diagnostics; first-found wins once the cap is hit."""

    def __init__(self, enabled: bool, cap: int) -> None:
        self.enabled = enabled
        self.cap = cap
        self.used = 0

    def admit(self, diag: Diagnostic) -> bool:
        if not diag.is_hint:
            return True
        if not self.enabled or self.used >= self.cap:
            return False
        self.used += 1
        return True


class HeuristicChecker:
    """Runs the registered rules over every line of a document.

    The registry is shared across passes; all per-pass state lives in the
    ``DocumentState`` built by ``check``.
    """

    def __init__(self, registry: RuleRegistry | None = None) -> None:
        self.registry = registry or default_registry()

    def check(
        self,
        document: Document,
        settings: ValidationSettings | None = None,
    ) -> list[Diagnostic]:
        settings = settings or ValidationSettings()
        lines = document.lines()

        known = dict(BUILTIN_ARITY)
        known.update(collect_declared_arities(lines))
        doc = DocumentState(
            tracker=ScopeTracker(),
            known_arities=known,
            style_enabled=(
                settings.style_hints_enabled
                and not document.uri.lower().endswith(".ls")
            ),
        )
        budget = _HintBudget(settings.hints_enabled, settings.max_hints_per_file)
        out: list[Diagnostic] = []

        def add(diag: Diagnostic) -> None:
            if budget.admit(diag):
                out.append(diag)

        for index, raw in enumerate(lines):
            masked = mask_line(raw)
            code_end = find_code_end(masked)
            code = masked[:code_end]
            if not code.strip():
                continue

            closer = _starts_closer(code)
            if closer and not doc.tracker.exit_scope():
                unexpected = self._unexpected_end(index, code)
                if unexpected is not None:
                    add(unexpected)

            ctx = LineContext(
                index=index,
                raw=raw,
                code=code,
                raw_code=raw[:code_end],
                starts_closer=closer,
                doc=doc,
                recognized=closer,
            )
            for rule in self.registry:
                if rule.style and not doc.style_enabled:
                    continue
                try:
                    found = rule.evaluate(ctx)
                except Exception:
                    logger.warning(
                        "[checker] rule %s failed on %s:%d",
                        rule.name, document.uri, index + 1, exc_info=True,
                    )
                    continue
                for diag in found:
                    add(diag)

            if opens_block(code):
                doc.tracker.enter_scope(ctx.opens_kind or block_kind(code))
                for name, info in ctx.pending:
                    doc.tracker.declare(name, info)

        if doc.tracker.depth > 0:
            last = max(0, len(lines) - 1)
            col = len(lines[last]) if lines else 0
            add(Diagnostic(
                severity="warning",
                code="missing-end",
                message="One or more blocks are missing an 'end'.",
                range=TextRange.on_line(last, col, col),
                source="heuristic",
            ))

        logger.debug(
            "[checker] %s: %d line(s), %d diagnostic(s), %d hint(s)",
            document.uri, len(lines), len(out), budget.used,
        )
        return out

    @staticmethod
    def _unexpected_end(index: int, code: str) -> Diagnostic | None:
        if starts_with_word(code, "end"):
            col, width = code.find("end"), 3
        elif _BRACE_CLOSER_RE.match(code):
            col, width = code.find("}"), 1
        else:
            # A stray elif/else at the top level has nothing to close.
            return None
        return Diagnostic(
            severity="error",
            code="unexpected-end",
            message="Unexpected block closer: there is no open block to close here.",
            range=TextRange.on_line(index, col, col + width),
            source="heuristic",
        )


def check_text(
    text: str,
    settings: ValidationSettings | None = None,
    *,
    uri: str = "untitled:document.lsc",
) -> list[Diagnostic]:
    """Convenience wrapper: check raw *text* with the default rules."""
    return HeuristicChecker().check(Document(uri=uri, text=text), settings)


__all__ = ["HeuristicChecker", "check_text"]
