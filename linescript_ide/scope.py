"""Scope tracker — lexical scopes for one heuristic pass.

Scopes live in an arena (a flat list); each node refers to its parent by
index, and the active chain is a stack of indices.  Nothing outlives the
pass, so there is no cleanup beyond dropping the tracker.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Literal

from linescript_ide.contracts import SymbolInfo

ScopeKind = Literal["global", "block", "loop", "function"]

NO_PARENT = -1


class ScopeOutcome(str, enum.Enum):
    """Result of a declare/assign; non-OK values double as diagnostic codes."""

    OK = "ok"
    DUPLICATE_DECLARE = "duplicate-declare"
    UNDECLARED_ASSIGN = "undeclared-assign"
    CONST_REASSIGN = "const-reassign"


@dataclass
class Scope:
    id: int
    parent: int
    kind: ScopeKind
    symbols: dict[str, SymbolInfo] = field(default_factory=dict)
    terminated: bool = False


class ScopeTracker:
    """Stack of active scopes over an arena of every scope seen so far."""

    def __init__(self) -> None:
        self._arena: list[Scope] = [Scope(id=0, parent=NO_PARENT, kind="global")]
        self._active: list[int] = [0]

    # ------------------------------------------------------------------
    # Structure
    # ------------------------------------------------------------------

    @property
    def current(self) -> int:
        return self._active[-1]

    @property
    def depth(self) -> int:
        """Number of open scopes above the global one."""
        return len(self._active) - 1

    @property
    def scope(self) -> Scope:
        return self._arena[self.current]

    def enter_scope(self, kind: ScopeKind) -> int:
        node = Scope(id=len(self._arena), parent=self.current, kind=kind)
        self._arena.append(node)
        self._active.append(node.id)
        return node.id

    def exit_scope(self) -> bool:
        """Close the innermost scope; False (and no change) at the root."""
        if len(self._active) <= 1:
            return False
        self._active.pop()
        return True

    def in_loop(self) -> bool:
        """True when a loop encloses the current point within this function."""
        idx = self.current
        while idx != NO_PARENT:
            node = self._arena[idx]
            if node.kind == "loop":
                return True
            if node.kind == "function":
                return False
            idx = node.parent
        return False

    def mark_terminated(self) -> None:
        self.scope.terminated = True

    @property
    def terminated(self) -> bool:
        return self.scope.terminated

    # ------------------------------------------------------------------
    # Symbols
    # ------------------------------------------------------------------

    def declare(self, name: str, info: SymbolInfo) -> ScopeOutcome:
        """Declare *name* in the current scope.

        A duplicate in the same scope is reported, but the new declaration
        still replaces the old one for later lookups.
        """
        symbols = self.scope.symbols
        outcome = ScopeOutcome.DUPLICATE_DECLARE if name in symbols else ScopeOutcome.OK
        symbols[name] = info
        return outcome

    def local(self, name: str) -> SymbolInfo | None:
        """Lookup in the current scope only."""
        return self.scope.symbols.get(name)

    def resolve(self, name: str) -> SymbolInfo | None:
        idx = self.current
        while idx != NO_PARENT:
            node = self._arena[idx]
            info = node.symbols.get(name)
            if info is not None:
                return info
            idx = node.parent
        return None

    def assign(self, name: str) -> ScopeOutcome:
        info = self.resolve(name)
        if info is None:
            return ScopeOutcome.UNDECLARED_ASSIGN
        if not info.mutable:
            return ScopeOutcome.CONST_REASSIGN
        return ScopeOutcome.OK


__all__ = ["NO_PARENT", "Scope", "ScopeKind", "ScopeOutcome", "ScopeTracker"]
