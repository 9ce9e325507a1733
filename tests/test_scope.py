"""Tests for linescript_ide.scope — the arena-backed scope tracker."""

from __future__ import annotations

from linescript_ide.contracts import SymbolInfo
from linescript_ide.scope import ScopeOutcome, ScopeTracker


def _var(mutable: bool = True, line: int = 0) -> SymbolInfo:
    return SymbolInfo(kind="variable", mutable=mutable, declared_line=line)


class TestStructure:
    def test_starts_at_global(self):
        t = ScopeTracker()
        assert t.depth == 0
        assert t.scope.kind == "global"

    def test_enter_and_exit(self):
        t = ScopeTracker()
        t.enter_scope("block")
        assert t.depth == 1
        assert t.exit_scope() is True
        assert t.depth == 0

    def test_exit_at_root_is_refused(self):
        t = ScopeTracker()
        assert t.exit_scope() is False
        assert t.depth == 0

    def test_in_loop(self):
        t = ScopeTracker()
        assert not t.in_loop()
        t.enter_scope("loop")
        t.enter_scope("block")
        assert t.in_loop()

    def test_in_loop_stops_at_function(self):
        t = ScopeTracker()
        t.enter_scope("loop")
        t.enter_scope("function")
        assert not t.in_loop()

    def test_terminated_is_per_scope(self):
        t = ScopeTracker()
        t.enter_scope("block")
        t.mark_terminated()
        assert t.terminated
        t.exit_scope()
        assert not t.terminated


class TestSymbols:
    def test_declare_and_resolve(self):
        t = ScopeTracker()
        assert t.declare("x", _var()) is ScopeOutcome.OK
        t.enter_scope("block")
        assert t.resolve("x") is not None
        assert t.local("x") is None

    def test_duplicate_reported_but_replaced(self):
        t = ScopeTracker()
        t.declare("x", _var(line=1))
        assert t.declare("x", _var(line=2)) is ScopeOutcome.DUPLICATE_DECLARE
        assert t.resolve("x").declared_line == 2

    def test_inner_scope_shadows(self):
        t = ScopeTracker()
        t.declare("x", _var(mutable=False))
        t.enter_scope("block")
        assert t.declare("x", _var()) is ScopeOutcome.OK
        assert t.assign("x") is ScopeOutcome.OK

    def test_assign_outcomes(self):
        t = ScopeTracker()
        t.declare("k", _var(mutable=False))
        assert t.assign("k") is ScopeOutcome.CONST_REASSIGN
        assert t.assign("nope") is ScopeOutcome.UNDECLARED_ASSIGN

    def test_names_vanish_after_exit(self):
        t = ScopeTracker()
        t.enter_scope("block")
        t.declare("tmp", _var())
        t.exit_scope()
        assert t.resolve("tmp") is None
