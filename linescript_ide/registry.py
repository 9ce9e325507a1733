"""Rule registry — ordered, name-keyed catalog of heuristic rules.

The ``RuleRegistry`` is a plain class (not a singleton) so tests can build
fresh instances with a subset of rules.  Evaluation order is registration
order; several rules depend on scratch written by earlier ones (for
example, the unknown-statement rule runs last).
"""

from __future__ import annotations

from typing import Iterator

from linescript_ide.rules import Rule, default_rules


class RuleRegistry:
    """Ordered rule collection.

    Usage::

        reg = RuleRegistry()
        reg.register(MyRule())
        for rule in reg:
            rule.evaluate(ctx)
    """

    def __init__(self, rules: list[Rule] | None = None) -> None:
        self._rules: dict[str, Rule] = {}
        for rule in rules or ():
            self.register(rule)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, rule: Rule) -> None:
        """Append *rule*.

        Raises ``ValueError`` if a rule with the same name is already
        registered or the rule has no name.
        """
        if not rule.name:
            raise ValueError(f"Rule {type(rule).__name__} has no name")
        if rule.name in self._rules:
            raise ValueError(f"Rule '{rule.name}' is already registered")
        self._rules[rule.name] = rule

    def unregister(self, name: str) -> Rule:
        """Remove and return the rule called *name* (``KeyError`` if absent)."""
        return self._rules.pop(name)

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get(self, name: str) -> Rule | None:
        return self._rules.get(name)

    def has_rule(self, name: str) -> bool:
        return name in self._rules

    def rule_names(self) -> list[str]:
        return list(self._rules.keys())

    def codes(self) -> list[str]:
        """Every diagnostic code the registered rules can emit, deduplicated."""
        seen: dict[str, None] = {}
        for rule in self._rules.values():
            for code in rule.codes:
                seen.setdefault(code, None)
        return list(seen)

    def __iter__(self) -> Iterator[Rule]:
        return iter(list(self._rules.values()))

    def __len__(self) -> int:
        return len(self._rules)


def default_registry() -> RuleRegistry:
    """A fresh registry holding every built-in rule in evaluation order."""
    return RuleRegistry(default_rules())


__all__ = ["RuleRegistry", "default_registry"]
