"""Language tables the heuristic rules consult.

Keywords, type names, the built-in API surface with call arities, the
zero-argument statement markers (``.format()`` and friends) and the
privileged ``su`` command namespace.
"""

from __future__ import annotations

from typing import NamedTuple


class Arity(NamedTuple):
    min: int
    max: int

    def accepts(self, count: int) -> bool:
        return self.min <= count <= self.max

    def describe(self) -> str:
        if self.min == self.max:
            return str(self.min)
        return f"{self.min}-{self.max}"


KEYWORDS: frozenset[str] = frozenset({
    "declare", "const", "owned", "return",
    "if", "elif", "else", "unless", "while", "for", "parallel", "in", "step",
    "do", "end", "class", "constructor", "throws", "break", "continue",
    "and", "or", "not", "true", "false",
    "flag", "inline", "extern", "fn", "func",
    # class member modifiers
    "public", "protected", "private", "static", "virtual", "override",
    "final", "extends",
})

TYPE_NAMES: frozenset[str] = frozenset({
    "i32", "i64", "f32", "f64", "bool", "str", "void",
})

CORE_BUILTINS: frozenset[str] = frozenset({
    "print", "println", "input", "input_i64", "input_f64",
    "clock_ms", "clock_us",
    "len", "contains", "includes", "replace", "trim", "lower", "upper",
    "substring", "repeat", "reverse", "byte_at", "ord", "chr", "bytes_len",
    "is_empty", "starts_with", "ends_with", "find", "array_join",
    "max_f64", "clamp_f64", "clamp_i64", "deg_to_rad", "rad_to_deg", "sum_sq",
    "sqrt", "sin", "cos", "tan", "asin", "acos", "atan", "atan2",
    "exp", "log", "log10", "floor", "ceil", "round", "pow", "gcd", "lcm",
    "max", "min", "abs", "clamp",
    "parse_i64", "parse_f64", "to_i32", "to_i64", "to_f32", "to_f64",
    "stateSpeed", "formatOutput", "FormatOutput", "superuser",
    "spawn", "await", "await_all",
    "this", "pi", "tau", "true", "false",
})

BUILTIN_PREFIXES: tuple[str, ...] = (
    "array_", "dict_", "map_", "object_", "option_", "result_", "mem_",
    "gfx_", "game_", "pg_", "np_", "phys_", "camera_", "key_", "http_", "su_",
)

# User functions with these names shadow the runtime API.
RESERVED_FUNCTION_NAMES: frozenset[str] = frozenset({
    "print", "println", "input", "input_i64", "input_f64",
    "formatOutput", "FormatOutput", "stateSpeed", "superuser",
})

BUILTIN_ARITY: dict[str, Arity] = {
    "print": Arity(1, 1),
    "println": Arity(1, 1),
    "input": Arity(0, 1),
    "input_i64": Arity(0, 1),
    "input_f64": Arity(0, 1),
    "clock_ms": Arity(0, 0),
    "clock_us": Arity(0, 0),
    "len": Arity(1, 1),
    "contains": Arity(2, 2),
    "includes": Arity(2, 2),
    "replace": Arity(3, 3),
    "trim": Arity(1, 1),
    "lower": Arity(1, 1),
    "upper": Arity(1, 1),
    "substring": Arity(3, 3),
    "repeat": Arity(2, 2),
    "reverse": Arity(1, 1),
    "byte_at": Arity(2, 2),
    "ord": Arity(1, 1),
    "chr": Arity(1, 1),
    "bytes_len": Arity(1, 1),
    "is_empty": Arity(1, 1),
    "starts_with": Arity(2, 2),
    "ends_with": Arity(2, 2),
    "find": Arity(2, 2),
    "array_join": Arity(2, 2),
    "max_f64": Arity(2, 2),
    "clamp_f64": Arity(3, 3),
    "clamp_i64": Arity(3, 3),
    "deg_to_rad": Arity(1, 1),
    "rad_to_deg": Arity(1, 1),
    "sqrt": Arity(1, 1),
    "sin": Arity(1, 1),
    "cos": Arity(1, 1),
    "tan": Arity(1, 1),
    "asin": Arity(1, 1),
    "acos": Arity(1, 1),
    "atan": Arity(1, 1),
    "atan2": Arity(2, 2),
    "exp": Arity(1, 1),
    "log": Arity(1, 1),
    "log10": Arity(1, 1),
    "floor": Arity(1, 1),
    "ceil": Arity(1, 1),
    "round": Arity(1, 1),
    "pow": Arity(2, 2),
    "gcd": Arity(2, 2),
    "lcm": Arity(2, 2),
    "max": Arity(2, 2),
    "min": Arity(2, 2),
    "abs": Arity(1, 1),
    "clamp": Arity(3, 3),
    "parse_i64": Arity(1, 1),
    "parse_f64": Arity(1, 1),
    "to_i32": Arity(1, 1),
    "to_i64": Arity(1, 1),
    "to_f32": Arity(1, 1),
    "to_f64": Arity(1, 1),
    "stateSpeed": Arity(0, 0),
    "formatOutput": Arity(1, 1),
    "FormatOutput": Arity(1, 1),
    "superuser": Arity(0, 0),
    "spawn": Arity(1, 1),
    "await": Arity(1, 1),
    "await_all": Arity(0, 0),
    "array_new": Arity(0, 0),
    "array_len": Arity(1, 1),
    "array_push": Arity(2, 2),
    "array_get": Arity(2, 2),
    "array_set": Arity(3, 3),
    "dict_new": Arity(0, 0),
    "dict_set": Arity(3, 3),
    "dict_get": Arity(2, 2),
}

# Statement-only markers written as ``.name()`` on their own line.
DOT_MARKERS: dict[str, Arity] = {
    ".format": Arity(0, 0),
    ".formatOutput": Arity(0, 0),
    ".stateSpeed": Arity(0, 0),
    ".freeConsole": Arity(0, 0),
}

# ---------------------------------------------------------------------------
# Privileged namespace
# ---------------------------------------------------------------------------

SUPERUSER_CALL: str = "superuser"
PRIVILEGED_HEADS: frozenset[str] = frozenset({"su", "superuser"})

# Tail after ``su.`` / ``superuser.``.
PRIVILEGED_COMMANDS: dict[str, Arity] = {
    "trace.on": Arity(0, 0),
    "trace.off": Arity(0, 0),
    "capabilities": Arity(0, 0),
    "memory.inspect": Arity(0, 0),
    "compiler.inspect": Arity(0, 0),
    "ir.dump": Arity(0, 0),
    "debug.hook": Arity(1, 1),
    "limit.set": Arity(2, 2),
}

_BUILTIN_BY_LOWER: dict[str, str] = {name.lower(): name for name in BUILTIN_ARITY}


def is_builtin_token(token: str) -> bool:
    if token in CORE_BUILTINS:
        return True
    return token.startswith(BUILTIN_PREFIXES)


def builtin_arity(name: str) -> Arity | None:
    return BUILTIN_ARITY.get(name)


def builtin_case_match(name: str) -> str | None:
    """The built-in *name* differs from only by letter case, if any."""
    match = _BUILTIN_BY_LOWER.get(name.lower())
    if match is None or match == name:
        return None
    # formatOutput / FormatOutput are both real spellings
    if name in BUILTIN_ARITY:
        return None
    return match


def split_privileged(name: str) -> tuple[str, str] | None:
    """``"su.trace.on"`` → ``("su", "trace.on")``; None outside the namespace."""
    head, sep, tail = name.partition(".")
    if not sep or head not in PRIVILEGED_HEADS:
        return None
    return head, tail


__all__ = [
    "Arity",
    "BUILTIN_ARITY",
    "BUILTIN_PREFIXES",
    "CORE_BUILTINS",
    "DOT_MARKERS",
    "KEYWORDS",
    "PRIVILEGED_COMMANDS",
    "PRIVILEGED_HEADS",
    "RESERVED_FUNCTION_NAMES",
    "SUPERUSER_CALL",
    "TYPE_NAMES",
    "builtin_arity",
    "builtin_case_match",
    "is_builtin_token",
    "split_privileged",
]
