"""Shared test fixtures — reduces boilerplate across test modules.

Provides:
- ``isolated_env`` — autouse fixture that clears ``LINESCRIPT_*`` variables
- ``fast_settings`` — settings with zero debounce delay
- ``codes`` — helper returning the diagnostic codes of a result
- ``CLEAN_CORPUS`` — small documents every heuristic rule accepts
- ``CLEAN_PROGRAM`` — the corpus joined into one document
"""

from __future__ import annotations

import os

import pytest

from linescript_ide.config import ValidationSettings


# Small documents every heuristic rule accepts, one construct family each.
CLEAN_CORPUS: dict[str, str] = {
    "functions": """\
// Arithmetic helpers
add(a: i64, b: i64) -> i64 do
    return a + b
end

println(add(1, 2))
""",
    "declarations": """\
declare total = 0
declare const LIMIT = 10
declare name: str = "world"
declare half = 1 / 0.5 // not a zero divisor
println("Hello, " + name)
println("call(inside, a string")
""",
    "control-flow": """\
declare count = 0
declare const STEPS = 10

for i in 0..STEPS do
    count += i
    if count > 100 do
        break
    end
end

while count > 0 do
    count -= 1
end

if count == 0 do
    println("zero")
elif count < 0 do
    println("negative")
else do
    println("positive")
end
""",
    "class": """\
class Point do
    declare x: f64 = 0.0
    declare y: f64 = 0.0
    constructor(px: f64, py: f64) do
        this.x = px
        this.y = py
    end
    public length() -> f64 do
        return sqrt(this.x * this.x + this.y * this.y)
    end
end

declare p = Point(3.0, 4.0)
println(p.length())
""",
    "flags": """\
flag verbose-mode() do
    println("verbose")
end
""",
    "overloads": """\
area(w) do
    return w * w
end
area(w, h) do
    return w * h
end
println(area(2))
println(area(2, 3))
""",
    "builtins": """\
declare items = array_new()
array_push(items, 4)
println(array_len(items))
declare answer = input("Name? ")
""",
    "privileged": """\
superuser()
su.trace.on()
""",
    "format-markers": """\
.format()
""",
}

CLEAN_PROGRAM = "\n".join(CLEAN_CORPUS.values())


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Keep developer ``LINESCRIPT_*`` variables out of the settings under test."""
    for key in list(os.environ):
        if key.startswith("LINESCRIPT_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def fast_settings() -> ValidationSettings:
    return ValidationSettings(delay_min_ms=0, delay_max_ms=0)


def codes(diagnostics) -> list[str]:
    return [d.code for d in diagnostics]
