"""Diagnostics runtime error hierarchy.

Every error carries typed fields (not just a message string),
supports ``to_dict()`` for structured logging, and has a readable
``__str__``.  None of these ever escape a validation pass: the compiler
adapter turns them into a synthetic diagnostic and the scheduler logs
anything else.
"""

from __future__ import annotations


class LineScriptError(Exception):
    """Base error for all diagnostics-runtime failures."""

    def __init__(self, message: str, *, detail: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail or {}

    def to_dict(self) -> dict:
        return {"error": type(self).__name__, "message": self.message, **self.detail}

    def __str__(self) -> str:
        return self.message


class CompilerTimeout(LineScriptError):
    """The compiler exceeded its allowed wall-clock time and was killed."""

    def __init__(self, compiler: str, timeout_ms: int) -> None:
        self.compiler = compiler
        self.timeout_ms = timeout_ms
        super().__init__(
            f"Compiler '{compiler}' timed out after {timeout_ms}ms",
            detail={"compiler": compiler, "timeout_ms": timeout_ms},
        )


class CompilerNotFound(LineScriptError):
    """The configured compiler executable could not be started."""

    def __init__(self, compiler: str, reason: str | None = None) -> None:
        self.compiler = compiler
        self.reason = reason or ""
        msg = f"Compiler '{compiler}' could not be started"
        if reason:
            msg += f": {reason}"
        detail: dict = {"compiler": compiler}
        if reason:
            detail["reason"] = reason
        super().__init__(msg, detail=detail)


class ParseError(LineScriptError):
    """Compiler output could not be turned into structured diagnostics."""

    def __init__(self, raw_output: str, parser_name: str) -> None:
        self.raw_output = raw_output
        self.parser_name = parser_name
        super().__init__(
            f"Parser '{parser_name}' failed to parse output ({len(raw_output)} chars)",
            detail={"parser_name": parser_name, "raw_output_length": len(raw_output)},
        )


class SettingsError(LineScriptError):
    """A settings value was rejected while resolving document settings."""

    def __init__(self, key: str, value: object, reason: str = "invalid value") -> None:
        self.key = key
        self.value = value
        self.reason = reason
        super().__init__(
            f"Setting '{key}' rejected ({reason}): {value!r}",
            detail={"key": key, "reason": reason},
        )
