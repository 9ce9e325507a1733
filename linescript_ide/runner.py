"""Compiler runner — bounded-time subprocess execution.

Provides ``run()`` for executing the LineScript compiler (or any argv)
without a shell and returning a structured ``RunResult``.  The blocking
call runs in the default executor so the event loop stays free;
``subprocess.run`` kills the child when the timeout expires.

A missing or unstartable executable is not an exception: it comes back as
``exit_code=-1`` with the OS error in ``stderr``.
"""

from __future__ import annotations

import asyncio
import subprocess
import time

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MAX_STDOUT_BYTES: int = 200_000
MAX_STDERR_BYTES: int = 200_000
DEFAULT_TIMEOUT_S: float = 8.0


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------


class RunResult(BaseModel):
    """Structured result of a subprocess invocation."""

    model_config = ConfigDict(frozen=True)

    exit_code: int = Field(..., description="Process exit code (-1 if it never ran or was killed)")
    stdout: str = Field(default="", description="Captured stdout (may be truncated)")
    stderr: str = Field(default="", description="Captured stderr (may be truncated)")
    duration_ms: int = Field(default=0, ge=0, description="Wall-clock duration in ms")
    truncated: bool = Field(
        default=False,
        description="True if stdout or stderr was truncated",
    )
    killed: bool = Field(
        default=False,
        description="True if the process was killed due to timeout",
    )
    not_found: bool = Field(
        default=False,
        description="True if the executable could not be started",
    )
    command: str = Field(..., description="The command that was executed")

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.killed

    @property
    def output(self) -> str:
        """stdout and stderr joined, the order diagnostics are parsed in."""
        if self.stdout and self.stderr:
            return f"{self.stdout}\n{self.stderr}"
        return self.stdout or self.stderr


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _truncate(text: str, max_bytes: int) -> tuple[str, bool]:
    """Truncate *text* to at most *max_bytes* characters.

    Returns ``(text, False)`` when no truncation occurred, or
    ``(truncated_text, True)`` with an appended notice otherwise.
    """
    if len(text) <= max_bytes:
        return text, False
    return (
        text[:max_bytes] + f"\n\n[... truncated at {max_bytes} bytes ...]",
        True,
    )


def _decode(data: str | bytes | None) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


# ---------------------------------------------------------------------------
# Core runner
# ---------------------------------------------------------------------------


async def run(
    argv: list[str],
    *,
    timeout_s: float = DEFAULT_TIMEOUT_S,
    cwd: str | None = None,
) -> RunResult:
    """Execute *argv* and return a ``RunResult``.

    Parameters
    ----------
    argv:
        Executable followed by its arguments.  Never passed to a shell.
    timeout_s:
        Maximum wall-clock seconds before the process is killed.
    cwd:
        Working directory for the subprocess.  ``None`` → inherit.
    """
    command = " ".join(argv)
    start = time.perf_counter()

    def _sync() -> tuple[int, str, str, bool]:
        """Run in a thread so the event loop stays free."""
        try:
            result = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                cwd=cwd,
                timeout=timeout_s,
            )
            return result.returncode, result.stdout or "", result.stderr or "", False
        except subprocess.TimeoutExpired as exc:
            return -1, _decode(exc.stdout), _decode(exc.stderr), True

    loop = asyncio.get_running_loop()
    try:
        exit_code, raw_out, raw_err, was_killed = await loop.run_in_executor(None, _sync)
    except OSError as exc:
        return RunResult(
            exit_code=-1,
            stderr=f"Error: {exc}",
            duration_ms=_elapsed_ms(start),
            not_found=True,
            command=command,
        )

    stdout, trunc_out = _truncate(raw_out, MAX_STDOUT_BYTES)
    stderr, trunc_err = _truncate(raw_err, MAX_STDERR_BYTES)

    return RunResult(
        exit_code=exit_code,
        stdout=stdout,
        stderr=stderr,
        duration_ms=_elapsed_ms(start),
        truncated=trunc_out or trunc_err,
        killed=was_killed,
        command=command,
    )


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


__all__ = ["DEFAULT_TIMEOUT_S", "RunResult", "run"]
