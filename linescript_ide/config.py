"""Validation settings loaded from the environment and the editor.

Uses ``pydantic-settings`` so server-wide defaults come from
``LINESCRIPT_*`` environment variables or a ``.env`` file.  Editor
payloads (camelCase keys under the ``linescript`` section) are layered on
top through ``ValidationSettings.from_editor``; unknown keys are ignored
and invalid values fall back to the base value instead of failing.
"""

from __future__ import annotations

import logging
import math
import time
from typing import Annotated, Any, Awaitable, Callable

from pydantic import Field, TypeAdapter, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from linescript_ide.errors import SettingsError

logger = logging.getLogger(__name__)

DEFAULT_MAX_HINTS: int = 120
MAX_HINTS_CEILING: int = 1000


def clamp_max_hints(value: Any) -> int:
    """Invalid or < 1 → 120; otherwise floored and capped at 1000."""
    if isinstance(value, bool):
        return DEFAULT_MAX_HINTS
    try:
        n = float(value)
    except (TypeError, ValueError):
        return DEFAULT_MAX_HINTS
    if not math.isfinite(n) or n < 1:
        return DEFAULT_MAX_HINTS
    return min(MAX_HINTS_CEILING, int(math.floor(n)))


# ---------------------------------------------------------------------------
# Per-document settings
# ---------------------------------------------------------------------------


# Editor key → field name.
_EDITOR_KEYS: dict[str, str] = {
    "lscPath": "compiler_path",
    "backendCompiler": "backend_flag",
    "checkTimeoutMs": "timeout_ms",
    "validationDelayMinMs": "delay_min_ms",
    "validationDelayMaxMs": "delay_max_ms",
    "heuristicsEnabled": "heuristics_enabled",
    "styleHintsEnabled": "style_hints_enabled",
    "maxHintsPerFile": "max_hints_per_file",
    "heuristicsOnly": "heuristics_only",
    "hintsEnabled": "hints_enabled",
    "checkOnType": "check_on_type",
    "checkOnSave": "check_on_save",
    "maxSpeedDiagnostics": "max_speed",
    "extraCheckArgs": "extra_check_args",
    "heuristicErrorsAsWarnings": "heuristic_errors_as_warnings",
}


class ValidationSettings(BaseSettings):
    """Options controlling one document's validation passes."""

    model_config = SettingsConfigDict(
        env_prefix="LINESCRIPT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # -- compiler --
    compiler_path: str = ""
    backend_flag: str = ""
    timeout_ms: int = Field(default=8000, ge=1)
    max_speed: bool = False
    extra_check_args: list[str] = Field(default_factory=list)

    # -- scheduling --
    delay_min_ms: int = 2000
    delay_max_ms: int = 5000
    check_on_type: bool = True
    check_on_save: bool = True

    # -- heuristics --
    heuristics_enabled: bool = True
    heuristics_only: bool = False
    hints_enabled: bool = True
    style_hints_enabled: bool = False
    max_hints_per_file: int = DEFAULT_MAX_HINTS
    heuristic_errors_as_warnings: bool = True

    @field_validator("max_hints_per_file", mode="before")
    @classmethod
    def _clamp_hints(cls, v: Any) -> int:
        return clamp_max_hints(v)

    @property
    def timeout_s(self) -> float:
        return self.timeout_ms / 1000.0

    @classmethod
    def from_editor(
        cls,
        payload: dict[str, Any] | None,
        *,
        base: ValidationSettings | None = None,
    ) -> ValidationSettings:
        """Layer an editor settings *payload* over *base*.

        Keys may be camelCase (as the editor sends them) or the field names
        themselves.  A value that fails validation keeps the base value.
        """
        base = base or cls()
        if not isinstance(payload, dict):
            return base

        values = base.model_dump()
        for key, raw in payload.items():
            if key == "compilerDiagnosticsOnly":
                # Legacy switch: compiler-only means no heuristic layer.
                field_name, raw = "heuristics_enabled", not bool(raw)
            else:
                field_name = _EDITOR_KEYS.get(key, key)
            if field_name not in cls.model_fields:
                continue
            try:
                values[field_name] = _adapter(field_name).validate_python(raw)
            except ValidationError:
                err = SettingsError(key, raw)
                logger.warning("[config] %s", err, extra={"detail": err.to_dict()})
        return cls(**values)


_ADAPTERS: dict[str, TypeAdapter] = {}


def _adapter(field_name: str) -> TypeAdapter:
    adapter = _ADAPTERS.get(field_name)
    if adapter is None:
        info = ValidationSettings.model_fields[field_name]
        if field_name == "max_hints_per_file":
            # Clamped by the model validator instead of rejected.
            adapter = TypeAdapter(Any)
        elif info.metadata:
            adapter = TypeAdapter(Annotated[(info.annotation, *info.metadata)])
        else:
            adapter = TypeAdapter(info.annotation)
        _ADAPTERS[field_name] = adapter
    return adapter


# ---------------------------------------------------------------------------
# Server settings
# ---------------------------------------------------------------------------


class ServerSettings(BaseSettings):
    """Process-level settings — sourced from environment / ``.env`` file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""


# ---------------------------------------------------------------------------
# Settings cache
# ---------------------------------------------------------------------------


SettingsLoader = Callable[[str], Awaitable[ValidationSettings]]


class SettingsCache:
    """Per-document settings, resolved once and reused until invalidated.

    A *ttl_s* of ``None`` keeps entries until ``invalidate``/``clear``.
    """

    def __init__(self, loader: SettingsLoader, *, ttl_s: float | None = None) -> None:
        self._loader = loader
        self._ttl_s = ttl_s
        self._entries: dict[str, tuple[float, ValidationSettings]] = {}

    async def get(self, uri: str) -> ValidationSettings:
        """Return cached settings for *uri*, loading them on a miss.

        Loader errors propagate; nothing is cached for a failed load.
        """
        entry = self._entries.get(uri)
        if entry and (self._ttl_s is None or time.monotonic() - entry[0] < self._ttl_s):
            return entry[1]
        value = await self._loader(uri)
        self._entries[uri] = (time.monotonic(), value)
        return value

    def invalidate(self, uri: str) -> None:
        self._entries.pop(uri, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, uri: object) -> bool:
        return uri in self._entries

    def __len__(self) -> int:
        return len(self._entries)


__all__ = [
    "DEFAULT_MAX_HINTS",
    "MAX_HINTS_CEILING",
    "ServerSettings",
    "SettingsCache",
    "SettingsLoader",
    "ValidationSettings",
    "clamp_max_hints",
]
