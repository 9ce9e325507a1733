"""LineScript diagnostics runtime — heuristics, compiler adapter, scheduling.

Public API
----------
Contracts (Pydantic models)::

    TextRange, QuickFix, Diagnostic, Document, SymbolInfo,
    Trigger, ValidationRun, Severity, SEVERITY_RANK,

Errors::

    LineScriptError, CompilerTimeout, CompilerNotFound,
    ParseError, SettingsError,

Settings::

    ValidationSettings, ServerSettings, SettingsCache,

Heuristic checker::

    HeuristicChecker, check_text, RuleRegistry, default_registry,
    ScopeTracker,

Compiler adapter::

    check_document, parse_compiler_output, build_check_args,

Reconciler::

    reconcile,

Scheduling and sessions::

    ValidationScheduler, validate_document,
    DiagnosticsSession, SessionHolder,

The pygls server lives in ``linescript_ide.server`` and is not imported
here.
"""

__version__ = "0.4.0"

from linescript_ide.checker import HeuristicChecker, check_text
from linescript_ide.compiler import build_check_args, check_document, parse_compiler_output
from linescript_ide.config import ServerSettings, SettingsCache, ValidationSettings
from linescript_ide.contracts import (
    SEVERITY_RANK,
    Diagnostic,
    Document,
    QuickFix,
    Severity,
    SymbolInfo,
    TextRange,
    Trigger,
    ValidationRun,
)
from linescript_ide.errors import (
    CompilerNotFound,
    CompilerTimeout,
    LineScriptError,
    ParseError,
    SettingsError,
)
from linescript_ide.reconciler import reconcile
from linescript_ide.registry import RuleRegistry, default_registry
from linescript_ide.scheduler import ValidationScheduler, validate_document
from linescript_ide.scope import ScopeTracker
from linescript_ide.session import DiagnosticsSession, SessionHolder

__all__ = [
    "CompilerNotFound",
    "CompilerTimeout",
    "Diagnostic",
    "DiagnosticsSession",
    "Document",
    "HeuristicChecker",
    "LineScriptError",
    "ParseError",
    "QuickFix",
    "RuleRegistry",
    "SEVERITY_RANK",
    "ScopeTracker",
    "ServerSettings",
    "SessionHolder",
    "SettingsCache",
    "SettingsError",
    "Severity",
    "SymbolInfo",
    "TextRange",
    "Trigger",
    "ValidationRun",
    "ValidationScheduler",
    "ValidationSettings",
    "__version__",
    "build_check_args",
    "check_document",
    "check_text",
    "default_registry",
    "parse_compiler_output",
    "reconcile",
    "validate_document",
]
