"""Command-line entry point.

    python -m linescript_ide serve
    python -m linescript_ide check FILE [--no-compiler] [--style] [--json]

``check`` runs one full validation pass (heuristics, then the compiler
when it can be found) and prints the reconciled diagnostics.  Heuristic
errors are reported as errors here, not demoted, and the exit code is 1
when any error remains.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from linescript_ide.config import ServerSettings, ValidationSettings
from linescript_ide.contracts import Diagnostic, Document, Trigger
from linescript_ide.logging_setup import configure_logging
from linescript_ide.scheduler import validate_document


def _format(path: str, diag: Diagnostic) -> str:
    r = diag.range
    code = f" [{diag.code}]" if diag.code else ""
    return (
        f"{path}:{r.start_line + 1}:{r.start_col + 1}: "
        f"{diag.severity}: {diag.message}{code} ({diag.source})"
    )


def check_file(path: Path, *, compiler: bool = True, style: bool = False) -> list[Diagnostic]:
    """Validate *path* once and return the reconciled diagnostics."""
    text = path.read_text(encoding="utf-8", errors="replace")
    document = Document(uri=path.resolve().as_uri(), text=text)
    settings = ValidationSettings().model_copy(update={
        "heuristics_only": not compiler,
        "style_hints_enabled": style,
        "heuristic_errors_as_warnings": False,
    })
    return asyncio.run(validate_document(document, settings, Trigger.SAVE))


def _cmd_check(args: argparse.Namespace) -> int:
    path = Path(args.file)
    if not path.is_file():
        print(f"ERROR: file not found: {path}", file=sys.stderr)
        return 2
    diagnostics = check_file(path, compiler=not args.no_compiler, style=args.style)
    if args.json:
        print(json.dumps([d.model_dump(mode="json") for d in diagnostics], indent=2))
    else:
        for diag in diagnostics:
            print(_format(str(path), diag))
    return 1 if any(d.severity == "error" for d in diagnostics) else 0


def _cmd_serve(args: argparse.Namespace) -> int:
    # Imported here so ``check`` does not construct the language server.
    from linescript_ide.server import start

    start()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="linescript-ide",
        description="LineScript diagnostics: language server and one-shot checker.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the language server on stdio.")
    serve.set_defaults(handler=_cmd_serve)

    check = sub.add_parser("check", help="Check one file and print its diagnostics.")
    check.add_argument("file", help="LineScript source file.")
    check.add_argument("--no-compiler", action="store_true",
                       help="Heuristics only; never invoke lsc.")
    check.add_argument("--style", action="store_true",
                       help="Include style hints.")
    check.add_argument("--json", action="store_true",
                       help="Print diagnostics as a JSON array.")
    check.set_defaults(handler=_cmd_check)
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = ServerSettings()
    configure_logging(settings.LOG_LEVEL, settings.LOG_FILE)
    return args.handler(args)
