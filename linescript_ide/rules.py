"""Heuristic rules — one object per family of checks.

Each rule exposes ``name``, ``codes`` and ``evaluate(ctx)``, where *ctx* is
the ``LineContext`` for one source line.  Rules run in registry order for
every line and may update the shared per-line scratch (recognised
statement, names declared on the line, declarations pending for the block
the line opens) and the document's scope tracker.

Rules are pattern matchers, not a parser.  They are allowed to be wrong;
they are not allowed to raise on odd input.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from linescript_ide.catalog import (
    BUILTIN_ARITY,
    DOT_MARKERS,
    KEYWORDS,
    PRIVILEGED_COMMANDS,
    RESERVED_FUNCTION_NAMES,
    SUPERUSER_CALL,
    TYPE_NAMES,
    Arity,
    builtin_case_match,
    is_builtin_token,
    split_privileged,
)
from linescript_ide.contracts import Diagnostic, QuickFix, Severity, SymbolInfo, TextRange
from linescript_ide.lexical import (
    CallSite,
    ParamInfo,
    analyze_call_args,
    analyze_parameter_list,
    collect_calls,
    find_code_end,
    find_matching_paren,
    find_single_equals_in_condition,
    first_code_col,
    mask_line,
    next_non_ws_char,
    prev_non_ws_index,
    starts_with_word,
)
from linescript_ide.scope import ScopeKind, ScopeOutcome, ScopeTracker

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_MODIFIERS = r"(?:public|protected|private|static|virtual|override|final|inline|extern|fn|func)"
_IDENT = r"[A-Za-z_][A-Za-z0-9_]*"

FUNCTION_DECL_RE = re.compile(
    rf"^\s*(?P<mods>(?:{_MODIFIERS}\s+)*)"
    rf"(?P<name>{_IDENT})\s*\((?P<params>[^)]*)\)\s*"
    rf"(?:->\s*(?P<ret>{_IDENT})\s*)?"
    rf"(?:throws\s+{_IDENT}(?:\s*,\s*{_IDENT})*\s*)?"
    r"(?P<opener>do|\{)?\s*$"
)
FLAG_DECL_RE = re.compile(
    rf"^\s*flag\s+(?P<name>[A-Za-z_][A-Za-z0-9_\-]*)\s*\((?P<params>[^)]*)\)\s*(?P<opener>do|\{{)?\s*$"
)
_FN_SIG_START_RE = re.compile(rf"^\s*(?P<mods>(?:{_MODIFIERS}\s+)*)(?P<name>{_IDENT})\s*\(")
_DECL_KEYWORD_RE = re.compile(r"\b(?:fn|func|inline|extern)\b")

_CLASS_RE = re.compile(rf"^\s*class\s+({_IDENT})\b")
_DECLARE_RE = re.compile(rf"^\s*declare\s+(const\s+)?(owned\s+)?({_IDENT})\b")
_FOR_IN_RE = re.compile(rf"^\s*(?:parallel\s+)?for\s+({_IDENT})\s+in\b")
_ZERO_STEP_RE = re.compile(
    rf"^\s*(?:parallel\s+)?for\s+{_IDENT}\s+in\b.*\bstep\s+([+\-]?\d+(?:\.\d+)?)\b"
)
_ASSIGN_OPS = r"(\+\+|--|\+=|-=|\*=|/=|%=|\^=|\*\*=|=)"
_MEMBER_ASSIGN_RE = re.compile(rf"^\s*(?:this|{_IDENT})\.{_IDENT}\s*{_ASSIGN_OPS}")
_ASSIGN_RE = re.compile(rf"^\s*({_IDENT})\s*{_ASSIGN_OPS}")

_BLOCK_HEAD_RE = re.compile(r"^\s*(if|elif|else|unless|while|for)\b")
_ELSE_IF_RE = re.compile(r"^\s*else\s+if\b")
_HAS_DO_RE = re.compile(r"\bdo\b")
_TRAILING_BRACE_RE = re.compile(r"\{\s*$")
_TRAILING_COLON_RE = re.compile(r":\s*$")
_LOOP_HEAD_RE = re.compile(r"^\s*(?:(?:parallel\s+)?for|while)\b")
_LONE_BRACE_RE = re.compile(r"^\s*\{\s*$")

_DOT_MARKER_RE = re.compile(rf"^\s*(\.{_IDENT})\s*\(([^)]*)\)\s*$")
_DIV_ZERO_RE = re.compile(r"[/%]\s*0+(?![\w.])")
_INPUT_STMT_RE = re.compile(r"^\s*(input(?:_i64|_f64)?)\s*\(")
_TRUE_CMP_RE = re.compile(r"==\s*true\b")
_FALSE_CMP_RE = re.compile(r"==\s*false\b")
_SELF_OP_RE = re.compile(rf"^\s*({_IDENT})\s*=\s*\1\s*([+\-*/%])\s*(.+)$")
_SEMICOLON_RE = re.compile(r";\s*$")
_C_STYLE_RE = re.compile(r"^\s*(if|while|for|unless)\s*\(")
_TOKEN_RE = re.compile(rf"(?<![A-Za-z0-9_]){_IDENT}")
_AFTER_SIGNATURE_RE = re.compile(r"(?:->|\bthrows\b[A-Za-z0-9_\s,]*)\s*$")


def is_function_declaration(m: re.Match | None) -> bool:
    """Keyword or return type → declaration; otherwise needs an opener and clean params."""
    if m is None:
        return False
    name = m.group("name")
    if name in KEYWORDS and name != "constructor":
        return False
    if m.group("mods") or m.group("ret"):
        return True
    if not m.group("opener"):
        return False
    return analyze_parameter_list(m.group("params")).is_clean


def collect_declared_arities(lines: list[str]) -> dict[str, Arity]:
    """Pre-pass: arity of every function and flag declared anywhere in the file.

    Overloads widen the accepted range.
    """
    arities: dict[str, Arity] = {}
    for raw in lines:
        masked = mask_line(raw)
        raw_code = raw[: find_code_end(masked)]
        for m in (FUNCTION_DECL_RE.match(raw_code), FLAG_DECL_RE.match(raw_code)):
            if m is None:
                continue
            if m.re is FUNCTION_DECL_RE and not is_function_declaration(m):
                continue
            count = analyze_parameter_list(m.group("params")).count
            prev = arities.get(m.group("name"))
            if prev is None:
                arities[m.group("name")] = Arity(count, count)
            else:
                arities[m.group("name")] = Arity(min(prev.min, count), max(prev.max, count))
    return arities


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------


@dataclass
class DocumentState:
    """State that survives from one line to the next within a pass."""

    tracker: ScopeTracker
    known_arities: dict[str, Arity]
    style_enabled: bool = False
    superuser_enabled: bool = False


@dataclass
class LineContext:
    """Everything a rule may look at (and the scratch it may write) for one line."""

    index: int
    raw: str
    code: str
    raw_code: str
    starts_closer: bool
    doc: DocumentState
    recognized: bool = False
    declared: set[str] = field(default_factory=set)
    pending: list[tuple[str, SymbolInfo]] = field(default_factory=list)
    opens_kind: ScopeKind | None = None
    declaration_header: bool = False
    undeclared_assign_at: int = -1
    _calls: list[CallSite] | None = None

    @property
    def tracker(self) -> ScopeTracker:
        return self.doc.tracker

    @property
    def code_end(self) -> int:
        return len(self.code)

    def calls(self) -> list[CallSite]:
        if self._calls is None:
            self._calls = collect_calls(self.code, self.raw_code)
        return self._calls

    def preceded_by_dot(self, call: CallSite) -> bool:
        return call.name_start > 0 and self.code[call.name_start - 1] == "."

    def diag(
        self,
        start: int,
        end: int,
        severity: Severity,
        code: str,
        message: str,
        fix: QuickFix | None = None,
    ) -> Diagnostic:
        return Diagnostic(
            severity=severity,
            code=code,
            message=message,
            range=TextRange.on_line(self.index, start, end),
            source="heuristic",
            quick_fix=fix,
        )


# ---------------------------------------------------------------------------
# Rule base
# ---------------------------------------------------------------------------


class Rule:
    """Base class; subclasses set the class attributes and ``evaluate``."""

    name: str = ""
    codes: tuple[str, ...] = ()
    severity: Severity = "warning"
    style: bool = False

    def evaluate(self, ctx: LineContext) -> list[Diagnostic]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


# ---------------------------------------------------------------------------
# Control flow
# ---------------------------------------------------------------------------


class UnreachableStatementRule(Rule):
    name = "unreachable"
    codes = ("unreachable-statement",)

    def evaluate(self, ctx: LineContext) -> list[Diagnostic]:
        if ctx.starts_closer or not ctx.tracker.terminated:
            return []
        col = first_code_col(ctx.code)
        return [ctx.diag(
            col, col + 1, "warning", "unreachable-statement",
            "This statement is unreachable because control flow already left this block.",
        )]


class ControlFlowRule(Rule):
    """``break``/``continue`` need a loop; these and ``return`` end the block."""

    name = "control-flow"
    codes = ("break-outside-loop", "continue-outside-loop")
    severity = "error"

    def evaluate(self, ctx: LineContext) -> list[Diagnostic]:
        out: list[Diagnostic] = []
        for word in ("break", "continue"):
            if not starts_with_word(ctx.code, word):
                continue
            ctx.recognized = True
            if ctx.tracker.in_loop():
                ctx.tracker.mark_terminated()
            else:
                col = ctx.code.find(word)
                out.append(ctx.diag(
                    col, col + len(word), "error", f"{word}-outside-loop",
                    f"'{word}' can only be used inside a loop.",
                ))
        if starts_with_word(ctx.code, "return"):
            ctx.recognized = True
            ctx.tracker.mark_terminated()
        return out


# ---------------------------------------------------------------------------
# Typos and suspicious expressions
# ---------------------------------------------------------------------------


class AssignInConditionRule(Rule):
    name = "assign-in-condition"
    codes = ("assign-in-condition",)

    def evaluate(self, ctx: LineContext) -> list[Diagnostic]:
        idx = find_single_equals_in_condition(ctx.code)
        if idx < 0:
            return []
        return [ctx.diag(
            idx, idx + 1, "warning", "assign-in-condition",
            "'=' in a condition assigns. Did you mean '=='?",
            QuickFix(title="Use '==' for comparison", replacement_text="=="),
        )]


class PrintInTypoRule(Rule):
    name = "printin-typo"
    codes = ("printin-typo",)

    def evaluate(self, ctx: LineContext) -> list[Diagnostic]:
        idx = ctx.code.find("printIn(")
        if idx < 0:
            return []
        return [ctx.diag(
            idx, idx + len("printIn"), "warning", "printin-typo",
            "Looks like a typo. Did you mean 'println(...)'?",
            QuickFix(title="Replace with 'println'", replacement_text="println"),
        )]


class TripleDotRangeRule(Rule):
    name = "triple-dot-range"
    codes = ("triple-dot-range",)
    style = True

    def evaluate(self, ctx: LineContext) -> list[Diagnostic]:
        idx = ctx.code.find("...")
        if idx < 0:
            return []
        return [ctx.diag(
            idx, idx + 3, "warning", "triple-dot-range",
            "Ranges use '..' in LineScript, not '...'.",
            QuickFix(title="Use '..' range operator", replacement_text=".."),
        )]


class UnbalancedParensRule(Rule):
    name = "unbalanced-parens"
    codes = ("unbalanced-parens",)

    def evaluate(self, ctx: LineContext) -> list[Diagnostic]:
        opens = ctx.code.count("(")
        closes = ctx.code.count(")")
        if opens == closes:
            return []
        col = ctx.code.rfind("(") if opens > closes else ctx.code.rfind(")")
        col = max(0, col)
        return [ctx.diag(
            col, col + 1, "warning", "unbalanced-parens",
            "Unbalanced parentheses on this line. Check for a missing '(' or ')'.",
        )]


class DivideByZeroRule(Rule):
    name = "divide-by-zero-literal"
    codes = ("divide-by-zero-literal",)
    severity = "error"

    def evaluate(self, ctx: LineContext) -> list[Diagnostic]:
        m = _DIV_ZERO_RE.search(ctx.code)
        if m is None:
            return []
        return [ctx.diag(
            m.start(), m.end(), "error", "divide-by-zero-literal",
            "Division or modulo by the literal 0 always fails at runtime.",
        )]


class ZeroStepLoopRule(Rule):
    name = "zero-step-loop"
    codes = ("zero-step-loop",)
    severity = "error"

    def evaluate(self, ctx: LineContext) -> list[Diagnostic]:
        m = _ZERO_STEP_RE.match(ctx.code)
        if m is None or float(m.group(1)) != 0:
            return []
        col = ctx.code.rfind("step", 0, m.start(1))
        return [ctx.diag(
            col, col + 4, "error", "zero-step-loop",
            "Loop step cannot be 0; the loop would never advance.",
        )]


class InputIgnoredRule(Rule):
    name = "input-ignored"
    codes = ("input-ignored",)
    severity = "hint"
    style = True

    def evaluate(self, ctx: LineContext) -> list[Diagnostic]:
        m = _INPUT_STMT_RE.match(ctx.code)
        if m is None or "=" in ctx.code:
            return []
        return [ctx.diag(
            m.start(1), m.end(1), "hint", "input-ignored",
            "The value read here is discarded. Assign it to a variable if you need it.",
        )]


# ---------------------------------------------------------------------------
# Block structure
# ---------------------------------------------------------------------------


class DotMarkerRule(Rule):
    """Zero-argument statement markers such as ``.format()``."""

    name = "dot-marker"
    codes = ("unknown-dot-call", "dot-call-arity")

    def evaluate(self, ctx: LineContext) -> list[Diagnostic]:
        m = _DOT_MARKER_RE.match(ctx.raw_code)
        if m is None:
            return []
        ctx.recognized = True
        marker = m.group(1)
        start, end = m.start(1), m.end(1)
        arity = DOT_MARKERS.get(marker)
        if arity is None:
            return [ctx.diag(
                start, end, "warning", "unknown-dot-call",
                f"Unknown special call '{marker}()'.",
            )]
        count = analyze_call_args(m.group(2)).count
        if not arity.accepts(count):
            return [ctx.diag(
                start, end, "warning", "dot-call-arity",
                f"'{marker}()' takes {arity.describe()} argument(s), but {count} were given.",
            )]
        return []


class BlockHeadRule(Rule):
    name = "block-head"
    codes = ("missing-do",)

    def evaluate(self, ctx: LineContext) -> list[Diagnostic]:
        code = ctx.code
        if _BLOCK_HEAD_RE.match(code) is None:
            return []
        ctx.recognized = True
        if _ELSE_IF_RE.match(code) or _TRAILING_COLON_RE.search(code):
            return []
        if not _HAS_DO_RE.search(code) and not _TRAILING_BRACE_RE.search(code):
            return [ctx.diag(
                ctx.code_end, ctx.code_end, "warning", "missing-do",
                "This block looks incomplete. Add 'do' to start it.",
                QuickFix(title="Insert 'do'", replacement_text=" do"),
            )]
        return []


class ColonBlockRule(Rule):
    """Block heads written with a trailing ``:`` as in indentation-based languages."""

    name = "python-colon-block"
    codes = ("python-colon-block",)
    style = True

    def evaluate(self, ctx: LineContext) -> list[Diagnostic]:
        code = ctx.code
        if _BLOCK_HEAD_RE.match(code) is None or _ELSE_IF_RE.match(code):
            return []
        if _TRAILING_COLON_RE.search(code) is None:
            return []
        col = ctx.code_end - 1
        return [ctx.diag(
            col, col + 1, "warning", "python-colon-block",
            "LineScript blocks use 'do ... end', not ':'.",
            QuickFix(title="Replace ':' with ' do'", replacement_text=" do"),
        )]


# ---------------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------------


def _declare_callable(
    ctx: LineContext, name: str, col: int, params: ParamInfo,
) -> list[Diagnostic]:
    """Declare a function or flag; a different arity is an overload, not a duplicate."""
    arity = (params.count, params.count)
    info = SymbolInfo(kind="function", mutable=False, declared_line=ctx.index, arity=arity)
    existing = ctx.tracker.local(name)
    if existing is not None and existing.kind == "function" and existing.arity != arity:
        ctx.tracker.declare(name, info)
        return []
    if ctx.tracker.declare(name, info) is ScopeOutcome.DUPLICATE_DECLARE:
        return [_duplicate(ctx, name, col)]
    return []


def _duplicate(ctx: LineContext, name: str, col: int) -> Diagnostic:
    return ctx.diag(
        col, col + len(name), "warning", "duplicate-declare",
        f"Duplicate declaration of '{name}' in the same scope.",
    )


def _param_problems(
    ctx: LineContext, what: str, name: str, col: int, params: ParamInfo,
) -> list[Diagnostic]:
    out: list[Diagnostic] = []
    if params.malformed_parts:
        out.append(ctx.diag(
            col, col + len(name), "warning", "malformed-params",
            f"Malformed parameter list in {what} '{name}': "
            f"{', '.join(params.malformed_parts)}.",
        ))
    if params.duplicate_names:
        out.append(ctx.diag(
            col, col + len(name), "warning", "duplicate-param",
            f"Duplicate parameter name(s): {', '.join(params.duplicate_names)}.",
        ))
    return out


def _open_parameters(ctx: LineContext, params: ParamInfo) -> None:
    ctx.opens_kind = "function"
    for p in params.names:
        ctx.pending.append(
            (p, SymbolInfo(kind="parameter", mutable=True, declared_line=ctx.index))
        )


class ClassDeclRule(Rule):
    name = "class-decl"
    codes = ("duplicate-declare",)

    def evaluate(self, ctx: LineContext) -> list[Diagnostic]:
        m = _CLASS_RE.match(ctx.code)
        if m is None:
            return []
        ctx.recognized = True
        name = m.group(1)
        ctx.declared.add(name)
        info = SymbolInfo(kind="class", mutable=False, declared_line=ctx.index)
        if ctx.tracker.declare(name, info) is ScopeOutcome.DUPLICATE_DECLARE:
            return [_duplicate(ctx, name, m.start(1))]
        return []


class FunctionDeclRule(Rule):
    name = "function-decl"
    codes = (
        "duplicate-declare",
        "reserved-builtin-name",
        "builtin-signature-mismatch",
        "malformed-params",
        "duplicate-param",
        "malformed-function-signature",
    )

    def evaluate(self, ctx: LineContext) -> list[Diagnostic]:
        m = FUNCTION_DECL_RE.match(ctx.raw_code)
        if is_function_declaration(m):
            return self._declaration(ctx, m)
        return self._malformed_signature(ctx)

    def _declaration(self, ctx: LineContext, m: re.Match) -> list[Diagnostic]:
        ctx.recognized = True
        ctx.declaration_header = True
        name = m.group("name")
        col = m.start("name")
        params = analyze_parameter_list(m.group("params"))
        ctx.declared.add(name)
        ctx.declared.update(params.names)
        if m.group("opener"):
            _open_parameters(ctx, params)

        out = _declare_callable(ctx, name, col, params)
        if name in RESERVED_FUNCTION_NAMES:
            out.append(ctx.diag(
                col, col + len(name), "error", "reserved-builtin-name",
                f"Function name '{name}' collides with a built-in API name.",
            ))
            arity = BUILTIN_ARITY.get(name)
            if arity is not None and not arity.accepts(params.count):
                out.append(ctx.diag(
                    col, col + len(name), "error", "builtin-signature-mismatch",
                    f"Built-in '{name}' expects {arity.describe()} argument(s), "
                    f"but this declaration has {params.count}.",
                ))
        out.extend(_param_problems(ctx, "function", name, col, params))
        return out

    def _malformed_signature(self, ctx: LineContext) -> list[Diagnostic]:
        m = _FN_SIG_START_RE.match(ctx.raw_code)
        if m is None:
            return []
        name = m.group("name")
        if name in KEYWORDS:
            return []
        looks_declared = (
            _HAS_DO_RE.search(ctx.code) is not None
            or _TRAILING_BRACE_RE.search(ctx.code) is not None
            or _DECL_KEYWORD_RE.search(ctx.code) is not None
        )
        if not looks_declared:
            return []
        open_idx = m.end() - 1
        close_idx = find_matching_paren(ctx.raw_code, open_idx)
        params_malformed = True
        if close_idx > open_idx:
            params_malformed = not analyze_parameter_list(
                ctx.raw_code[open_idx + 1:close_idx]
            ).is_clean
        if not m.group("mods") and params_malformed:
            # A call taking a block, e.g. formatOutput("x") do
            return []
        ctx.recognized = True
        col = m.start("name")
        return [ctx.diag(
            col, col + len(name), "warning", "malformed-function-signature",
            f"Function signature for '{name}' looks malformed. Check the parentheses, "
            "parameters, return type and block opener.",
        )]


class FlagDeclRule(Rule):
    """``flag name-with-hyphens(params) do`` declares a command-line flag handler."""

    name = "flag-decl"
    codes = ("duplicate-declare", "malformed-params", "duplicate-param")

    def evaluate(self, ctx: LineContext) -> list[Diagnostic]:
        m = FLAG_DECL_RE.match(ctx.raw_code)
        if m is None:
            return []
        ctx.recognized = True
        ctx.declaration_header = True
        name = m.group("name")
        col = m.start("name")
        params = analyze_parameter_list(m.group("params"))
        ctx.declared.add(name)
        ctx.declared.update(params.names)
        if m.group("opener"):
            _open_parameters(ctx, params)
        out = _declare_callable(ctx, name, col, params)
        out.extend(_param_problems(ctx, "flag", name, col, params))
        return out


class DeclareRule(Rule):
    name = "declare"
    codes = ("duplicate-declare", "malformed-declare")

    def evaluate(self, ctx: LineContext) -> list[Diagnostic]:
        if not starts_with_word(ctx.code, "declare"):
            return []
        ctx.recognized = True
        m = _DECLARE_RE.match(ctx.code)
        if m is None or m.group(3) in KEYWORDS:
            col = ctx.code.find("declare")
            return [ctx.diag(
                col, col + len("declare"), "error", "malformed-declare",
                "Malformed declaration. Use 'declare name', 'declare name = ...' "
                "or 'declare name: type = ...'.",
            )]
        name = m.group(3)
        ctx.declared.add(name)
        info = SymbolInfo(
            kind="variable", mutable=m.group(1) is None, declared_line=ctx.index,
        )
        if ctx.tracker.declare(name, info) is ScopeOutcome.DUPLICATE_DECLARE:
            return [_duplicate(ctx, name, m.start(3))]
        return []


class ForLoopRule(Rule):
    """``for x in ...`` declares *x* inside the loop body."""

    name = "for-loop"
    codes = ()

    def evaluate(self, ctx: LineContext) -> list[Diagnostic]:
        m = _FOR_IN_RE.match(ctx.code)
        if m is None:
            return []
        ctx.recognized = True
        name = m.group(1)
        ctx.declared.add(name)
        ctx.pending.append(
            (name, SymbolInfo(kind="iterator", mutable=True, declared_line=ctx.index))
        )
        return []


class AssignmentRule(Rule):
    name = "assignment"
    codes = ("undeclared-assign", "const-reassign", "undeclared-var")
    severity = "error"

    def evaluate(self, ctx: LineContext) -> list[Diagnostic]:
        if _MEMBER_ASSIGN_RE.match(ctx.code):
            ctx.recognized = True
            return []
        m = _ASSIGN_RE.match(ctx.code)
        if m is None or starts_with_word(ctx.code, "declare"):
            return []
        ctx.recognized = True
        name, op = m.group(1), m.group(2)
        start, end = m.start(1), m.end(1)
        outcome = ctx.tracker.assign(name)
        if outcome is ScopeOutcome.UNDECLARED_ASSIGN:
            if not is_builtin_token(name):
                ctx.undeclared_assign_at = start
                return [ctx.diag(
                    start, end, "error", "undeclared-assign",
                    f"Variable '{name}' is assigned before declaration. "
                    f"Use 'declare {name}' first.",
                )]
            if op in ("++", "--"):
                return [ctx.diag(
                    start, end, "error", "undeclared-var",
                    f"Variable '{name}' is not declared in this scope.",
                )]
            return []
        if outcome is ScopeOutcome.CONST_REASSIGN:
            return [ctx.diag(
                start, end, "error", "const-reassign",
                f"Cannot modify constant '{name}'.",
            )]
        return []


# ---------------------------------------------------------------------------
# Calls
# ---------------------------------------------------------------------------


class PrivilegedCommandRule(Rule):
    """``su.*`` / ``superuser.*`` commands, gated behind a ``superuser()`` call."""

    name = "privileged-command"
    codes = ("unknown-privileged-command", "privileged-without-superuser", "function-arity")

    def evaluate(self, ctx: LineContext) -> list[Diagnostic]:
        out: list[Diagnostic] = []
        for call in ctx.calls():
            if ctx.preceded_by_dot(call) or call.malformed:
                continue
            if call.name == SUPERUSER_CALL:
                ctx.doc.superuser_enabled = True
                continue
            parts = split_privileged(call.name)
            if parts is None:
                continue
            ctx.recognized = True
            head, tail = parts
            arity = PRIVILEGED_COMMANDS.get(tail)
            if arity is None:
                out.append(ctx.diag(
                    call.name_start, call.name_end, "warning", "unknown-privileged-command",
                    f"Unknown privileged command '{call.name}()'.",
                ))
            elif not arity.accepts(call.args.count):
                out.append(ctx.diag(
                    call.name_start, call.name_end, "warning", "function-arity",
                    f"'{call.name}(...)' expects {arity.describe()} argument(s), "
                    f"but {call.args.count} were supplied.",
                ))
            elif not ctx.doc.superuser_enabled:
                out.append(ctx.diag(
                    call.name_start, call.name_end, "warning", "privileged-without-superuser",
                    f"'{call.name}()' needs a 'superuser()' call earlier in the program.",
                ))
        return out


class CallRule(Rule):
    name = "calls"
    codes = (
        "malformed-call",
        "malformed-call-args",
        "builtin-case-typo",
        "unknown-function",
        "function-arity",
    )

    def evaluate(self, ctx: LineContext) -> list[Diagnostic]:
        if ctx.declaration_header:
            return []
        out: list[Diagnostic] = []
        for call in ctx.calls():
            if ctx.preceded_by_dot(call) or call.name in KEYWORDS:
                continue
            ctx.recognized = True
            span = (call.name_start, call.name_end)
            if call.malformed:
                out.append(ctx.diag(
                    *span, "warning", "malformed-call",
                    f"Call to '{call.name}' looks malformed (unbalanced parentheses).",
                ))
                continue
            if call.args.malformed or call.args.has_empty:
                out.append(ctx.diag(
                    *span, "warning", "malformed-call-args",
                    f"Arguments for '{call.name}(...)' look malformed. "
                    "Check commas and nested expressions.",
                ))
            if call.is_dotted or call.name == "printIn":
                continue

            local = ctx.tracker.resolve(call.name)
            arity = BUILTIN_ARITY.get(call.name) or ctx.doc.known_arities.get(call.name)
            if arity is None and local is None and not is_builtin_token(call.name):
                suggestion = builtin_case_match(call.name)
                if suggestion is not None:
                    out.append(ctx.diag(
                        *span, "warning", "builtin-case-typo",
                        f"'{call.name}' is not defined. Did you mean '{suggestion}'?",
                        QuickFix(
                            title=f"Replace with '{suggestion}'",
                            replacement_text=suggestion,
                        ),
                    ))
                else:
                    out.append(ctx.diag(
                        *span, "warning", "unknown-function",
                        f"'{call.name}(...)' is not a function declared in this file "
                        "or a built-in.",
                    ))
                continue
            if arity is not None and not arity.accepts(call.args.count):
                out.append(ctx.diag(
                    *span, "warning", "function-arity",
                    f"'{call.name}(...)' expects {arity.describe()} argument(s), "
                    f"but {call.args.count} were supplied.",
                ))
        return out


# ---------------------------------------------------------------------------
# Names and statements
# ---------------------------------------------------------------------------


class UndeclaredVariableRule(Rule):
    name = "undeclared-var"
    codes = ("undeclared-var",)
    severity = "error"

    def evaluate(self, ctx: LineContext) -> list[Diagnostic]:
        if ctx.declaration_header:
            return []
        code = ctx.code
        out: list[Diagnostic] = []
        for m in _TOKEN_RE.finditer(code):
            token = m.group(0)
            start, end = m.start(), m.end()
            if (
                token in ctx.declared
                or token in KEYWORDS
                or token in TYPE_NAMES
                or is_builtin_token(token)
                or start == ctx.undeclared_assign_at
            ):
                continue
            if ctx.tracker.resolve(token) is not None:
                continue
            if (start > 0 and code[start - 1] == ".") or (end < len(code) and code[end] == "."):
                continue
            prev = prev_non_ws_index(code, start - 1)
            if prev >= 0 and code[prev] == ":":
                continue
            if next_non_ws_char(code, end) == "(":
                continue
            if _AFTER_SIGNATURE_RE.search(code, 0, start):
                continue
            out.append(ctx.diag(
                start, end, "error", "undeclared-var",
                f"Variable '{token}' is used before it is declared in this scope.",
            ))
        return out


class UnknownStatementRule(Rule):
    name = "unknown-statement"
    codes = ("unknown-statement",)

    def evaluate(self, ctx: LineContext) -> list[Diagnostic]:
        if ctx.recognized or ctx.starts_closer or _LONE_BRACE_RE.match(ctx.code):
            return []
        col = first_code_col(ctx.code)
        return [ctx.diag(
            col, col + 1, "warning", "unknown-statement",
            "This line does not match any known LineScript statement.",
        )]


# ---------------------------------------------------------------------------
# Style (opt-in)
# ---------------------------------------------------------------------------


class ElseIfStyleRule(Rule):
    name = "else-if-style"
    codes = ("else-if-style",)
    severity = "hint"
    style = True

    def evaluate(self, ctx: LineContext) -> list[Diagnostic]:
        m = _ELSE_IF_RE.match(ctx.code)
        if m is None:
            return []
        start = ctx.code.find("else")
        end = m.end()
        return [ctx.diag(
            start, end, "hint", "else-if-style",
            "Style: LineScript spells 'else if' as 'elif'.",
            QuickFix(title="Replace 'else if' with 'elif'", replacement_text="elif"),
        )]


class CompareTrueRule(Rule):
    name = "compare-true"
    codes = ("compare-true",)
    severity = "hint"
    style = True

    def evaluate(self, ctx: LineContext) -> list[Diagnostic]:
        m = _TRUE_CMP_RE.search(ctx.code)
        if m is None:
            return []
        return [ctx.diag(
            m.start(), m.end(), "hint", "compare-true",
            "'== true' is redundant; the condition is already boolean.",
            QuickFix(title="Remove '== true'", replacement_text=""),
        )]


class CompareFalseRule(Rule):
    name = "compare-false"
    codes = ("compare-false",)
    severity = "hint"
    style = True

    def evaluate(self, ctx: LineContext) -> list[Diagnostic]:
        m = _FALSE_CMP_RE.search(ctx.code)
        if m is None:
            return []
        return [ctx.diag(
            m.start(), m.end(), "hint", "compare-false",
            "Prefer 'not <expr>' over '== false'.",
        )]


class CompoundAssignmentRule(Rule):
    name = "compound-assignment"
    codes = ("compound-assignment",)
    severity = "hint"
    style = True

    def evaluate(self, ctx: LineContext) -> list[Diagnostic]:
        m = _SELF_OP_RE.match(ctx.code)
        if m is None:
            return []
        lhs, op, rhs = m.group(1), m.group(2), m.group(3).strip()
        extra = ""
        if rhs == "1" and op in "+-":
            extra = f" You can also use '{op}{op}'."
        return [ctx.diag(
            m.start(1), ctx.code_end, "hint", "compound-assignment",
            f"Prefer compound assignment ('{op}=').{extra}",
            QuickFix(title=f"Use '{op}=' shorthand", replacement_text=f"{lhs} {op}= {rhs}"),
        )]


class SemicolonRule(Rule):
    name = "unneeded-semicolon"
    codes = ("unneeded-semicolon",)
    severity = "hint"
    style = True

    def evaluate(self, ctx: LineContext) -> list[Diagnostic]:
        if _SEMICOLON_RE.search(ctx.code) is None:
            return []
        col = ctx.code.rfind(";")
        return [ctx.diag(
            col, col + 1, "hint", "unneeded-semicolon",
            "Semicolons are optional in LineScript.",
            QuickFix(title="Remove trailing ';'", replacement_text=""),
        )]


class CStyleBlockRule(Rule):
    name = "c-style-block"
    codes = ("c-style-block",)
    severity = "info"
    style = True

    def evaluate(self, ctx: LineContext) -> list[Diagnostic]:
        m = _C_STYLE_RE.match(ctx.code)
        if m is None:
            return []
        return [ctx.diag(
            m.start(1), m.end(1), "info", "c-style-block",
            "Canonical LineScript blocks read 'if <cond> do ... end'.",
        )]


def opens_block(code: str) -> bool:
    return _HAS_DO_RE.search(code) is not None or _TRAILING_BRACE_RE.search(code) is not None


def block_kind(code: str) -> ScopeKind:
    return "loop" if _LOOP_HEAD_RE.match(code) else "block"


def default_rules() -> list[Rule]:
    """Every built-in rule, in evaluation order."""
    return [
        UnreachableStatementRule(),
        AssignInConditionRule(),
        PrintInTypoRule(),
        ElseIfStyleRule(),
        TripleDotRangeRule(),
        UnbalancedParensRule(),
        DivideByZeroRule(),
        DotMarkerRule(),
        BlockHeadRule(),
        ColonBlockRule(),
        ZeroStepLoopRule(),
        InputIgnoredRule(),
        CompareTrueRule(),
        CompareFalseRule(),
        CompoundAssignmentRule(),
        SemicolonRule(),
        CStyleBlockRule(),
        ClassDeclRule(),
        FunctionDeclRule(),
        FlagDeclRule(),
        DeclareRule(),
        ForLoopRule(),
        AssignmentRule(),
        ControlFlowRule(),
        PrivilegedCommandRule(),
        CallRule(),
        UndeclaredVariableRule(),
        UnknownStatementRule(),
    ]


__all__ = [
    "DocumentState",
    "FLAG_DECL_RE",
    "FUNCTION_DECL_RE",
    "LineContext",
    "Rule",
    "block_kind",
    "collect_declared_arities",
    "default_rules",
    "is_function_declaration",
    "opens_block",
]
