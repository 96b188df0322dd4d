# ada/compiler.py
# Compilation des templates (directives @…, {{ }}, {!! !!}) en Python
from __future__ import annotations

import ast
import re

from .exceptions import TemplateSyntaxError

# ---------------------------------------------------------------------------
# Directives reconnues
# ---------------------------------------------------------------------------
# directives sans sortie : le saut de ligne qui les suit est absorbé
_SILENT = {
    "extends", "section", "endsection",
    "if", "elseif", "else", "endif",
    "foreach", "endforeach", "for", "endfor",
}
_NEEDS_ARGS = {"extends", "section", "yield", "include", "if", "elseif", "foreach", "for"}
_DIRECTIVES = (
    "extends", "endsection", "section", "yield", "include",
    "elseif", "else", "endif", "if",
    "endforeach", "foreach", "endfor", "for", "csrf",
)

_token_re = re.compile(
    r"(?P<comment>\{\{--.*?--\}\})"
    r"|(?P<raw>\{!!(?P<raw_expr>.*?)!!\})"
    r"|(?P<echo>\{\{(?P<echo_expr>.*?)\}\})"
    r"|(?P<at>@@)"
    r"|(?<![\w@])@(?P<directive>" + "|".join(_DIRECTIVES) + r")\b",
    re.S,
)

# ouvrant → fermant
_BLOCKS = {
    "section": "endsection", "if": "endif", "else": "endif",
    "foreach": "endforeach", "for": "endfor",
}


def _scan_arguments(source: str, pos: int):
    """
    Lit « (…) » à partir de `pos` (espaces tolérés avant la parenthèse).
    Renvoie (contenu, position après ')') ou (None, pos) s'il n'y a pas
    de parenthèse. Les chaînes entre quotes sont respectées.
    """
    i = pos
    while i < len(source) and source[i] in " \t":
        i += 1
    if i >= len(source) or source[i] != "(":
        return None, pos

    depth = 0
    quote = None
    start = i + 1
    while i < len(source):
        ch = source[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in "'\"":
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return source[start:i], i + 1
        i += 1
    raise ValueError("unbalanced parenthesis")


class Compiler:
    """Transforme le source d'un template en module Python exécutable."""

    def __init__(self, name: str | None = None):
        self.name = name
        self.lines: list[str] = []
        self.depth = 0
        self.blocks: list[tuple[str, int]] = []
        self._text: list[str] = []

    # ---- émission --------------------------------------------------------
    def _emit(self, line: str) -> None:
        self._flush_text()
        self.lines.append("    " * self.depth + line)

    def _flush_text(self) -> None:
        if self._text:
            text = "".join(self._text)
            self._text = []
            self.lines.append("    " * self.depth + f"__echo({text!r})")

    def _error(self, message: str, lineno: int):
        return TemplateSyntaxError(message, self.name, lineno)

    # ---- validation des expressions --------------------------------------
    def _check_expr(self, expr: str, lineno: int) -> str:
        expr = expr.strip()
        if not expr:
            raise self._error("Empty expression", lineno)
        try:
            ast.parse(expr, mode="eval")
        except SyntaxError as e:
            raise self._error(f"Invalid expression {expr!r}: {e.msg}", lineno) from None
        return expr

    def _check_call_args(self, args: str, lineno: int, directive: str) -> int:
        try:
            call = ast.parse(f"_f({args})", mode="eval").body
        except SyntaxError as e:
            raise self._error(f"Invalid arguments for @{directive}: {e.msg}", lineno) from None
        return len(call.args) + len(call.keywords)

    def _check_loop(self, args: str, lineno: int, directive: str) -> str:
        args = " ".join(args.strip().splitlines())
        try:
            tree = ast.parse(f"for {args}:\n    pass\n")
        except SyntaxError:
            raise self._error(
                f"@{directive} expects 'item in items', got {args!r}", lineno
            ) from None
        if not (len(tree.body) == 1 and isinstance(tree.body[0], ast.For)):
            raise self._error(f"@{directive} expects 'item in items'", lineno)
        return args

    # ---- blocs ----------------------------------------------------------------
    def _open(self, kind: str, lineno: int) -> None:
        self.blocks.append((kind, lineno))

    def _close(self, directive: str, lineno: int) -> None:
        if not self.blocks:
            raise self._error(f"@{directive} without matching opening directive", lineno)
        kind, opened_at = self.blocks.pop()
        if _BLOCKS[kind] != directive:
            raise self._error(
                f"@{directive} found but @{kind} (line {opened_at}) is still open", lineno
            )

    # ---- compilation ------------------------------------------------------
    def compile(self, source: str) -> str:
        pos = 0
        skip_newline = False
        while True:
            m = _token_re.search(source, pos)
            if m is None:
                break
            text = source[pos:m.start()]
            if skip_newline:
                text = _strip_newline(text)
                skip_newline = False
            if text:
                self._text.append(text)

            lineno = source.count("\n", 0, m.start()) + 1
            pos = m.end()

            if m.group("comment"):
                continue
            if m.group("at"):
                self._text.append("@")
                continue
            if m.group("raw") is not None:
                expr = self._check_expr(m.group("raw_expr"), lineno)
                self._emit(f"__echo(__raw({expr}))")
                continue
            if m.group("echo") is not None:
                expr = self._check_expr(m.group("echo_expr"), lineno)
                self._emit(f"__echo(__escape({expr}))")
                continue

            directive = m.group("directive")
            args = None
            if directive in _NEEDS_ARGS:
                try:
                    args, pos = _scan_arguments(source, pos)
                except ValueError:
                    raise self._error(f"Unbalanced parenthesis after @{directive}", lineno) from None
                if args is None or not args.strip():
                    raise self._error(f"@{directive} requires arguments", lineno)

            self._directive(directive, args, lineno)
            skip_newline = directive in _SILENT

        tail = source[pos:]
        if skip_newline:
            tail = _strip_newline(tail)
        if tail:
            self._text.append(tail)
        self._flush_text()

        if self.blocks:
            kind, lineno = self.blocks[-1]
            raise self._error(f"Unclosed @{kind}, expected @{_BLOCKS[kind]}", lineno)

        header = [f"# compiled template: {self.name or '<string>'}"]
        return "\n".join(header + (self.lines or ["pass"])) + "\n"

    def _directive(self, directive: str, args, lineno: int) -> None:
        if directive == "extends":
            if self._check_call_args(args, lineno, directive) != 1:
                raise self._error("@extends takes exactly one argument", lineno)
            self._emit(f"__extend({args})")

        elif directive == "section":
            count = self._check_call_args(args, lineno, directive)
            if count == 1:
                self._emit(f"__start_section({args})")
                self._open("section", lineno)
            elif count == 2:
                self._emit(f"__set_section({args})")
            else:
                raise self._error("@section takes one or two arguments", lineno)

        elif directive == "endsection":
            self._close(directive, lineno)
            self._emit("__end_section()")

        elif directive == "yield":
            if self._check_call_args(args, lineno, directive) not in (1, 2):
                raise self._error("@yield takes one or two arguments", lineno)
            self._emit(f"__echo(__yield({args}))")

        elif directive == "include":
            if self._check_call_args(args, lineno, directive) not in (1, 2):
                raise self._error("@include takes one or two arguments", lineno)
            self._emit(f"__echo(__include(globals(), {args}))")

        elif directive == "csrf":
            self._emit("__echo(csrf_field())")

        elif directive == "if":
            expr = self._check_expr(args, lineno)
            self._emit(f"if ({expr}):")
            self._open("if", lineno)
            self.depth += 1
            self._emit("pass")

        elif directive in ("elseif", "else"):
            kind, opened_at = self.blocks[-1] if self.blocks else (None, None)
            if kind == "else":
                raise self._error(f"@{directive} after @else (line {opened_at})", lineno)
            if kind != "if":
                raise self._error(f"@{directive} outside of @if", lineno)
            self._flush_text()
            self.depth -= 1
            if directive == "elseif":
                self._emit(f"elif ({self._check_expr(args, lineno)}):")
            else:
                self._emit("else:")
                # le bloc @if ouvert devient un bloc @else
                self.blocks[-1] = ("else", lineno)
            self.depth += 1
            self._emit("pass")

        elif directive in ("foreach", "for"):
            loop = self._check_loop(args, lineno, directive)
            self._emit(f"for {loop}:")
            self._open(directive, lineno)
            self.depth += 1
            self._emit("pass")

        elif directive in ("endif", "endforeach", "endfor"):
            self._close(directive, lineno)
            self._flush_text()
            self.depth -= 1


def _strip_newline(text: str) -> str:
    if text.startswith("\r\n"):
        return text[2:]
    if text.startswith("\n"):
        return text[1:]
    return text


def compile_template(source: str, name: str | None = None) -> str:
    """Source du template → source Python (exécutée par `View`)."""
    return Compiler(name).compile(source)
