"""Formula parser: tokenizer, recursive descent, and reference extraction."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal as _Literal
from typing import Union

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class FormulaError(ValueError):
    """Base class for formula parse and evaluation failures."""


class FormulaParseError(FormulaError):
    """Malformed formula text: unexpected token or premature end."""


# ---------------------------------------------------------------------------
# Expression tree
# ---------------------------------------------------------------------------

BinaryOp = _Literal["+", "-", "*", "/"]


@dataclass(frozen=True)
class Literal:
    value: float | str | bool


@dataclass(frozen=True)
class Ref:
    cell: str


@dataclass(frozen=True)
class Binary:
    op: BinaryOp
    left: Expr
    right: Expr


@dataclass(frozen=True)
class Call:
    fn: str
    args: tuple[Expr, ...] = ()


Expr = Union[Literal, Ref, Binary, Call]

# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------

# Order matters: cell refs (A1) must win over identifiers (SUM).
_TOKEN_RE = re.compile(
    r"\s*(?:"
    r"(?P<ref>[A-Za-z]+[0-9]+)(?![A-Za-z0-9_])"
    r"|(?P<ident>[A-Za-z_][A-Za-z0-9_]*)"
    r"|(?P<number>[0-9]+(?:\.[0-9]+)?)"
    r"|(?P<symbol>[()=,+*/-])"
    r")"
)
_CELL_REF_RE = re.compile(r"^[A-Za-z]+[0-9]+$")
_NUMBER_RE = re.compile(r"^[0-9]+(?:\.[0-9]+)?$")
_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def tokenize(text: str) -> list[str]:
    """Split formula text into tokens, dropping whitespace."""
    tokens: list[str] = []
    pos = 0
    length = len(text)
    while pos < length:
        if text[pos].isspace():
            pos += 1
            continue
        m = _TOKEN_RE.match(text, pos)
        if m is None or m.lastgroup is None:
            raise FormulaParseError(f"Unexpected character: {text[pos]}")
        tokens.append(m.group(m.lastgroup))
        pos = m.end()
    return tokens


# ---------------------------------------------------------------------------
# Recursive descent
# ---------------------------------------------------------------------------


class _Parser:
    """One-token-lookahead parser over a token list.

    Grammar (precedence low to high)::

        expression := term (('+' | '-') term)*
        term       := factor (('*' | '/') factor)*
        factor     := NUMBER | TRUE | FALSE | CELLREF
                    | FUNCNAME '(' (expression (',' expression)*)? ')'
                    | '(' expression ')'
    """

    __slots__ = ("_tokens", "_index")

    def __init__(self, tokens: list[str]) -> None:
        self._tokens = tokens
        self._index = 0

    def peek(self) -> str | None:
        if self._index < len(self._tokens):
            return self._tokens[self._index]
        return None

    def consume(self) -> str:
        token = self.peek()
        if token is None:
            raise FormulaParseError("Unexpected end of formula")
        self._index += 1
        return token

    def parse(self) -> Expr:
        expr = self.expression()
        leftover = self.peek()
        if leftover is not None:
            raise FormulaParseError(f"Unexpected token: {leftover}")
        return expr

    def expression(self) -> Expr:
        node = self.term()
        while self.peek() in ("+", "-"):
            op = self.consume()
            node = Binary(op, node, self.term())
        return node

    def term(self) -> Expr:
        node = self.factor()
        while self.peek() in ("*", "/"):
            op = self.consume()
            node = Binary(op, node, self.factor())
        return node

    def factor(self) -> Expr:
        token = self.peek()
        if token is None:
            raise FormulaParseError("Unexpected end of formula")

        if token == "(":
            self.consume()
            expr = self.expression()
            self._expect_close()
            return expr

        if _NUMBER_RE.match(token):
            self.consume()
            return Literal(float(token))

        upper = token.upper()
        if upper == "TRUE":
            self.consume()
            return Literal(True)
        if upper == "FALSE":
            self.consume()
            return Literal(False)

        if _CELL_REF_RE.match(token):
            self.consume()
            return Ref(upper)

        if _IDENT_RE.match(token):
            self.consume()
            if self.peek() != "(":
                raise FormulaParseError("Expected call syntax")
            self.consume()
            args: list[Expr] = []
            if self.peek() != ")":
                args.append(self.expression())
                while self.peek() == ",":
                    self.consume()
                    args.append(self.expression())
            self._expect_close()
            return Call(upper, tuple(args))

        raise FormulaParseError(f"Unexpected token: {token}")

    def _expect_close(self) -> None:
        if self.consume() != ")":
            raise FormulaParseError("Expected closing parenthesis")


def parse_formula(text: str) -> Expr:
    """Parse formula text (without the leading ``=``) into an expression tree.

    Raises :class:`FormulaParseError` on malformed input, including empty text
    and nesting deeper than the interpreter stack allows.
    """
    tokens = tokenize(text)
    try:
        return _Parser(tokens).parse()
    except RecursionError as e:
        raise FormulaParseError("Formula nested too deeply") from e


# Name used by the host page.
parse_expr_from_string = parse_formula

# ---------------------------------------------------------------------------
# Reference extraction
# ---------------------------------------------------------------------------


def references(expr: Expr) -> set[str]:
    """Every cell id read by *expr*, through binary and call subtrees."""
    refs: set[str] = set()
    stack: list[Expr] = [expr]
    while stack:
        node = stack.pop()
        if isinstance(node, Ref):
            refs.add(node.cell)
        elif isinstance(node, Binary):
            stack.append(node.left)
            stack.append(node.right)
        elif isinstance(node, Call):
            stack.extend(node.args)
    return refs
