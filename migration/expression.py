"""
Arithmetic expression parser and evaluator for calibration polynomials.

Supports the narrow grammar used by parameter polynomials:

    expression := term (("+" | "-") term)*
    term       := unary (("*" | "/") unary)*
    unary      := ("-" | "+") unary | power
    power      := primary ("^" unary)?
    primary    := NUMBER | IDENTIFIER | "(" expression ")"

``^`` is right-associative and binds tighter than unary minus, so
``-2^2 == -4`` and ``2^3^2 == 512``. Parsed expressions are immutable and
cached per source string, so a polynomial shared by many readings is parsed
once per process.
"""

import functools
import math
import re
from typing import Dict, FrozenSet, List, Mapping, NamedTuple, Optional

from core.exceptions import (
    ExpressionSyntaxError,
    UnboundVariableError,
    ExpressionEvaluationError,
)

_TOKEN_PATTERN = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<number>(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?)
  | (?P<ident>[A-Za-z_][A-Za-z0-9_]*)
  | (?P<op>[-+*/^()])
    """,
    re.VERBOSE,
)


class Token(NamedTuple):
    kind: str
    text: str
    position: int


def tokenize(text: str) -> List[Token]:
    """Split an expression into number, identifier and operator tokens."""
    tokens = []
    position = 0
    while position < len(text):
        match = _TOKEN_PATTERN.match(text, position)
        if match is None:
            raise ExpressionSyntaxError(
                f"Unexpected character {text[position]!r}",
                context={"expression": text, "position": position},
            )
        kind = match.lastgroup
        if kind != "ws":
            tokens.append(Token(kind, match.group(), position))
        position = match.end()
    tokens.append(Token("end", "", len(text)))
    return tokens


# ============================================================================
# AST
# ============================================================================

class Node:
    def evaluate(self, variables: Mapping[str, float]) -> float:
        raise NotImplementedError

    def variables(self) -> FrozenSet[str]:
        return frozenset()


class Number(Node):
    def __init__(self, value: float):
        self.value = value

    def evaluate(self, variables):
        return self.value

    def __repr__(self):
        return f"Number({self.value!r})"


class Variable(Node):
    def __init__(self, name: str):
        self.name = name

    def evaluate(self, variables):
        try:
            return float(variables[self.name])
        except KeyError:
            raise UnboundVariableError(
                f"Undefined symbol {self.name}",
                context={"variable": self.name},
            ) from None

    def variables(self):
        return frozenset([self.name])

    def __repr__(self):
        return f"Variable({self.name!r})"


class UnaryOp(Node):
    def __init__(self, op: str, operand: Node):
        self.op = op
        self.operand = operand

    def evaluate(self, variables):
        value = self.operand.evaluate(variables)
        return -value if self.op == "-" else value

    def variables(self):
        return self.operand.variables()

    def __repr__(self):
        return f"UnaryOp({self.op!r}, {self.operand!r})"


class BinaryOp(Node):
    def __init__(self, op: str, left: Node, right: Node):
        self.op = op
        self.left = left
        self.right = right

    def evaluate(self, variables):
        left = self.left.evaluate(variables)
        right = self.right.evaluate(variables)
        if self.op == "+":
            return left + right
        if self.op == "-":
            return left - right
        if self.op == "*":
            return left * right
        if self.op == "/":
            if right == 0:
                raise ExpressionEvaluationError("Division by zero", context={"left": left})
            return left / right
        try:
            result = left ** right
        except (OverflowError, ZeroDivisionError) as e:
            raise ExpressionEvaluationError(
                "Invalid power operation",
                context={"base": left, "exponent": right},
                original_exception=e,
            )
        if isinstance(result, complex):
            raise ExpressionEvaluationError(
                "Power operation has no real result",
                context={"base": left, "exponent": right},
            )
        return result

    def variables(self):
        return self.left.variables() | self.right.variables()

    def __repr__(self):
        return f"BinaryOp({self.op!r}, {self.left!r}, {self.right!r})"


# ============================================================================
# Parser
# ============================================================================

class Parser:
    """Recursive-descent parser over the token stream of one expression."""

    def __init__(self, text: str):
        self.text = text
        self.tokens = tokenize(text)
        self.index = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.index]

    def _advance(self) -> Token:
        token = self.tokens[self.index]
        self.index += 1
        return token

    def _accept(self, *ops: str) -> Optional[Token]:
        if self.current.kind == "op" and self.current.text in ops:
            return self._advance()
        return None

    def _error(self, message: str) -> ExpressionSyntaxError:
        return ExpressionSyntaxError(
            message,
            context={"expression": self.text, "position": self.current.position},
        )

    def parse(self) -> Node:
        if self.current.kind == "end":
            raise self._error("Empty expression")
        node = self._expression()
        if self.current.kind != "end":
            raise self._error(f"Unexpected token {self.current.text!r}")
        return node

    def _expression(self) -> Node:
        node = self._term()
        while True:
            token = self._accept("+", "-")
            if token is None:
                return node
            node = BinaryOp(token.text, node, self._term())

    def _term(self) -> Node:
        node = self._unary()
        while True:
            token = self._accept("*", "/")
            if token is None:
                return node
            node = BinaryOp(token.text, node, self._unary())

    def _unary(self) -> Node:
        token = self._accept("-", "+")
        if token is not None:
            return UnaryOp(token.text, self._unary())
        return self._power()

    def _power(self) -> Node:
        base = self._primary()
        if self._accept("^"):
            return BinaryOp("^", base, self._unary())
        return base

    def _primary(self) -> Node:
        token = self.current
        if token.kind == "number":
            self._advance()
            return Number(float(token.text))
        if token.kind == "ident":
            self._advance()
            return Variable(token.text)
        if self._accept("("):
            node = self._expression()
            if not self._accept(")"):
                raise self._error("Expected ')'")
            return node
        if token.kind == "end":
            raise self._error("Unexpected end of expression")
        raise self._error(f"Unexpected token {token.text!r}")


class Expression:
    """A parsed expression ready to be evaluated against variable bindings."""

    def __init__(self, text: str, root: Node):
        self.text = text
        self.root = root

    @property
    def variables(self) -> FrozenSet[str]:
        return self.root.variables()

    def evaluate(self, variables: Optional[Mapping[str, float]] = None) -> float:
        try:
            result = self.root.evaluate(variables or {})
        except (UnboundVariableError, ExpressionEvaluationError) as e:
            e.context.setdefault("expression", self.text)
            raise
        except RecursionError:
            raise ExpressionEvaluationError(
                "Expression is nested too deeply",
                context={"expression": self.text},
            ) from None
        if math.isnan(result):
            raise ExpressionEvaluationError(
                "Expression evaluated to NaN",
                context={"expression": self.text},
            )
        return result

    def __repr__(self):
        return f"Expression({self.text!r})"


@functools.lru_cache(maxsize=512)
def parse_expression(text: str) -> Expression:
    """Parse ``text`` once; repeated calls with the same string hit the cache."""
    try:
        root = Parser(text).parse()
    except RecursionError:
        raise ExpressionSyntaxError(
            "Expression is nested too deeply",
            context={"expression": text},
        ) from None
    return Expression(text, root)


def evaluate_expression(text: str, variables: Dict[str, float]) -> float:
    return parse_expression(text).evaluate(variables)
