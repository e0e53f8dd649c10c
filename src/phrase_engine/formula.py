"""Restricted arithmetic for calculation fields.

Formulas are persisted as ``target = expression``. The expression grammar is
fixed and small::

    expr   := term (("+" | "-") term)*
    term   := factor (("*" | "/") factor)*
    factor := ("+" | "-") factor | NUMBER | NAME | "(" expr ")"

Evaluation walks a parsed tree; caller text is never handed to ``eval``.
"""

import logging
import math
import re
from typing import Any, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

TOKEN_PATTERN = re.compile(
    r"\s*(?:(?P<number>\d+(?:\.\d*)?|\.\d+)|(?P<name>[A-Za-z_]\w*)|(?P<op>[-+*/()]))"
)
IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_]\w*$")

Token = Tuple[str, str]
Node = Tuple[Any, ...]


class FormulaError(ValueError):
    """Raised when a formula falls outside the grammar or cannot be evaluated."""


def _tokenize(expression: str) -> List[Token]:
    tokens: List[Token] = []
    pos = 0
    stripped = expression.rstrip()
    while pos < len(stripped):
        match = TOKEN_PATTERN.match(stripped, pos)
        if not match:
            raise FormulaError(f"Unexpected character {stripped[pos]!r} at {pos}")
        kind = match.lastgroup
        tokens.append((kind, match.group(kind)))
        pos = match.end()
    return tokens


class _Parser:
    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.pos = 0

    def _peek(self) -> Optional[Token]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _take(self) -> Token:
        token = self._peek()
        if token is None:
            raise FormulaError("Unexpected end of formula")
        self.pos += 1
        return token

    def parse(self) -> Node:
        if not self.tokens:
            raise FormulaError("Empty formula")
        node = self._expr()
        if self._peek() is not None:
            raise FormulaError(f"Unexpected token {self._peek()[1]!r}")
        return node

    def _expr(self) -> Node:
        node = self._term()
        while self._peek() in (("op", "+"), ("op", "-")):
            op = self._take()[1]
            node = ("bin", op, node, self._term())
        return node

    def _term(self) -> Node:
        node = self._factor()
        while self._peek() in (("op", "*"), ("op", "/")):
            op = self._take()[1]
            node = ("bin", op, node, self._factor())
        return node

    def _factor(self) -> Node:
        kind, text = self._take()
        if kind == "number":
            return ("num", float(text))
        if kind == "name":
            return ("name", text)
        if text in ("+", "-"):
            operand = self._factor()
            return ("neg", operand) if text == "-" else operand
        if text == "(":
            node = self._expr()
            if self._take() != ("op", ")"):
                raise FormulaError("Unbalanced parentheses")
            return node
        raise FormulaError(f"Unexpected token {text!r}")


def _split_target(formula: str) -> Tuple[Optional[str], str]:
    parts = formula.split("=")
    if len(parts) > 2:
        raise FormulaError("Chained assignment is not allowed")
    if len(parts) == 1:
        return None, formula
    target = parts[0].strip()
    if not IDENTIFIER_PATTERN.match(target):
        raise FormulaError(f"Invalid formula target {target!r}")
    return target, parts[1]


def parse_formula(formula: str) -> Tuple[Optional[str], List[str]]:
    """Check ``formula`` against the grammar.

    Returns the (optional) target name and the distinct input names the
    expression references, in order of appearance.
    """

    target, expression = _split_target(formula or "")
    tokens = _tokenize(expression)
    _Parser(tokens).parse()
    names = [text for kind, text in tokens if kind == "name"]
    return target, list(dict.fromkeys(names))


def as_number(value: Any) -> Optional[float]:
    """Coerce ints, floats and numeric strings; anything else is not numeric."""

    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def _evaluate(node: Node, inputs: Mapping[str, Any]) -> float:
    kind = node[0]
    if kind == "num":
        return node[1]
    if kind == "name":
        if node[1] not in inputs:
            raise FormulaError(f"Unknown input {node[1]!r}")
        number = as_number(inputs[node[1]])
        if number is None:
            raise FormulaError(f"Input {node[1]!r} is not numeric")
        return number
    if kind == "neg":
        return -_evaluate(node[1], inputs)

    _, op, left_node, right_node = node
    left = _evaluate(left_node, inputs)
    right = _evaluate(right_node, inputs)
    if op == "+":
        return left + right
    if op == "-":
        return left - right
    if op == "*":
        return left * right
    if right == 0:
        raise FormulaError("Division by zero")
    return left / right


def calculate_formula(formula: str, numeric_inputs: Mapping[str, Any]) -> Optional[float]:
    """Evaluate ``formula`` over ``numeric_inputs``.

    Returns the result rounded to two decimals, or ``None`` when the formula
    is malformed, references a missing or non-numeric input, or divides by
    zero.
    """

    try:
        _, expression = _split_target(formula or "")
        tree = _Parser(_tokenize(expression)).parse()
        result = _evaluate(tree, numeric_inputs)
    except (FormulaError, RecursionError) as exc:
        logger.debug(f"Formula {formula!r} not evaluated: {exc}")
        return None
    if not math.isfinite(result):
        logger.debug(f"Formula {formula!r} produced a non-finite result")
        return None
    return round(result, 2)
