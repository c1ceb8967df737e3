"""
Expression Evaluator
====================

Evaluates free-form formula strings such as
``"$data_volume_gb * $ingestion_cost_per_gb + 25"``.

The evaluation runs in four steps:
1. Substitute ``$variable`` references with their context values
   (longest variable name first, so ``$rate`` never eats ``$rate_advanced``).
2. Replace references that are still unresolved with 0 (logged as warning).
3. Strip every character that is not a digit, ``+ - * / ( ) .`` or whitespace.
4. Parse and evaluate the remaining arithmetic with a small
   recursive-descent parser.

Configuration strings are never handed to ``eval`` or any other general
purpose code evaluator. Anything that is not arithmetic is removed in
step 3, and anything the grammar does not accept evaluates to 0.
"""

import math
import re
from typing import Any, List, Mapping, Tuple

from estimator.constants import VARIABLE_SIGIL
from estimator.logger import logger
from estimator.utils import format_number, is_number

_UNRESOLVED_VARIABLE_PATTERN = re.compile(re.escape(VARIABLE_SIGIL) + r"(\w+)")
_UNSAFE_CHARACTERS_PATTERN = re.compile(r"[^0-9+\-*/().\s]")
_TOKEN_PATTERN = re.compile(r"\s*(?:(\d+\.?\d*|\.\d+)|(\S))")

# Deeply nested parentheses are rejected rather than recursed into.
MAX_NESTING_DEPTH = 100


class ExpressionSyntaxError(ValueError):
    """Raised by the parser for input outside the arithmetic grammar."""


# =============================================================================
# Substitution & Sanitising
# =============================================================================

def _format_value(value: Any) -> str:
    if is_number(value):
        return format_number(float(value))
    return str(value)


def substitute_variables(expression: str, context: Mapping[str, Any]) -> str:
    """
    Replace ``$name`` references with context values.

    Keys are substituted in descending length order. Empty keys are
    ignored. ``None`` values are skipped, so those references fall through
    to the unresolved handling.
    """
    processed = expression
    for key in sorted(context, key=len, reverse=True):
        value = context[key]
        if not key or value is None:
            continue
        pattern = re.compile(re.escape(VARIABLE_SIGIL + key) + r"\b")
        replacement = _format_value(value)
        processed = pattern.sub(lambda _match: replacement, processed)
    return processed


def replace_unresolved_variables(expression: str) -> Tuple[str, List[str]]:
    """
    Replace every remaining ``$name`` token with ``0``.

    Returns:
        Tuple of (processed expression, list of unresolved variable names)
    """
    unresolved = _UNRESOLVED_VARIABLE_PATTERN.findall(expression)
    if not unresolved:
        return expression, []

    for name in unresolved:
        logger.warning(f"Setting missing variable {name} to 0")
    return _UNRESOLVED_VARIABLE_PATTERN.sub("0", expression), unresolved


def sanitize_expression(expression: str) -> str:
    """Remove every character that is not part of plain arithmetic."""
    return _UNSAFE_CHARACTERS_PATTERN.sub("", expression)


# =============================================================================
# Arithmetic Parser
# =============================================================================

def _tokenize(text: str) -> List[str]:
    tokens = []
    position = 0
    text = text.rstrip()
    while position < len(text):
        match = _TOKEN_PATTERN.match(text, position)
        if match is None:
            break
        number, symbol = match.groups()
        tokens.append(number if number is not None else symbol)
        position = match.end()
    return tokens


class ArithmeticParser:
    """
    Recursive-descent parser for the restricted arithmetic grammar::

        expr   := term (('+' | '-') term)*
        term   := factor (('*' | '/') factor)*
        factor := ('+' | '-') factor | NUMBER | '(' expr ')'

    The parser evaluates while it parses, there is no intermediate tree.
    """

    def __init__(self, text: str):
        self.tokens = _tokenize(text)
        self.position = 0
        self.depth = 0

    def parse(self) -> float:
        if not self.tokens:
            raise ExpressionSyntaxError("Empty expression")
        value = self._expr()
        if self.position != len(self.tokens):
            raise ExpressionSyntaxError(
                f"Unexpected token '{self.tokens[self.position]}' at position {self.position}"
            )
        return value

    def _peek(self):
        if self.position < len(self.tokens):
            return self.tokens[self.position]
        return None

    def _advance(self) -> str:
        token = self._peek()
        if token is None:
            raise ExpressionSyntaxError("Unexpected end of expression")
        self.position += 1
        return token

    def _expr(self) -> float:
        value = self._term()
        while self._peek() in ("+", "-"):
            operator = self._advance()
            right = self._term()
            value = value + right if operator == "+" else value - right
        return value

    def _term(self) -> float:
        value = self._factor()
        while self._peek() in ("*", "/"):
            operator = self._advance()
            right = self._factor()
            value = value * right if operator == "*" else value / right
        return value

    def _factor(self) -> float:
        self.depth += 1
        if self.depth > MAX_NESTING_DEPTH:
            raise ExpressionSyntaxError("Expression nested too deeply")
        try:
            token = self._advance()
            if token == "+":
                return self._factor()
            if token == "-":
                return -self._factor()
            if token == "(":
                value = self._expr()
                if self._advance() != ")":
                    raise ExpressionSyntaxError("Expected ')'")
                return value
            if token[0].isdigit() or (token[0] == "." and len(token) > 1):
                return float(token)
            raise ExpressionSyntaxError(f"Unexpected token '{token}'")
        finally:
            self.depth -= 1


def evaluate_arithmetic(text: str) -> float:
    """Evaluate a sanitised arithmetic string. Raises on invalid input."""
    return ArithmeticParser(text).parse()


# =============================================================================
# Public API
# =============================================================================

def evaluate_expression(expression: str, context: Mapping[str, Any]) -> float:
    """
    Evaluate a formula expression string against a variable context.

    Args:
        expression: Expression text with ``$variable`` references
        context: Variable name -> value mapping

    Returns:
        The numeric result, or 0 for empty, invalid or non-finite results
    """
    logger.debug(f"Evaluating expression: {expression}")

    processed = substitute_variables(expression, context)
    processed, unresolved = replace_unresolved_variables(processed)
    if unresolved:
        logger.warning(f"Unreplaced variables found: {unresolved}")

    safe_expression = sanitize_expression(processed)
    logger.debug(f"Safe expression: {safe_expression}")

    if safe_expression.strip() == "":
        logger.warning(f"Empty expression after processing: '{expression}'")
        return 0.0

    try:
        result = evaluate_arithmetic(safe_expression)
    except (ExpressionSyntaxError, ZeroDivisionError, OverflowError) as e:
        logger.error(f"Error evaluating expression '{expression}': {e}")
        return 0.0

    if not math.isfinite(result):
        logger.warning(f"Expression '{expression}' produced a non-finite result, using 0")
        return 0.0
    return result
