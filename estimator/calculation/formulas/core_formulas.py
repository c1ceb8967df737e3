"""
Formula Evaluation Strategies
=============================

Pure functions that turn a formula definition plus a variable context into
a cost value. ``evaluate_formula`` dispatches on the formula's type and the
structured strategies recurse back into it for nested terms.

The strategies are:
- Tiered: Σ min(remaining, limit) × rate, bracket by bracket
- Multiplier: base × Π factor^(value - 1) for every value > 1
- Conditional: first matching branch, otherwise the else clause
- Sum: Σ members (untagged mappings)

None of the functions mutate the formula or the context.
"""

import math
from typing import Any, Mapping

from estimator.calculation.expression import evaluate_expression
from estimator.calculation.types import (
    ConditionalFormula,
    Comparison,
    Constant,
    Expression,
    MultiplierFormula,
    NullFormula,
    SumFormula,
    TieredFormula,
    VariableRef,
    parse_formula,
)
from estimator.logger import logger
from estimator.utils import is_number, to_number


def _lookup(context: Mapping[str, Any], name: str):
    """JavaScript-style ``context[name] || undefined``: falsy values count as absent."""
    value = context.get(name)
    if not value and value != "0":
        return None
    if is_number(value) and math.isnan(value):
        return None
    return value


def _resolve_numeric(context: Mapping[str, Any], name: str, default: float) -> float:
    value = _lookup(context, name)
    if value is None:
        return default
    return to_number(value, default=0.0)


# =============================================================================
# Dispatcher
# =============================================================================

def evaluate_formula(formula: Any, context: Mapping[str, Any]) -> float:
    """
    Evaluate any formula definition against a variable context.

    Args:
        formula: A raw configuration value or an already parsed ``Formula``
        context: Variable name -> value mapping

    Returns:
        The formula's cost value

    Raises:
        FormulaError: If the definition uses an unknown formula type
    """
    parsed = parse_formula(formula)

    if isinstance(parsed, Constant):
        return parsed.value
    if isinstance(parsed, VariableRef):
        return _resolve_numeric(context, parsed.name, default=0.0)
    if isinstance(parsed, Expression):
        return evaluate_expression(parsed.text, context)
    if isinstance(parsed, TieredFormula):
        return tiered_cost(parsed, context)
    if isinstance(parsed, MultiplierFormula):
        return multiplier_cost(parsed, context)
    if isinstance(parsed, ConditionalFormula):
        return conditional_cost(parsed, context)
    if isinstance(parsed, SumFormula):
        return sum_cost(parsed, context)
    if isinstance(parsed, NullFormula):
        return 0.0
    raise TypeError(f"Unhandled formula variant: {type(parsed).__name__}")


# =============================================================================
# Structured Strategies
# =============================================================================

def tiered_cost(formula: TieredFormula, context: Mapping[str, Any]) -> float:
    """
    Tiered pricing: each bracket consumes volume at its own rate.

    Formula: Σ min(remaining, limit_i) × rate_i

    Brackets are walked in declared order and never re-sorted. A bracket
    without a limit absorbs the whole remainder, so it belongs last.

    Example:
        tiers = [{limit: 1000, rate: 0.025}, {limit: null, rate: 0.015}]
        volume = 1500 -> 1000 × 0.025 + 500 × 0.015 = 32.5
    """
    volume = _resolve_numeric(context, formula.volume_var, default=0.0)

    total_cost = 0.0
    remaining = volume

    for tier in formula.tiers:
        if remaining <= 0:
            break

        units_in_tier = min(remaining, tier.limit or remaining)

        rate = tier.rate
        if isinstance(rate, str):
            rate = evaluate_expression(rate, context)

        total_cost += units_in_tier * rate
        remaining -= units_in_tier

    return total_cost


def multiplier_cost(formula: MultiplierFormula, context: Mapping[str, Any]) -> float:
    """
    Multiplier pricing with exponential stacking.

    Formula: base × Π factor_i^(value_i - 1)   for every value_i > 1

    A context value of 1 (or a missing value) leaves the cost unchanged,
    2 applies the factor once, 3 applies it squared.

    Example:
        base = 100, factor = 1.5, value = 3 -> 100 × 1.5² = 225
    """
    base_value = evaluate_expression(formula.base, context)

    multiplier = 1.0
    for entry in formula.multipliers:
        level = _resolve_numeric(context, entry.variable, default=1.0)
        if level > 1:
            try:
                multiplier *= math.pow(entry.factor, level - 1)
            except OverflowError:
                multiplier = math.inf
            except ValueError:
                multiplier = math.nan
        logger.debug(f"Multiplier {entry.variable}: {level}, factor: {entry.factor}")

    result = base_value * multiplier
    if math.isnan(result):
        logger.warning(f"Multiplier formula produced NaN (base={base_value}, multiplier={multiplier}), using 0")
        return 0.0
    return result


def compare(left: Any, operator: str, right: Any) -> bool:
    """
    Compare a context value against a literal.

    ``==`` and ``!=`` are coercive: ``"5" == 5`` holds. Ordering operators
    compare numerically and are false whenever a side is not numeric.
    Unknown operators never match.
    """
    if operator in ("==", "!="):
        equal = _loose_equals(left, right)
        return equal if operator == "==" else not equal

    left_number = _as_comparable_number(left)
    right_number = _as_comparable_number(right)
    if left_number is None or right_number is None:
        return False

    if operator == ">":
        return left_number > right_number
    if operator == ">=":
        return left_number >= right_number
    if operator == "<":
        return left_number < right_number
    if operator == "<=":
        return left_number <= right_number

    logger.warning(f"Unknown comparison operator '{operator}', treating condition as false")
    return False


def _as_comparable_number(value: Any):
    if value is None:
        return 0.0
    if isinstance(value, bool) or is_number(value):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if text == "":
            return 0.0
        try:
            return float(text)
        except ValueError:
            return None
    return None


def _loose_equals(left: Any, right: Any) -> bool:
    if left is None or right is None:
        return left is None and right is None
    left_number = _as_comparable_number(left)
    right_number = _as_comparable_number(right)
    if isinstance(left, str) and isinstance(right, str):
        return left == right
    if left_number is not None and right_number is not None:
        return left_number == right_number
    return str(left) == str(right)


def evaluate_condition(condition: Comparison, context: Mapping[str, Any]) -> bool:
    value = _lookup(context, condition.variable)
    if value is None:
        value = 0
    return compare(value, condition.operator, condition.value)


def conditional_cost(formula: ConditionalFormula, context: Mapping[str, Any]) -> float:
    """
    Conditional pricing: the first branch whose condition holds wins.

    Later branches are not consulted even if they would also match. When
    no branch matches the ``else`` clause is evaluated (0 if absent).
    """
    for branch in formula.branches:
        if evaluate_condition(branch.condition, context):
            return evaluate_formula(branch.then, context)

    return evaluate_formula(formula.otherwise, context)


def sum_cost(formula: SumFormula, context: Mapping[str, Any]) -> float:
    """
    Default strategy for untagged mappings.

    Formula: Σ members (numbers literally, everything else recursively)
    """
    return sum(evaluate_formula(member, context) for member in formula.members)
