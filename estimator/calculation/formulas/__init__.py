"""
Core Formulas Package
=====================

Formula evaluation for the cost estimator.

This package exports:
- evaluate_formula (dispatcher for every formula shape)
- tiered_cost
- multiplier_cost
- conditional_cost
- sum_cost
- compare (condition operators)
"""

from .core_formulas import (
    evaluate_formula,
    tiered_cost,
    multiplier_cost,
    conditional_cost,
    sum_cost,
    compare,
)

__all__ = [
    "evaluate_formula",
    "tiered_cost",
    "multiplier_cost",
    "conditional_cost",
    "sum_cost",
    "compare",
]
