"""
Service Support Checker
=======================

Decides whether a system can price a service.

A formula references variables by name. The ones that look like cost
components (``ingestion_cost_per_gb``, ``search_query_price``, ...) must be
declared by the system; usage variables like ``data_volume_gb`` come from the
user and are not part of the check. A service whose formula needs a cost
component the system does not declare is *unsupported* for that system and is
left out of its total instead of being priced at 0.
"""

import re
from typing import Any, Iterable, List, Mapping, Set

from estimator.calculation.types import (
    ConditionalFormula,
    Constant,
    Expression,
    MultiplierFormula,
    NullFormula,
    SumFormula,
    TieredFormula,
    VariableRef,
    parse_formula,
)
from estimator.constants import COST_VARIABLE_MARKERS, VARIABLE_SIGIL

_REFERENCE_PATTERN = re.compile(re.escape(VARIABLE_SIGIL) + r"(\w+)")


def _names_in_text(text: str) -> Set[str]:
    return set(_REFERENCE_PATTERN.findall(text))


def extract_variables(formula: Any) -> Set[str]:
    """
    Collect every variable name a formula refers to, recursively.

    Covers ``$name`` tokens in strings as well as the variables named by
    tiered (``volumeVar``), multiplier and conditional definitions.
    """
    parsed = parse_formula(formula)

    if isinstance(parsed, VariableRef):
        return {parsed.name}
    if isinstance(parsed, Expression):
        return _names_in_text(parsed.text)
    if isinstance(parsed, TieredFormula):
        names = {parsed.volume_var} if parsed.volume_var else set()
        for tier in parsed.tiers:
            if isinstance(tier.rate, str):
                names |= _names_in_text(tier.rate)
        return names
    if isinstance(parsed, MultiplierFormula):
        names = _names_in_text(parsed.base)
        names |= {entry.variable for entry in parsed.multipliers if entry.variable}
        return names
    if isinstance(parsed, ConditionalFormula):
        names = set()
        for branch in parsed.branches:
            if branch.condition.variable:
                names.add(branch.condition.variable)
            names |= extract_variables(branch.then)
        names |= extract_variables(parsed.otherwise)
        return names
    if isinstance(parsed, SumFormula):
        names = set()
        for member in parsed.members:
            names |= extract_variables(member)
        return names
    if isinstance(parsed, (Constant, NullFormula)):
        return set()
    raise TypeError(f"Unhandled formula variant: {type(parsed).__name__}")


def is_cost_variable(name: str, markers: Iterable[str] = COST_VARIABLE_MARKERS) -> bool:
    """True if the name contains one of the cost-component markers."""
    return any(marker in name for marker in markers)


def required_cost_variables(formula: Any) -> Set[str]:
    """Cost-component variables a system must declare to price this formula."""
    return {name for name in extract_variables(formula) if is_cost_variable(name)}


def missing_cost_variables(formula: Any, system_components: Mapping[str, Any]) -> List[str]:
    """Sorted list of required cost components the system does not declare."""
    return sorted(name for name in required_cost_variables(formula) if name not in system_components)


def is_service_supported(formula: Any, system_components: Mapping[str, Any]) -> bool:
    """
    A service is supported iff every required cost component is a key of the
    system's components. Values are not inspected.
    """
    return not missing_cost_variables(formula, system_components)
