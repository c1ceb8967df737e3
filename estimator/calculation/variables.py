"""
Variable Context Construction
=============================

Builds the variable maps the engine evaluates formulas against.

Precedence, lowest first:
    system components < global variables < per-service parameters

Global variables are themselves layered:
    service defaults < base costs < multiplier selections < explicit variables

Contexts are returned as read-only mappings and rebuilt for every
calculation, nothing is kept between calls.
"""

from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, TYPE_CHECKING

from estimator.constants import MULTIPLIER_SELECTORS
from estimator.logger import logger
from estimator.utils import to_number

if TYPE_CHECKING:
    from estimator.config_loader import CostConfig


def resolve_multiplier(multiplier_tables: Mapping[str, Any], table_name: str, choice: Optional[str]) -> float:
    """
    Look up a factor in a named multiplier table.

    Table entries may be plain numbers or mappings with a ``multiplier`` key:

        contract_multipliers: {monthly: 1.0, annual: 0.85}
        volume_multipliers: {small: {multiplier: 1.0, max_gb: 1000}}

    Unknown tables or choices resolve to 1.
    """
    table = multiplier_tables.get(table_name) or {}
    entry = table.get(choice) if choice is not None else None

    if isinstance(entry, dict):
        entry = entry.get("multiplier")
    if entry is None:
        if choice is not None:
            logger.debug(f"No multiplier '{choice}' in {table_name}, using 1")
        return 1.0
    value = to_number(entry, default=1.0)
    return value or 1.0


def resolve_multiplier_variables(
    multiplier_tables: Mapping[str, Any],
    selections: Optional[Mapping[str, str]] = None
) -> Dict[str, float]:
    """
    Turn selector choices (e.g. ``{"contractType": "annual"}``) into
    multiplier variables (e.g. ``{"contract_multiplier": 0.85}``).

    Every known selector produces its variable, unselected ones resolve to 1.
    """
    selections = selections or {}
    resolved = {}
    for selector, (table_name, variable) in MULTIPLIER_SELECTORS.items():
        resolved[variable] = resolve_multiplier(multiplier_tables, table_name, selections.get(selector))
    return resolved


def build_global_variables(
    config: "CostConfig",
    variables: Optional[Mapping[str, Any]] = None,
    multiplier_selections: Optional[Mapping[str, str]] = None
) -> Dict[str, Any]:
    """
    Build the global variable map for a calculation.

    Args:
        config: Loaded cost configuration
        variables: Explicit user-set variables (highest precedence)
        multiplier_selections: Selector -> choice for the multiplier tables

    Returns:
        A fresh dict; callers may keep it without affecting later calls
    """
    merged: Dict[str, Any] = {}
    for defaults in config.defaults.values():
        merged.update(defaults)
    merged.update(config.flat_base_costs)
    merged.update(resolve_multiplier_variables(config.multipliers, multiplier_selections))
    merged.update(variables or {})
    return merged


def build_context(
    system_components: Optional[Mapping[str, Any]] = None,
    global_variables: Optional[Mapping[str, Any]] = None,
    parameters: Optional[Mapping[str, Any]] = None
) -> Mapping[str, Any]:
    """
    Merge the three variable sources into one read-only context.

    Later sources overwrite earlier ones on key collisions.
    """
    context: Dict[str, Any] = {}
    context.update(system_components or {})
    context.update(global_variables or {})
    context.update(parameters or {})
    return MappingProxyType(context)


def coerce_numeric_strings(values: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Convert numeric strings (as they arrive from form fields) into floats.

    Non-numeric strings such as ``"simple"`` are kept for conditions.
    """
    coerced = {}
    for key, value in values.items():
        if isinstance(value, str):
            number = to_number(value, default=None)
            coerced[key] = number if number is not None else value
        else:
            coerced[key] = value
    return coerced
