"""
Cost Calculation Engine
=======================

Orchestrates formula evaluation across services and systems.

This module provides:
- calculate_service_cost(service, service_formulas, context)
- calculate_total_cost(system_components, service_formulas, ...)
- calculate_multi_system_costs(system_ids, systems, service_formulas, ...)
- combine_system_results(system_results)
- generate_cost_breakdown(costs)

All state is passed in explicitly. Aggregate calculations never raise:
a failing service is logged and priced at 0, an unsupported service is
reported in ``unsupportedServices``.
"""

import math
from typing import Any, Dict, List, Mapping, Optional

from estimator.calculation.formulas import evaluate_formula
from estimator.calculation.support import is_service_supported, missing_cost_variables
from estimator.calculation.variables import build_context
from estimator.exceptions import MissingFormulaError
from estimator.logger import logger
from estimator.utils import print_stack_trace


# =============================================================================
# Single Service
# =============================================================================

def calculate_service_cost(
    service: str,
    service_formulas: Mapping[str, Any],
    context: Mapping[str, Any]
) -> float:
    """
    Evaluate one service's formula in the given context.

    Raises:
        MissingFormulaError: If no formula is configured for the service
        FormulaError: If the formula definition is malformed
    """
    if service not in service_formulas or service_formulas[service] is None:
        raise MissingFormulaError(service)
    return evaluate_formula(service_formulas[service], context)


# =============================================================================
# Breakdown
# =============================================================================

def generate_cost_breakdown(costs: Mapping[str, Optional[float]], total: Optional[float] = None) -> List[Dict[str, Any]]:
    """
    Build breakdown entries sorted by cost, highest first.

    Services mapped to ``None`` (unsupported) are skipped. Percentages are
    relative to ``total``, which defaults to the sum of the entries.
    """
    breakdown = [
        {"service": service, "cost": cost, "percentage": 0.0}
        for service, cost in costs.items()
        if cost is not None
    ]

    if total is None:
        total = sum(entry["cost"] for entry in breakdown)

    for entry in breakdown:
        entry["percentage"] = (entry["cost"] / total) * 100 if total > 0 else 0.0

    return sorted(breakdown, key=lambda entry: entry["cost"], reverse=True)


# =============================================================================
# Single System
# =============================================================================

def calculate_total_cost(
    system_components: Optional[Mapping[str, Any]],
    service_formulas: Mapping[str, Any],
    service_parameters: Optional[Mapping[str, Mapping[str, Any]]] = None,
    global_variables: Optional[Mapping[str, Any]] = None
) -> Dict[str, Any]:
    """
    Calculate every service cost for one system.

    Args:
        system_components: Cost components declared by the system
        service_formulas: Service name -> formula definition
        service_parameters: Service name -> override parameters for that service
        global_variables: Defaults, base costs, multipliers and user variables

    Returns:
        Dictionary with:
        - services: Service -> cost (None for unsupported services)
        - total: Sum of all supported service costs
        - breakdown: Sorted list of {service, cost, percentage}
        - supportedServices / unsupportedServices: Service names
    """
    system_components = system_components or {}
    service_parameters = service_parameters or {}

    costs: Dict[str, Optional[float]] = {}
    supported: List[str] = []
    unsupported: List[str] = []
    total = 0.0

    for service, formula in service_formulas.items():
        try:
            service_supported = is_service_supported(formula, system_components)
        except Exception as e:
            logger.error(f"Error checking support for {service}: {e}")
            print_stack_trace()
            service_supported = True

        if not service_supported:
            missing = missing_cost_variables(formula, system_components)
            logger.info(f"{service} not supported by system (missing: {', '.join(missing)})")
            costs[service] = None
            unsupported.append(service)
            continue

        supported.append(service)
        context = build_context(system_components, global_variables, service_parameters.get(service))

        try:
            cost = calculate_service_cost(service, service_formulas, context)
        except Exception as e:
            logger.error(f"Error calculating {service} cost: {e}")
            print_stack_trace()
            cost = 0.0

        if not math.isfinite(cost):
            logger.warning(f"{service} returned a non-finite cost ({cost}), counting it as 0")
            cost = 0.0

        costs[service] = cost
        total += cost
        logger.debug(f"{service} cost: {cost}")

    logger.info(f"Total cost: {total:.2f} ({len(supported)} supported, {len(unsupported)} unsupported)")

    return {
        "services": costs,
        "total": total,
        "breakdown": generate_cost_breakdown(costs),
        "supportedServices": supported,
        "unsupportedServices": unsupported,
    }


# =============================================================================
# Multiple Systems
# =============================================================================

def calculate_multi_system_costs(
    system_ids: List[str],
    systems: Mapping[str, Mapping[str, Any]],
    service_formulas: Mapping[str, Any],
    service_parameters: Optional[Mapping[str, Mapping[str, Any]]] = None,
    global_variables: Optional[Mapping[str, Any]] = None
) -> List[Dict[str, Any]]:
    """
    Run the single-system calculation once per system.

    Each system's own components are substituted into the context. Unknown
    system ids are logged and calculated with no components, which makes
    every service that needs a cost component unsupported.

    Returns:
        One result per system id, in the given order, each extended with
        ``systemId`` and ``systemName``
    """
    results = []
    for system_id in system_ids:
        system = systems.get(system_id)
        if system is None:
            logger.warning(f"Unknown system '{system_id}', calculating without cost components")
            system = {}

        logger.info(f"Calculating costs for system: {system.get('name', system_id)}")
        result = calculate_total_cost(
            system.get("components") or {},
            service_formulas,
            service_parameters,
            global_variables,
        )
        result["systemId"] = system_id
        result["systemName"] = system.get("name", system_id)
        results.append(result)

    return results


def combine_system_results(system_results: List[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Combine per-system results into one summary.

    - Service costs are summed over the systems that support the service
    - The combined total is the sum of the per-system totals
    - A service is unsupported only if no system supports it

    Example:
        transport 10 (system A) + transport 15 (system B) -> transport 25
    """
    combined_services: Dict[str, float] = {}
    combined_total = 0.0
    all_supported: List[str] = []
    all_unsupported: List[str] = []

    for result in system_results:
        combined_total += result.get("total", 0.0)

        for service in result.get("supportedServices", []):
            if service not in all_supported:
                all_supported.append(service)
        for service in result.get("unsupportedServices", []):
            if service not in all_unsupported:
                all_unsupported.append(service)

        for service, cost in (result.get("services") or {}).items():
            if cost is None or math.isnan(cost):
                continue
            combined_services[service] = combined_services.get(service, 0.0) + cost

    unsupported = [service for service in all_unsupported if service not in all_supported]

    return {
        "services": combined_services,
        "total": combined_total,
        "breakdown": generate_cost_breakdown(combined_services, total=combined_total),
        "supportedServices": all_supported,
        "unsupportedServices": unsupported,
        "isMultiSystem": True,
        "systemCount": len(system_results),
    }
