"""
Snapshot Export / Import
========================

A snapshot bundles the full configuration, the variable state and the
selections a calculation was made with, plus the calculated results.
Importing a snapshot and recalculating reproduces the same results.

JSON Example
-------------
{
    "metadata": {"timestamp": "...", "applicationVersion": "1.0.0",
                 "exportType": "cost-estimation-snapshot"},
    "selectedSystems": [{"id": "cloud-standard", "name": "...", "description": "..."}],
    "serviceParameters": {"transport": {"data_volume_gb": 250}},
    "globalMultipliers": {"contractType": "annual"},
    "calculatedResults": {...},
    "configuration": {"baseCosts": {...}, "formulas": {...}, "multipliers": {...},
                      "systems": {...}, "defaults": {...}},
    "currentState": {"variables": {...}}
}
"""

import copy
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import estimator.constants as CONSTANTS
from estimator.calculation.engine import (
    calculate_multi_system_costs,
    calculate_total_cost,
    combine_system_results,
)
from estimator.calculation.variables import build_global_variables
from estimator.config_loader import CostConfig, load_json_file
from estimator.exceptions import SnapshotError, UnknownSystemError
from estimator.logger import logger


@dataclass
class Snapshot:
    """Everything needed to repeat a calculation."""
    config: CostConfig
    variables: Dict[str, Any] = field(default_factory=dict)
    selected_systems: List[str] = field(default_factory=list)
    service_parameters: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    multiplier_selections: Dict[str, str] = field(default_factory=dict)
    calculated_results: Optional[Any] = None


def calculate(
    config: CostConfig,
    selected_systems: List[str],
    variables: Optional[Dict[str, Any]] = None,
    service_parameters: Optional[Dict[str, Dict[str, Any]]] = None,
    multiplier_selections: Optional[Dict[str, str]] = None
) -> Dict[str, Any]:
    """
    Calculate costs for the selected systems.

    One system gives that system's result (with ``systemId``), several give
    the combined result plus the per-system results under ``systemResults``.

    Raises:
        UnknownSystemError: If a selected system is not configured
        ValueError: If no system is selected
    """
    if not selected_systems:
        raise ValueError("Please select at least one system")
    for system_id in selected_systems:
        if system_id not in config.systems:
            raise UnknownSystemError(system_id, list(config.systems))

    global_variables = build_global_variables(config, variables, multiplier_selections)

    if len(selected_systems) == 1:
        system_id = selected_systems[0]
        result = calculate_total_cost(
            config.get_system_costs(system_id),
            config.formulas,
            service_parameters,
            global_variables,
        )
        result["systemId"] = system_id
        return result

    system_results = calculate_multi_system_costs(
        selected_systems,
        config.systems,
        config.formulas,
        service_parameters,
        global_variables,
    )
    combined = combine_system_results(system_results)
    combined["systemResults"] = system_results
    return combined


def export_snapshot(
    config: CostConfig,
    variables: Optional[Dict[str, Any]] = None,
    selected_systems: Optional[List[str]] = None,
    service_parameters: Optional[Dict[str, Dict[str, Any]]] = None,
    multiplier_selections: Optional[Dict[str, str]] = None,
    results: Optional[Any] = None
) -> Dict[str, Any]:
    """Build a snapshot document from the current calculation inputs."""
    selected_systems = selected_systems or []
    now = datetime.now(timezone.utc)

    return {
        "metadata": {
            "timestamp": now.isoformat(),
            "applicationVersion": CONSTANTS.APPLICATION_VERSION,
            "exportType": CONSTANTS.SNAPSHOT_EXPORT_TYPE,
        },
        "selectedSystems": [config.get_system_info(system_id) for system_id in selected_systems],
        "serviceParameters": copy.deepcopy(service_parameters or {}),
        "globalMultipliers": dict(multiplier_selections or {}),
        "calculatedResults": copy.deepcopy(results),
        "configuration": config.export_config(),
        "currentState": {"variables": copy.deepcopy(variables or {})},
    }


def import_snapshot(data: Dict[str, Any]) -> Snapshot:
    """
    Rebuild calculation inputs from a snapshot document.

    Raises:
        SnapshotError: If the document is not a cost estimation snapshot
    """
    if not isinstance(data, dict):
        raise SnapshotError("Snapshot must be a JSON object")

    export_type = (data.get("metadata") or {}).get("exportType")
    if export_type != CONSTANTS.SNAPSHOT_EXPORT_TYPE:
        raise SnapshotError(f"Unsupported snapshot type: {export_type!r}")

    configuration = data.get("configuration")
    if not isinstance(configuration, dict):
        raise SnapshotError("Snapshot has no configuration section")

    config = CostConfig(
        base_costs=configuration.get("baseCosts") or {},
        formulas=configuration.get("formulas") or {},
        multipliers=configuration.get("multipliers") or {},
        systems=configuration.get("systems") or {},
    )
    if isinstance(configuration.get("defaults"), dict):
        config.defaults = configuration["defaults"]

    selected = []
    for entry in data.get("selectedSystems") or []:
        system_id = entry.get("id") if isinstance(entry, dict) else entry
        if not system_id:
            raise SnapshotError(f"Selected system without id: {entry!r}")
        selected.append(system_id)

    state = data.get("currentState") or {}
    logger.info(f"Imported snapshot from {data['metadata'].get('timestamp', 'unknown time')} with {len(selected)} systems.")

    return Snapshot(
        config=config,
        variables=dict(state.get("variables") or {}),
        selected_systems=selected,
        service_parameters=dict(data.get("serviceParameters") or {}),
        multiplier_selections=dict(data.get("globalMultipliers") or {}),
        calculated_results=data.get("calculatedResults"),
    )


def calculate_snapshot(snapshot: Snapshot) -> Dict[str, Any]:
    """Recalculate the results of an imported snapshot."""
    return calculate(
        snapshot.config,
        snapshot.selected_systems,
        snapshot.variables,
        snapshot.service_parameters,
        snapshot.multiplier_selections,
    )


def write_snapshot(file_path: Union[str, Path], data: Dict[str, Any]):
    with open(file_path, "w") as f:
        json.dump(data, f, indent=2)
    logger.info(f"Snapshot written to {file_path}")


def read_snapshot(file_path: Union[str, Path]) -> Snapshot:
    try:
        data = load_json_file(file_path)
    except ValueError as e:
        raise SnapshotError(f"Snapshot is not valid JSON: {e}")
    return import_snapshot(data)
