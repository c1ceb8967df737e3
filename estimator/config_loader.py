import copy
import json
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

import estimator.constants as CONSTANTS
from estimator.exceptions import ConfigurationError, UnknownSystemError
from estimator.logger import logger
from estimator.utils import is_number

PathLike = Union[str, Path]


# --------------------------------------------------------------------
# File Loaders
# --------------------------------------------------------------------
def _log_loaded(file_path: PathLike):
    modification_time = os.path.getmtime(file_path)
    readable_time = time.ctime(modification_time)
    logger.debug(f"Loaded file: {file_path} (last modified: {readable_time})")


def load_json_file(file_path: PathLike):
    try:
        with open(file_path) as f:
            data = json.load(f)
        _log_loaded(file_path)
        return data
    except (OSError, ValueError) as e:
        logger.error(f"Error loading JSON file {file_path}: {e}")
        raise


def load_yaml_file(file_path: PathLike):
    try:
        with open(file_path) as f:
            data = yaml.safe_load(f)
        _log_loaded(file_path)
        return data
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Error loading YAML file {file_path}: {e}")
        raise ConfigurationError(f"Failed to load {Path(file_path).name}: {e}", config_file=str(file_path))


def load_yaml_file_optional(file_path: PathLike):
    """
    Loads a YAML file if it exists, otherwise returns an empty dict.
    Logs a warning if the file is missing.
    """
    if not os.path.exists(file_path):
        logger.warning(f"⚠️ Optional YAML file not found: {file_path}. Returning empty dict.")
        return {}
    return load_yaml_file(file_path) or {}


def load_config_file(config_path: Optional[PathLike] = None):
    """
    Load the application settings file.

    JSON Example
    -------------
    {
        "mode": "DEBUG"
    }
    """
    return load_json_file(config_path or CONSTANTS.CONFIG_FILE_PATH)


# --------------------------------------------------------------------
# Base Costs
# --------------------------------------------------------------------
def flatten_base_costs(base_costs: Dict[str, Any]) -> Dict[str, Any]:
    """
    Flatten nested base costs for variable access.

    {"storage": {"hot": {"cost": 1}}} -> {"storage_hot_cost": 1}
    """
    flattened = {}

    def flatten_object(obj, prefix=""):
        for key, value in obj.items():
            new_key = f"{prefix}_{key}" if prefix else str(key)
            if isinstance(value, dict):
                flatten_object(value, new_key)
            else:
                flattened[new_key] = value

    flatten_object(base_costs or {})
    return flattened


# --------------------------------------------------------------------
# Cost Configuration
# --------------------------------------------------------------------
@dataclass
class CostConfig:
    """
    Parsed cost configuration.

    Attributes:
        base_costs: Base cost values as written in base-costs.yaml
        formulas: Service name -> raw formula definition
        multipliers: Named multiplier tables (volume, contract, support, SLA, ...)
        systems: System id -> {name, description, components}
        defaults: Service name -> default variable values
        flat_base_costs: base_costs flattened into variable names
    """

    base_costs: Dict[str, Any] = field(default_factory=dict)
    formulas: Dict[str, Any] = field(default_factory=dict)
    multipliers: Dict[str, Any] = field(default_factory=dict)
    systems: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    defaults: Dict[str, Dict[str, Any]] = field(default_factory=lambda: copy.deepcopy(CONSTANTS.DEFAULT_SERVICE_VARIABLES))
    flat_base_costs: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.flat_base_costs:
            self.flat_base_costs = flatten_base_costs(self.base_costs)

    def get_system_info(self, system_id: str) -> Dict[str, Any]:
        """Return {id, name, description} for a system."""
        system = self._get_system(system_id)
        return {
            "id": system_id,
            "name": system.get("name", system_id),
            "description": system.get("description", ""),
        }

    def get_system_costs(self, system_id: str) -> Dict[str, Any]:
        """Return the cost components declared by a system."""
        return dict(self._get_system(system_id).get("components") or {})

    def get_default_variables(self, service: str) -> Dict[str, Any]:
        return dict(self.defaults.get(service, {}))

    def update(self, base_costs=None, formulas=None, multipliers=None, systems=None):
        """Merge runtime modifications into the configuration."""
        if base_costs:
            self.base_costs = {**self.base_costs, **base_costs}
            self.flat_base_costs = flatten_base_costs(self.base_costs)
        if formulas:
            self.formulas = {**self.formulas, **formulas}
        if multipliers:
            self.multipliers = {**self.multipliers, **multipliers}
        if systems:
            self.systems = {**self.systems, **systems}

    def export_config(self) -> Dict[str, Any]:
        """Configuration sections as plain data, for backup or sharing."""
        return copy.deepcopy({
            "baseCosts": self.base_costs,
            "formulas": self.formulas,
            "multipliers": self.multipliers,
            "systems": self.systems,
            "defaults": self.defaults,
        })

    def _get_system(self, system_id: str) -> Dict[str, Any]:
        if system_id not in self.systems:
            raise UnknownSystemError(system_id, list(self.systems))
        return self.systems[system_id]


def _check_cost_values(obj: Dict[str, Any], file_name: str, path: str = ""):
    for key, value in obj.items():
        current_path = f"{path}.{key}" if path else str(key)
        if isinstance(value, dict):
            _check_cost_values(value, file_name, current_path)
        elif any(marker in str(key) for marker in ("cost", "rate", "price")):
            if not is_number(value) or value < 0:
                logger.warning(f"⚠️ {file_name}: {current_path} should be a positive number, got {type(value).__name__}: {value}")


def _check_formula_structure(service: str, formula: Any):
    if not isinstance(formula, dict) or "type" not in formula:
        return
    formula_type = formula["type"]
    if formula_type == "tiered" and (not formula.get("volumeVar") or not formula.get("tiers")):
        logger.warning(f"⚠️ Tiered formula for {service} missing volumeVar or tiers")
    elif formula_type == "multiplier" and (not formula.get("base") or "multipliers" not in formula):
        logger.warning(f"⚠️ Multiplier formula for {service} missing base or multipliers")
    elif formula_type == "conditional" and not formula.get("conditions"):
        logger.warning(f"⚠️ Conditional formula for {service} missing conditions")
    elif formula_type not in ("tiered", "multiplier", "conditional"):
        logger.warning(f"⚠️ Formula for {service} has unknown type '{formula_type}', its members will be summed")


def validate_config(config: CostConfig) -> bool:
    """
    Validate the configuration structure.

    Structural problems raise, content problems (odd cost values, formulas
    missing optional fields) are only logged.

    Raises:
        ConfigurationError: Listing every structural problem found
    """
    errors: List[str] = []

    sections = {
        "baseCosts": config.base_costs,
        "formulas": config.formulas,
        "multipliers": config.multipliers,
        "systems": config.systems,
    }
    for name in CONSTANTS.REQUIRED_CONFIG_SECTIONS:
        if not isinstance(sections.get(name), dict):
            errors.append(f"Missing {name} section")

    if isinstance(config.formulas, dict):
        for service in CONSTANTS.SERVICE_NAMES:
            if config.formulas.get(service) is None:
                errors.append(f"Missing formula for service: {service}")

    if isinstance(config.multipliers, dict):
        for table in CONSTANTS.REQUIRED_MULTIPLIER_TABLES:
            if table not in config.multipliers:
                errors.append(f"Missing multiplier table: {table}")

    if isinstance(config.systems, dict):
        if not config.systems:
            errors.append("No systems defined")
        for system_id, system in config.systems.items():
            if not isinstance(system, dict) or not isinstance(system.get("components"), dict):
                errors.append(f"System '{system_id}' has no components map")

    if errors:
        raise ConfigurationError(f"Configuration validation failed: {', '.join(errors)}", errors=errors)

    _check_cost_values(config.base_costs, CONSTANTS.BASE_COSTS_FILE_NAME)
    for system_id, system in config.systems.items():
        _check_cost_values(system["components"], f"{CONSTANTS.SYSTEMS_FILE_NAME}:{system_id}")
    for service, formula in config.formulas.items():
        _check_formula_structure(service, formula)

    return True


def load_cost_config(config_dir: Optional[PathLike] = None, validate: bool = True) -> CostConfig:
    """
    Load and validate the cost configuration from a directory.

    Expected files:
        base-costs.yaml, formulas.yaml, multipliers.yaml, systems.yaml
        defaults.yaml (optional, overrides built-in service defaults)
    """
    config_dir = Path(config_dir) if config_dir else CONSTANTS.BASE_CONFIG_DIR
    logger.info(f"🧩 Loading cost configuration from {config_dir}...")

    base_costs = load_yaml_file(config_dir / CONSTANTS.BASE_COSTS_FILE_NAME)
    formulas = load_yaml_file(config_dir / CONSTANTS.FORMULAS_FILE_NAME)
    multipliers = load_yaml_file(config_dir / CONSTANTS.MULTIPLIERS_FILE_NAME)
    systems = load_yaml_file(config_dir / CONSTANTS.SYSTEMS_FILE_NAME)
    defaults_override = load_yaml_file_optional(config_dir / CONSTANTS.DEFAULTS_FILE_NAME)

    # systems.yaml may nest the map under a top-level "systems" key
    if isinstance(systems, dict) and isinstance(systems.get("systems"), dict):
        systems = systems["systems"]

    config = CostConfig(
        base_costs=base_costs,
        formulas=formulas,
        multipliers=multipliers,
        systems=systems,
    )
    for service, values in defaults_override.items():
        config.defaults.setdefault(service, {}).update(values or {})

    if validate:
        validate_config(config)
    logger.info(f"✅ Loaded {len(config.formulas)} formulas and {len(config.systems)} systems.")
    return config
