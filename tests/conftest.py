"""
Shared fixtures: a small but complete cost configuration.

With the built-in service defaults the expected costs are:

    service      alpha   beta
    transport     10.0    5.0
    storage       20.0   10.0
    extraction    20.0   10.0
    enrichment     5.0    2.5
    modeling      10.0    -   (beta has no gpu_cost_per_hour)
    search         7.0    -   (beta has no query_cost_per_1k)
    exploration   60.0   40.0
    total        132.0   67.5
"""

import copy
from pathlib import Path

import pytest
import yaml

from estimator.config_loader import CostConfig

REPO_CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"

SAMPLE_BASE_COSTS = {
    "compute": {"overhead_factor": 1.0},
}

SAMPLE_FORMULAS = {
    "transport": {
        "type": "multiplier",
        "base": "$data_volume_gb * $ingestion_cost_per_gb",
        "multipliers": [{"variable": "priority_level", "factor": 1.5}],
    },
    "storage": {
        "type": "tiered",
        "volumeVar": "storage_volume_gb",
        "tiers": [
            {"limit": 1000, "rate": "$storage_cost_per_gb"},
            {"limit": None, "rate": "$storage_cost_per_gb * 0.5"},
        ],
    },
    "extraction": "$processing_hours * $compute_cost_per_hour * $compute_overhead_factor",
    "enrichment": "$record_count / 1000 * $enrichment_cost_per_1k_records",
    "modeling": {
        "type": "conditional",
        "conditions": [
            {
                "if": {"variable": "model_type", "operator": "==", "value": "advanced"},
                "then": "$training_hours * $gpu_cost_per_hour",
            },
        ],
        "else": "$training_hours * $compute_cost_per_hour",
    },
    "search": {
        "queries": "$search_queries / 1000 * $query_cost_per_1k",
        "flat": 5,
    },
    "exploration": "$analysis_hours * $analyst_cost_per_hour * $support_multiplier",
}

SAMPLE_MULTIPLIERS = {
    "volume_multipliers": {
        "small": {"multiplier": 1.0, "max_gb": 1000},
        "large": {"multiplier": 0.5},
    },
    "complexity_multipliers": {"low": 1.0, "high": 1.5},
    "contract_multipliers": {"monthly": 1.0, "annual": 0.8},
    "support_multipliers": {"basic": 1.0, "premium": 1.5},
    "sla_multipliers": {"standard": 1.0, "high": 1.2},
}

SAMPLE_SYSTEMS = {
    "alpha": {
        "name": "Alpha",
        "description": "Full platform",
        "components": {
            "ingestion_cost_per_gb": 0.1,
            "storage_cost_per_gb": 0.02,
            "compute_cost_per_hour": 2,
            "enrichment_cost_per_1k_records": 0.5,
            "gpu_cost_per_hour": 10,
            "query_cost_per_1k": 0.2,
            "analyst_cost_per_hour": 3,
        },
    },
    "beta": {
        "name": "Beta",
        "description": "No search, no GPU",
        "components": {
            "ingestion_cost_per_gb": 0.05,
            "storage_cost_per_gb": 0.01,
            "compute_cost_per_hour": 1,
            "enrichment_cost_per_1k_records": 0.25,
            "analyst_cost_per_hour": 2,
        },
    },
}


@pytest.fixture
def sample_config():
    """CostConfig built from the sample sections."""
    return CostConfig(
        base_costs=copy.deepcopy(SAMPLE_BASE_COSTS),
        formulas=copy.deepcopy(SAMPLE_FORMULAS),
        multipliers=copy.deepcopy(SAMPLE_MULTIPLIERS),
        systems=copy.deepcopy(SAMPLE_SYSTEMS),
    )


@pytest.fixture
def config_dir(tmp_path):
    """Directory with the sample sections written as YAML files."""
    files = {
        "base-costs.yaml": SAMPLE_BASE_COSTS,
        "formulas.yaml": SAMPLE_FORMULAS,
        "multipliers.yaml": SAMPLE_MULTIPLIERS,
        "systems.yaml": {"systems": SAMPLE_SYSTEMS},
    }
    for name, content in files.items():
        (tmp_path / name).write_text(yaml.safe_dump(content))
    return tmp_path


@pytest.fixture
def repo_config_dir():
    """The config/ directory shipped with the repository."""
    return REPO_CONFIG_DIR
