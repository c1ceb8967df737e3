import os
from pathlib import Path

#--------------------------------------------------------------------
# Configuration file paths
#--------------------------------------------------------------------
BASE_CONFIG_DIR = Path(os.environ.get("COST_ESTIMATOR_CONFIG_DIR", "config"))

CONFIG_FILE_NAME = "config.json"
BASE_COSTS_FILE_NAME = "base-costs.yaml"
FORMULAS_FILE_NAME = "formulas.yaml"
MULTIPLIERS_FILE_NAME = "multipliers.yaml"
SYSTEMS_FILE_NAME = "systems.yaml"
DEFAULTS_FILE_NAME = "defaults.yaml"

CONFIG_FILE_PATH = BASE_CONFIG_DIR / CONFIG_FILE_NAME

#--------------------------------------------------------------------
# Formula language
#--------------------------------------------------------------------
VARIABLE_SIGIL = "$"

# Variables whose names contain one of these markers are treated as
# cost components a system has to declare.
COST_VARIABLE_MARKERS = ("_per_", "_cost", "_price", "_base")

SERVICE_NAMES = [
    "transport",
    "storage",
    "extraction",
    "enrichment",
    "modeling",
    "search",
    "exploration",
]

REQUIRED_CONFIG_SECTIONS = ["baseCosts", "formulas", "multipliers", "systems"]

REQUIRED_MULTIPLIER_TABLES = [
    "volume_multipliers",
    "complexity_multipliers",
    "contract_multipliers",
    "support_multipliers",
    "sla_multipliers",
]

#--------------------------------------------------------------------
# Global multipliers
#--------------------------------------------------------------------
# selector -> (multiplier table, variable the resolved factor is stored in)
MULTIPLIER_SELECTORS = {
    "volumeTier": ("volume_multipliers", "volume_multiplier"),
    "contractType": ("contract_multipliers", "contract_multiplier"),
    "supportLevel": ("support_multipliers", "support_multiplier"),
    "slaLevel": ("sla_multipliers", "sla_multiplier"),
}

#--------------------------------------------------------------------
# Default service variables
#--------------------------------------------------------------------
DEFAULT_SERVICE_VARIABLES = {
    "transport": {
        "data_volume_gb": 100,
        "egress_volume_gb": 50,
        "priority_level": 1,
        "encryption_level": 1,
    },
    "storage": {
        "storage_volume_gb": 1000,
    },
    "extraction": {
        "processing_hours": 10,
        "extraction_complexity": 1,
    },
    "enrichment": {
        "record_count": 10000,
        "data_quality_score": 3,
        "schema_complexity": 2,
    },
    "modeling": {
        "model_type": "simple",
        "training_hours": 5,
        "inference_requests": 1000,
    },
    "search": {
        "search_queries": 10000,
        "search_index_gb": 100,
        "search_complexity": 1,
        "real_time_requirements": 1,
    },
    "exploration": {
        "analytics_type": "basic",
        "analysis_hours": 20,
    },
}

#--------------------------------------------------------------------
# Snapshot export
#--------------------------------------------------------------------
APPLICATION_VERSION = "1.0.0"
SNAPSHOT_EXPORT_TYPE = "cost-estimation-snapshot"
