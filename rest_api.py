"""
Cost Estimator REST API

FastAPI application serving the data service cost estimator.
API endpoints are organized into separate router modules in the api/ directory.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI

import estimator.constants as CONSTANTS
from estimator.logger import logger, configure_logger_from_file
from estimator.config_loader import load_cost_config

# Import API routers
from api import calculation, systems


# =============================================================================
# Lifespan Context Manager
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown events."""
    # Startup
    try:
        print("")
        logger.info("🚀 Starting Cost Estimator API...")
        configure_logger_from_file(CONSTANTS.CONFIG_FILE_PATH)
        load_cost_config()
        logger.info("✅ API ready.")
    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")

    yield


# =============================================================================
# FastAPI App Initialization
# =============================================================================

app = FastAPI(
    title="Cost Estimator REST API",
    version=CONSTANTS.APPLICATION_VERSION,
    description=(
        "API backend for the **Data Service Cost Estimator**. Costs for transport, storage, "
        "extraction, enrichment, modeling, search and exploration are computed from "
        "declarative formulas in the `config/` directory, for one system or compared "
        "across several."
    ),
    openapi_tags=[
        {"name": "Calculation", "description": "Endpoints for cost calculation and snapshot export."},
        {"name": "Systems", "description": "Endpoints for configured systems and service defaults."},
    ],
    lifespan=lifespan
)


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(calculation.router)
app.include_router(systems.router)
