"""
Calculation API endpoints.
"""
from typing import Any, Dict, List

from fastapi import APIRouter, Body
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, model_validator

from estimator.logger import logger
from estimator.utils import print_stack_trace
from estimator.config_loader import load_cost_config
from estimator.calculation.variables import coerce_numeric_strings
from estimator.exceptions import UnknownSystemError
from estimator.snapshot import calculate, export_snapshot
import estimator.constants as CONSTANTS

router = APIRouter(tags=["Calculation"])


# --------------------------------------------------
# Input model for calculation
# --------------------------------------------------
class CalcParams(BaseModel):
    """
    Defines the inputs of a cost estimation.

    Server-side validation ensures:
    - At least one system is selected, each at most once
    - Only known multiplier selectors are used
    """
    systems: List[str] = Field(..., min_length=1, description="Ids of the systems to price (at least one)")
    variables: Dict[str, Any] = Field(default_factory=dict, description="Global variable overrides, e.g. data_volume_gb")
    serviceParameters: Dict[str, Dict[str, Any]] = Field(default_factory=dict, description="Per-service variable overrides")
    multipliers: Dict[str, str] = Field(default_factory=dict, description="Multiplier selector -> choice, e.g. contractType: annual")

    @model_validator(mode='after')
    def validate_selection(self) -> 'CalcParams':
        """Reject duplicate systems and unknown multiplier selectors."""
        if len(set(self.systems)) != len(self.systems):
            raise ValueError(f"Systems must not repeat: {self.systems}")
        unknown = [selector for selector in self.multipliers if selector not in CONSTANTS.MULTIPLIER_SELECTORS]
        if unknown:
            raise ValueError(
                f"Unknown multiplier selectors {unknown}, "
                f"expected one of {list(CONSTANTS.MULTIPLIER_SELECTORS)}"
            )
        return self

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "systems": ["cloud-standard"],
            "variables": {"data_volume_gb": 250, "priority_level": 2},
            "serviceParameters": {"modeling": {"model_type": "deep_learning"}},
            "multipliers": {"contractType": "annual", "slaLevel": "high"}
        }
    })

    def calculation_inputs(self) -> Dict[str, Any]:
        """Arguments for the calculation, with numeric form strings converted."""
        return {
            "selected_systems": self.systems,
            "variables": coerce_numeric_strings(self.variables),
            "service_parameters": {
                service: coerce_numeric_strings(parameters)
                for service, parameters in self.serviceParameters.items()
            },
            "multiplier_selections": self.multipliers,
        }


def _error_response(e: Exception) -> JSONResponse:
    if isinstance(e, UnknownSystemError):
        logger.warning(f"Rejected calculation request: {e}")
        return JSONResponse(status_code=400, content={"error": str(e)})
    logger.error(f"Error during calculation: {e}")
    print_stack_trace()
    return JSONResponse(status_code=500, content={"error": str(e)})


# --------------------------------------------------
# Calculation endpoint
# --------------------------------------------------
@router.put(
    "/api/calculate",
    summary="Calculate Data Service Costs",
    description=(
        "Evaluates the configured cost formulas of every data service "
        "(transport, storage, extraction, enrichment, modeling, search, exploration) "
        "for the selected systems.\n\n"
        "- **One system:** the system's services, total and breakdown.\n"
        "- **Several systems:** the combined result plus one result per system.\n\n"
        "Services a system cannot price are listed under `unsupportedServices` "
        "and left out of its total."
    ),
    response_description="JSON object containing service costs, total and breakdown.",
    responses={
        200: {
            "description": "Successful cost calculation.",
            "content": {
                "application/json": {
                    "example": {
                        "result": {
                            "services": {"transport": 60.5, "search": None},
                            "total": 60.5,
                            "breakdown": [{"service": "transport", "cost": 60.5, "percentage": 100.0}],
                            "supportedServices": ["transport"],
                            "unsupportedServices": ["search"],
                            "systemId": "on-prem-cluster"
                        }
                    }
                }
            },
        },
        400: {"description": "Unknown system id."},
        422: {"description": "Invalid input parameters."},
        500: {"description": "Internal error during cost calculation."},
    },
)
def calc(params: CalcParams = Body(
    ...,
    examples=[{
        "systems": ["cloud-standard", "on-prem-cluster"],
        "variables": {"data_volume_gb": 500},
        "serviceParameters": {},
        "multipliers": {"contractType": "monthly"}
    }]
)):
    """
    Perform a cost estimation for the selected systems.
    """
    try:
        config = load_cost_config()
        result = calculate(config, **params.calculation_inputs())

        if "systemResults" in result:
            system_results = result.pop("systemResults")
            return {"result": result, "systemResults": system_results}
        return {"result": result}
    except Exception as e:
        return _error_response(e)


# --------------------------------------------------
# Export endpoint
# --------------------------------------------------
@router.put(
    "/api/export",
    summary="Export a Cost Estimation Snapshot",
    description=(
        "Runs the same calculation as `/api/calculate` and returns a snapshot "
        "containing the configuration, the variable state, the selections and "
        "the results. Importing the snapshot reproduces the results."
    ),
    response_description="Snapshot document.",
    responses={
        400: {"description": "Unknown system id."},
        500: {"description": "Internal error during export."},
    },
)
def export(params: CalcParams):
    try:
        config = load_cost_config()
        inputs = params.calculation_inputs()
        results = calculate(config, **inputs)

        snapshot = export_snapshot(
            config,
            variables=inputs["variables"],
            selected_systems=inputs["selected_systems"],
            service_parameters=inputs["service_parameters"],
            multiplier_selections=inputs["multiplier_selections"],
            results=results,
        )
        logger.info(f"📦 Exported snapshot for {len(params.systems)} systems.")
        return snapshot
    except Exception as e:
        return _error_response(e)
