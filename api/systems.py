"""
System and default-variable lookup endpoints.
"""
from fastapi import APIRouter, HTTPException

from estimator.logger import logger
from estimator.config_loader import load_cost_config
from estimator.exceptions import UnknownSystemError

router = APIRouter(tags=["Systems"])


# --------------------------------------------------
# Systems
# --------------------------------------------------

@router.get("/api/systems", summary="List Systems")
def list_systems():
    """
    Lists every configured system.

    **Returns**: `{"systems": [{"id", "name", "description"}, ...]}`
    """
    try:
        config = load_cost_config()
        return {"systems": [config.get_system_info(system_id) for system_id in config.systems]}
    except Exception as e:
        logger.error(f"Error listing systems: {e}")
        raise HTTPException(status_code=500, detail="Failed to load systems. Check server logs.")


@router.get("/api/systems/{system_id}", summary="Get System Details")
def get_system(system_id: str):
    """
    Returns one system with its cost components.

    - **404**: If the system id is not configured.
    """
    try:
        config = load_cost_config()
        info = config.get_system_info(system_id)
        info["components"] = config.get_system_costs(system_id)
        return info
    except UnknownSystemError as e:
        logger.warning(str(e))
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Error loading system {system_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to load system. Check server logs.")


# --------------------------------------------------
# Defaults
# --------------------------------------------------

@router.get("/api/defaults/{service}", summary="Get Service Default Variables")
def get_defaults(service: str):
    """
    Returns the default variable values used for a service when the
    request does not set them.
    """
    try:
        config = load_cost_config()
    except Exception as e:
        logger.error(f"Error loading defaults: {e}")
        raise HTTPException(status_code=500, detail="Failed to load configuration. Check server logs.")

    if service not in config.defaults:
        raise HTTPException(status_code=404, detail=f"No defaults for service '{service}'")
    return {"service": service, "defaults": config.get_default_variables(service)}
