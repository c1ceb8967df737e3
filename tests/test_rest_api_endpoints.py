from fastapi.testclient import TestClient
from unittest.mock import patch

import pytest

from rest_api import app
from estimator.exceptions import ConfigurationError
import estimator.constants as CONSTANTS

client = TestClient(app)


@pytest.fixture
def patched_config(sample_config):
    with patch("api.calculation.load_cost_config", return_value=sample_config), \
         patch("api.systems.load_cost_config", return_value=sample_config):
        yield sample_config


# ----------------------------------------------------------------
# Calculation Tests
# ----------------------------------------------------------------

def test_calculate_single_system(patched_config):
    """Test PUT /api/calculate with one system returns its result."""
    response = client.put("/api/calculate", json={"systems": ["alpha"]})

    assert response.status_code == 200
    result = response.json()["result"]
    assert result["systemId"] == "alpha"
    assert result["total"] == pytest.approx(132.0)
    assert result["unsupportedServices"] == []
    assert "systemResults" not in response.json()


def test_calculate_multiple_systems(patched_config):
    response = client.put("/api/calculate", json={"systems": ["alpha", "beta"]})

    assert response.status_code == 200
    body = response.json()
    assert body["result"]["isMultiSystem"] is True
    assert body["result"]["systemCount"] == 2
    assert body["result"]["total"] == pytest.approx(199.5)
    assert [r["systemId"] for r in body["systemResults"]] == ["alpha", "beta"]
    assert body["systemResults"][1]["services"]["search"] is None


def test_calculate_with_overrides(patched_config):
    """Numeric strings from form fields are converted before evaluation."""
    response = client.put("/api/calculate", json={
        "systems": ["alpha"],
        "variables": {"data_volume_gb": "200"},
        "serviceParameters": {"modeling": {"model_type": "advanced"}},
        "multipliers": {"supportLevel": "premium"},
    })

    assert response.status_code == 200
    services = response.json()["result"]["services"]
    assert services["transport"] == pytest.approx(20.0)
    assert services["modeling"] == pytest.approx(50.0)
    assert services["exploration"] == pytest.approx(90.0)


def test_calculate_unknown_system(patched_config):
    response = client.put("/api/calculate", json={"systems": ["alpha", "gamma"]})

    assert response.status_code == 400
    assert "gamma" in response.json()["error"]


@pytest.mark.parametrize("body", [
    {"systems": []},
    {"systems": ["alpha", "alpha"]},
    {"systems": ["alpha"], "multipliers": {"colorScheme": "dark"}},
    {},
])
def test_calculate_invalid_input(patched_config, body):
    response = client.put("/api/calculate", json=body)
    assert response.status_code == 422


def test_calculate_configuration_error():
    with patch("api.calculation.load_cost_config", side_effect=ConfigurationError("Missing formulas section")):
        response = client.put("/api/calculate", json={"systems": ["alpha"]})

    assert response.status_code == 500
    assert response.json() == {"error": "Missing formulas section"}


# ----------------------------------------------------------------
# Export Tests
# ----------------------------------------------------------------

def test_export_snapshot(patched_config):
    response = client.put("/api/export", json={
        "systems": ["beta"],
        "variables": {"analysis_hours": "10"},
    })

    assert response.status_code == 200
    snapshot = response.json()
    assert snapshot["metadata"]["exportType"] == CONSTANTS.SNAPSHOT_EXPORT_TYPE
    assert snapshot["selectedSystems"][0]["id"] == "beta"
    assert snapshot["currentState"]["variables"] == {"analysis_hours": 10.0}
    assert snapshot["calculatedResults"]["systemId"] == "beta"
    # 10 hours × 2
    assert snapshot["calculatedResults"]["services"]["exploration"] == pytest.approx(20.0)


def test_export_unknown_system(patched_config):
    response = client.put("/api/export", json={"systems": ["gamma"]})
    assert response.status_code == 400


# ----------------------------------------------------------------
# System Tests
# ----------------------------------------------------------------

def test_list_systems(patched_config):
    response = client.get("/api/systems")

    assert response.status_code == 200
    assert response.json() == {"systems": [
        {"id": "alpha", "name": "Alpha", "description": "Full platform"},
        {"id": "beta", "name": "Beta", "description": "No search, no GPU"},
    ]}


def test_get_system(patched_config):
    response = client.get("/api/systems/beta")

    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Beta"
    assert body["components"]["compute_cost_per_hour"] == 1


def test_get_unknown_system(patched_config):
    response = client.get("/api/systems/gamma")
    assert response.status_code == 404


def test_get_defaults(patched_config):
    response = client.get("/api/defaults/transport")

    assert response.status_code == 200
    assert response.json()["defaults"]["data_volume_gb"] == 100


def test_get_unknown_defaults(patched_config):
    response = client.get("/api/defaults/teleportation")
    assert response.status_code == 404
