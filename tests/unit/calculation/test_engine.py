"""
Test Engine Integration
=======================

Tests for single-system aggregation, multi-system aggregation and the
combined result.
"""

import math

import pytest
from unittest.mock import patch

from estimator.calculation.engine import (
    calculate_multi_system_costs,
    calculate_service_cost,
    calculate_total_cost,
    combine_system_results,
    generate_cost_breakdown,
)
from estimator.calculation.variables import build_global_variables
from estimator.exceptions import MissingFormulaError


class TestCalculateServiceCost:
    """Tests for single service evaluation."""

    def test_evaluates_formula(self):
        assert calculate_service_cost("transport", {"transport": "$a * 2"}, {"a": 4}) == 8

    def test_missing_formula_raises(self):
        with pytest.raises(MissingFormulaError) as exc_info:
            calculate_service_cost("search", {"transport": 1}, {})
        assert "No formula found for service type: search" in str(exc_info.value)


class TestGenerateBreakdown:
    """Tests for breakdown entries."""

    def test_sorted_with_percentages(self):
        breakdown = generate_cost_breakdown({"a": 25.0, "b": 75.0, "c": None})
        assert [entry["service"] for entry in breakdown] == ["b", "a"]
        assert breakdown[0]["percentage"] == pytest.approx(75.0)
        assert breakdown[1]["percentage"] == pytest.approx(25.0)

    def test_zero_total(self):
        breakdown = generate_cost_breakdown({"a": 0.0})
        assert breakdown == [{"service": "a", "cost": 0.0, "percentage": 0.0}]


class TestCalculateTotalCost:
    """Tests for one system."""

    def test_full_system(self, sample_config):
        result = calculate_total_cost(
            sample_config.get_system_costs("alpha"),
            sample_config.formulas,
            global_variables=build_global_variables(sample_config),
        )
        assert result["services"] == pytest.approx({
            "transport": 10.0,
            "storage": 20.0,
            "extraction": 20.0,
            "enrichment": 5.0,
            "modeling": 10.0,
            "search": 7.0,
            "exploration": 60.0,
        })
        assert result["total"] == pytest.approx(132.0)
        assert result["unsupportedServices"] == []
        assert len(result["supportedServices"]) == 7

    def test_unsupported_services(self, sample_config):
        result = calculate_total_cost(
            sample_config.get_system_costs("beta"),
            sample_config.formulas,
            global_variables=build_global_variables(sample_config),
        )
        assert result["services"]["modeling"] is None
        assert result["services"]["search"] is None
        assert sorted(result["unsupportedServices"]) == ["modeling", "search"]
        assert result["total"] == pytest.approx(67.5)
        assert {entry["service"] for entry in result["breakdown"]} == {
            "transport", "storage", "extraction", "enrichment", "exploration",
        }

    def test_total_equals_sum_of_supported(self, sample_config):
        result = calculate_total_cost(
            sample_config.get_system_costs("beta"),
            sample_config.formulas,
            global_variables=build_global_variables(sample_config),
        )
        supported_sum = sum(cost for cost in result["services"].values() if cost is not None)
        assert result["total"] == pytest.approx(supported_sum)
        assert sum(entry["percentage"] for entry in result["breakdown"]) == pytest.approx(100.0)

    def test_service_parameters_override(self, sample_config):
        result = calculate_total_cost(
            sample_config.get_system_costs("alpha"),
            sample_config.formulas,
            service_parameters={"modeling": {"model_type": "advanced"}},
            global_variables=build_global_variables(sample_config),
        )
        # 5 hours × gpu 10
        assert result["services"]["modeling"] == pytest.approx(50.0)
        # other services keep the defaults
        assert result["services"]["transport"] == pytest.approx(10.0)

    def test_service_parameters_are_scoped(self, sample_config):
        result = calculate_total_cost(
            sample_config.get_system_costs("alpha"),
            sample_config.formulas,
            service_parameters={"transport": {"data_volume_gb": 1000}},
            global_variables=build_global_variables(sample_config),
        )
        assert result["services"]["transport"] == pytest.approx(100.0)

    def test_failing_service_costs_zero(self):
        formulas = {"good": "$x_cost * 2", "bad": {"type": "tiered", "volumeVar": "v", "tiers": ["flat"]}}
        result = calculate_total_cost({"x_cost": 5}, formulas)
        assert result["services"] == {"good": 10.0, "bad": 0.0}
        assert result["total"] == 10.0
        assert "bad" in result["supportedServices"]

    def test_unknown_type_is_summed(self):
        formulas = {"custom": {"type": "bundle", "fixed": 10, "extra": "$x_cost"}}
        result = calculate_total_cost({"x_cost": 5}, formulas)
        assert result["services"] == {"custom": 15.0}
        assert result["total"] == 15.0

    def test_non_finite_cost_is_zero(self):
        formulas = {
            "overflow": {"type": "multiplier", "base": "10", "multipliers": [{"variable": "level", "factor": 10}]},
            "fixed": 5,
        }
        result = calculate_total_cost({}, formulas, global_variables={"level": 1000})
        assert result["services"]["overflow"] == 0.0
        assert result["total"] == 5.0
        assert all(math.isfinite(entry["cost"]) for entry in result["breakdown"])

    def test_unexpected_error_is_contained(self):
        with patch("estimator.calculation.engine.evaluate_formula", side_effect=RuntimeError("boom")):
            result = calculate_total_cost({}, {"transport": 1})
        assert result["services"] == {"transport": 0.0}
        assert result["total"] == 0.0

    def test_no_systems_components(self):
        result = calculate_total_cost(None, {"transport": "$x_cost", "fixed": 3})
        assert result["unsupportedServices"] == ["transport"]
        assert result["total"] == 3.0


class TestMultiSystem:
    """Tests for multi-system aggregation and combination."""

    def test_per_system_results(self, sample_config):
        results = calculate_multi_system_costs(
            ["alpha", "beta"],
            sample_config.systems,
            sample_config.formulas,
            global_variables=build_global_variables(sample_config),
        )
        assert [r["systemId"] for r in results] == ["alpha", "beta"]
        assert [r["systemName"] for r in results] == ["Alpha", "Beta"]
        assert results[0]["total"] == pytest.approx(132.0)
        assert results[1]["total"] == pytest.approx(67.5)

    def test_unknown_system_has_no_components(self, sample_config):
        results = calculate_multi_system_costs(
            ["gamma"],
            sample_config.systems,
            sample_config.formulas,
            global_variables=build_global_variables(sample_config),
        )
        assert results[0]["systemId"] == "gamma"
        assert results[0]["systemName"] == "gamma"
        assert results[0]["supportedServices"] == []

    def test_combine_sums_services(self):
        """transport 10 + 15 = 25"""
        combined = combine_system_results([
            {"services": {"transport": 10.0}, "total": 10.0,
             "supportedServices": ["transport"], "unsupportedServices": []},
            {"services": {"transport": 15.0}, "total": 15.0,
             "supportedServices": ["transport"], "unsupportedServices": []},
        ])
        assert combined["services"] == {"transport": 25.0}
        assert combined["total"] == 25.0
        assert combined["isMultiSystem"] is True
        assert combined["systemCount"] == 2

    def test_combine_supported_by_any_system(self):
        combined = combine_system_results([
            {"services": {"transport": 10.0, "search": None}, "total": 10.0,
             "supportedServices": ["transport"], "unsupportedServices": ["search"]},
            {"services": {"transport": 15.0, "search": 4.0}, "total": 19.0,
             "supportedServices": ["transport", "search"], "unsupportedServices": []},
        ])
        assert combined["services"] == {"transport": 25.0, "search": 4.0}
        assert combined["unsupportedServices"] == []
        assert combined["supportedServices"] == ["transport", "search"]

    def test_combine_unsupported_everywhere(self):
        combined = combine_system_results([
            {"services": {"search": None}, "total": 0.0,
             "supportedServices": [], "unsupportedServices": ["search"]},
            {"services": {"search": None}, "total": 0.0,
             "supportedServices": [], "unsupportedServices": ["search"]},
        ])
        assert combined["unsupportedServices"] == ["search"]
        assert combined["services"] == {}

    def test_combined_sample_systems(self, sample_config):
        results = calculate_multi_system_costs(
            ["alpha", "beta"],
            sample_config.systems,
            sample_config.formulas,
            global_variables=build_global_variables(sample_config),
        )
        combined = combine_system_results(results)
        assert combined["total"] == pytest.approx(199.5)
        assert combined["services"]["transport"] == pytest.approx(15.0)
        assert combined["services"]["modeling"] == pytest.approx(10.0)
        assert combined["breakdown"][0]["service"] == "exploration"
        assert combined["unsupportedServices"] == []
