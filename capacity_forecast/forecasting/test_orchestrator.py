import json
from datetime import datetime, timezone

import pytest

from capacity_forecast.common.errors import ComputationDegenerate, InvalidParameter
from capacity_forecast.database.forecast_store import InMemoryForecastStore
from capacity_forecast.forecasting.orchestrator import (
    CapacityForecastOrchestrator,
    generate_capacity_forecast,
)
from capacity_forecast.forecasting.series import StaticUsageHistory

NOW = datetime(2025, 9, 1, tzinfo=timezone.utc)


@pytest.fixture
def store():
    return InMemoryForecastStore()


@pytest.fixture
def orchestrator(store):
    return CapacityForecastOrchestrator(store=store)


def _params(**overrides):
    params = {"org_id": "org-1", "usage_type": "dns_query_usage_sum", "seed": 1234}
    params.update(overrides)
    return params


def test_dns_forecast_against_its_ceiling(orchestrator, store):
    record = orchestrator.generate(_params(historical_days=90, forecast_days=90, growth_rate=0.05), now=NOW)
    forecast = record.forecast["forecast"]
    values = forecast["timeline"]["values"]

    assert forecast["capacity"]["current"] == 500_000
    assert forecast["capacity"]["current_usage_percent"] == f"{values[89] / 500_000 * 100:.2f}"
    assert forecast["growth_metrics"]["current_value"] == values[89]
    assert len(values) == 180
    assert len(store) == 1


def test_zero_horizon_needs_no_increase(orchestrator):
    record = orchestrator.generate(_params(forecast_days=0), now=NOW)
    forecast = record.forecast["forecast"]
    assert forecast["timeline"]["values"][90:] == []
    assert forecast["capacity"]["recommended_increase"]["increase_amount"] == 0
    assert forecast["capacity"]["warning_breach_date"] is None
    assert forecast["growth_metrics"]["next_30_days_growth_pct"] is None


def test_zero_warning_threshold_breaches_immediately(orchestrator, store):
    record = orchestrator.generate(_params(historical_days=60, threshold_warning=0.0), now=NOW)
    forecast = record.forecast["forecast"]
    labels = forecast["timeline"]["labels"]

    assert forecast["capacity"]["warning_breach_date"] == labels[60]
    assert forecast["capacity"]["recommended_increase"] is None
    assert len(store) == 1


def test_breach_recommendation_matches_assessment(orchestrator):
    record = orchestrator.generate(
        _params(usage_type="cdn_traffic_sum", growth_rate=0.9), now=NOW
    )
    forecast = record.forecast["forecast"]
    assert forecast["capacity"]["critical_breach_date"] is not None
    assert forecast["recommendations"][0]["type"] == "critical"
    assert forecast["recommendations"][-1]["type"] == "optimization"
    assert forecast["capacity"]["recommended_increase"]["increase_amount"] > 0


def test_same_seed_same_timeline(orchestrator):
    first = orchestrator.generate(_params(), now=NOW)
    second = orchestrator.generate(_params(), now=NOW)
    assert first.id != second.id
    assert json.dumps(first.forecast["forecast"]["timeline"]) == json.dumps(second.forecast["forecast"]["timeline"])
    assert first.forecast == second.forecast


def test_record_carries_query_and_parameters(orchestrator):
    record = orchestrator.generate(_params(usage_type="cdn_request_sum", forecast_days=30), now=NOW)
    assert record.org_id == "org-1"
    assert record.usage_type == "cdn_request_sum"
    assert record.parameters["forecast_days"] == 30
    assert record.parameters["threshold_warning"] == 0.7
    assert "org_id" not in record.parameters
    assert record.forecast["query"] == {
        "org_id": "org-1",
        "usage_type": "cdn_request_sum",
        "historical_days": 90,
        "forecast_days": 30,
        "generated_at": "2025-09-01T00:00:00+00:00",
    }
    json.dumps(record.to_dict())


@pytest.mark.parametrize("overrides", [
    {"usage_type": "edge_compute_sum"},
    {"org_id": "   "},
    {"confidence_interval": 1.5},
    {"historical_days": 0},
    {"forecast_days": -3},
    {"threshold_critical": -0.2},
    {"growth_rate": float("nan")},
    {"growth_rate": float("inf")},
    {"threshold_warning": float("nan")},
    {"confidence_interval": float("nan")},
])
def test_invalid_request_persists_nothing(orchestrator, store, overrides):
    with pytest.raises(InvalidParameter):
        orchestrator.generate(_params(**overrides), now=NOW)
    assert len(store) == 0


def test_failed_computation_persists_nothing(store):
    orchestrator = CapacityForecastOrchestrator(store=store, history=StaticUsageHistory([100] * 10))
    with pytest.raises(InvalidParameter):
        orchestrator.generate(_params(historical_days=30), now=NOW)
    assert len(store) == 0


@pytest.mark.parametrize("growth_rate", [1e308, 1e17])
def test_overflowing_growth_persists_nothing(orchestrator, store, growth_rate):
    with pytest.raises(ComputationDegenerate):
        orchestrator.generate(_params(growth_rate=growth_rate), now=NOW)
    assert len(store) == 0


def test_injected_history_drives_the_forecast(store):
    orchestrator = CapacityForecastOrchestrator(store=store, history=StaticUsageHistory([400_000] * 14))
    record = orchestrator.generate(
        _params(historical_days=14, forecast_days=14, growth_rate=0.0, include_seasonality=False), now=NOW
    )
    forecast = record.forecast["forecast"]
    assert forecast["timeline"]["values"][14:] == [400_000] * 14
    assert forecast["capacity"]["current_usage_percent"] == "80.00"
    assert forecast["capacity"]["warning_breach_date"] == forecast["timeline"]["labels"][14]
    assert forecast["capacity"]["critical_breach_date"] is None
    assert forecast["recommendations"][0]["type"] == "warning"


def test_missing_parameters_come_from_config(orchestrator):
    request = orchestrator.build_request({"org_id": "org-1", "usage_type": "cdn_traffic_sum"})
    assert request.historical_days == 90
    assert request.forecast_days == 90
    assert request.confidence_interval == 0.95
    assert request.seed is None


def test_generate_capacity_forecast_helper(store):
    result = generate_capacity_forecast(_params(forecast_days=7), store=store)
    assert result["id"] == store.list_records()[0].id
    assert result["forecast"]["query"]["forecast_days"] == 7
