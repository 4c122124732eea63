from datetime import datetime, timezone

import numpy as np
import pandas as pd
import pytest

from capacity_forecast.common.errors import InvalidParameter
from capacity_forecast.forecasting import patterns
from capacity_forecast.forecasting.forecaster import CapacityForecaster, variance_factors
from capacity_forecast.forecasting.series import (
    SeriesSynthesizer,
    StaticUsageHistory,
    sunday_first_weekday,
)

NOW = datetime(2025, 9, 1, tzinfo=timezone.utc)


@pytest.mark.parametrize("historical_days,forecast_days", [(1, 0), (7, 3), (30, 7), (90, 90), (45, 180)])
def test_timeline_arrays_are_aligned(historical_days, forecast_days):
    timeline = CapacityForecaster(SeriesSynthesizer(seed=5)).forecast(
        "cdn_request_sum", historical_days=historical_days, forecast_days=forecast_days, now=NOW
    )
    total = historical_days + forecast_days
    for column in (timeline.labels, timeline.values, timeline.confidence_lower,
                   timeline.confidence_upper, timeline.threshold_warning, timeline.threshold_critical):
        assert len(column) == total
    assert timeline.historical_end_index == historical_days - 1
    assert len(timeline.forecast_values) == forecast_days


def test_historical_bounds_are_null():
    timeline = CapacityForecaster(SeriesSynthesizer(seed=5)).forecast("dns_query_usage_sum", now=NOW)
    assert timeline.confidence_lower[:90] == [None] * 90
    assert timeline.confidence_upper[:90] == [None] * 90
    assert None not in timeline.confidence_lower[90:]
    assert all(lo <= v <= hi for lo, v, hi in zip(
        timeline.confidence_lower[90:], timeline.forecast_values, timeline.confidence_upper[90:]
    ))


def test_forecast_starts_at_now():
    timeline = CapacityForecaster(SeriesSynthesizer(seed=5)).forecast(
        "dns_query_usage_sum", historical_days=10, forecast_days=5, now=NOW
    )
    assert timeline.forecast_labels[0] == "2025-09-01T00:00:00+00:00"
    assert timeline.labels[9] == "2025-08-31T00:00:00+00:00"


def test_thresholds_follow_capacity():
    timeline = CapacityForecaster(SeriesSynthesizer(seed=5)).forecast(
        "dns_query_usage_sum", threshold_warning=0.5, threshold_critical=0.8, now=NOW
    )
    assert set(timeline.threshold_warning) == {250_000}
    assert set(timeline.threshold_critical) == {400_000}


def test_flat_trend_without_seasonality_repeats_the_weekly_shape():
    history = SeriesSynthesizer(seed=9).synthesize(
        "cdn_traffic_sum", 60, growth_rate=0.0, include_seasonality=False, now=NOW
    )
    timeline = CapacityForecaster(SeriesSynthesizer(seed=9)).forecast(
        "cdn_traffic_sum", historical_days=60, forecast_days=21, growth_rate=0.0,
        include_seasonality=False, now=NOW,
    )
    anchor = history.iloc[-1]
    mult = patterns.analyze(history).weekday_multipliers
    weekdays = sunday_first_weekday(pd.to_datetime(timeline.forecast_labels, utc=True))
    expected = [int(np.floor(anchor * mult[d])) for d in weekdays]
    assert timeline.forecast_values == expected


def test_uncertainty_widens_with_distance():
    timeline = CapacityForecaster(StaticUsageHistory([1000] * 14)).forecast(
        "cdn_request_sum", historical_days=14, forecast_days=30, growth_rate=0.0,
        include_seasonality=False, confidence_interval=0.8, now=NOW,
    )
    widths = [hi - lo for lo, hi in zip(timeline.confidence_lower[14:], timeline.confidence_upper[14:])]
    assert all(b >= a for a, b in zip(widths, widths[1:]))
    assert widths[-1] > widths[0]


def test_variance_factors():
    factors = variance_factors(4, 0.9)
    assert factors == pytest.approx([0.0125, 0.025, 0.0375, 0.05])
    assert variance_factors(0, 0.9).size == 0
    assert variance_factors(10, 0.99)[-1] < variance_factors(10, 0.5)[-1]


@pytest.mark.parametrize("kwargs", [
    {"historical_days": 0},
    {"forecast_days": -1},
    {"confidence_interval": 1.0},
    {"confidence_interval": -0.1},
    {"threshold_warning": -0.1},
    {"threshold_critical": -1},
    {"threshold_warning": float("inf")},
    {"growth_rate": float("nan")},
    {"growth_rate": float("-inf")},
])
def test_invalid_parameters(kwargs):
    with pytest.raises(InvalidParameter):
        CapacityForecaster(SeriesSynthesizer(seed=1)).forecast("dns_query_usage_sum", now=NOW, **kwargs)
