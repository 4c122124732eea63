from datetime import datetime, timedelta, timezone

import numpy as np
import pandas as pd
import pytest

from capacity_forecast.common.errors import ComputationDegenerate, InvalidParameter
from capacity_forecast.forecasting.series import (
    SeriesSynthesizer,
    StaticUsageHistory,
    as_utc,
    sunday_first_weekday,
    to_counts,
)

NOW = datetime(2025, 3, 15, tzinfo=timezone.utc)


def test_window_ends_the_day_before_now():
    series = SeriesSynthesizer(seed=1).synthesize("dns_query_usage_sum", 30, now=NOW)
    assert len(series) == 30
    assert series.index[-1] == pd.Timestamp(NOW - timedelta(days=1))
    assert series.index[0] == pd.Timestamp(NOW - timedelta(days=30))
    assert str(series.index.tz) == "UTC"
    assert series.name == "dns_query_usage_sum"


def test_seeded_synthesis_is_reproducible():
    a = SeriesSynthesizer(seed=7).synthesize("cdn_request_sum", 60, now=NOW)
    b = SeriesSynthesizer(seed=7).synthesize("cdn_request_sum", 60, now=NOW)
    c = SeriesSynthesizer(seed=8).synthesize("cdn_request_sum", 60, now=NOW)
    pd.testing.assert_series_equal(a, b)
    assert not a.equals(c)


def test_weekday_and_weekend_factors():
    series = SeriesSynthesizer(noise=False).synthesize(
        "dns_query_usage_sum", 14, growth_rate=0.0, include_seasonality=False, now=NOW
    )
    weekday = sunday_first_weekday(series.index)
    weekend = (weekday == 0) | (weekday == 6)
    assert set(series[weekend]) == {60_000}
    assert set(series[~weekend]) == {110_000}


def test_noise_stays_within_ten_percent():
    clean = SeriesSynthesizer(noise=False).synthesize("cdn_traffic_sum", 90, now=NOW)
    noisy = SeriesSynthesizer(seed=3).synthesize("cdn_traffic_sum", 90, now=NOW)
    ratio = noisy.to_numpy() / clean.to_numpy()
    assert np.all(ratio > 0.89)
    assert np.all(ratio < 1.11)


def test_negative_growth_is_clipped_at_zero():
    series = SeriesSynthesizer(seed=2).synthesize("dns_query_usage_sum", 90, growth_rate=-1.0, now=NOW)
    assert (series >= 0).all()
    assert series.iloc[-1] == 0


def test_negative_days_rejected():
    with pytest.raises(InvalidParameter):
        SeriesSynthesizer().synthesize("dns_query_usage_sum", -1, now=NOW)


def test_naive_now_is_treated_as_utc():
    assert as_utc(datetime(2025, 1, 1)) == pd.Timestamp("2025-01-01T00:00:00Z")


def test_static_history_takes_the_latest_values():
    history = StaticUsageHistory([1, 2, 3, 4, 5])
    series = history.get_history("cdn_request_sum", 3, now=NOW)
    assert series.tolist() == [3.0, 4.0, 5.0]
    assert series.index[-1] == pd.Timestamp(NOW - timedelta(days=1))


def test_static_history_rejects_bad_input():
    with pytest.raises(InvalidParameter):
        StaticUsageHistory([1, -2, 3])
    with pytest.raises(InvalidParameter):
        StaticUsageHistory([1, 2]).get_history("cdn_request_sum", 5, now=NOW)
    with pytest.raises(InvalidParameter):
        StaticUsageHistory([1.0, float("nan"), 3.0])


@pytest.mark.parametrize("raw", [[1.0, float("nan")], [float("inf")], [1e19]])
def test_counts_outside_int64_are_degenerate(raw):
    with pytest.raises(ComputationDegenerate):
        to_counts(raw)


def test_counts_are_floored_and_clipped():
    assert to_counts([-5.0, 2.9, 1e6]).tolist() == [0, 2, 1_000_000]


@pytest.mark.parametrize("growth_rate", [1e308, 1e17])
def test_runaway_growth_is_degenerate(growth_rate):
    with pytest.raises(ComputationDegenerate):
        SeriesSynthesizer(seed=1).synthesize("dns_query_usage_sum", 90, growth_rate=growth_rate, now=NOW)
