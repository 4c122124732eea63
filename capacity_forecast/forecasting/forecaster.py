"""
Forecast Generator
Extends the historical window forward with trend, weekday pattern, monthly
seasonality, and confidence bounds that widen with forecast distance.
"""

import logging
import math
from datetime import datetime
from typing import Optional

import numpy as np
import pandas as pd

from capacity_forecast.common.errors import InvalidParameter
from capacity_forecast.forecasting import patterns
from capacity_forecast.forecasting.capacity import capacity_for, usage_tag
from capacity_forecast.forecasting.models import PatternProfile, Timeline
from capacity_forecast.forecasting.series import (
    SeriesSynthesizer,
    UsageHistoryProvider,
    as_utc,
    sunday_first_weekday,
    to_counts,
)

logger = logging.getLogger(__name__)

MAX_CONFIDENCE_INTERVAL = 0.99


def validate_parameters(historical_days: int, forecast_days: int, confidence_interval: float,
                        threshold_warning: float, threshold_critical: float,
                        growth_rate: float = 0.0) -> None:
    if historical_days < 1:
        raise InvalidParameter(f"historical_days must be >= 1, got {historical_days}")
    if forecast_days < 0:
        raise InvalidParameter(f"forecast_days must be >= 0, got {forecast_days}")
    if not 0 <= confidence_interval <= MAX_CONFIDENCE_INTERVAL:
        raise InvalidParameter(
            f"confidence_interval must lie in [0, {MAX_CONFIDENCE_INTERVAL}], got {confidence_interval}"
        )
    if not (math.isfinite(threshold_warning) and math.isfinite(threshold_critical)):
        raise InvalidParameter("capacity thresholds must be finite")
    if threshold_warning < 0 or threshold_critical < 0:
        raise InvalidParameter("capacity thresholds must be >= 0")
    if not math.isfinite(growth_rate):
        raise InvalidParameter(f"growth_rate must be finite, got {growth_rate}")


def variance_factors(forecast_days: int, confidence_interval: float) -> np.ndarray:
    """Relative half-width of the bounds for each forecast offset."""
    if forecast_days == 0:
        return np.zeros(0)
    distance = np.arange(1, forecast_days + 1) / forecast_days
    return (1 - confidence_interval) * distance * 0.5


def project(anchor: float, dates: pd.DatetimeIndex, profile: PatternProfile,
            growth_rate: float, include_seasonality: bool) -> np.ndarray:
    """Forecast values for `dates`, starting at offset 0 from the anchor."""
    trend = 1 + (growth_rate / 30) * np.arange(len(dates))
    week_mult = np.asarray(profile.weekday_multipliers)[sunday_first_weekday(dates)]
    if include_seasonality:
        season_mult = np.asarray(profile.monthly_multipliers)[np.asarray(dates.month) - 1]
    else:
        season_mult = np.ones(len(dates))
    return to_counts(anchor * trend * week_mult * season_mult, "forecast")


class CapacityForecaster:
    """Builds a Timeline from a usage history provider."""

    def __init__(self, history: Optional[UsageHistoryProvider] = None):
        self.history = history or SeriesSynthesizer()

    def forecast(self, usage_type, historical_days: int = 90, forecast_days: int = 90,
                 growth_rate: float = 0.05, include_seasonality: bool = True,
                 confidence_interval: float = 0.95, threshold_warning: float = 0.7,
                 threshold_critical: float = 0.9, now: Optional[datetime] = None) -> Timeline:
        validate_parameters(historical_days, forecast_days, confidence_interval,
                            threshold_warning, threshold_critical, growth_rate)
        now_ts = as_utc(now)

        # 1. Historical window and its pattern profile
        history = self.history.get_history(
            usage_type, historical_days, growth_rate, include_seasonality, now_ts
        )
        profile = patterns.analyze(history)
        anchor = float(history.iloc[-1])

        # 2. Forecast segment
        dates = pd.date_range(start=now_ts, periods=forecast_days, freq='D')
        values = project(anchor, dates, profile, growth_rate, include_seasonality)
        spread = variance_factors(forecast_days, confidence_interval)
        lower = to_counts(values * (1 - spread), "confidence_lower").tolist()
        upper = to_counts(values * (1 + spread), "confidence_upper").tolist()

        # 3. Thresholds are constant since capacity is static
        total = historical_days + forecast_days
        capacity = capacity_for(usage_type)

        logger.info(
            f"Forecast {usage_tag(usage_type)}: {historical_days} historical + "
            f"{forecast_days} forecast days, anchor={anchor:.0f}"
        )
        return Timeline(
            labels=[ts.isoformat() for ts in history.index] + [ts.isoformat() for ts in dates],
            values=[int(v) for v in history.to_numpy()] + values.tolist(),
            confidence_lower=[None] * historical_days + lower,
            confidence_upper=[None] * historical_days + upper,
            threshold_warning=[capacity * threshold_warning] * total,
            threshold_critical=[capacity * threshold_critical] * total,
            historical_end_index=historical_days - 1,
        )
