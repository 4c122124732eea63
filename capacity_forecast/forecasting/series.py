"""
Usage history providers.

A history is a pandas Series of non-negative daily values indexed by a UTC
DatetimeIndex, chronological, ending the day before "now".
"""

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from capacity_forecast.common.errors import ComputationDegenerate, InvalidParameter
from capacity_forecast.forecasting.capacity import base_value_for, usage_tag

logger = logging.getLogger(__name__)

WEEKEND_FACTOR = 0.6
WEEKDAY_FACTOR = 1.1
NOISE_LOW = 0.9
NOISE_HIGH = 1.1
MAX_COUNT = float(np.iinfo(np.int64).max)


def as_utc(now: Optional[datetime] = None) -> pd.Timestamp:
    """Normalize an optional anchor instant to a tz-aware UTC Timestamp."""
    ts = pd.Timestamp(now if now is not None else datetime.now(timezone.utc))
    if ts.tzinfo is None:
        return ts.tz_localize('UTC')
    return ts.tz_convert('UTC')


def to_counts(raw, what: str = "usage") -> np.ndarray:
    """Floor to non-negative int64 counts.

    Non-finite values and values past the int64 range are degenerate; the
    cast would otherwise wrap them to large negatives.
    """
    raw = np.asarray(raw, dtype=float)
    if not np.all(np.isfinite(raw)) or np.any(raw >= MAX_COUNT):
        raise ComputationDegenerate(f"{what} values are not finite or exceed the int64 range")
    return np.clip(np.floor(raw), 0, None).astype(np.int64)


def sunday_first_weekday(index: pd.DatetimeIndex) -> np.ndarray:
    """Day of week with 0=Sunday..6=Saturday (pandas uses 0=Monday)."""
    return (np.asarray(index.dayofweek) + 1) % 7


def history_index(days: int, now: pd.Timestamp) -> pd.DatetimeIndex:
    return pd.date_range(start=now - pd.Timedelta(days=days), periods=days, freq='D')


class UsageHistoryProvider:
    """Source of the historical window a forecast is built on."""

    def get_history(self, usage_type: str, days: int, growth_rate: float = 0.05,
                    include_seasonality: bool = True, now: Optional[datetime] = None) -> pd.Series:
        raise NotImplementedError


class SeriesSynthesizer(UsageHistoryProvider):
    """
    Synthesizes a daily usage series with trend, weekday/weekend variation,
    optional monthly and yearly seasonality, and uniform noise.

    Each call draws from a fresh generator built from `seed`, so calls with a
    seed are reproducible and concurrent calls never share generator state.
    """

    def __init__(self, seed: Optional[int] = None, noise: bool = True):
        self.seed = seed
        self.noise = noise

    def synthesize(self, usage_type: str, days: int, growth_rate: float = 0.05,
                   include_seasonality: bool = True, now: Optional[datetime] = None,
                   rng: Optional[np.random.Generator] = None) -> pd.Series:
        if days < 0:
            raise InvalidParameter(f"days must be >= 0, got {days}")

        now_ts = as_utc(now)
        dates = history_index(days, now_ts)
        offsets = np.arange(days)

        trend = 1 + (growth_rate / 30) * offsets

        weekday = sunday_first_weekday(dates)
        is_weekend = (weekday == 0) | (weekday == 6)
        day_factor = np.where(is_weekend, WEEKEND_FACTOR, WEEKDAY_FACTOR)

        if include_seasonality:
            month_progress = np.asarray(dates.day) / np.asarray(dates.days_in_month)
            month = np.asarray(dates.month) - 1
            year_factor = 1 + 0.2 * np.sin((month / 12) * 2 * np.pi + np.pi / 2)
            seasonal_factor = (1 - 0.1 * np.sin(month_progress * 2 * np.pi)) * year_factor
        else:
            seasonal_factor = np.ones(days)

        if self.noise:
            rng = rng or np.random.default_rng(self.seed)
            noise_factor = rng.uniform(NOISE_LOW, NOISE_HIGH, size=days)
        else:
            noise_factor = np.ones(days)

        raw = base_value_for(usage_type) * trend * day_factor * seasonal_factor * noise_factor
        values = to_counts(raw, f"synthesized {usage_tag(usage_type)}")

        logger.debug(f"Synthesized {days} days of {usage_type} ending {now_ts.isoformat()}")
        return pd.Series(values, index=dates, name=usage_tag(usage_type))

    def get_history(self, usage_type, days, growth_rate=0.05, include_seasonality=True, now=None):
        return self.synthesize(usage_type, days, growth_rate, include_seasonality, now)


class StaticUsageHistory(UsageHistoryProvider):
    """Caller-supplied daily values, re-indexed to end the day before "now"."""

    def __init__(self, values: Sequence[float]):
        self.values = np.asarray(values, dtype=float)
        if not np.all(np.isfinite(self.values)):
            raise InvalidParameter("usage values must be finite")
        if np.any(self.values < 0):
            raise InvalidParameter("usage values must be non-negative")

    def get_history(self, usage_type, days, growth_rate=0.05, include_seasonality=True, now=None):
        if days > len(self.values):
            raise InvalidParameter(
                f"historical_days={days} exceeds the {len(self.values)} supplied values"
            )
        window = self.values[len(self.values) - days:]
        return pd.Series(window, index=history_index(days, as_utc(now)), name=usage_tag(usage_type))
