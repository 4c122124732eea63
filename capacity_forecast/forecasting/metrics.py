"""
Breach detection and growth metrics around the "now" boundary of a timeline.
"""

import logging
from typing import Optional, Sequence

import numpy as np

from capacity_forecast.forecasting.models import GrowthMetrics

logger = logging.getLogger(__name__)

TRAILING_WINDOW = 30
SHORT_WINDOW = 30
LONG_WINDOW = 90


def first_breach(dates: Sequence[str], values: Sequence[float], threshold: float) -> Optional[str]:
    """
    First date whose value meets or exceeds the threshold, else None.
    Forward scan only: values oscillate with weekday and season, so they are
    not monotonic.
    """
    for date, value in zip(dates, values):
        if value >= threshold:
            return date
    return None


def growth_percent(next_avg: Optional[float], past_avg: float) -> Optional[str]:
    """Growth of a forward average over the trailing average, 2 decimals.

    Undefined (None) when the forward window is empty or the trailing
    average is zero.
    """
    if next_avg is None or past_avg == 0:
        return None
    return f"{(next_avg / past_avg - 1) * 100:.2f}"


def _forward_window(values: np.ndarray, now_index: int, days: int) -> np.ndarray:
    end = min(len(values) - 1, now_index + days)
    return values[now_index + 1:end + 1]


def _floor_or_none(window: np.ndarray, reducer) -> Optional[int]:
    if window.size == 0:
        return None
    return int(np.floor(reducer(window)))


def compute_growth_metrics(values: Sequence[float], historical_days: int) -> GrowthMetrics:
    data = np.asarray(values, dtype=float)
    now_index = historical_days - 1

    past = data[max(0, now_index - TRAILING_WINDOW):now_index + 1]
    short = _forward_window(data, now_index, SHORT_WINDOW)
    long = _forward_window(data, now_index, LONG_WINDOW)

    past_avg = float(past.mean())
    short_avg = float(short.mean()) if short.size else None
    long_avg = float(long.mean()) if long.size else None

    if past_avg == 0:
        logger.warning("Trailing 30-day average is zero; growth percentages are undefined")

    return GrowthMetrics(
        current_value=int(data[now_index]),
        past_30_days_avg=int(np.floor(past_avg)),
        next_30_days_avg=_floor_or_none(short, np.mean),
        next_90_days_avg=_floor_or_none(long, np.mean),
        next_30_days_growth_pct=growth_percent(short_avg, past_avg),
        next_90_days_growth_pct=growth_percent(long_avg, past_avg),
        next_30_days_peak=_floor_or_none(short, np.max),
        next_90_days_peak=_floor_or_none(long, np.max),
    )
