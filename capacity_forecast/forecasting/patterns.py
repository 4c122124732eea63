"""
Pattern Analyzer
Derives weekday multipliers from a historical window and pairs them with the
fixed monthly seasonality table.
"""

import numpy as np
import pandas as pd

from capacity_forecast.forecasting.models import PatternProfile
from capacity_forecast.forecasting.series import sunday_first_weekday

# Hand-authored: Q4 ramp (Oct-Dec) and summer lull (Jun-Aug). Not inferred
# from data; a real seasonal fit would need at least a year of history.
MONTHLY_MULTIPLIERS = (1.0, 1.0, 1.0, 1.0, 1.0, 0.9, 0.9, 0.9, 1.0, 1.2, 1.3, 1.4)


def weekday_multipliers(series: pd.Series) -> list:
    """
    Average the series per day of week (taken from each point's own
    timestamp) and normalize so the seven multipliers average to 1.0.

    Days with no samples get 1.0; populated days are normalized by the mean
    of the populated averages. A window whose averages are all zero carries
    no weekday signal and yields all 1.0.
    """
    multipliers = np.ones(7)
    if series.empty:
        return multipliers.tolist()

    weekday = sunday_first_weekday(series.index)
    averages = series.astype(float).groupby(weekday).mean()

    scale = averages.mean()
    if scale > 0:
        multipliers[averages.index.to_numpy()] = averages.to_numpy() / scale
    return multipliers.tolist()


def analyze(series: pd.Series) -> PatternProfile:
    return PatternProfile(
        weekday_multipliers=weekday_multipliers(series),
        monthly_multipliers=list(MONTHLY_MULTIPLIERS),
    )
