"""
Capacity Recommender and Recommendation Composer
Turns the forecast peak, breach dates and growth metrics into advisory output.
Pure functions: nothing here mutates state.
"""

import math
from datetime import datetime
from typing import List, Optional, Sequence

from capacity_forecast.common.errors import ComputationDegenerate
from capacity_forecast.forecasting.capacity import usage_tag
from capacity_forecast.forecasting.models import (
    GrowthMetrics,
    Recommendation,
    RecommendationType,
    RecommendedIncrease,
    UsageType,
)

RAPID_GROWTH_PCT = 20
SUSTAINED_GROWTH_PCT = 50

OPTIMIZATION_TIPS = {
    UsageType.DNS_QUERY.value: (
        "DNS Query Optimization",
        "Consider increasing DNS TTL values to reduce query frequency, or implementing DNS caching at edge locations.",
    ),
    UsageType.CDN_REQUEST.value: (
        "Request Optimization",
        "Evaluate implementing client-side caching headers to reduce repeat requests, or consolidate assets to reduce request count.",
    ),
    UsageType.CDN_TRAFFIC.value: (
        "Traffic Optimization",
        "Consider implementing image/video compression, adaptive bitrate streaming, or evaluating large assets for optimization.",
    ),
}

GENERIC_TIP = (
    "Usage Optimization",
    "Review caching and delivery settings for this usage type to reduce load before adding capacity.",
)


# =============================================================================
# CAPACITY RECOMMENDER
# =============================================================================

def rounding_increment(capacity: float) -> float:
    """One order of magnitude below the capacity (500 000 -> 10 000)."""
    return 10 ** (math.floor(math.log10(capacity)) - 1)


def recommend_increase(forecast_values: Sequence[float], capacity: float,
                       threshold_warning: float) -> RecommendedIncrease:
    """
    Capacity needed to keep the forecast peak at or under the warning
    threshold, rounded up to the capacity's rounding increment.

    An empty forecast segment has no peak and needs no increase.
    """
    if capacity <= 0:
        raise ComputationDegenerate(f"capacity must be positive, got {capacity}")
    if threshold_warning <= 0:
        raise ComputationDegenerate("threshold_warning must be positive to size capacity")

    if not len(forecast_values):
        return RecommendedIncrease(increase_amount=0, increase_percent="0.0", new_capacity=capacity)

    forecast_peak = max(forecast_values)
    safe_capacity = forecast_peak / threshold_warning
    increase_needed = max(0, safe_capacity - capacity)

    step = rounding_increment(capacity)
    rounded_increase = math.ceil(increase_needed / step) * step

    return RecommendedIncrease(
        increase_amount=rounded_increase,
        increase_percent=f"{increase_needed / capacity * 100:.1f}",
        new_capacity=capacity + rounded_increase,
    )


# =============================================================================
# RECOMMENDATION COMPOSER
# =============================================================================

def _display_date(label: str) -> str:
    return datetime.fromisoformat(label).strftime("%a %b %d %Y")


def compose_recommendations(usage_type, growth: GrowthMetrics,
                            warning_breach_date: Optional[str],
                            critical_breach_date: Optional[str],
                            rapid_growth_pct: float = RAPID_GROWTH_PCT,
                            sustained_growth_pct: float = SUSTAINED_GROWTH_PCT) -> List[Recommendation]:
    """
    Ordered advisories: breach status first, then growth trend, then exactly
    one usage-type optimization tip.
    """
    tag = usage_tag(usage_type)
    recommendations = []

    # 1. Capacity status
    if critical_breach_date:
        recommendations.append(Recommendation(
            type=RecommendationType.CRITICAL,
            title="Critical Capacity Breach Imminent",
            message=(f"Your {tag} is projected to reach critical capacity threshold on "
                     f"{_display_date(critical_breach_date)}. Immediate capacity planning is required."),
        ))
    elif warning_breach_date:
        recommendations.append(Recommendation(
            type=RecommendationType.WARNING,
            title="Capacity Warning Threshold Approaching",
            message=(f"Your {tag} is projected to reach warning capacity threshold on "
                     f"{_display_date(warning_breach_date)}. Begin capacity planning soon."),
        ))
    else:
        recommendations.append(Recommendation(
            type=RecommendationType.INFO,
            title="Capacity Adequate",
            message=f"Your current capacity for {tag} appears sufficient for the forecast period.",
        ))

    # 2. Growth trend (skipped when growth is undefined)
    if growth.next_30_days_growth_pct is not None:
        next_30 = float(growth.next_30_days_growth_pct)
        if next_30 > rapid_growth_pct:
            recommendations.append(Recommendation(
                type=RecommendationType.WARNING,
                title="Rapid Growth Detected",
                message=(f"You're experiencing rapid growth ({next_30:.1f}% in next 30 days). "
                         f"Consider adding CDN capacity soon."),
            ))

    if growth.next_90_days_growth_pct is not None:
        if float(growth.next_90_days_growth_pct) > sustained_growth_pct:
            recommendations.append(Recommendation(
                type=RecommendationType.INFO,
                title="Sustained Growth Trend",
                message="Long-term growth trend indicates need for strategic capacity planning.",
            ))

    # 3. Usage optimization
    title, message = OPTIMIZATION_TIPS.get(tag, GENERIC_TIP)
    recommendations.append(Recommendation(type=RecommendationType.OPTIMIZATION, title=title, message=message))

    return recommendations
