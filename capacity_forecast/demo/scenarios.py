"""
Canned forecast scenarios for demonstration.
All scenarios share a fixed anchor instant and seed so repeated runs match.
"""
from datetime import datetime, timezone

DEMO_NOW = datetime(2025, 9, 1, tzinfo=timezone.utc)
DEMO_SEED = 42
DEMO_ORG = "demo-org"


def get_scenarios():
    return {
        "steady_dns": {
            "description": "Steady DNS query load well under the provisioned ceiling.",
            "params": {
                "org_id": DEMO_ORG,
                "usage_type": "dns_query_usage_sum",
                "growth_rate": 0.05,
            },
        },

        "viral_traffic": {
            "description": "CDN traffic growing 90% a month into the Q4 peak.",
            "params": {
                "org_id": DEMO_ORG,
                "usage_type": "cdn_traffic_sum",
                "growth_rate": 0.9,
                "include_seasonality": True,
            },
        },

        "near_capacity": {
            "description": "CDN requests against tight warning/critical thresholds.",
            "params": {
                "org_id": DEMO_ORG,
                "usage_type": "cdn_request_sum",
                "growth_rate": 0.15,
                "threshold_warning": 0.3,
                "threshold_critical": 0.4,
            },
        },

        "short_horizon": {
            "description": "One month of history, one week ahead, no seasonality.",
            "params": {
                "org_id": DEMO_ORG,
                "usage_type": "dns_query_usage_sum",
                "historical_days": 30,
                "forecast_days": 7,
                "include_seasonality": False,
            },
        },
    }
