"""
Capacity table and typical daily load per usage type.

Ceilings are the provisioned daily capacity; base values are the typical
daily load used when synthesizing history. Usage is expected to run well
under capacity in steady state.
"""

from typing import Union

from capacity_forecast.forecasting.models import UsageType

DEFAULT_CAPACITY = 1_000_000
DEFAULT_BASE_VALUE = 100_000

CAPACITY_TABLE = {
    UsageType.DNS_QUERY.value: 500_000,      # DNS queries per day
    UsageType.CDN_REQUEST.value: 2_000_000,  # requests per day
    UsageType.CDN_TRAFFIC.value: 50_000,     # volume units per day
}

BASE_VALUES = {
    UsageType.DNS_QUERY.value: 100_000,
    UsageType.CDN_REQUEST.value: 500_000,
    UsageType.CDN_TRAFFIC.value: 10_000,
}


def usage_tag(usage_type: Union[UsageType, str]) -> str:
    return usage_type.value if isinstance(usage_type, UsageType) else str(usage_type)


def capacity_for(usage_type: Union[UsageType, str]) -> int:
    """Daily capacity ceiling; unknown tags get the default ceiling."""
    return CAPACITY_TABLE.get(usage_tag(usage_type), DEFAULT_CAPACITY)


def base_value_for(usage_type: Union[UsageType, str]) -> int:
    return BASE_VALUES.get(usage_tag(usage_type), DEFAULT_BASE_VALUE)
