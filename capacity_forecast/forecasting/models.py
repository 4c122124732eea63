"""
Capacity Forecasting - data model
Input schema (pydantic) and the derived records produced per forecast call.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class UsageType(str, Enum):
    DNS_QUERY = "dns_query_usage_sum"
    CDN_REQUEST = "cdn_request_sum"
    CDN_TRAFFIC = "cdn_traffic_sum"


class RecommendationType(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"
    OPTIMIZATION = "optimization"


# --- Input Schema ---
class ForecastRequest(BaseModel):
    org_id: str = Field(min_length=1)
    usage_type: UsageType
    historical_days: int = Field(default=90, ge=1)
    forecast_days: int = Field(default=90, ge=0)
    growth_rate: float = Field(default=0.05, allow_inf_nan=False)
    include_seasonality: bool = True
    confidence_interval: float = Field(default=0.95, ge=0, le=0.99, allow_inf_nan=False)
    threshold_warning: float = Field(default=0.7, ge=0, allow_inf_nan=False)
    threshold_critical: float = Field(default=0.9, ge=0, allow_inf_nan=False)
    seed: Optional[int] = None

    @field_validator('org_id')
    @classmethod
    def strip_org_id(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("org_id must not be blank")
        return v

    def parameters(self) -> Dict[str, Any]:
        """Input parameters as persisted alongside the forecast."""
        return self.model_dump(exclude={'org_id', 'usage_type'}, mode='json')


# --- Derived Records ---
@dataclass
class PatternProfile:
    """Weekday (0=Sunday..6=Saturday) and calendar-month multipliers."""
    weekday_multipliers: List[float]
    monthly_multipliers: List[float]


@dataclass
class Timeline:
    """Historical window followed by the forecast segment, index-aligned."""
    labels: List[str]
    values: List[int]
    confidence_lower: List[Optional[int]]
    confidence_upper: List[Optional[int]]
    threshold_warning: List[float]
    threshold_critical: List[float]
    historical_end_index: int

    @property
    def historical_days(self) -> int:
        return self.historical_end_index + 1

    @property
    def forecast_labels(self) -> List[str]:
        return self.labels[self.historical_days:]

    @property
    def forecast_values(self) -> List[int]:
        return self.values[self.historical_days:]


@dataclass
class GrowthMetrics:
    current_value: int
    past_30_days_avg: int
    next_30_days_avg: Optional[int]
    next_90_days_avg: Optional[int]
    next_30_days_growth_pct: Optional[str]
    next_90_days_growth_pct: Optional[str]
    next_30_days_peak: Optional[int]
    next_90_days_peak: Optional[int]


@dataclass
class RecommendedIncrease:
    increase_amount: float
    increase_percent: str
    new_capacity: float


@dataclass
class CapacityAssessment:
    current: int
    current_usage_percent: str
    warning_breach_date: Optional[str]
    critical_breach_date: Optional[str]
    recommended_increase: Optional[RecommendedIncrease]


@dataclass
class Recommendation:
    type: RecommendationType
    title: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"type": self.type.value, "title": self.title, "message": self.message}


@dataclass
class ForecastResult:
    """The full bundle returned to the caller."""
    org_id: str
    usage_type: str
    historical_days: int
    forecast_days: int
    generated_at: str
    timeline: Timeline
    capacity: CapacityAssessment
    growth_metrics: GrowthMetrics
    recommendations: List[Recommendation] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "query": {
                "org_id": self.org_id,
                "usage_type": self.usage_type,
                "historical_days": self.historical_days,
                "forecast_days": self.forecast_days,
                "generated_at": self.generated_at,
            },
            "forecast": {
                "timeline": asdict(self.timeline),
                "capacity": asdict(self.capacity),
                "growth_metrics": asdict(self.growth_metrics),
                "recommendations": [r.to_dict() for r in self.recommendations],
            },
        }


@dataclass
class ForecastRecord:
    """One persisted forecast. Appended once, never mutated."""
    id: str
    org_id: str
    usage_type: str
    created_at: str
    parameters: Dict[str, Any]
    forecast: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ForecastRecord":
        return cls(
            id=data['id'],
            org_id=data['org_id'],
            usage_type=data['usage_type'],
            created_at=data['created_at'],
            parameters=data.get('parameters', {}),
            forecast=data.get('forecast', {}),
        )
