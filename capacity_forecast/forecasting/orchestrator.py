#!/usr/bin/env python3
"""
Capacity Forecasting - main orchestrator

Pipeline per call:
  history window -> pattern profile -> forecast timeline -> breach dates and
  growth metrics -> capacity increase and recommendations -> one appended record

A call either returns the complete bundle or raises; nothing is persisted
for a failed call.
"""

import logging
import sys
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import ValidationError

from capacity_forecast.common.config_loader import configure_logging, get_config
from capacity_forecast.common.errors import InvalidParameter
from capacity_forecast.database.forecast_store import ForecastRecordStore, get_forecast_store
from capacity_forecast.forecasting.advisor import compose_recommendations, recommend_increase
from capacity_forecast.forecasting.capacity import capacity_for
from capacity_forecast.forecasting.forecaster import CapacityForecaster
from capacity_forecast.forecasting.metrics import compute_growth_metrics, first_breach
from capacity_forecast.forecasting.models import (
    CapacityAssessment,
    ForecastRecord,
    ForecastRequest,
    ForecastResult,
    UsageType,
)
from capacity_forecast.forecasting.series import SeriesSynthesizer, UsageHistoryProvider, as_utc

logger = logging.getLogger('capacity_forecast')


class CapacityForecastOrchestrator:
    """Runs the forecasting pipeline and appends each result to the record store."""

    def __init__(self, store: Optional[ForecastRecordStore] = None,
                 history: Optional[UsageHistoryProvider] = None,
                 config: Optional[Dict[str, Any]] = None):
        self.config = config or get_config()
        self.store = store if store is not None else get_forecast_store(self.config)
        self.history = history

    def build_request(self, params: Dict[str, Any]) -> ForecastRequest:
        """Validate caller parameters, filling gaps from the configured defaults."""
        merged = dict(self.config.get('forecast', {}))
        merged.update({k: v for k, v in params.items() if v is not None})
        try:
            return ForecastRequest.model_validate(merged)
        except ValidationError as e:
            problems = ", ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            raise InvalidParameter(f"Invalid arguments: {problems}") from e

    def compute(self, request: ForecastRequest, now: Optional[datetime] = None) -> ForecastResult:
        """Run the pipeline without persisting anything."""
        now_ts = as_utc(now)
        usage_type = request.usage_type.value
        history = self.history or SeriesSynthesizer(seed=request.seed)

        timeline = CapacityForecaster(history).forecast(
            usage_type,
            historical_days=request.historical_days,
            forecast_days=request.forecast_days,
            growth_rate=request.growth_rate,
            include_seasonality=request.include_seasonality,
            confidence_interval=request.confidence_interval,
            threshold_warning=request.threshold_warning,
            threshold_critical=request.threshold_critical,
            now=now_ts,
        )

        # Breaches are only reported inside the forecast segment
        capacity = capacity_for(usage_type)
        warning_breach_date = first_breach(
            timeline.forecast_labels, timeline.forecast_values, capacity * request.threshold_warning
        )
        critical_breach_date = first_breach(
            timeline.forecast_labels, timeline.forecast_values, capacity * request.threshold_critical
        )

        growth = compute_growth_metrics(timeline.values, request.historical_days)

        if request.threshold_warning > 0:
            increase = recommend_increase(timeline.forecast_values, capacity, request.threshold_warning)
        else:
            logger.warning("threshold_warning is 0; no finite safe capacity, skipping increase sizing")
            increase = None

        current_value = timeline.values[timeline.historical_end_index]
        assessment = CapacityAssessment(
            current=capacity,
            current_usage_percent=f"{current_value / capacity * 100:.2f}",
            warning_breach_date=warning_breach_date,
            critical_breach_date=critical_breach_date,
            recommended_increase=increase,
        )

        rec_cfg = self.config.get('recommendations', {})
        recommendations = compose_recommendations(
            usage_type, growth, warning_breach_date, critical_breach_date,
            rapid_growth_pct=rec_cfg.get('rapid_growth_pct', 20),
            sustained_growth_pct=rec_cfg.get('sustained_growth_pct', 50),
        )

        logger.info(
            f"{usage_type} for org {request.org_id}: usage {assessment.current_usage_percent}% "
            f"warning={warning_breach_date or 'none'} critical={critical_breach_date or 'none'}"
        )
        return ForecastResult(
            org_id=request.org_id,
            usage_type=usage_type,
            historical_days=request.historical_days,
            forecast_days=request.forecast_days,
            generated_at=now_ts.isoformat(),
            timeline=timeline,
            capacity=assessment,
            growth_metrics=growth,
            recommendations=recommendations,
        )

    def generate(self, params: Dict[str, Any], now: Optional[datetime] = None) -> ForecastRecord:
        """Validate, compute, and append one forecast record."""
        request = self.build_request(params)
        result = self.compute(request, now)

        record = ForecastRecord(
            id=str(uuid.uuid4()),
            org_id=request.org_id,
            usage_type=request.usage_type.value,
            created_at=datetime.now(timezone.utc).isoformat(),
            parameters=request.parameters(),
            forecast=result.to_dict(),
        )
        return self.store.append(record)

    def run(self, org_id: str) -> None:
        """Forecast every usage type for one organization with configured defaults."""
        logger.info("=" * 80)
        logger.info(f"Starting capacity forecasting for org {org_id}")
        logger.info("=" * 80)

        generated = 0
        for usage_type in UsageType:
            try:
                record = self.generate({'org_id': org_id, 'usage_type': usage_type.value})
                capacity = record.forecast['forecast']['capacity']
                logger.info(
                    f"SUCCESS: {usage_type.value} at {capacity['current_usage_percent']}% of capacity, "
                    f"warning breach {capacity['warning_breach_date'] or 'not projected'}"
                )
                generated += 1
            except Exception as e:
                logger.error(f"Failed to forecast {usage_type.value}: {e}", exc_info=True)

        logger.info("=" * 80)
        logger.info(f"Capacity forecasting complete - {generated} usage types forecasted")
        logger.info("=" * 80)


# Helper function for external callers
def generate_capacity_forecast(params: Dict[str, Any], store: Optional[ForecastRecordStore] = None) -> Dict[str, Any]:
    record = CapacityForecastOrchestrator(store=store).generate(params)
    return record.to_dict()


# =============================================================================
# ENTRY POINT
# =============================================================================

if __name__ == "__main__":
    configure_logging(get_config(), handlers=[logging.StreamHandler(sys.stdout)])
    CapacityForecastOrchestrator().run(sys.argv[1] if len(sys.argv) > 1 else "demo-org")
