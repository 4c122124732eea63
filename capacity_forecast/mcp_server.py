"""
Capacity Forecast MCP Server
============================

Exposes the capacity forecasting engine through MCP tools:
- capacity_forecast:          generate and persist a forecast
- get_forecast_history:       list stored forecasts, newest first
- get_forecast_record:        fetch one stored forecast by id
- get_usage_history:          synthesized historical window with its weekday profile
- simulate_capacity_scenario: canned demo scenarios, never persisted

Tools return JSON strings. Failures come back as {"success": false, "message": ...}.
"""

import json
import logging
import sys
from typing import Any, Dict, Optional

from mcp.server.fastmcp import FastMCP

from capacity_forecast.common.config_loader import configure_logging, get_config
from capacity_forecast.common.errors import ForecastError, InvalidParameter
from capacity_forecast.demo.simulator import run_simulation
from capacity_forecast.forecasting import patterns
from capacity_forecast.forecasting.capacity import capacity_for
from capacity_forecast.forecasting.models import UsageType
from capacity_forecast.forecasting.orchestrator import CapacityForecastOrchestrator
from capacity_forecast.forecasting.series import SeriesSynthesizer

# =============================================================================
# CONFIGURATION
# =============================================================================

# stdout carries the MCP transport
configure_logging(get_config(), stream=sys.stderr)
logger = logging.getLogger("capacity_forecast_mcp")

# Initialize MCP Server
mcp = FastMCP("capacity-forecast")

_orchestrator: Optional[CapacityForecastOrchestrator] = None


def get_orchestrator() -> CapacityForecastOrchestrator:
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = CapacityForecastOrchestrator()
    return _orchestrator


def set_orchestrator(orchestrator: Optional[CapacityForecastOrchestrator]) -> None:
    global _orchestrator
    _orchestrator = orchestrator


def _failure(message: str) -> str:
    return json.dumps({"success": False, "message": message}, indent=2)


def _record_summary(record) -> Dict[str, Any]:
    capacity = record.forecast.get("forecast", {}).get("capacity", {})
    return {
        "id": record.id,
        "org_id": record.org_id,
        "usage_type": record.usage_type,
        "created_at": record.created_at,
        "current_usage_percent": capacity.get("current_usage_percent"),
        "warning_breach_date": capacity.get("warning_breach_date"),
        "critical_breach_date": capacity.get("critical_breach_date"),
    }


# =============================================================================
# FORECASTING
# =============================================================================

@mcp.tool()
async def capacity_forecast(org_id: str, usage_type: str, historical_days: int = 90,
                            forecast_days: int = 90, growth_rate: float = 0.05,
                            include_seasonality: bool = True, confidence_interval: float = 0.95,
                            threshold_warning: float = 0.7, threshold_critical: float = 0.9) -> str:
    """
    Generate a capacity forecast for one usage type and store it.

    Args:
        org_id: Organization the forecast belongs to
        usage_type: 'dns_query_usage_sum', 'cdn_request_sum' or 'cdn_traffic_sum'
        historical_days: Days of history to analyze (>= 1, default 90)
        forecast_days: Days to project forward (>= 0, default 90)
        growth_rate: Expected monthly growth rate (default 0.05 = 5%)
        include_seasonality: Apply weekly and monthly seasonality (default true)
        confidence_interval: Width control for the bounds, 0 to 0.99 (default 0.95)
        threshold_warning: Warning level as a fraction of capacity (default 0.7)
        threshold_critical: Critical level as a fraction of capacity (default 0.9)

    Returns:
        JSON string with the timeline, capacity assessment, growth metrics and
        recommendations, plus the stored forecast id.
    """
    params = {
        "org_id": org_id,
        "usage_type": usage_type,
        "historical_days": historical_days,
        "forecast_days": forecast_days,
        "growth_rate": growth_rate,
        "include_seasonality": include_seasonality,
        "confidence_interval": confidence_interval,
        "threshold_warning": threshold_warning,
        "threshold_critical": threshold_critical,
    }
    try:
        record = get_orchestrator().generate(params)
        return json.dumps({
            "success": True,
            "data": record.forecast,
            "message": f"Capacity forecast generated successfully for {record.usage_type}",
            "forecast_id": record.id,
        }, indent=2)
    except ForecastError as e:
        logger.error(f"Capacity forecast failed for {usage_type}: {e}", exc_info=True)
        return _failure(f"Failed to generate capacity forecast: {e}")
    except Exception as e:
        logger.error(f"Unexpected error in capacity_forecast: {e}", exc_info=True)
        return _failure(f"Failed to generate capacity forecast: {e}")


@mcp.tool()
async def get_forecast_history(org_id: Optional[str] = None, usage_type: Optional[str] = None,
                               limit: int = 10) -> str:
    """
    List stored capacity forecasts, newest first.

    Args:
        org_id: Only forecasts for this organization (optional)
        usage_type: Only forecasts for this usage type (optional)
        limit: Maximum number of forecasts to return (default 10)
    """
    try:
        if limit < 1:
            raise InvalidParameter(f"limit must be >= 1, got {limit}")
        records = get_orchestrator().store.list_records(org_id=org_id, usage_type=usage_type, limit=limit)
        return json.dumps({
            "success": True,
            "data": [_record_summary(r) for r in records],
            "count": len(records),
        }, indent=2)
    except ForecastError as e:
        logger.error(f"Error in get_forecast_history: {e}", exc_info=True)
        return _failure(str(e))
    except Exception as e:
        logger.error(f"Unexpected error in get_forecast_history: {e}", exc_info=True)
        return _failure(f"Failed to read forecast history: {e}")


@mcp.tool()
async def get_forecast_record(forecast_id: str) -> str:
    """
    Fetch one stored forecast, including its input parameters.

    Args:
        forecast_id: Id returned by capacity_forecast
    """
    try:
        record = get_orchestrator().store.get(forecast_id)
        if record is None:
            return _failure(f"No forecast found with id {forecast_id}")
        return json.dumps({"success": True, "data": record.to_dict()}, indent=2)
    except ForecastError as e:
        logger.error(f"Error in get_forecast_record: {e}", exc_info=True)
        return _failure(str(e))
    except Exception as e:
        logger.error(f"Unexpected error in get_forecast_record: {e}", exc_info=True)
        return _failure(f"Failed to read forecast {forecast_id}: {e}")


@mcp.tool()
async def get_usage_history(usage_type: str, days: int = 30, growth_rate: float = 0.05,
                            include_seasonality: bool = True, seed: Optional[int] = None) -> str:
    """
    Show the synthesized daily usage window a forecast would start from.

    Args:
        usage_type: 'dns_query_usage_sum', 'cdn_request_sum' or 'cdn_traffic_sum'
        days: Number of days of history (>= 1, default 30)
        growth_rate: Monthly growth rate applied to the window (default 0.05)
        include_seasonality: Apply monthly/yearly seasonality (default true)
        seed: Optional seed for a reproducible window
    """
    try:
        try:
            tag = UsageType(usage_type).value
        except ValueError:
            raise InvalidParameter(
                f"Unknown usage_type {usage_type!r}; expected one of {[u.value for u in UsageType]}"
            )
        if days < 1:
            raise InvalidParameter(f"days must be >= 1, got {days}")

        series = SeriesSynthesizer(seed=seed).get_history(tag, days, growth_rate, include_seasonality)
        profile = patterns.analyze(series)
        return json.dumps({
            "success": True,
            "data": {
                "usage_type": tag,
                "capacity": capacity_for(tag),
                "labels": [ts.isoformat() for ts in series.index],
                "values": [int(v) for v in series.to_numpy()],
                "weekday_multipliers": profile.weekday_multipliers,
            },
        }, indent=2)
    except ForecastError as e:
        logger.error(f"Error in get_usage_history: {e}", exc_info=True)
        return _failure(str(e))
    except Exception as e:
        logger.error(f"Unexpected error in get_usage_history: {e}", exc_info=True)
        return _failure(f"Failed to build usage history: {e}")


# =============================================================================
# DEMO
# =============================================================================

@mcp.tool()
async def simulate_capacity_scenario(scenario: str, step: str = "all") -> str:
    """
    Run a canned capacity forecasting scenario without storing anything.

    Args:
        scenario: 'steady_dns', 'viral_traffic', 'near_capacity' or 'short_horizon'
        step: 'all' (default), 'timeline', 'capacity', 'growth' or 'recommendations'
    """
    try:
        result = run_simulation(scenario, step)
        return json.dumps(result, indent=2)
    except Exception as e:
        logger.error(f"Error in simulation: {e}", exc_info=True)
        return _failure(str(e))


if __name__ == "__main__":
    logger.info("=" * 70)
    logger.info("Capacity Forecast MCP Server")
    logger.info("=" * 70)
    logger.info(f"Forecast store backend: {get_config()['store']['backend']}")
    logger.info("-" * 70)

    mcp.run()
