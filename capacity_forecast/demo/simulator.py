"""
Capacity Forecast Simulator
Runs the full forecasting pipeline on canned scenarios against an in-memory
store, so demonstrations never touch the durable forecast record store.
"""

import json
import logging

from capacity_forecast.database.forecast_store import InMemoryForecastStore
from capacity_forecast.demo.scenarios import DEMO_NOW, DEMO_SEED, get_scenarios
from capacity_forecast.forecasting.orchestrator import CapacityForecastOrchestrator

logger = logging.getLogger("Simulator")

STEPS = ("all", "timeline", "capacity", "growth", "recommendations")


def run_simulation(scenario_key: str, step: str = "all"):
    """
    Run one demo scenario.
    Scenarios: 'steady_dns', 'viral_traffic', 'near_capacity', 'short_horizon'
    Step: 'all', 'timeline', 'capacity', 'growth', 'recommendations'
    """
    data = get_scenarios()

    if scenario_key not in data:
        return {"status": "error", "message": f"Unknown scenario: {scenario_key}. Available: {list(data.keys())}"}
    if step not in STEPS:
        return {"status": "error", "message": f"Unknown step: {step}. Available: {list(STEPS)}"}

    scenario = data[scenario_key]
    store = InMemoryForecastStore()
    orchestrator = CapacityForecastOrchestrator(store=store)

    params = dict(scenario["params"], seed=DEMO_SEED)
    record = orchestrator.generate(params, now=DEMO_NOW)
    forecast = record.forecast["forecast"]
    logger.info(f"Simulated {scenario_key} as forecast {record.id}")

    if step == "timeline":
        return {"phase": "Forecast Timeline", "result": forecast["timeline"]}
    if step == "capacity":
        return {"phase": "Capacity Assessment", "result": forecast["capacity"]}
    if step == "growth":
        return {"phase": "Growth Metrics", "result": forecast["growth_metrics"]}
    if step == "recommendations":
        return {"phase": "Recommendations", "result": forecast["recommendations"]}

    return {
        "status": "success",
        "simulation_scenario": scenario["description"],
        "forecast_id": record.id,
        "parameters": record.parameters,
        "report": record.forecast,
    }


if __name__ == "__main__":
    # Self-test
    res = run_simulation("viral_traffic", "capacity")
    print(json.dumps(res, indent=2))
