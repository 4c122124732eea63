import sys

from capacity_forecast.common.config_loader import get_config
from capacity_forecast.database.forecast_store import get_forecast_store

config = get_config()
store = get_forecast_store(config)

org_id = sys.argv[1] if len(sys.argv) > 1 else None
for record in store.list_records(org_id=org_id, limit=10):
    capacity = record.forecast.get("forecast", {}).get("capacity", {})
    print(record.created_at, record.org_id, record.usage_type,
          capacity.get("current_usage_percent"), capacity.get("critical_breach_date"))
