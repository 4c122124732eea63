import logging
from typing import Any, Dict, Optional

import psycopg2

from capacity_forecast.common.config_loader import ConfigLoader

# Configure logging
logger = logging.getLogger(__name__)

REQUIRED_KEYS = ['host', 'port', 'database', 'user', 'password']


def load_db_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Database section of the forecasting config.yaml, with .env overrides
    (DB_HOST, DB_PORT, DB_NAME, DB_USER, DB_PASSWORD) already applied.
    """
    return ConfigLoader.load_config(config_path)['database']


def get_db_connection(db_config: Optional[Dict[str, Any]] = None):
    """Establish and return a database connection using the configured credentials."""
    db_config = db_config or load_db_config()

    # Ensure all required keys are present
    missing = [k for k in REQUIRED_KEYS if k not in db_config]
    if missing:
        raise ValueError(f"Missing database config keys: {missing}")

    try:
        return psycopg2.connect(**{k: db_config[k] for k in REQUIRED_KEYS})
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        raise RuntimeError(f"Could not connect to database: {e}")
