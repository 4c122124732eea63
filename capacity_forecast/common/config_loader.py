"""
Config Loader (Shared Library)
Loads the forecasting config.yaml and merges environment overrides from .env.
Secrets and deployment-specific values always come from the environment.
"""

import copy
import logging
import os
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

DEFAULT_CONFIG_PATH = os.path.join(
    os.path.dirname(os.path.abspath(__file__)), '..', 'forecasting', 'config.yaml'
)

DEFAULTS: Dict[str, Any] = {
    'forecast': {
        'historical_days': 90,
        'forecast_days': 90,
        'growth_rate': 0.05,
        'include_seasonality': True,
        'confidence_interval': 0.95,
        'threshold_warning': 0.7,
        'threshold_critical': 0.9,
    },
    'recommendations': {
        'rapid_growth_pct': 20,
        'sustained_growth_pct': 50,
    },
    'store': {
        'backend': 'json',
        'data_dir': '~/.capacity-forecast',
        'file_name': 'capacity_forecasts.json',
    },
    'database': {
        'host': 'localhost',
        'port': 5432,
        'database': 'capacity_forecast',
        'user': 'postgres',
        'password': '',
    },
    'logging': {
        'level': 'INFO',
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


class ConfigLoader:
    @staticmethod
    def load_config(path: Optional[str] = None) -> Dict[str, Any]:
        config = copy.deepcopy(DEFAULTS)

        path = os.path.normpath(path or DEFAULT_CONFIG_PATH)
        if os.path.exists(path):
            with open(path, 'r') as f:
                _merge(config, yaml.safe_load(f) or {})

        # Env takes precedence for deployment settings and secrets
        store = config['store']
        store['backend'] = os.getenv('FORECAST_STORE_BACKEND', store['backend']).lower()
        store['data_dir'] = os.getenv('FORECAST_DATA_DIR', store['data_dir'])

        db = config['database']
        db['host'] = os.getenv('DB_HOST', db.get('host'))
        db['port'] = int(os.getenv('DB_PORT', db.get('port', 5432)))
        db['database'] = os.getenv('DB_NAME', db.get('database'))
        db['user'] = os.getenv('DB_USER', db.get('user'))
        db['password'] = os.getenv('DB_PASSWORD', db.get('password'))

        config['logging']['level'] = os.getenv('LOG_LEVEL', config['logging']['level']).upper()
        return config


_config_cache: Optional[Dict[str, Any]] = None


def get_config(reload: bool = False) -> Dict[str, Any]:
    """Process-wide config, loaded on first use rather than at import."""
    global _config_cache
    if _config_cache is None or reload:
        _config_cache = ConfigLoader.load_config()
    return _config_cache


def configure_logging(config: Dict[str, Any], **kwargs) -> None:
    """Apply the configured level with the service-wide log format."""
    logging.basicConfig(
        level=getattr(logging, config.get('logging', {}).get('level', 'INFO'), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        **kwargs
    )
