"""
Forecast Record Store
Append-only persistence for generated forecasts. Records are written once
and never updated or deleted here; retention is handled outside the engine.

Backends:
- json:     JSON array file (capacity_forecasts.json), appends serialized by a file lock
- postgres: capacity.forecast_records table (JSONB payload, INSERT only)
- memory:   process-local list, for tests and demo runs
"""

import json
import logging
import os
import tempfile
import threading
from typing import Any, Dict, List, Optional

import psycopg2
from filelock import FileLock, Timeout
from psycopg2.extras import RealDictCursor

from capacity_forecast.common.errors import ForecastStoreError
from capacity_forecast.database.db import get_db_connection
from capacity_forecast.forecasting.models import ForecastRecord

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 20
LOCK_TIMEOUT = 30  # seconds


class ForecastRecordStore:
    """Append-only record store contract."""

    def append(self, record: ForecastRecord) -> ForecastRecord:
        raise NotImplementedError

    def get(self, record_id: str) -> Optional[ForecastRecord]:
        raise NotImplementedError

    def list_records(self, org_id: Optional[str] = None, usage_type: Optional[str] = None,
                     limit: int = DEFAULT_LIST_LIMIT) -> List[ForecastRecord]:
        """Matching records, newest first."""
        raise NotImplementedError


def _select(records: List[Dict[str, Any]], org_id: Optional[str], usage_type: Optional[str],
            limit: int) -> List[ForecastRecord]:
    matches = [
        r for r in reversed(records)
        if (org_id is None or r['org_id'] == org_id)
        and (usage_type is None or r['usage_type'] == usage_type)
    ]
    return [ForecastRecord.from_dict(r) for r in matches[:limit]]


# =============================================================================
# IN-MEMORY
# =============================================================================

class InMemoryForecastStore(ForecastRecordStore):
    def __init__(self):
        self._records: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

    def append(self, record):
        with self._lock:
            self._records.append(record.to_dict())
        return record

    def get(self, record_id):
        with self._lock:
            for r in self._records:
                if r['id'] == record_id:
                    return ForecastRecord.from_dict(r)
        return None

    def list_records(self, org_id=None, usage_type=None, limit=DEFAULT_LIST_LIMIT):
        with self._lock:
            return _select(list(self._records), org_id, usage_type, limit)

    def __len__(self):
        return len(self._records)


# =============================================================================
# JSON FILE
# =============================================================================

class JsonFileForecastStore(ForecastRecordStore):
    """
    All records in one JSON array (capacity_forecasts.json).
    Appends are read-modify-write under a per-path thread lock plus an OS
    file lock on <path>.lock, and land via an atomic rename. Writers in
    other processes (one MCP server per client) serialize on the same file.
    """

    _locks: Dict[str, threading.Lock] = {}
    _locks_guard = threading.Lock()

    def __init__(self, path: str):
        self.path = os.path.abspath(os.path.expanduser(path))
        with self._locks_guard:
            self._lock = self._locks.setdefault(self.path, threading.Lock())
        self._file_lock = FileLock(self.path + '.lock', timeout=LOCK_TIMEOUT)

    def _load(self) -> List[Dict[str, Any]]:
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise ForecastStoreError(f"Could not read forecast store {self.path}: {e}") from e
        if not isinstance(data, list):
            raise ForecastStoreError(f"Forecast store {self.path} does not hold a JSON array")
        return data

    def _write(self, records: List[Dict[str, Any]]) -> None:
        directory = os.path.dirname(self.path)
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix='.forecasts-', suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(records, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as e:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise ForecastStoreError(f"Could not write forecast store {self.path}: {e}") from e

    def append(self, record):
        os.makedirs(os.path.dirname(self.path), exist_ok=True)
        try:
            with self._lock, self._file_lock:
                records = self._load()
                records.append(record.to_dict())
                self._write(records)
        except Timeout as e:
            raise ForecastStoreError(f"Timed out waiting for lock on {self.path}") from e
        logger.info(f"Saved forecast {record.id} to {self.path}")
        return record

    def get(self, record_id):
        with self._lock:
            records = self._load()
        for r in records:
            if r['id'] == record_id:
                return ForecastRecord.from_dict(r)
        return None

    def list_records(self, org_id=None, usage_type=None, limit=DEFAULT_LIST_LIMIT):
        with self._lock:
            records = self._load()
        return _select(records, org_id, usage_type, limit)


# =============================================================================
# POSTGRESQL
# =============================================================================

SCHEMA_SQL = """
    CREATE SCHEMA IF NOT EXISTS capacity;
    CREATE TABLE IF NOT EXISTS capacity.forecast_records (
        id UUID PRIMARY KEY,
        org_id TEXT NOT NULL,
        usage_type TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL,
        parameters JSONB NOT NULL,
        forecast JSONB NOT NULL
    );
    CREATE INDEX IF NOT EXISTS forecast_records_org_idx
        ON capacity.forecast_records (org_id, usage_type, created_at DESC);
"""


def _row_to_record(row: Dict[str, Any]) -> ForecastRecord:
    created_at = row['created_at']
    return ForecastRecord(
        id=str(row['id']),
        org_id=row['org_id'],
        usage_type=row['usage_type'],
        created_at=created_at.isoformat() if hasattr(created_at, 'isoformat') else str(created_at),
        parameters=row['parameters'],
        forecast=row['forecast'],
    )


class PostgresForecastStore(ForecastRecordStore):
    """Forecast records in PostgreSQL; each append is its own INSERT transaction."""

    def __init__(self, db_config: Dict[str, Any]):
        self.db_config = db_config

    def get_connection(self):
        return get_db_connection(self.db_config)

    def ensure_schema(self) -> None:
        conn = self.get_connection()
        try:
            cur = conn.cursor()
            cur.execute(SCHEMA_SQL)
            conn.commit()
        except psycopg2.Error as e:
            conn.rollback()
            raise ForecastStoreError(f"Failed to create forecast_records schema: {e}") from e
        finally:
            conn.close()

    def append(self, record):
        conn = self.get_connection()
        try:
            cur = conn.cursor()
            cur.execute("""
                INSERT INTO capacity.forecast_records
                (id, org_id, usage_type, created_at, parameters, forecast)
                VALUES (%s, %s, %s, %s, %s::jsonb, %s::jsonb)
            """, (
                record.id, record.org_id, record.usage_type, record.created_at,
                json.dumps(record.parameters), json.dumps(record.forecast)
            ))
            conn.commit()
            logger.info(f"Saved forecast {record.id} for org {record.org_id}")
            return record
        except psycopg2.Error as e:
            conn.rollback()
            raise ForecastStoreError(f"Failed to insert forecast {record.id}: {e}") from e
        finally:
            conn.close()

    def get(self, record_id):
        conn = self.get_connection()
        try:
            cur = conn.cursor(cursor_factory=RealDictCursor)
            cur.execute("""
                SELECT id, org_id, usage_type, created_at, parameters, forecast
                FROM capacity.forecast_records
                WHERE id = %s
            """, (record_id,))
            row = cur.fetchone()
            return _row_to_record(row) if row else None
        finally:
            conn.close()

    def list_records(self, org_id=None, usage_type=None, limit=DEFAULT_LIST_LIMIT):
        conn = self.get_connection()
        try:
            cur = conn.cursor(cursor_factory=RealDictCursor)
            cur.execute("""
                SELECT id, org_id, usage_type, created_at, parameters, forecast
                FROM capacity.forecast_records
                WHERE (%s IS NULL OR org_id = %s)
                  AND (%s IS NULL OR usage_type = %s)
                ORDER BY created_at DESC
                LIMIT %s
            """, (org_id, org_id, usage_type, usage_type, limit))
            return [_row_to_record(row) for row in cur.fetchall()]
        finally:
            conn.close()


def get_forecast_store(config: Dict[str, Any]) -> ForecastRecordStore:
    """Build the store selected by config['store']['backend']."""
    store_cfg = config.get('store', {})
    backend = store_cfg.get('backend', 'json')

    if backend == 'json':
        path = os.path.join(store_cfg.get('data_dir', '~/.capacity-forecast'),
                            store_cfg.get('file_name', 'capacity_forecasts.json'))
        return JsonFileForecastStore(path)
    if backend == 'postgres':
        store = PostgresForecastStore(config['database'])
        store.ensure_schema()
        return store
    if backend == 'memory':
        return InMemoryForecastStore()
    raise ValueError(f"Unknown forecast store backend: {backend}")
