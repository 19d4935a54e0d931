"""
Run registry: one state document per run id.

``put`` followed by ``get`` for the same run id always returns what was put; there is
no ordering guarantee across different run ids.
"""

from __future__ import annotations

import copy
import logging
import threading
from typing import Any, Dict, Optional, Protocol

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from psycopg_pool import ConnectionPool

logger = logging.getLogger(__name__)


class RunStore(Protocol):
    def put(self, run_id: str, state: Dict[str, Any]) -> None:
        ...

    def get(self, run_id: str) -> Optional[Dict[str, Any]]:
        ...


class InMemoryRunStore:
    """Process-local store guarded by a lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._runs: Dict[str, Dict[str, Any]] = {}

    def put(self, run_id: str, state: Dict[str, Any]) -> None:
        with self._lock:
            self._runs[run_id] = copy.deepcopy(state)

    def get(self, run_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            state = self._runs.get(run_id)
            return copy.deepcopy(state) if state is not None else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._runs)

    def close(self) -> None:
        pass


_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS funnel_runs (
    run_id TEXT PRIMARY KEY,
    state JSONB NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
)
"""

_UPSERT = """
INSERT INTO funnel_runs (run_id, state, updated_at)
VALUES (%s, %s, now())
ON CONFLICT (run_id) DO UPDATE SET state = EXCLUDED.state, updated_at = now()
"""

_SELECT = "SELECT state FROM funnel_runs WHERE run_id = %s"


class PostgresRunStore:
    """Postgres-backed store (JSONB document per run) with connection pooling"""

    def __init__(self, dsn: Optional[str] = None, pool: Optional[ConnectionPool] = None):
        if pool is None:
            if not dsn:
                raise ValueError("Database DSN not provided")
            pool = ConnectionPool(
                dsn,
                min_size=1,
                max_size=10,
                timeout=30,
                max_idle=300,
                kwargs={"row_factory": dict_row},
                open=True,
            )
        self.pool = pool
        self._ensure_table()

    def _ensure_table(self) -> None:
        with self.pool.connection() as conn:
            conn.execute(_CREATE_TABLE)

    def put(self, run_id: str, state: Dict[str, Any]) -> None:
        with self.pool.connection() as conn:
            conn.execute(_UPSERT, (run_id, Jsonb(state)))

    def get(self, run_id: str) -> Optional[Dict[str, Any]]:
        with self.pool.connection() as conn:
            row = conn.execute(_SELECT, (run_id,)).fetchone()
        if not row:
            return None
        return row["state"] if isinstance(row, dict) else row[0]

    def close(self) -> None:
        try:
            self.pool.close()
        except Exception as e:
            logger.warning(f"Error closing run store pool: {e}")


def build_run_store(settings: Dict[str, Any]):
    """Postgres when ``[store].dsn`` is set, otherwise in-memory."""
    dsn = (settings.get("store") or {}).get("dsn")
    if dsn:
        logger.info("Using Postgres run store")
        return PostgresRunStore(dsn)
    return InMemoryRunStore()
