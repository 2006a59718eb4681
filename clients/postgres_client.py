"""
PostgreSQL client with connection pooling and per-account row isolation.

Uses psycopg2 with ThreadedConnectionPool. Account isolation is enforced by
PostgreSQL Row Level Security: the account ID is read from the contextvar and
written to app.current_account_id on every connection handed out.

No account context = no rows visible. Setup scripts that need to see every
account connect as a role with BYPASSRLS.
"""

import logging
import threading
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Tuple
from uuid import UUID

import psycopg2
import psycopg2.extras
import psycopg2.pool

from utils.account_context import _current_account_id

logger = logging.getLogger(__name__)

_jsonb_registered = False

Params = Tuple | Dict | None


def _convert_params(params: Params) -> Params:
    """Convert UUID objects to strings, recursing into containers."""
    if params is None:
        return None

    def convert(value: Any) -> Any:
        if isinstance(value, UUID):
            return str(value)
        if isinstance(value, list):
            return [convert(v) for v in value]
        if isinstance(value, tuple):
            return tuple(convert(v) for v in value)
        if isinstance(value, dict):
            return {k: convert(v) for k, v in value.items()}
        return value

    return convert(params)


class Transaction:
    """
    Statements sharing one connection and one database transaction.

    Obtained from PostgresClient.transaction(); never constructed directly.
    Nothing is committed until the surrounding with-block exits cleanly.
    """

    def __init__(self, conn):
        self._conn = conn

    def execute(self, query: str, params: Params = None) -> List[Dict[str, Any]]:
        """Execute a statement, return row dicts (empty list for no result set)."""
        with self._conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
            cur.execute(query, _convert_params(params))
            if cur.description:
                return [dict(row) for row in cur.fetchall()]
            return []

    def execute_single(self, query: str, params: Params = None) -> Dict[str, Any] | None:
        """Execute a statement, return the first row or None."""
        rows = self.execute(query, params)
        return rows[0] if rows else None


class PostgresClient:
    """
    PostgreSQL client with automatic RLS context from contextvar.

    Usage:
        db = PostgresClient(database_url)

        with account_context(account_id):
            invoices = db.execute("SELECT * FROM invoices")  # This account only

            with db.transaction() as tx:
                tx.execute("SELECT * FROM invoices WHERE id = %s FOR UPDATE", (invoice_id,))
                tx.execute("INSERT INTO payments ...")
    """

    _connection_pools: Dict[str, psycopg2.pool.ThreadedConnectionPool] = {}
    _pools_lock = threading.RLock()

    def __init__(self, database_url: str, min_connections: int = 2, max_connections: int = 20):
        self._database_url = database_url
        self._min_connections = min_connections
        self._max_connections = max_connections
        self._ensure_connection_pool()

    def _ensure_connection_pool(self) -> None:
        """Create connection pool if it doesn't exist."""
        with self._pools_lock:
            if self._database_url not in self._connection_pools:
                pool = psycopg2.pool.ThreadedConnectionPool(
                    minconn=self._min_connections,
                    maxconn=self._max_connections,
                    dsn=self._database_url,
                    connect_timeout=30,
                )

                global _jsonb_registered
                if not _jsonb_registered:
                    psycopg2.extras.register_default_jsonb(globally=True)
                    _jsonb_registered = True

                self._connection_pools[self._database_url] = pool
                logger.info("Connection pool created")

    @contextmanager
    def get_connection(self):
        """Get connection with RLS context from contextvar."""
        if self._database_url not in self._connection_pools:
            self._ensure_connection_pool()

        pool = self._connection_pools[self._database_url]
        conn = None

        try:
            conn = pool.getconn()
            if conn is None:
                raise RuntimeError("Could not get connection from pool")

            account_id = _current_account_id.get()

            with conn.cursor() as cur:
                # Empty string becomes NULL in the policies, so no rows match
                cur.execute(
                    "SET app.current_account_id = %s",
                    (str(account_id) if account_id is not None else "",),
                )

            yield conn

        finally:
            if conn:
                pool.putconn(conn)

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        """
        Run several statements atomically.

        Commits when the block exits normally, rolls back and re-raises on
        any exception.
        """
        with self.get_connection() as conn:
            try:
                yield Transaction(conn)
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def execute(self, query: str, params: Params = None) -> List[Dict[str, Any]]:
        """Execute query, return list of row dicts. Empty list if no results."""
        with self.transaction() as tx:
            return tx.execute(query, params)

    def execute_single(self, query: str, params: Params = None) -> Dict[str, Any] | None:
        """Execute query, return first row or None."""
        results = self.execute(query, params)
        return results[0] if results else None

    def execute_scalar(self, query: str, params: Params = None) -> Any:
        """Execute query, return first value of first row or None."""
        row = self.execute_single(query, params)
        if row is None:
            return None
        return next(iter(row.values()))

    def execute_returning(self, query: str, params: Params = None) -> List[Dict[str, Any]]:
        """Execute INSERT/UPDATE/DELETE with RETURNING, return results."""
        return self.execute(query, params)

    def close(self) -> None:
        """Close connection pool."""
        with self._pools_lock:
            if self._database_url in self._connection_pools:
                self._connection_pools[self._database_url].closeall()
                del self._connection_pools[self._database_url]

    @classmethod
    def close_all_pools(cls) -> None:
        """Close all connection pools."""
        with cls._pools_lock:
            for pool in cls._connection_pools.values():
                pool.closeall()
            cls._connection_pools.clear()


def to_decimal(value: Any) -> Decimal:
    """Normalize a NUMERIC/aggregate column value (possibly NULL) to Decimal."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))
