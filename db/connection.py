"""
db/connection.py
----------------
Manages the PostgreSQL connection pool.
Uses psycopg2's SimpleConnectionPool for efficient connection reuse.

Every statement group commits on its own: callers never get a transaction
spanning several repository calls.
"""

from contextlib import contextmanager

import psycopg2
from psycopg2 import pool

from config import DATABASE_URL
from models.errors import UpstreamFailure
from utils.logger import get_logger

logger = get_logger(__name__)

_pool: pool.SimpleConnectionPool | None = None


def init_pool(min_conn: int = 1, max_conn: int = 5) -> None:
    """
    Initialize the database connection pool.

    Args:
        min_conn: Minimum number of connections to keep open.
        max_conn: Maximum number of connections allowed.

    Raises:
        UpstreamFailure: If the database is unreachable.
    """
    global _pool
    if _pool is not None:
        return
    try:
        _pool = pool.SimpleConnectionPool(min_conn, max_conn, DATABASE_URL)
        logger.info("Database connection pool initialized successfully.")
    except psycopg2.OperationalError as e:
        logger.error(f"Failed to initialize database pool: {e}")
        raise UpstreamFailure("Database unavailable") from e


def get_connection():
    """
    Get a connection from the pool.

    Returns:
        A psycopg2 connection object.

    Raises:
        RuntimeError: If the pool has not been initialized.
        UpstreamFailure: If the pool cannot hand out a connection.
    """
    if _pool is None:
        raise RuntimeError("Database pool not initialized. Call init_pool() first.")
    try:
        return _pool.getconn()
    except (psycopg2.Error, pool.PoolError) as e:
        logger.error(f"Could not obtain a database connection: {e}")
        raise UpstreamFailure("Database unavailable") from e


def release_connection(conn) -> None:
    """
    Return a connection back to the pool.

    Args:
        conn: The psycopg2 connection to release.
    """
    if _pool is not None:
        _pool.putconn(conn)


@contextmanager
def cursor(action: str = "query"):
    """
    Yield a cursor on a pooled connection; commit on success, roll back
    and raise UpstreamFailure on any database error.

    Args:
        action: Short description used in the failure log line.
    """
    conn = get_connection()
    try:
        with conn.cursor() as cur:
            yield cur
        conn.commit()
    except psycopg2.Error as e:
        conn.rollback()
        logger.error(f"Failed to {action}: {e}")
        raise UpstreamFailure(f"Database error while trying to {action}") from e
    except Exception:
        conn.rollback()
        raise
    finally:
        release_connection(conn)


def close_pool() -> None:
    """Close all connections in the pool."""
    global _pool
    if _pool is not None:
        _pool.closeall()
        _pool = None
        logger.info("Database connection pool closed.")
