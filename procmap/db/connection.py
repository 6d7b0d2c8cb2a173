"""
procmap/db/connection.py
------------------------
Manages PostgreSQL connection pools, one per connection name.
Uses psycopg2's SimpleConnectionPool for efficient connection reuse.
"""

import psycopg2
from psycopg2 import pool

from procmap.config import (
    POOL_MAX_CONN,
    POOL_MIN_CONN,
    get_connection_string,
    normalize_connection_name,
)
from procmap.exceptions import StorageConnectionError
from procmap.utils.logger import get_logger

logger = get_logger(__name__)

_pools: dict[str, pool.SimpleConnectionPool] = {}


def init_pool(
    connection_name: str | None = None,
    min_conn: int = POOL_MIN_CONN,
    max_conn: int = POOL_MAX_CONN,
) -> pool.SimpleConnectionPool:
    """
    Initialize the connection pool for a connection name.

    Args:
        connection_name: Configured connection name (blank means "Default").
        min_conn: Minimum number of connections to keep open.
        max_conn: Maximum number of connections allowed.

    Returns:
        The (possibly already existing) pool.

    Raises:
        StorageConnectionError: If the name is unknown or the database is unreachable.
    """
    name = normalize_connection_name(connection_name)
    if name in _pools:
        return _pools[name]
    dsn = get_connection_string(name)
    try:
        _pools[name] = pool.SimpleConnectionPool(min_conn, max_conn, dsn)
        logger.info(f"Connection pool '{name}' initialized successfully.")
    except psycopg2.OperationalError as e:
        logger.error(f"Failed to initialize connection pool '{name}': {e}")
        raise StorageConnectionError(f"Cannot connect using '{name}': {e}") from e
    return _pools[name]


def get_connection(connection_name: str | None = None):
    """
    Get a connection from the named pool, creating the pool on first use.

    Returns:
        A psycopg2 connection object.

    Raises:
        StorageConnectionError: If no connection can be obtained.
    """
    conn_pool = init_pool(connection_name)
    try:
        return conn_pool.getconn()
    except (psycopg2.OperationalError, pool.PoolError) as e:
        name = normalize_connection_name(connection_name)
        logger.error(f"Failed to get a connection from pool '{name}': {e}")
        raise StorageConnectionError(f"Cannot connect using '{name}': {e}") from e


def release_connection(conn, connection_name: str | None = None) -> None:
    """
    Return a connection back to its pool.

    Args:
        conn: The psycopg2 connection to release.
        connection_name: Name of the pool it was taken from.
    """
    conn_pool = _pools.get(normalize_connection_name(connection_name))
    if conn_pool is not None:
        conn_pool.putconn(conn)


def close_pool(connection_name: str | None = None) -> None:
    """Close all connections in one pool, or in every pool when no name is given."""
    if connection_name is None:
        names = list(_pools)
    else:
        names = [normalize_connection_name(connection_name)]
    for name in names:
        conn_pool = _pools.pop(name, None)
        if conn_pool is not None:
            conn_pool.closeall()
            logger.info(f"Connection pool '{name}' closed.")
