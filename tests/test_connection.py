"""Tests for the named connection pools."""

from unittest.mock import MagicMock

import psycopg2
import pytest

from procmap import StorageConnectionError
from procmap.db import connection


@pytest.fixture(autouse=True)
def clean_pools(monkeypatch):
    monkeypatch.setattr(connection, "_pools", {})
    monkeypatch.setattr(connection, "get_connection_string", lambda name: f"postgresql://db/{name}")


@pytest.fixture
def fake_pool(monkeypatch):
    factory = MagicMock()
    monkeypatch.setattr(connection.pool, "SimpleConnectionPool", factory)
    return factory


def test_pool_created_once_per_name(fake_pool):
    first = connection.init_pool()
    second = connection.init_pool("Default")

    assert first is second
    fake_pool.assert_called_once_with(1, 5, "postgresql://db/Default")


def test_get_connection_creates_pool_lazily(fake_pool):
    conn = connection.get_connection("Reporting")

    assert conn is fake_pool.return_value.getconn.return_value
    assert "Reporting" in connection._pools


def test_unreachable_database(monkeypatch):
    failing = MagicMock(side_effect=psycopg2.OperationalError("could not connect"))
    monkeypatch.setattr(connection.pool, "SimpleConnectionPool", failing)

    with pytest.raises(StorageConnectionError, match="Default"):
        connection.get_connection()
    assert connection._pools == {}


def test_exhausted_pool(fake_pool):
    fake_pool.return_value.getconn.side_effect = connection.pool.PoolError("connection pool exhausted")

    with pytest.raises(StorageConnectionError, match="exhausted"):
        connection.get_connection()


def test_release_returns_connection(fake_pool):
    conn = connection.get_connection()

    connection.release_connection(conn)

    fake_pool.return_value.putconn.assert_called_once_with(conn)


def test_close_every_pool(fake_pool):
    connection.init_pool("Default")
    connection.init_pool("Reporting")

    connection.close_pool()

    assert connection._pools == {}
    assert fake_pool.return_value.closeall.call_count == 2


def test_close_one_pool(fake_pool):
    connection.init_pool("Default")
    connection.init_pool("Reporting")

    connection.close_pool("Reporting")

    assert list(connection._pools) == ["Default"]
