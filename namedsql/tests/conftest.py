from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest


def make_cursor(rows: list[dict[str, Any]] | None = None, rowcount: int | None = None) -> MagicMock:
    """
    Builds a psycopg-like async cursor. Column names come from the first row.
    """
    cur = MagicMock()
    if rows:
        cur.description = [SimpleNamespace(name=name) for name in rows[0]]
    else:
        cur.description = None
    cur.fetchall = AsyncMock(return_value=list(rows or []))
    cur.rowcount = len(rows or []) if rowcount is None else rowcount
    return cur


def make_connection(cursor: MagicMock | None = None) -> MagicMock:
    conn = MagicMock()
    conn.execute = AsyncMock(return_value=cursor or make_cursor())
    return conn


def make_pool(conn: MagicMock) -> MagicMock:
    pool = MagicMock()
    pool.open = AsyncMock()
    pool.close = AsyncMock()
    pool.getconn = AsyncMock(return_value=conn)
    pool.putconn = AsyncMock()
    return pool


@pytest.fixture
def mock_connection() -> MagicMock:
    return make_connection()


@pytest.fixture
def mock_pool(mock_connection: MagicMock):
    """
    Replaces the psycopg pool built by Database with an in-memory mock.
    """
    pool = make_pool(mock_connection)
    with patch("namedsql.execution.database.Database._create_pool", return_value=pool):
        yield pool


@pytest.fixture(name="make_cursor")
def make_cursor_fixture():
    return make_cursor
