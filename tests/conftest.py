"""Shared test fixtures."""

import pytest

from minisqlite import Connection


@pytest.fixture
def db_path(tmp_path):
    """Path to a fresh database file inside the test's temp directory."""
    return tmp_path / "test.db"


@pytest.fixture
def conn(db_path):
    """Open connection on a temporary database file."""
    connection = Connection.open(db_path)
    yield connection
    connection.close()


@pytest.fixture
def table(conn):
    """Connection with a two-column table ``t(a INTEGER, b TEXT)``."""
    conn.execute("CREATE TABLE t(a INTEGER, b TEXT)")
    return conn


@pytest.fixture
def insert_rows(table):
    """Helper inserting (a, b) pairs into table t."""

    def _insert(rows: list[tuple[int, str]]) -> None:
        for a, b in rows:
            with table.prepare("INSERT INTO t VALUES (?, ?)") as stmt:
                stmt.bind_int(1, a)
                stmt.bind_text(2, b)
                stmt.step()

    return _insert
