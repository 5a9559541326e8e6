"""Tests for run-time extension loading."""

import logging

import pytest

from minisqlite import ExtensionError, open_database
from minisqlite.extensions import load_sqlite_vec


def test_load_missing_extension_raises(conn, tmp_path):
    with pytest.raises(ExtensionError):
        conn.enable_load_extension(True)
        conn.load_extension(tmp_path / "no_such_extension")


def test_load_sqlite_vec(conn):
    if not load_sqlite_vec(conn):
        pytest.skip("SQLite library can't load sqlite-vec")
    with conn.prepare("SELECT vec_version()") as stmt:
        versions = [row.column_text(0) for row in stmt.rows()]
    assert versions[0].startswith("v")


def test_load_sqlite_vec_failure_is_reported(conn, monkeypatch, caplog):
    def _refuse(enabled):
        raise ExtensionError("extension loading disabled")

    monkeypatch.setattr(conn, "enable_load_extension", _refuse)
    with caplog.at_level(logging.WARNING, logger="minisqlite.extensions"):
        assert load_sqlite_vec(conn) is False
    assert "sqlite-vec" in caplog.text


def test_open_database_loads_vec_from_config(tmp_path, monkeypatch):
    loaded = []
    monkeypatch.setenv("MINISQLITE_LOAD_VEC", "TRUE")
    monkeypatch.setattr("minisqlite.connection.load_sqlite_vec", loaded.append)
    conn = open_database(tmp_path / "vec.db")
    try:
        assert loaded == [conn]
    finally:
        conn.close()
