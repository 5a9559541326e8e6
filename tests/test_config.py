"""Tests for environment-variable configuration."""

from pathlib import Path

from minisqlite.config import get_db_path, get_library_path, is_vec_enabled


def test_library_path_default(monkeypatch):
    monkeypatch.delenv("MINISQLITE_LIBRARY", raising=False)
    assert get_library_path() is None


def test_library_path_blank_is_ignored(monkeypatch):
    monkeypatch.setenv("MINISQLITE_LIBRARY", "  ")
    assert get_library_path() is None


def test_library_path_set(monkeypatch):
    monkeypatch.setenv("MINISQLITE_LIBRARY", "/usr/lib/libsqlite3.so.0")
    assert get_library_path() == "/usr/lib/libsqlite3.so.0"


def test_db_path_default(monkeypatch):
    monkeypatch.delenv("MINISQLITE_DB_PATH", raising=False)
    path = get_db_path()
    assert path == Path("~/.local/share/minisqlite/minisqlite.db").expanduser()


def test_db_path_expands_user(monkeypatch):
    monkeypatch.setenv("MINISQLITE_DB_PATH", "~/data/app.db")
    assert get_db_path() == Path.home() / "data" / "app.db"


def test_vec_enabled(monkeypatch):
    monkeypatch.delenv("MINISQLITE_LOAD_VEC", raising=False)
    assert is_vec_enabled() is False
    monkeypatch.setenv("MINISQLITE_LOAD_VEC", "true")
    assert is_vec_enabled() is True
    monkeypatch.setenv("MINISQLITE_LOAD_VEC", "1")
    assert is_vec_enabled() is False
