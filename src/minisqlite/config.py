"""Environment-variable-based configuration."""

import os
from pathlib import Path


def get_library_path() -> str | None:
    """Return an explicit path to the SQLite shared library from MINISQLITE_LIBRARY."""
    raw = os.environ.get("MINISQLITE_LIBRARY", "").strip()
    return raw or None


def get_db_path() -> Path:
    """Return the default database file path from MINISQLITE_DB_PATH."""
    raw = os.environ.get("MINISQLITE_DB_PATH", "~/.local/share/minisqlite/minisqlite.db")
    return Path(raw).expanduser()


def is_vec_enabled() -> bool:
    """Return True if MINISQLITE_LOAD_VEC is set to TRUE."""
    return os.environ.get("MINISQLITE_LOAD_VEC", "").upper() == "TRUE"
