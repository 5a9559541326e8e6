"""Error taxonomy for the SQLite access layer.

Every non-success status reported by the engine is surfaced as one of these
exceptions. The engine's own message is kept verbatim in ``diagnostic`` and the
raw result code in ``code`` so callers can decide on their own retry policy
(busy/locked conditions are never retried here).
"""

from __future__ import annotations

import os


class SQLiteError(Exception):
    """Base class for all errors raised by minisqlite."""

    def __init__(self, message: str, *, diagnostic: str = "", code: int | None = None) -> None:
        """Initialize with a message, the engine diagnostic and result code."""
        super().__init__(message)
        self.diagnostic = diagnostic
        self.code = code


class LibraryNotFoundError(SQLiteError):
    """No usable SQLite shared library could be loaded."""

    def __init__(self, tried: list[str]) -> None:
        """Initialize with the library names and paths that were attempted."""
        super().__init__(
            "couldn't load the SQLite library (tried: "
            + ", ".join(tried)
            + "); set MINISQLITE_LIBRARY to the path of libsqlite3"
        )
        self.tried = tried


class UseAfterCloseError(SQLiteError):
    """An operation was attempted on a closed connection or statement."""


class OpenError(SQLiteError):
    """The database file could not be opened."""

    def __init__(self, path: str | os.PathLike[str], diagnostic: str = "", code: int | None = None):
        """Initialize with the path that failed to open."""
        message = f"couldn't open database file ({path})"
        if diagnostic:
            message = f"{message}: {diagnostic}"
        super().__init__(message, diagnostic=diagnostic, code=code)
        self.path = path


class PrepareError(SQLiteError):
    """SQL text failed to compile into a statement."""

    def __init__(self, sql: str, diagnostic: str, code: int | None = None) -> None:
        """Initialize with the offending SQL and the engine diagnostic."""
        super().__init__(diagnostic, diagnostic=diagnostic, code=code)
        self.sql = sql


class ExecError(SQLiteError):
    """A no-result execution failed."""

    def __init__(self, diagnostic: str, code: int | None = None) -> None:
        super().__init__(diagnostic, diagnostic=diagnostic, code=code)


class StepError(SQLiteError):
    """A no-row statement failed or did not complete in a single step."""

    def __init__(self, diagnostic: str, code: int | None = None) -> None:
        super().__init__(diagnostic, diagnostic=diagnostic, code=code)


class IterationError(SQLiteError):
    """Row iteration ended in a status other than ROW or DONE."""

    def __init__(self, diagnostic: str, code: int | None = None) -> None:
        super().__init__(
            f"stepping through rows didn't finish with DONE: {diagnostic}",
            diagnostic=diagnostic,
            code=code,
        )


class BindError(SQLiteError):
    """The engine rejected a parameter binding."""

    def __init__(self, index: int, diagnostic: str, code: int | None = None) -> None:
        """Initialize with the 1-based parameter index and the engine diagnostic."""
        super().__init__(
            f"couldn't bind parameter {index}: {diagnostic}", diagnostic=diagnostic, code=code
        )
        self.index = index


class ExtensionError(SQLiteError):
    """Run-time extension loading is unavailable or failed."""
