"""Database connection management."""

from __future__ import annotations

import ctypes
import logging
import os
import threading
import weakref
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from types import TracebackType

from minisqlite import native
from minisqlite.config import get_db_path, is_vec_enabled
from minisqlite.errors import ExecError, ExtensionError, OpenError, PrepareError
from minisqlite.extensions import load_sqlite_vec
from minisqlite.native import ResultCode
from minisqlite.statement import Statement

logger = logging.getLogger(__name__)

_TRANSACTION_MODES = frozenset({"DEFERRED", "IMMEDIATE", "EXCLUSIVE"})


def _encode(text: str, what: str) -> bytes:
    """Encode text for a NUL-terminated engine argument."""
    if "\x00" in text:
        raise ValueError(f"the {what} contains a null character")
    return text.encode("utf-8")


class Connection(native.NativeResource):
    """A SQLite database connection.

    Owns one native database handle and one lock. The lock is never taken
    implicitly: a thread sharing the connection brackets its whole unit of
    work (prepare, bind, step, read, or a transaction) with :meth:`lock` /
    :meth:`unlock` or the :meth:`exclusive` guard.

    Statements produced by :meth:`prepare` must be closed before the
    connection. Once the connection is closed, any remaining statement raises
    :class:`~minisqlite.errors.UseAfterCloseError` instead of touching the
    native handle.
    """

    def __init__(self, pointer: int, path: str) -> None:
        """Take ownership of an open database handle. Use :meth:`open` instead."""
        self._lib = native.load_library()
        self._handle = native.OwnedHandle(self, pointer, self._lib.sqlite3_close_v2, "database")
        self._lock = threading.Lock()
        self._path = path
        self._statements: weakref.WeakSet[Statement] = weakref.WeakSet()

    @classmethod
    def open(cls, path: str | os.PathLike[str], *, readonly: bool = False) -> Connection:
        """Open the database file at ``path``, creating it unless ``readonly``."""
        lib = native.load_library()
        path_str = os.fspath(path)
        if readonly:
            flags = native.OPEN_READONLY
        else:
            flags = native.OPEN_READWRITE | native.OPEN_CREATE
        if path_str.startswith("file:"):
            flags |= native.OPEN_URI

        db = ctypes.c_void_p()
        rc = lib.sqlite3_open_v2(_encode(path_str, "path"), ctypes.byref(db), flags, None)
        if rc != ResultCode.OK:
            # A handle is usually allocated even on failure and must still be released.
            diagnostic = native.errmsg(lib, db.value) if db.value else native.errstr(rc)
            if db.value:
                lib.sqlite3_close_v2(db.value)
            raise OpenError(path_str, diagnostic, rc)

        logger.debug("Opened database at %s", path_str)
        return cls(db.value, path_str)

    # -- Lifecycle --

    @property
    def path(self) -> str:
        """The path the connection was opened with."""
        return self._path

    @property
    def closed(self) -> bool:
        """True once :meth:`close` has released the native handle."""
        return not self._handle.alive

    @property
    def open_statements(self) -> int:
        """Number of statements prepared on this connection and not yet closed."""
        return sum(1 for stmt in self._statements if not stmt.closed)

    def close(self) -> None:
        """Close the database. Calling it again is a no-op."""
        if self.closed:
            return
        pending = self.open_statements
        if pending:
            logger.warning(
                "Closing database %s with %d open statement(s); they are now unusable",
                self._path,
                pending,
            )
        self._handle.release()
        logger.info("database closed")

    def __enter__(self) -> Connection:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<Connection {self._path!r} {state}>"

    # -- Locking --

    def lock(self) -> None:
        """Acquire the connection lock. Blocks; not reentrant."""
        self._lock.acquire()

    def unlock(self) -> None:
        """Release the connection lock."""
        self._lock.release()

    @contextmanager
    def exclusive(self) -> Iterator[Connection]:
        """Hold the connection lock for the duration of a ``with`` block."""
        self._lock.acquire()
        try:
            yield self
        finally:
            self._lock.release()

    # -- SQL execution --

    def execute(self, sql: str) -> None:
        """Run one or more ``;``-separated statements that take no parameters.

        Any rows produced are discarded.
        """
        db = self._handle.value
        message = ctypes.c_void_p()
        rc = self._lib.sqlite3_exec(db, _encode(sql, "query"), None, None, ctypes.byref(message))
        if rc != ResultCode.OK:
            diagnostic = native.take_message(self._lib, message.value)
            raise ExecError(diagnostic or native.errmsg(self._lib, db), rc)

    def prepare(self, sql: str) -> Statement:
        """Compile the first statement in ``sql``.

        Nothing is allocated when compilation fails, so a PrepareError never
        leaves a statement behind to close.
        """
        db = self._handle.value
        stmt = ctypes.c_void_p()
        rc = self._lib.sqlite3_prepare_v2(db, _encode(sql, "query"), -1, ctypes.byref(stmt), None)
        if rc != ResultCode.OK:
            raise PrepareError(sql, native.errmsg(self._lib, db), rc)
        if not stmt.value:
            raise PrepareError(sql, "no SQL statement to prepare", rc)
        statement = Statement(self, stmt.value, sql)
        self._statements.add(statement)
        return statement

    @contextmanager
    def transaction(self, mode: str = "DEFERRED") -> Iterator[Connection]:
        """Wrap a block in BEGIN/COMMIT, rolling back if it raises.

        Does not take the connection lock; nest inside :meth:`exclusive` when
        the connection is shared between threads.
        """
        mode = mode.upper()
        if mode not in _TRANSACTION_MODES:
            raise ValueError(f"unknown transaction mode: {mode}")
        self.execute(f"BEGIN {mode}")
        try:
            yield self
            self.execute("COMMIT")
        except BaseException:
            # Some errors make the engine roll back on its own.
            if not self.closed and self.in_transaction:
                self.execute("ROLLBACK")
            raise

    @property
    def in_transaction(self) -> bool:
        """True while an explicit transaction is open."""
        return self._lib.sqlite3_get_autocommit(self._handle.value) == 0

    @property
    def changes(self) -> int:
        """Rows modified by the most recent INSERT, UPDATE or DELETE."""
        return self._lib.sqlite3_changes(self._handle.value)

    @property
    def last_insert_rowid(self) -> int:
        """Rowid of the most recent successful INSERT."""
        return self._lib.sqlite3_last_insert_rowid(self._handle.value)

    # -- Extensions --

    def enable_load_extension(self, enabled: bool) -> None:
        """Allow or forbid run-time extension loading on this connection."""
        db = self._handle.value
        func = native.optional(self._lib, "sqlite3_enable_load_extension")
        if func is None:
            raise ExtensionError("this SQLite build doesn't support loading extensions")
        rc = func(db, 1 if enabled else 0)
        if rc != ResultCode.OK:
            diagnostic = native.errmsg(self._lib, db)
            raise ExtensionError(diagnostic, diagnostic=diagnostic, code=rc)

    def load_extension(self, path: str | os.PathLike[str], entry_point: str | None = None) -> None:
        """Load a SQLite extension from ``path``.

        Extension loading must have been enabled first with
        :meth:`enable_load_extension`.
        """
        db = self._handle.value
        filename = _encode(os.fspath(path), "path")
        entry = _encode(entry_point, "entry point") if entry_point else None
        func = native.optional(self._lib, "sqlite3_load_extension")
        if func is None:
            raise ExtensionError("this SQLite build doesn't support loading extensions")
        message = ctypes.c_void_p()
        rc = func(db, filename, entry, ctypes.byref(message))
        if rc != ResultCode.OK:
            diagnostic = native.take_message(self._lib, message.value)
            diagnostic = diagnostic or native.errmsg(self._lib, db)
            raise ExtensionError(
                f"couldn't load extension {os.fspath(path)}: {diagnostic}",
                diagnostic=diagnostic,
                code=rc,
            )
        logger.debug("Loaded extension %s", os.fspath(path))


def open_database(
    path: Path | str | None = None,
    *,
    readonly: bool = False,
    load_vec: bool | None = None,
) -> Connection:
    """Open a database connection.

    Falls back to MINISQLITE_DB_PATH when ``path`` is omitted and creates the
    parent directory of writable file databases. For an in-memory database
    pass ":memory:". sqlite-vec is loaded when ``load_vec`` is true, or when
    it is None and MINISQLITE_LOAD_VEC is set.
    """
    path_str = os.fspath(path if path is not None else get_db_path())

    if not readonly and path_str and path_str != ":memory:" and not path_str.startswith("file:"):
        Path(path_str).parent.mkdir(parents=True, exist_ok=True)

    conn = Connection.open(path_str, readonly=readonly)

    if load_vec is None:
        load_vec = is_vec_enabled()
    if load_vec:
        load_sqlite_vec(conn)

    return conn
