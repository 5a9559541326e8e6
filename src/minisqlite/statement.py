"""Prepared statements: parameter binding, stepping and column decoding."""

from __future__ import annotations

import ctypes
import operator
from collections.abc import Callable, Iterator
from types import TracebackType
from typing import TYPE_CHECKING, Any

from minisqlite import native
from minisqlite.errors import BindError, IterationError, StepError, UseAfterCloseError
from minisqlite.native import ColumnType, ResultCode

if TYPE_CHECKING:
    from minisqlite.connection import Connection

_INT32_MIN, _INT32_MAX = -(2**31), 2**31 - 1
_INT64_MIN, _INT64_MAX = -(2**63), 2**63 - 1

_BYTES_LIKE = (bytes, bytearray, memoryview)

Param = int | float | str | bytes | bytearray | memoryview | None
Value = int | float | str | bytes | None


class Statement(native.NativeResource):
    """A compiled SQL statement.

    Created by :meth:`Connection.prepare`. Parameters are bound by 1-based
    index, result columns are read by 0-based index. Column values are only
    valid for the current row: read them before advancing.

    A statement holds a reference to its connection but does not own it, and
    every operation fails with UseAfterCloseError once either the statement or
    its connection has been closed.
    """

    def __init__(self, connection: Connection, pointer: int, sql: str) -> None:
        """Take ownership of a compiled statement handle."""
        self._connection = connection
        self._lib = native.load_library()
        self._handle = native.OwnedHandle(self, pointer, self._lib.sqlite3_finalize, "statement")
        self._sql = sql

    def _stmt(self) -> int:
        if self._connection.closed:
            raise UseAfterCloseError("database is closed")
        return self._handle.value

    def _diagnostic(self, stmt: int, rc: int) -> str:
        message = native.errmsg(self._lib, self._lib.sqlite3_db_handle(stmt))
        return message or native.errstr(rc)

    # -- Lifecycle --

    @property
    def connection(self) -> Connection:
        """The connection this statement was prepared on."""
        return self._connection

    @property
    def sql(self) -> str:
        """The SQL text the statement was prepared from."""
        return self._sql

    @property
    def closed(self) -> bool:
        """True once the compiled handle has been released."""
        return not self._handle.alive

    def close(self) -> None:
        """Finalize the statement. Calling it again is a no-op."""
        self._handle.release()

    def __enter__(self) -> Statement:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # -- Stepping --

    def step(self) -> None:
        """Run a statement that produces no rows (INSERT, UPDATE, DDL, ...).

        Anything other than completion in one step, including a result row,
        raises StepError.
        """
        stmt = self._stmt()
        rc = self._lib.sqlite3_step(stmt)
        if rc != ResultCode.DONE:
            raise StepError(self._diagnostic(stmt, rc), rc)

    def rows(self) -> Iterator[Statement]:
        """Advance through the result rows, yielding the statement once per row.

        Columns of a row are readable until the next item is pulled.
        """
        while True:
            stmt = self._stmt()
            rc = self._lib.sqlite3_step(stmt)
            if rc == ResultCode.ROW:
                yield self
            elif rc == ResultCode.DONE:
                return
            else:
                raise IterationError(self._diagnostic(stmt, rc), rc)

    def step_rows(self, on_row: Callable[[], Any]) -> None:
        """Call ``on_row`` once for every result row, in order."""
        for _ in self.rows():
            on_row()

    # -- Columns --

    @property
    def column_count(self) -> int:
        """Number of columns in the result set."""
        return self._lib.sqlite3_column_count(self._stmt())

    def column_name(self, index: int) -> str | None:
        """Name of a result column, or None if ``index`` is out of range."""
        raw = self._lib.sqlite3_column_name(self._stmt(), index)
        return raw.decode("utf-8", errors="replace") if raw is not None else None

    def column_type(self, index: int) -> ColumnType:
        """Storage class of a column in the current row."""
        return ColumnType(self._lib.sqlite3_column_type(self._stmt(), index))

    def column_int(self, index: int) -> int:
        """Read a column as a 32-bit integer."""
        return self._lib.sqlite3_column_int(self._stmt(), index)

    def column_int64(self, index: int) -> int:
        """Read a column as a 64-bit integer."""
        return self._lib.sqlite3_column_int64(self._stmt(), index)

    def column_double(self, index: int) -> float:
        """Read a column as a double."""
        return self._lib.sqlite3_column_double(self._stmt(), index)

    def column_text(self, index: int) -> str:
        """Read a column as text. NULL reads as an empty string."""
        stmt = self._stmt()
        pointer = self._lib.sqlite3_column_text(stmt, index)
        if not pointer:
            return ""
        size = self._lib.sqlite3_column_bytes(stmt, index)
        return ctypes.string_at(pointer, size).decode("utf-8", errors="replace")

    def column_blob(self, index: int) -> bytes:
        """Read a column as a copy of its raw bytes."""
        stmt = self._stmt()
        # Pointer first, then size: the conversion may reallocate the buffer.
        pointer = self._lib.sqlite3_column_blob(stmt, index)
        size = self._lib.sqlite3_column_bytes(stmt, index)
        if not pointer or size == 0:
            return b""
        return ctypes.string_at(pointer, size)

    def column_value(self, index: int) -> Value:
        """Read a column using the accessor matching its storage class."""
        kind = self.column_type(index)
        if kind is ColumnType.INTEGER:
            return self.column_int64(index)
        if kind is ColumnType.FLOAT:
            return self.column_double(index)
        if kind is ColumnType.TEXT:
            return self.column_text(index)
        if kind is ColumnType.BLOB:
            return self.column_blob(index)
        return None

    def row_values(self) -> tuple[Value, ...]:
        """All columns of the current row, decoded by storage class."""
        return tuple(self.column_value(i) for i in range(self.column_count))

    # -- Parameters --

    @property
    def parameter_count(self) -> int:
        """Largest parameter index used by the statement."""
        return self._lib.sqlite3_bind_parameter_count(self._stmt())

    def parameter_index(self, name: str) -> int:
        """Index of a named parameter such as ``:id``, or 0 if there is none."""
        return self._lib.sqlite3_bind_parameter_index(self._stmt(), name.encode("utf-8"))

    def _check_bind(self, stmt: int, index: int, rc: int) -> None:
        if rc != ResultCode.OK:
            raise BindError(index, self._diagnostic(stmt, rc), rc)

    def bind_null(self, index: int) -> None:
        """Bind NULL to a parameter."""
        stmt = self._stmt()
        self._check_bind(stmt, index, self._lib.sqlite3_bind_null(stmt, index))

    def bind_int(self, index: int, value: int) -> None:
        """Bind a 32-bit integer to a parameter."""
        value = operator.index(value)
        if not _INT32_MIN <= value <= _INT32_MAX:
            raise OverflowError(f"{value} doesn't fit in a 32-bit integer")
        stmt = self._stmt()
        self._check_bind(stmt, index, self._lib.sqlite3_bind_int(stmt, index, value))

    def bind_int64(self, index: int, value: int) -> None:
        """Bind a 64-bit integer to a parameter."""
        value = operator.index(value)
        if not _INT64_MIN <= value <= _INT64_MAX:
            raise OverflowError(f"{value} doesn't fit in a 64-bit integer")
        stmt = self._stmt()
        self._check_bind(stmt, index, self._lib.sqlite3_bind_int64(stmt, index, value))

    def bind_double(self, index: int, value: float) -> None:
        """Bind a double to a parameter."""
        value = float(value)
        stmt = self._stmt()
        self._check_bind(stmt, index, self._lib.sqlite3_bind_double(stmt, index, value))

    def bind_text(self, index: int, value: str) -> None:
        """Bind text to a parameter. The engine keeps its own copy."""
        if not isinstance(value, str):
            raise TypeError(f"expected str, got {type(value).__name__}")
        data = value.encode("utf-8")
        stmt = self._stmt()
        rc = self._lib.sqlite3_bind_text(stmt, index, data, len(data), native.SQLITE_TRANSIENT)
        self._check_bind(stmt, index, rc)

    def bind_blob(self, index: int, value: bytes | bytearray | memoryview) -> None:
        """Bind raw bytes to a parameter. The engine keeps its own copy."""
        if not isinstance(value, _BYTES_LIKE):
            raise TypeError(f"expected a bytes-like object, got {type(value).__name__}")
        data = bytes(value)
        stmt = self._stmt()
        if not data:
            # A NULL data pointer would bind SQL NULL instead of an empty blob.
            rc = self._lib.sqlite3_bind_zeroblob(stmt, index, 0)
        else:
            rc = self._lib.sqlite3_bind_blob(stmt, index, data, len(data), native.SQLITE_TRANSIENT)
        self._check_bind(stmt, index, rc)

    def bind(self, index: int, value: Param) -> None:
        """Bind a Python value using the binder matching its type."""
        if value is None:
            self.bind_null(index)
        elif isinstance(value, int):
            if _INT32_MIN <= value <= _INT32_MAX:
                self.bind_int(index, value)
            else:
                self.bind_int64(index, value)
        elif isinstance(value, float):
            self.bind_double(index, value)
        elif isinstance(value, str):
            self.bind_text(index, value)
        elif isinstance(value, _BYTES_LIKE):
            self.bind_blob(index, value)
        else:
            raise TypeError(f"unsupported parameter type: {type(value).__name__}")

    def bind_all(self, *values: Param) -> None:
        """Bind ``values`` to parameters 1..n."""
        for index, value in enumerate(values, start=1):
            self.bind(index, value)
