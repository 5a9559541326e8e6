"""Minimal data-access layer over the native SQLite engine."""

import logging

from minisqlite.connection import Connection, open_database
from minisqlite.errors import (
    BindError,
    ExecError,
    ExtensionError,
    IterationError,
    LibraryNotFoundError,
    OpenError,
    PrepareError,
    SQLiteError,
    StepError,
    UseAfterCloseError,
)
from minisqlite.native import ColumnType, ResultCode
from minisqlite.statement import Statement

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "BindError",
    "ColumnType",
    "Connection",
    "ExecError",
    "ExtensionError",
    "IterationError",
    "LibraryNotFoundError",
    "OpenError",
    "PrepareError",
    "ResultCode",
    "SQLiteError",
    "Statement",
    "StepError",
    "UseAfterCloseError",
    "open_database",
]
