"""ctypes boundary to the SQLite C library.

The shared library is located once per process and every function used by the
package gets its ``argtypes``/``restype`` declared here, so the rest of the
code can call ``lib.sqlite3_*`` directly. Native pointers are passed around as
plain ints and owned by :class:`OwnedHandle`.
"""

from __future__ import annotations

import ctypes
import ctypes.util
import functools
import importlib.util
import logging
import sys
import weakref
from collections.abc import Callable
from enum import IntEnum
from typing import Any

from minisqlite.config import get_library_path
from minisqlite.errors import LibraryNotFoundError, UseAfterCloseError

logger = logging.getLogger(__name__)

_loaded_from: str | None = None


class ResultCode(IntEnum):
    """Primary SQLite result codes."""

    OK = 0
    ERROR = 1
    INTERNAL = 2
    PERM = 3
    ABORT = 4
    BUSY = 5
    LOCKED = 6
    NOMEM = 7
    READONLY = 8
    INTERRUPT = 9
    IOERR = 10
    CORRUPT = 11
    NOTFOUND = 12
    FULL = 13
    CANTOPEN = 14
    PROTOCOL = 15
    EMPTY = 16
    SCHEMA = 17
    TOOBIG = 18
    CONSTRAINT = 19
    MISMATCH = 20
    MISUSE = 21
    NOLFS = 22
    AUTH = 23
    FORMAT = 24
    RANGE = 25
    NOTADB = 26
    NOTICE = 27
    WARNING = 28
    ROW = 100
    DONE = 101


class ColumnType(IntEnum):
    """Storage class of a result column value."""

    INTEGER = 1
    FLOAT = 2
    TEXT = 3
    BLOB = 4
    NULL = 5


OPEN_READONLY = 0x00000001
OPEN_READWRITE = 0x00000002
OPEN_CREATE = 0x00000004
OPEN_URI = 0x00000040

# Destructor sentinel telling SQLite to copy bound text/blob data immediately.
SQLITE_TRANSIENT = ctypes.c_void_p(-1)

_ptr = ctypes.c_void_p
_int = ctypes.c_int
_str = ctypes.c_char_p

_PROTOTYPES: dict[str, tuple[Any, list[Any]]] = {
    "sqlite3_libversion": (_str, []),
    "sqlite3_threadsafe": (_int, []),
    "sqlite3_errstr": (_str, [_int]),
    "sqlite3_free": (None, [_ptr]),
    # connections
    "sqlite3_open_v2": (_int, [_str, ctypes.POINTER(_ptr), _int, _str]),
    "sqlite3_close_v2": (_int, [_ptr]),
    "sqlite3_errmsg": (_str, [_ptr]),
    "sqlite3_exec": (_int, [_ptr, _str, _ptr, _ptr, ctypes.POINTER(_ptr)]),
    "sqlite3_changes": (_int, [_ptr]),
    "sqlite3_last_insert_rowid": (ctypes.c_int64, [_ptr]),
    "sqlite3_get_autocommit": (_int, [_ptr]),
    # statements
    "sqlite3_prepare_v2": (_int, [_ptr, _str, _int, ctypes.POINTER(_ptr), ctypes.POINTER(_ptr)]),
    "sqlite3_finalize": (_int, [_ptr]),
    "sqlite3_step": (_int, [_ptr]),
    "sqlite3_db_handle": (_ptr, [_ptr]),
    "sqlite3_column_count": (_int, [_ptr]),
    "sqlite3_column_name": (_str, [_ptr, _int]),
    "sqlite3_column_type": (_int, [_ptr, _int]),
    "sqlite3_column_int": (_int, [_ptr, _int]),
    "sqlite3_column_int64": (ctypes.c_int64, [_ptr, _int]),
    "sqlite3_column_double": (ctypes.c_double, [_ptr, _int]),
    "sqlite3_column_text": (_ptr, [_ptr, _int]),
    "sqlite3_column_blob": (_ptr, [_ptr, _int]),
    "sqlite3_column_bytes": (_int, [_ptr, _int]),
    "sqlite3_bind_parameter_count": (_int, [_ptr]),
    "sqlite3_bind_parameter_index": (_int, [_ptr, _str]),
    "sqlite3_bind_null": (_int, [_ptr, _int]),
    "sqlite3_bind_int": (_int, [_ptr, _int, _int]),
    "sqlite3_bind_int64": (_int, [_ptr, _int, ctypes.c_int64]),
    "sqlite3_bind_double": (_int, [_ptr, _int, ctypes.c_double]),
    "sqlite3_bind_text": (_int, [_ptr, _int, _str, _int, _ptr]),
    "sqlite3_bind_blob": (_int, [_ptr, _int, _str, _int, _ptr]),
    "sqlite3_bind_zeroblob": (_int, [_ptr, _int, _int]),
}

# Absent from builds compiled with SQLITE_OMIT_LOAD_EXTENSION.
_OPTIONAL_PROTOTYPES: dict[str, tuple[Any, list[Any]]] = {
    "sqlite3_enable_load_extension": (_int, [_ptr, _int]),
    "sqlite3_load_extension": (_int, [_ptr, _str, _str, ctypes.POINTER(_ptr)]),
}


def _candidates() -> list[str]:
    """Library names and paths to try, in priority order."""
    names: list[str] = []
    explicit = get_library_path()
    if explicit:
        names.append(explicit)
    found = ctypes.util.find_library("sqlite3")
    if found:
        names.append(found)
    if sys.platform == "darwin":
        names.extend(["libsqlite3.dylib", "/usr/lib/libsqlite3.dylib"])
    elif sys.platform == "win32":
        names.extend(["sqlite3.dll", "winsqlite3.dll"])
    else:
        names.extend(["libsqlite3.so.0", "libsqlite3.so"])
    # The interpreter's own sqlite3 extension module links the engine too.
    spec = importlib.util.find_spec("_sqlite3")
    if spec is not None and spec.origin:
        names.append(spec.origin)
    return list(dict.fromkeys(names))


def _declare(lib: ctypes.CDLL) -> None:
    """Attach argtypes/restype to every function the package calls."""
    for name, (restype, argtypes) in _PROTOTYPES.items():
        func = getattr(lib, name)
        func.restype = restype
        func.argtypes = argtypes
    for name, (restype, argtypes) in _OPTIONAL_PROTOTYPES.items():
        func = getattr(lib, name, None)
        if func is None:
            logger.debug("%s not exported; extension loading disabled", name)
            continue
        func.restype = restype
        func.argtypes = argtypes


@functools.cache
def load_library() -> ctypes.CDLL:
    """Locate and load the SQLite shared library.

    Search order: ``MINISQLITE_LIBRARY``, ``ctypes.util.find_library``, the
    usual platform names, then the interpreter's ``_sqlite3`` module.
    """
    global _loaded_from
    tried = _candidates()
    for name in tried:
        try:
            lib = ctypes.CDLL(name)
            _declare(lib)
        except (OSError, AttributeError):
            logger.debug("SQLite library candidate %s not usable", name)
            continue
        logger.debug("Loaded SQLite %s from %s", decode(lib.sqlite3_libversion()), name)
        if lib.sqlite3_threadsafe() == 0:
            logger.warning("SQLite library %s was built without thread safety", name)
        _loaded_from = name
        return lib
    raise LibraryNotFoundError(tried)


def decode(raw: bytes | None) -> str:
    """Decode a NUL-terminated engine string, mapping NULL to ``""``."""
    if not raw:
        return ""
    return raw.decode("utf-8", errors="replace")


def library_path() -> str:
    """Return the name or path the SQLite library was loaded from."""
    load_library()
    return _loaded_from or ""


def library_version() -> str:
    """Return the version string of the loaded SQLite library."""
    return decode(load_library().sqlite3_libversion())


def threadsafe() -> bool:
    """Return True if the loaded library was compiled thread-safe."""
    return load_library().sqlite3_threadsafe() != 0


def errstr(code: int) -> str:
    """Return the English description of a result code."""
    return decode(load_library().sqlite3_errstr(code))


def errmsg(lib: ctypes.CDLL, db: int | None) -> str:
    """Return the diagnostic for the most recent failure on a database handle."""
    return decode(lib.sqlite3_errmsg(db))


def take_message(lib: ctypes.CDLL, pointer: int | None) -> str:
    """Copy out and free an error message allocated by the engine."""
    if not pointer:
        return ""
    try:
        return decode(ctypes.string_at(pointer))
    finally:
        lib.sqlite3_free(pointer)


def optional(lib: ctypes.CDLL, name: str) -> Callable[..., int] | None:
    """Return an optional library function, or None if this build lacks it."""
    return getattr(lib, name, None)


class OwnedHandle:
    """Exclusive owner of one native pointer.

    The release function runs at most once: either through :meth:`release`
    or when the owning object is garbage collected.
    """

    def __init__(self, owner: object, pointer: int, release: Callable[[int], Any], kind: str):
        """Tie ``pointer`` to the lifetime of ``owner``."""
        self._pointer = pointer
        self._kind = kind
        self._finalizer = weakref.finalize(owner, release, pointer)

    @property
    def alive(self) -> bool:
        """True until the handle has been released."""
        return self._finalizer.alive

    @property
    def value(self) -> int:
        """The raw pointer. Raises UseAfterCloseError once released."""
        if not self._finalizer.alive:
            raise UseAfterCloseError(f"{self._kind} is closed")
        return self._pointer

    def release(self) -> bool:
        """Release the native resource. Returns False if it was already released."""
        if not self._finalizer.alive:
            return False
        self._finalizer()
        return True

    def __repr__(self) -> str:
        state = "open" if self.alive else "released"
        return f"<OwnedHandle {self._kind} {state}>"


class NativeResource:
    """Mixin refusing copies, so a native handle always has a single owner."""

    def __copy__(self) -> Any:
        raise TypeError(f"cannot copy {type(self).__name__} objects")

    def __deepcopy__(self, memo: dict[int, Any]) -> Any:
        raise TypeError(f"cannot copy {type(self).__name__} objects")

    def __reduce__(self) -> Any:
        raise TypeError(f"cannot pickle {type(self).__name__} objects")
