"""Run-time loading of the sqlite-vec extension."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import sqlite_vec

from minisqlite.errors import ExtensionError

if TYPE_CHECKING:
    from minisqlite.connection import Connection

logger = logging.getLogger(__name__)


def load_sqlite_vec(conn: Connection) -> bool:
    """Load sqlite-vec into ``conn`` using the package's bundled module.

    Extension loading is switched back off afterwards. Returns False, with a
    warning, when the engine can't load it.
    """
    try:
        conn.enable_load_extension(True)
        try:
            conn.load_extension(sqlite_vec.loadable_path())
        finally:
            conn.enable_load_extension(False)
    except ExtensionError:
        logger.warning("sqlite-vec extension not available, vector functions disabled")
        return False
    logger.debug("sqlite-vec extension loaded")
    return True
