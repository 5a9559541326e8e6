"""Quick check that the SQLite library loads and supports what minisqlite needs."""

import sys

from minisqlite import LibraryNotFoundError, SQLiteError, open_database
from minisqlite.extensions import load_sqlite_vec
from minisqlite.native import library_path, library_version, load_library, threadsafe


def main() -> None:
    """Report the SQLite library in use, its thread safety and sqlite-vec support."""
    try:
        load_library()
    except LibraryNotFoundError as e:
        print(f"  {e}")
        sys.exit(1)

    print(f"Using {library_path()} (SQLite {library_version()})")
    if threadsafe():
        print("  thread-safe build")
    else:
        print("  built without thread safety; don't share connections between threads")
        sys.exit(1)

    try:
        conn = open_database(":memory:", load_vec=False)
    except SQLiteError as e:
        print(f"  Error: {e}")
        sys.exit(1)
    try:
        if load_sqlite_vec(conn):
            print("  sqlite-vec loads")
        else:
            print("  sqlite-vec not loadable with this library")
    finally:
        conn.close()


if __name__ == "__main__":
    main()
