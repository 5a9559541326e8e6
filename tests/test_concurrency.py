"""Tests for sharing one connection between threads via its lock."""

import threading

from minisqlite import Connection

THREADS = 4
INCREMENTS = 50


def _increment(conn: Connection) -> None:
    with conn.exclusive(), conn.transaction():
        current = []
        with conn.prepare("SELECT value FROM counter WHERE id = 1") as select:
            select.step_rows(lambda: current.append(select.column_int64(0)))
        with conn.prepare("UPDATE counter SET value = ? WHERE id = 1") as update:
            update.bind_int64(1, current[0] + 1)
            update.step()


def test_locked_increments_do_not_interleave(conn):
    conn.execute("CREATE TABLE counter(id INTEGER PRIMARY KEY, value INTEGER NOT NULL)")
    conn.execute("INSERT INTO counter VALUES (1, 0)")
    conn.execute("PRAGMA synchronous=OFF")

    errors: list[BaseException] = []
    start = threading.Barrier(THREADS)

    def worker() -> None:
        start.wait()
        try:
            for _ in range(INCREMENTS):
                _increment(conn)
        except BaseException as exc:
            errors.append(exc)

    threads = [threading.Thread(target=worker) for _ in range(THREADS)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    final = []
    with conn.prepare("SELECT value FROM counter WHERE id = 1") as stmt:
        stmt.step_rows(lambda: final.append(stmt.column_int64(0)))
    assert final == [THREADS * INCREMENTS]


def test_lock_blocks_other_threads(conn):
    acquired = threading.Event()
    conn.lock()
    try:

        def contender() -> None:
            with conn.exclusive():
                acquired.set()

        thread = threading.Thread(target=contender)
        thread.start()
        assert not acquired.wait(timeout=0.2)
    finally:
        conn.unlock()
    thread.join(timeout=5)
    assert acquired.is_set()
