"""Tests for the row iteration protocol."""

import pytest

from minisqlite import IterationError, UseAfterCloseError


def test_step_rows_calls_back_once_per_row_in_order(table, insert_rows):
    rows = [(i, f"row-{i}") for i in range(25)]
    insert_rows(rows)

    seen = []
    with table.prepare("SELECT a, b FROM t ORDER BY a") as stmt:
        stmt.step_rows(lambda: seen.append((stmt.column_int(0), stmt.column_text(1))))
    assert seen == rows


def test_step_rows_with_no_rows(table):
    calls = []
    with table.prepare("SELECT a FROM t") as stmt:
        stmt.step_rows(lambda: calls.append(1))
    assert calls == []


def test_callback_sees_only_current_row(table, insert_rows):
    insert_rows([(1, "one"), (2, "two"), (3, "three")])
    pairs = []
    with table.prepare("SELECT a, b FROM t ORDER BY a DESC") as stmt:

        def on_row():
            # Both columns must come from the same row.
            pairs.append((stmt.column_int(0), stmt.column_text(1)))

        stmt.step_rows(on_row)
    assert pairs == [(3, "three"), (2, "two"), (1, "one")]


def test_rows_generator(table, insert_rows):
    insert_rows([(10, "a"), (20, "b")])
    with table.prepare("SELECT a FROM t ORDER BY a") as stmt:
        values = [row.column_int(0) for row in stmt.rows()]
    assert values == [10, 20]


def test_rows_yields_statement(table, insert_rows):
    insert_rows([(1, "a")])
    with table.prepare("SELECT a FROM t") as stmt:
        for row in stmt.rows():
            assert row is stmt


def test_bound_parameters_filter_rows(table, insert_rows):
    insert_rows([(i, str(i)) for i in range(10)])
    with table.prepare("SELECT b FROM t WHERE a >= ? AND a < ? ORDER BY a") as stmt:
        stmt.bind_int(1, 3)
        stmt.bind_int(2, 6)
        values = [row.column_text(0) for row in stmt.rows()]
    assert values == ["3", "4", "5"]


def test_iteration_error_mid_stream(table):
    with table.prepare("INSERT INTO t(a) VALUES (?)") as insert:
        insert.bind_int64(1, 1)
        insert.step()
    with table.prepare("INSERT INTO t(a) VALUES (?)") as insert:
        insert.bind_int64(1, -(2**63))
        insert.step()

    seen = []
    with table.prepare("SELECT abs(a) FROM t") as stmt:
        with pytest.raises(IterationError) as excinfo:
            stmt.step_rows(lambda: seen.append(stmt.column_int64(0)))
    assert seen == [1]
    assert "integer overflow" in excinfo.value.diagnostic
    assert "DONE" in str(excinfo.value)


def test_step_rows_propagates_callback_errors(table, insert_rows):
    insert_rows([(1, "a"), (2, "b")])

    def on_row():
        raise KeyError("stop")

    with table.prepare("SELECT a FROM t") as stmt:
        with pytest.raises(KeyError):
            stmt.step_rows(on_row)


def test_closing_during_iteration_fails_fast(table, insert_rows):
    insert_rows([(1, "a"), (2, "b")])
    stmt = table.prepare("SELECT a FROM t")
    rows = stmt.rows()
    next(rows)
    stmt.close()
    with pytest.raises(UseAfterCloseError):
        next(rows)
