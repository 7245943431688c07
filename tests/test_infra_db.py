"""Tests for database layer."""

import os
from unittest.mock import MagicMock, patch

import pytest

from coworkly.infra.db import Database, advisory_xact_lock, fetchall, fetchone, for_update, txn


class TestDatabase:
    """Pool wrapper tests; no real DB needed."""

    def test_requires_dsn(self):
        with pytest.raises(RuntimeError, match="DATABASE_URL"):
            Database("")

    def test_pool_sizes(self):
        with patch("coworkly.infra.db.ThreadedConnectionPool") as mock_pool:
            Database("dbname=db", min_conn=2, max_conn=5)
        mock_pool.assert_called_once_with(2, 5, "dbname=db")

    def test_connection_returned_to_pool(self):
        with patch("coworkly.infra.db.ThreadedConnectionPool") as mock_pool:
            db = Database("dbname=db")
        pool = mock_pool.return_value
        conn = pool.getconn.return_value

        with pytest.raises(ValueError):
            with db.connection() as borrowed:
                assert borrowed is conn
                raise ValueError("boom")
        pool.putconn.assert_called_once_with(conn)

    def test_close(self):
        with patch("coworkly.infra.db.ThreadedConnectionPool") as mock_pool:
            db = Database("dbname=db")
        db.close()
        mock_pool.return_value.closeall.assert_called_once()


class TestTxnMocked:
    def _conn(self):
        conn = MagicMock()
        cur = conn.cursor.return_value.__enter__.return_value
        return conn, cur

    def test_commits_on_success(self):
        conn, cur = self._conn()
        with txn(conn) as got:
            assert got is cur
        conn.commit.assert_called_once()
        conn.rollback.assert_not_called()

    def test_rollback_on_exception(self):
        conn, _ = self._conn()
        with pytest.raises(ValueError):
            with txn(conn):
                raise ValueError("rollback test")
        conn.rollback.assert_called_once()
        conn.commit.assert_not_called()


class TestHelpersMocked:
    def test_advisory_lock(self):
        cur = MagicMock()
        advisory_xact_lock(cur, "space:1")
        cur.execute.assert_called_once_with(
            "SELECT pg_advisory_xact_lock(hashtext(%s))", ("space:1",)
        )

    def test_fetchone(self):
        cur = MagicMock()
        cur.fetchone.return_value = (1,)
        assert fetchone(cur, "SELECT 1") == (1,)

    def test_fetchall(self):
        cur = MagicMock()
        cur.fetchall.return_value = [(1,), (2,)]
        assert fetchall(cur, "SELECT x FROM t") == [(1,), (2,)]

    def test_for_update_suffix(self):
        cur = MagicMock()
        for_update(cur, "SELECT id FROM t WHERE id = %s;", ("a",))
        cur.execute.assert_called_once_with("SELECT id FROM t WHERE id = %s FOR UPDATE", ("a",))

    def test_for_update_nowait(self):
        cur = MagicMock()
        for_update(cur, "SELECT id FROM t", nowait=True)
        assert cur.execute.call_args[0][0].endswith("FOR UPDATE NOWAIT")


# Skip integration tests if DATABASE_URL is not set
_skip_no_db = pytest.mark.skipif(
    not os.environ.get("DATABASE_URL"),
    reason="DATABASE_URL not set - skipping DB integration tests",
)


@_skip_no_db
class TestTxn:
    """Tests for txn() against a real connection."""

    @pytest.fixture
    def db(self):
        db = Database(os.environ["DATABASE_URL"])
        yield db
        db.close()

    def test_commits_on_success(self, db):
        with db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute("CREATE TEMP TABLE test_txn (id serial, val text)")
            conn.commit()

            with txn(conn) as cur:
                cur.execute("INSERT INTO test_txn (val) VALUES (%s)", ("test",))

            with conn.cursor() as cur:
                cur.execute("SELECT val FROM test_txn")
                assert cur.fetchone()[0] == "test"
            conn.rollback()

    def test_rollback_on_exception(self, db):
        with db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute("CREATE TEMP TABLE test_rollback (id serial, val text)")
            conn.commit()

            with pytest.raises(ValueError):
                with txn(conn) as cur:
                    cur.execute("INSERT INTO test_rollback (val) VALUES (%s)", ("bad",))
                    raise ValueError("rollback test")

            with conn.cursor() as cur:
                cur.execute("SELECT count(*) FROM test_rollback")
                assert cur.fetchone()[0] == 0
            conn.rollback()

    def test_advisory_lock_roundtrip(self, db):
        with db.connection() as conn, txn(conn) as cur:
            advisory_xact_lock(cur, "space:test")
            row = fetchone(cur, "SELECT %s::text", ("hello",))
            assert row[0] == "hello"
