#!/usr/bin/env python3
"""
Unit tests for PostgresContentStore and PostgresConnectionPool.

The asyncpg pool is replaced with AsyncMock, so these tests check the SQL the
store issues and how it handles results and errors without a database.
"""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import asyncpg
import pytest
from asyncpg.exceptions import CannotConnectNowError, UndefinedTableError

from metabench.connectors.postgres_pool import PostgresConnectionPool
from metabench.errors import StoreConnectionError
from metabench.stores import MetaClause, PostQuery
from metabench.stores.postgres import PostgresContentStore

pytestmark = pytest.mark.asyncio


@asynccontextmanager
async def _yielding(value=None):
    yield value


def _make_mock_pool() -> AsyncMock:
    """Create a mock Postgres connection pool."""
    pool = AsyncMock()
    pool.fetch_val = AsyncMock(return_value=0)
    pool.fetch_all = AsyncMock(return_value=[])
    pool.execute_query = AsyncMock(return_value="OK")
    pool.is_healthy = AsyncMock(return_value=True)
    return pool


def _make_mock_connection(post_id: int = 42) -> MagicMock:
    conn = MagicMock()
    conn.fetchval = AsyncMock(return_value=post_id)
    conn.executemany = AsyncMock()
    conn.transaction = lambda: _yielding()
    return conn


def _store(pool=None) -> PostgresContentStore:
    return PostgresContentStore(pool or _make_mock_pool(), table_prefix="wp_")


class TestCounts:
    async def test_count_records(self):
        pool = _make_mock_pool()
        pool.fetch_val.return_value = 7

        assert await _store(pool).count_records() == 7
        pool.fetch_val.assert_awaited_once_with("SELECT COUNT(*) FROM wp_posts")

    async def test_count_metadata_none_is_zero(self):
        pool = _make_mock_pool()
        pool.fetch_val.return_value = None

        assert await _store(pool).count_metadata() == 0
        pool.fetch_val.assert_awaited_once_with("SELECT COUNT(*) FROM wp_postmeta")


class TestTruncate:
    async def test_truncate_tables(self):
        pool = _make_mock_pool()
        store = _store(pool)

        await store.truncate_records()
        await store.truncate_metadata()

        statements = [c.args[0] for c in pool.execute_query.await_args_list]
        assert statements == [
            "TRUNCATE TABLE wp_posts RESTART IDENTITY",
            "TRUNCATE TABLE wp_postmeta RESTART IDENTITY",
        ]

    async def test_delete_options_like_parses_status(self):
        pool = _make_mock_pool()
        pool.execute_query.return_value = "DELETE 3"

        deleted = await _store(pool).delete_options_like("_transient_%")

        assert deleted == 3
        pool.execute_query.assert_awaited_once_with(
            "DELETE FROM wp_options WHERE option_name LIKE $1", "_transient_%"
        )


class TestCreateRecord:
    async def test_inserts_post_and_meta(self):
        pool = _make_mock_pool()
        conn = _make_mock_connection(post_id=42)
        pool.get_connection = lambda: _yielding(conn)
        store = _store(pool)

        post_id = await store.create_record("title", "benchmark", {"k1": "v1", "k2": "v2"})

        assert post_id == 42
        conn.fetchval.assert_awaited_once()
        sql, rows = conn.executemany.await_args.args
        assert "INSERT INTO wp_postmeta" in sql
        assert rows == [(42, "k1", "v1"), (42, "k2", "v2")]
        assert store.last_query == sql

    async def test_no_meta_skips_meta_insert(self):
        pool = _make_mock_pool()
        conn = _make_mock_connection()
        pool.get_connection = lambda: _yielding(conn)

        await _store(pool).create_record("title", "benchmark", {})

        conn.executemany.assert_not_awaited()

    async def test_database_error_returns_zero(self):
        pool = _make_mock_pool()
        conn = _make_mock_connection()
        conn.fetchval.side_effect = asyncpg.exceptions.UniqueViolationError("duplicate key")
        pool.get_connection = lambda: _yielding(conn)
        store = _store(pool)

        assert await store.create_record("title", "benchmark", {}) == 0
        assert store.last_error
        assert "INSERT INTO wp_posts" in store.last_query


class TestQueryRecords:
    def _query(self, clauses, cache_results=False) -> PostQuery:
        return PostQuery(
            post_type="benchmark",
            post_status="draft",
            meta_query=clauses,
            relation="OR",
            limit=1,
            cache_results=cache_results,
        )

    async def test_build_select_without_filter(self):
        sql, params = _store().build_select(self._query([]))

        assert "EXISTS" not in sql
        assert sql.endswith("LIMIT $3")
        assert params == ["benchmark", "draft", 1]

    async def test_build_select_or_clauses(self):
        sql, params = _store().build_select(
            self._query([MetaClause("a", "1"), MetaClause("b", "2")])
        )

        assert sql.count("EXISTS (SELECT 1 FROM wp_postmeta m") == 2
        assert "m.meta_key = $3 AND m.meta_value = $4" in sql
        assert "m.meta_key = $5 AND m.meta_value = $6" in sql
        assert ") OR EXISTS (" in sql
        assert sql.endswith("LIMIT $7")
        assert params == ["benchmark", "draft", "a", "1", "b", "2", 1]

    async def test_returns_ids(self):
        pool = _make_mock_pool()
        pool.fetch_all.return_value = [{"id": 9}]

        assert await _store(pool).query_records(self._query([])) == [9]

    async def test_cache_until_flush(self):
        pool = _make_mock_pool()
        pool.fetch_all.return_value = [{"id": 1}]
        store = _store(pool)
        query = self._query([], cache_results=True)

        await store.query_records(query)
        await store.query_records(query)
        assert pool.fetch_all.await_count == 1

        await store.flush_cache()
        await store.query_records(query)
        assert pool.fetch_all.await_count == 2

    async def test_uncached_always_hits_database(self):
        pool = _make_mock_pool()
        store = _store(pool)
        query = self._query([])

        await store.query_records(query)
        await store.query_records(query)

        assert pool.fetch_all.await_count == 2


class TestSchema:
    async def test_ensure_schema_runs_every_statement(self):
        pool = _make_mock_pool()
        store = _store(pool)

        await store.ensure_schema()

        statements = [c.args[0] for c in pool.execute_query.await_args_list]
        assert len(statements) == len(store.schema_statements())
        assert all("IF NOT EXISTS" in s for s in statements)
        assert any("CREATE TABLE IF NOT EXISTS wp_options" in s for s in statements)


class TestConnectionPool:
    async def test_is_healthy(self):
        pool = PostgresConnectionPool("localhost", 5432, "db", "user", "pw")
        pool.fetch_val = AsyncMock(return_value=1)

        assert await pool.is_healthy() is True

    async def test_unhealthy_on_error(self):
        pool = PostgresConnectionPool("localhost", 5432, "db", "user", "pw")
        pool.fetch_val = AsyncMock(side_effect=ConnectionRefusedError("refused"))

        assert await pool.is_healthy() is False

    async def test_store_check_connection_delegates(self):
        pool = _make_mock_pool()
        pool.is_healthy.return_value = False

        assert await _store(pool).check_connection() is False

    async def test_get_connection_without_pool_raises(self):
        pool = PostgresConnectionPool("localhost", 5432, "db", "user", "pw")
        pool.initialize = AsyncMock()

        with pytest.raises(StoreConnectionError, match="not available"):
            async with pool.get_connection():
                pass

    async def test_initialize_gives_up_after_retries(self, monkeypatch):
        create_pool = AsyncMock(side_effect=CannotConnectNowError("starting up"))
        monkeypatch.setattr(asyncpg, "create_pool", create_pool)
        pool = PostgresConnectionPool(
            "localhost", 5432, "db", "user", "pw", max_retries=2, retry_delay=0
        )

        with pytest.raises(StoreConnectionError, match="starting up"):
            await pool.initialize()

        assert create_pool.await_count == 2
        assert pool._initialized is False


class TestLastError:
    async def test_failed_statement_sets_last_error(self):
        pool = _make_mock_pool()
        pool.fetch_val.side_effect = UndefinedTableError('relation "wp_posts" does not exist')
        store = _store(pool)

        with pytest.raises(UndefinedTableError):
            await store.count_records()

        assert "wp_posts" in store.last_error

    async def test_next_statement_clears_last_error(self):
        pool = _make_mock_pool()
        pool.fetch_val.side_effect = [UndefinedTableError("missing"), 3]
        store = _store(pool)

        with pytest.raises(UndefinedTableError):
            await store.count_records()
        assert await store.count_records() == 3

        assert store.last_error == ""
        assert store.last_query == "SELECT COUNT(*) FROM wp_posts"
