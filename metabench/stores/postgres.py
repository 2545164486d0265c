"""
Postgres Content Store

Stores posts, postmeta and options in WordPress-shaped tables:

- {prefix}posts     one row per post
- {prefix}postmeta  one row per metadata key/value pair
- {prefix}options   key/value settings, including transient cache rows

Schema creation is idempotent (see ensure_schema).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

import asyncpg

from metabench.connectors.postgres_pool import PostgresConnectionPool
from metabench.stores.base import ContentStore, PostQuery

logger = logging.getLogger(__name__)


class PostgresContentStore(ContentStore):
    """Content store backed by a Postgres database."""

    def __init__(self, pool: PostgresConnectionPool, table_prefix: str = "wp_"):
        super().__init__()
        self.pool = pool
        self.table_prefix = table_prefix
        self.posts_table = f"{table_prefix}posts"
        self.postmeta_table = f"{table_prefix}postmeta"
        self.options_table = f"{table_prefix}options"
        self._query_cache: Dict[Tuple[Any, ...], List[int]] = {}

    async def connect(self) -> None:
        await self.pool.initialize()

    async def close(self) -> None:
        await self.pool.close()

    def schema_statements(self) -> List[str]:
        """DDL for the three content tables."""
        return [
            f"""
            CREATE TABLE IF NOT EXISTS {self.posts_table} (
                id BIGSERIAL PRIMARY KEY,
                post_title TEXT NOT NULL DEFAULT '',
                post_type VARCHAR(20) NOT NULL DEFAULT 'post',
                post_status VARCHAR(20) NOT NULL DEFAULT 'draft',
                post_date TIMESTAMPTZ NOT NULL DEFAULT now()
            )
            """,
            f"""
            CREATE INDEX IF NOT EXISTS {self.posts_table}_type_status_date
                ON {self.posts_table} (post_type, post_status, post_date, id)
            """,
            f"""
            CREATE TABLE IF NOT EXISTS {self.postmeta_table} (
                meta_id BIGSERIAL PRIMARY KEY,
                post_id BIGINT NOT NULL DEFAULT 0,
                meta_key VARCHAR(255),
                meta_value TEXT
            )
            """,
            f"""
            CREATE INDEX IF NOT EXISTS {self.postmeta_table}_post_id
                ON {self.postmeta_table} (post_id)
            """,
            f"""
            CREATE INDEX IF NOT EXISTS {self.postmeta_table}_meta_key
                ON {self.postmeta_table} (meta_key)
            """,
            f"""
            CREATE TABLE IF NOT EXISTS {self.options_table} (
                option_id BIGSERIAL PRIMARY KEY,
                option_name VARCHAR(191) NOT NULL UNIQUE,
                option_value TEXT NOT NULL DEFAULT '',
                autoload VARCHAR(20) NOT NULL DEFAULT 'yes'
            )
            """,
        ]

    async def ensure_schema(self) -> None:
        """Create the content tables and indexes if they are missing."""
        statements = self.schema_statements()
        total = len(statements)
        for idx, statement in enumerate(statements, 1):
            first_line = statement.strip().split("\n")[0][:80]
            logger.info(f"[{idx}/{total}] Executing: {first_line}")
            await self._execute(statement)

    async def _execute(self, query: str, *args) -> str:
        self._log_query(query)
        try:
            return await self.pool.execute_query(query, *args)
        except asyncpg.PostgresError as e:
            self.last_error = str(e)
            raise

    async def _fetch_val(self, query: str, *args) -> Any:
        self._log_query(query)
        try:
            return await self.pool.fetch_val(query, *args)
        except asyncpg.PostgresError as e:
            self.last_error = str(e)
            raise

    async def check_connection(self) -> bool:
        return await self.pool.is_healthy()

    async def count_records(self) -> int:
        return int(await self._fetch_val(f"SELECT COUNT(*) FROM {self.posts_table}") or 0)

    async def count_metadata(self) -> int:
        return int(
            await self._fetch_val(f"SELECT COUNT(*) FROM {self.postmeta_table}") or 0
        )

    async def truncate_records(self) -> None:
        await self._execute(f"TRUNCATE TABLE {self.posts_table} RESTART IDENTITY")

    async def truncate_metadata(self) -> None:
        await self._execute(f"TRUNCATE TABLE {self.postmeta_table} RESTART IDENTITY")

    async def delete_options_like(self, pattern: str) -> int:
        status = await self._execute(
            f"DELETE FROM {self.options_table} WHERE option_name LIKE $1", pattern
        )
        # Status looks like "DELETE 3"
        parts = str(status or "").split()
        try:
            return int(parts[-1])
        except (IndexError, ValueError):
            return 0

    async def create_record(
        self, title: str, post_type: str, meta_input: Dict[str, str]
    ) -> int:
        insert_post = (
            f"INSERT INTO {self.posts_table} (post_title, post_type, post_status) "
            f"VALUES ($1, $2, 'draft') RETURNING id"
        )
        insert_meta = (
            f"INSERT INTO {self.postmeta_table} (post_id, meta_key, meta_value) "
            f"VALUES ($1, $2, $3)"
        )
        try:
            async with self.pool.get_connection() as conn:
                async with conn.transaction():
                    self._log_query(insert_post)
                    post_id = await conn.fetchval(insert_post, title, post_type)
                    if meta_input:
                        self._log_query(insert_meta)
                        await conn.executemany(
                            insert_meta,
                            [(post_id, k, v) for k, v in meta_input.items()],
                        )
        except asyncpg.PostgresError as e:
            self.last_error = str(e)
            logger.error(f"Failed to insert post '{title}': {e}")
            return 0

        return int(post_id or 0)

    def build_select(self, query: PostQuery) -> Tuple[str, List[Any]]:
        """
        Build the SELECT statement and its parameters for a post query.

        Each metadata clause becomes an EXISTS subquery; clauses are joined
        with the query's relation (AND/OR).
        """
        params: List[Any] = [query.post_type, query.post_status]
        where = ["p.post_type = $1", "p.post_status = $2"]

        clauses = []
        for clause in query.meta_query:
            params.extend([clause.key, clause.value])
            key_idx, value_idx = len(params) - 1, len(params)
            clauses.append(
                f"EXISTS (SELECT 1 FROM {self.postmeta_table} m "
                f"WHERE m.post_id = p.id AND m.meta_key = ${key_idx} "
                f"AND m.meta_value = ${value_idx})"
            )
        if clauses:
            joiner = " OR " if query.relation.upper() == "OR" else " AND "
            where.append("(" + joiner.join(clauses) + ")")

        params.append(int(query.limit))
        sql = (
            f"SELECT p.id FROM {self.posts_table} p "
            f"WHERE {' AND '.join(where)} "
            f"ORDER BY p.post_date DESC, p.id DESC "
            f"LIMIT ${len(params)}"
        )
        return sql, params

    async def query_records(self, query: PostQuery) -> List[int]:
        sql, params = self.build_select(query)
        cache_key: Optional[Tuple[Any, ...]] = None
        if query.cache_results:
            cache_key = (sql, *params)
            if cache_key in self._query_cache:
                return list(self._query_cache[cache_key])

        self._log_query(sql)
        try:
            rows = await self.pool.fetch_all(sql, *params)
        except asyncpg.PostgresError as e:
            self.last_error = str(e)
            raise

        ids = [int(row["id"]) for row in rows]
        if cache_key is not None:
            self._query_cache[cache_key] = ids
        return ids

    async def flush_cache(self) -> None:
        self._query_cache.clear()
