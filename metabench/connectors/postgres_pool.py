"""
Postgres Connection Pool Manager

Manages async connection pooling for the Postgres content store with health
checks and retry logic.
"""

import logging
from typing import Optional, Any, List
from contextlib import asynccontextmanager
import asyncio

import asyncpg
from asyncpg import Pool
from asyncpg.exceptions import (
    TooManyConnectionsError,
    CannotConnectNowError,
)

from metabench.config import settings
from metabench.errors import StoreConnectionError

logger = logging.getLogger(__name__)


class PostgresConnectionPool:
    """
    Async connection pool for Postgres with health monitoring and retry logic.
    """

    def __init__(
        self,
        host: str,
        port: int,
        database: str,
        user: str,
        password: str,
        min_size: int = 1,
        max_size: int = 2,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        command_timeout: Optional[float] = None,
        pool_name: str = "content",
    ):
        """
        Initialize Postgres connection pool.

        Args:
            host: Database host
            port: Database port
            database: Database name
            user: Username
            password: Password
            min_size: Minimum pool size
            max_size: Maximum pool size
            max_retries: Max retry attempts for transient failures
            retry_delay: Delay between retries in seconds
            command_timeout: Command timeout in seconds (None waits forever)
            pool_name: Descriptive name for logging
        """
        self.host = host
        self.port = port
        self.database = database
        self.user = user
        self.password = password
        self.min_size = min_size
        self.max_size = max_size
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.command_timeout = command_timeout
        self.pool_name = pool_name

        self._pool: Optional[Pool] = None
        self._initialized = False

        logger.info(
            f"[{pool_name}] Postgres pool configured: {user}@{host}:{port}/{database}, "
            f"size={min_size}-{max_size}"
        )

    async def initialize(self):
        """
        Create the asyncpg pool, retrying while the server refuses new
        connections.

        Raises:
            StoreConnectionError: The pool could not be created
        """
        if self._initialized:
            return

        target = f"{self.user}@{self.host}:{self.port}/{self.database}"
        logger.info(f"[{self.pool_name}] Connecting to {target}...")

        last_exc: Optional[BaseException] = None
        for attempt in range(1, self.max_retries + 1):
            try:
                self._pool = await asyncpg.create_pool(
                    host=self.host,
                    port=self.port,
                    database=self.database,
                    user=self.user,
                    password=self.password,
                    min_size=self.min_size,
                    max_size=self.max_size,
                    command_timeout=self.command_timeout,
                )
            except (CannotConnectNowError, TooManyConnectionsError) as e:
                last_exc = e
                if attempt < self.max_retries:
                    logger.warning(
                        f"[{self.pool_name}] Server not accepting connections "
                        f"(attempt {attempt}/{self.max_retries}): {e}"
                    )
                    await asyncio.sleep(self.retry_delay * attempt)
                continue

            self._initialized = True
            logger.info(
                f"[{self.pool_name}] Connected to {target} "
                f"(size: {self.min_size}-{self.max_size})"
            )
            return

        logger.error(
            f"[{self.pool_name}] Gave up connecting to {target} "
            f"after {self.max_retries} attempts"
        )
        raise StoreConnectionError(
            f"Content store unreachable: {last_exc}"
        ) from last_exc

    @asynccontextmanager
    async def get_connection(self):
        """
        Acquire a connection, creating the pool on first use.

        Usage:
            async with pool.get_connection() as conn:
                post_id = await conn.fetchval("INSERT ... RETURNING id")

        Raises:
            StoreConnectionError: The pool is not available
        """
        if not self._initialized:
            await self.initialize()

        if self._pool is None:
            raise StoreConnectionError(
                f"[{self.pool_name}] Postgres pool is not available"
            )

        async with self._pool.acquire() as conn:
            yield conn

    async def execute_query(
        self,
        query: str,
        *args,
        timeout: Optional[float] = None,
    ) -> str:
        """
        Execute a query that doesn't return results (INSERT, TRUNCATE, DELETE, etc.).

        Returns:
            Status string (e.g., "DELETE 3")
        """
        async with self.get_connection() as conn:
            return await conn.execute(query, *args, timeout=timeout)

    async def fetch_all(
        self,
        query: str,
        *args,
        timeout: Optional[float] = None,
    ) -> List[asyncpg.Record]:
        """Fetch all rows from a query."""
        async with self.get_connection() as conn:
            return await conn.fetch(query, *args, timeout=timeout)

    async def fetch_val(
        self,
        query: str,
        *args,
        timeout: Optional[float] = None,
    ) -> Any:
        """Fetch a single value from a query."""
        async with self.get_connection() as conn:
            return await conn.fetchval(query, *args, timeout=timeout)

    async def is_healthy(self) -> bool:
        """
        Check if the database answers a trivial query.

        Initializes the pool on first use, so this doubles as a connectivity
        probe before any other work.
        """
        try:
            result = await self.fetch_val("SELECT 1")
            return result == 1
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return False

    async def close(self):
        """Close the connection pool."""
        if self._pool is not None:
            logger.info("Closing Postgres connection pool...")
            await self._pool.close()
            self._pool = None
            self._initialized = False
            logger.info("Postgres pool closed")


def get_default_pool() -> PostgresConnectionPool:
    """
    Build a Postgres connection pool from settings.

    Returns:
        PostgresConnectionPool: Pool for the configured content database
    """
    return PostgresConnectionPool(
        host=settings.POSTGRES_HOST,
        port=settings.POSTGRES_PORT,
        database=settings.POSTGRES_DATABASE,
        user=settings.POSTGRES_USER,
        password=settings.POSTGRES_PASSWORD,
        min_size=settings.POSTGRES_POOL_MIN_SIZE,
        max_size=settings.POSTGRES_POOL_MAX_SIZE,
    )
