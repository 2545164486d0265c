"""
Content stores.

Provides the abstract ContentStore interface, its Postgres and in-memory
implementations, and a factory that picks one by name.
"""

from typing import Optional

from metabench.stores.base import ContentStore, MetaClause, PostQuery
from metabench.stores.memory import InMemoryContentStore
from metabench.stores.postgres import PostgresContentStore

STORE_BACKENDS = ("postgres", "memory")


def create_content_store(kind: Optional[str] = None) -> ContentStore:
    """
    Factory function to create the appropriate content store.

    Args:
        kind: "postgres" or "memory"; defaults to settings.STORE_BACKEND

    Returns:
        ContentStore instance
    """
    from metabench.config import settings

    kind = str(kind or settings.STORE_BACKEND).strip().lower()

    if kind == "postgres":
        from metabench.connectors.postgres_pool import get_default_pool

        return PostgresContentStore(get_default_pool(), settings.TABLE_PREFIX)
    if kind == "memory":
        return InMemoryContentStore()

    raise ValueError(f"Unsupported store backend: {kind}")


__all__ = [
    "STORE_BACKENDS",
    "ContentStore",
    "InMemoryContentStore",
    "MetaClause",
    "PostQuery",
    "PostgresContentStore",
    "create_content_store",
]
