"""
Base Content Store

Abstract interface for the post/postmeta storage the benchmark drives.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class MetaClause:
    """One key/value condition of a metadata filter."""

    key: str
    value: str


@dataclass
class PostQuery:
    """Arguments for a post lookup filtered by metadata."""

    post_type: str = "post"
    post_status: str = "publish"
    meta_query: List[MetaClause] = field(default_factory=list)
    relation: str = "AND"
    limit: int = 10
    cache_results: bool = True
    suppress_filters: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary (used for logging)."""
        meta_query: Dict[str, Any] = {
            str(i): {"key": clause.key, "value": clause.value}
            for i, clause in enumerate(self.meta_query)
        }
        if meta_query:
            meta_query["relation"] = self.relation
        return {
            "posts_per_page": self.limit,
            "post_type": self.post_type,
            "post_status": self.post_status,
            "meta_query": meta_query,
            "cache_results": self.cache_results,
            "suppress_filters": self.suppress_filters,
            "fields": "ids",
        }


class ContentStore(ABC):
    """
    Abstract base class for content stores.

    Each backend (Postgres, in-memory) implements this interface so the
    driver and the reset step never depend on a concrete database.
    """

    def __init__(self):
        self.last_query: str = ""
        self.last_error: str = ""
        self.queries: List[str] = []
        self._save_queries = False

    def enable_query_log(self) -> None:
        """Keep every executed statement in `queries` for diagnostics."""
        self._save_queries = True

    def _log_query(self, query: str) -> None:
        # A new statement supersedes the previous error
        self.last_query = query
        self.last_error = ""
        if self._save_queries:
            self.queries.append(query)

    async def connect(self) -> None:
        """Open any underlying connections."""

    async def close(self) -> None:
        """Release any underlying connections."""

    @abstractmethod
    async def check_connection(self) -> bool:
        """
        Check whether the store is reachable.

        Returns:
            bool: True if a round trip succeeded
        """
        pass

    @abstractmethod
    async def count_records(self) -> int:
        """Count all posts."""
        pass

    @abstractmethod
    async def count_metadata(self) -> int:
        """Count all postmeta rows."""
        pass

    @abstractmethod
    async def truncate_records(self) -> None:
        """Remove every post."""
        pass

    @abstractmethod
    async def truncate_metadata(self) -> None:
        """Remove every postmeta row."""
        pass

    @abstractmethod
    async def delete_options_like(self, pattern: str) -> int:
        """
        Delete option rows whose name matches a SQL LIKE pattern.

        Args:
            pattern: LIKE pattern, e.g. "_transient_%"

        Returns:
            int: Number of rows deleted
        """
        pass

    @abstractmethod
    async def create_record(
        self, title: str, post_type: str, meta_input: Dict[str, str]
    ) -> int:
        """
        Insert a post together with its metadata.

        Args:
            title: Post title
            post_type: Post type tag
            meta_input: Metadata key -> value

        Returns:
            int: New post id, 0 on failure
        """
        pass

    @abstractmethod
    async def query_records(self, query: PostQuery) -> List[int]:
        """
        Look up post ids matching a metadata filter.

        Returns:
            List of post ids, at most `query.limit`
        """
        pass

    @abstractmethod
    async def flush_cache(self) -> None:
        """Invalidate every cached lookup."""
        pass
