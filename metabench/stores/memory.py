"""
In-memory Content Store

Keeps posts, postmeta and options in Python containers. Used for dry runs
of the benchmark and in tests; it follows the same contract as the Postgres
store, including the query cache that flush_cache() invalidates.
"""

from __future__ import annotations

import re
from collections import defaultdict
from dataclasses import dataclass
from itertools import count
from typing import DefaultDict, Dict, List, Set, Tuple

from metabench.stores.base import ContentStore, PostQuery


@dataclass
class StoredPost:
    id: int
    title: str
    post_type: str
    post_status: str


def like_to_regex(pattern: str) -> re.Pattern:
    """Translate a SQL LIKE pattern (% and _ wildcards) into a regex."""
    parts = []
    for ch in pattern:
        if ch == "%":
            parts.append(".*")
        elif ch == "_":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    return re.compile("^" + "".join(parts) + "$", re.DOTALL)


class InMemoryContentStore(ContentStore):
    """Content store held entirely in process memory."""

    def __init__(self):
        super().__init__()
        self.posts: Dict[int, StoredPost] = {}
        self.postmeta: DefaultDict[int, List[Tuple[str, str]]] = defaultdict(list)
        self.options: Dict[str, str] = {}
        self.connected = True
        self._ids = count(1)
        self._query_cache: Dict[Tuple, List[int]] = {}

    async def check_connection(self) -> bool:
        return self.connected

    async def count_records(self) -> int:
        self._log_query("SELECT COUNT(*) FROM posts")
        return len(self.posts)

    async def count_metadata(self) -> int:
        self._log_query("SELECT COUNT(*) FROM postmeta")
        return sum(len(rows) for rows in self.postmeta.values())

    async def truncate_records(self) -> None:
        self._log_query("TRUNCATE TABLE posts")
        self.posts.clear()
        self._ids = count(1)

    async def truncate_metadata(self) -> None:
        self._log_query("TRUNCATE TABLE postmeta")
        self.postmeta.clear()

    async def delete_options_like(self, pattern: str) -> int:
        self._log_query(f"DELETE FROM options WHERE option_name LIKE '{pattern}'")
        regex = like_to_regex(pattern)
        doomed = [name for name in self.options if regex.match(name)]
        for name in doomed:
            del self.options[name]
        return len(doomed)

    async def create_record(
        self, title: str, post_type: str, meta_input: Dict[str, str]
    ) -> int:
        self._log_query("INSERT INTO posts")
        post_id = next(self._ids)
        self.posts[post_id] = StoredPost(
            id=post_id, title=title, post_type=post_type, post_status="draft"
        )
        if meta_input:
            self.postmeta[post_id].extend(meta_input.items())
        return post_id

    def _matches(self, post: StoredPost, query: PostQuery) -> bool:
        if post.post_type != query.post_type or post.post_status != query.post_status:
            return False
        if not query.meta_query:
            return True
        pairs: Set[Tuple[str, str]] = set(self.postmeta.get(post.id, ()))
        hits = [(c.key, c.value) in pairs for c in query.meta_query]
        return any(hits) if query.relation.upper() == "OR" else all(hits)

    async def query_records(self, query: PostQuery) -> List[int]:
        cache_key = (
            query.post_type,
            query.post_status,
            query.relation.upper(),
            query.limit,
            tuple(query.meta_query),
        )
        if query.cache_results and cache_key in self._query_cache:
            return list(self._query_cache[cache_key])

        self._log_query("SELECT id FROM posts")
        ids = [
            post.id
            for post in sorted(self.posts.values(), key=lambda p: p.id, reverse=True)
            if self._matches(post, query)
        ][: query.limit]
        if query.cache_results:
            self._query_cache[cache_key] = ids
        return ids

    async def flush_cache(self) -> None:
        self._query_cache.clear()
