"""
Benchmark Driver

Runs the insert/query benchmark for every metadata count and post tier of a
RunConfig and collects the elapsed times as MeasurementPoints.

For each metadata count, every tier goes through:
    reset -> cache flush -> timed insert -> cache flush -> timed query
A run that outlives its time limit skips the remaining tiers of the current
metadata count.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from typing import Callable, Dict, List

from tqdm import tqdm

from metabench.core.reset import reset_store
from metabench.errors import DataConsistencyError, StoreConnectionError
from metabench.models import MeasurementPoint, Operation, PostTier, RunConfig
from metabench.stores.base import ContentStore, MetaClause, PostQuery

logger = logging.getLogger(__name__)

POST_TYPE = "benchmark"
POST_STATUS = "draft"


def generate_tokens(n: int) -> List[str]:
    """Return `n` random unique strings."""
    return [str(uuid.uuid4()) for _ in range(n)]


def build_meta_query(keys: List[str], values: List[str]) -> List[MetaClause]:
    """Pair keys with values positionally into metadata clauses."""
    return [MetaClause(key=k, value=v) for k, v in zip(keys, values)]


class BenchmarkDriver:
    """
    Drives one benchmark run against an injected content store.

    Args:
        store: Content store under test
        config: Run configuration
        settle_seconds: Pause after each reset
        clock: Monotonic clock returning seconds
        show_progress: Render a progress bar during inserts
    """

    def __init__(
        self,
        store: ContentStore,
        config: RunConfig,
        *,
        settle_seconds: float = 1.0,
        clock: Callable[[], float] = time.perf_counter,
        show_progress: bool = True,
    ):
        self.store = store
        self.config = config
        self.settle_seconds = settle_seconds
        self.clock = clock
        self.show_progress = show_progress
        self._started_at: float = 0.0

    async def run(self) -> List[MeasurementPoint]:
        """Run every metadata count and return the measurements in order."""
        self.store.enable_query_log()
        self._started_at = self.clock()

        measurements: List[MeasurementPoint] = []
        for meta_count in self.config.meta_counts:
            measurements.extend(await self.run_meta_count(meta_count))

        logger.info(
            f"Benchmark finished with {len(measurements)} measurements "
            f"({len(self.store.queries)} store queries logged)"
        )
        return measurements

    async def run_meta_count(self, meta_count: int) -> List[MeasurementPoint]:
        """
        Run every tier for one metadata count.

        Returns early, without the remaining tiers, once the run has used up
        its time limit.
        """
        logger.info(f"Starting benchmark with {meta_count} metas...")

        points: List[MeasurementPoint] = []
        for tier in self.config.tiers:
            await self.check_store()
            points.extend(await self.run_tier(meta_count, tier))

            elapsed = self.clock() - self._started_at
            if elapsed > self.config.time_limit_seconds:
                logger.warning(
                    "Bailing benchmark as it is taking longer than the time limit "
                    f"({elapsed:.1f}s > {self.config.time_limit_seconds:.1f}s)."
                )
                return points

        return points

    async def check_store(self) -> None:
        """Fail unless the store is reachable and has no pending error."""
        if not await self.store.check_connection():
            raise StoreConnectionError("DB Connection down...")
        if self.store.last_error:
            raise StoreConnectionError(self.store.last_error)

    async def run_tier(self, meta_count: int, tier: PostTier) -> List[MeasurementPoint]:
        """Reset the store, then time the insert and query phases for one tier."""
        await reset_store(self.store, self.settle_seconds)

        meta_input = dict(zip(generate_tokens(meta_count), generate_tokens(meta_count)))

        await self.store.flush_cache()
        insert_elapsed = await self.insert_posts(tier.post_count, meta_input)
        await self.store.flush_cache()
        query_elapsed = await self.query_posts(list(meta_input.keys()))

        tier_name = tier.value
        return [
            MeasurementPoint(meta_count, tier_name, Operation.INSERT.value, insert_elapsed),
            MeasurementPoint(meta_count, tier_name, Operation.QUERY.value, query_elapsed),
        ]

    async def insert_posts(self, post_count: int, meta_input: Dict[str, str]) -> float:
        """Create `post_count` posts carrying `meta_input`; return elapsed seconds."""
        start = self.clock()

        with tqdm(
            total=post_count,
            desc=f"Inserting {post_count} benchmark entries...",
            disable=not self.show_progress,
        ) as progress:
            for _ in range(post_count):
                post_id = await self.store.create_record(
                    title=str(uuid.uuid4()),
                    post_type=POST_TYPE,
                    meta_input=meta_input,
                )
                if not post_id:
                    raise DataConsistencyError(
                        "Failed to insert post. "
                        f"Last query: {self.store.last_query} "
                        f"Last query error: {self.store.last_error}"
                    )
                progress.update(1)

        return self.clock() - start

    async def query_posts(self, meta_keys: List[str]) -> float:
        """
        Look up one post by metadata; return elapsed seconds.

        Every key is paired with a freshly generated value, so no post can
        match unless the filter is empty.
        """
        start = self.clock()

        meta_query = build_meta_query(meta_keys, generate_tokens(len(meta_keys)))
        query = PostQuery(
            post_type=POST_TYPE,
            post_status=POST_STATUS,
            meta_query=meta_query,
            relation="OR",
            limit=1,
            cache_results=False,
            suppress_filters=True,
        )

        logger.info(
            "Fetching 1 benchmark entry with args: "
            + json.dumps(query.to_dict(), indent=4)
        )

        posts = await self.store.query_records(query)

        logger.info("Last query: " + json.dumps(self.store.last_query, indent=4))
        logger.info("Last error: " + self.store.last_error)
        logger.info(f"Fetched posts: {len(posts)}")

        expected = 0 if meta_query else 1
        if len(posts) != expected:
            raise DataConsistencyError(f"Fetched posts is not {expected}.")

        return self.clock() - start
