"""
Dataset reset.

Empties posts, postmeta and transient cache rows so every tier starts from
an empty store.
"""

from __future__ import annotations

import asyncio
import logging

from metabench.stores.base import ContentStore

logger = logging.getLogger(__name__)

TRANSIENT_PATTERNS = ("_transient_%", "_site_transient_%")


async def reset_store(store: ContentStore, settle_seconds: float = 1.0) -> None:
    """
    Irreversibly remove every post, postmeta row and transient option.

    Sleeps `settle_seconds` afterwards so asynchronous side effects (object
    cache invalidation and the like) land before the next insert phase.
    """
    logger.info(
        "Deleting posts (found: %d) and postmeta (found: %d)...",
        await store.count_records(),
        await store.count_metadata(),
    )

    await store.truncate_records()
    await store.truncate_metadata()
    for pattern in TRANSIENT_PATTERNS:
        await store.delete_options_like(pattern)

    if settle_seconds > 0:
        await asyncio.sleep(settle_seconds)

    logger.info(
        "Posts (found after delete: %d). Postmeta (found after delete: %d)...",
        await store.count_records(),
        await store.count_metadata(),
    )
