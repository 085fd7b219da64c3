"""Fetch, extract and render one work.

These coroutines are the slow one-shot operations the keepalive stream
wraps. Parsing and extraction run inline without yielding to the loop.
"""

from __future__ import annotations

import logging
import time

from app.models.work import Work
from app.services.archive_client import ArchiveClient
from app.services.crawl.errors import FeedError
from app.services.crawl.spiders.work_spider import WorkSpider
from app.services.feed_service import build_feed

logger = logging.getLogger(__name__)


async def load_work(client: ArchiveClient, work_id: int) -> Work:
    """Fetch the full-work page and extract a Work from it."""
    started = time.monotonic()
    try:
        work = await WorkSpider(client).fetch(work_id)
    except FeedError as exc:
        logger.warning("Work %s failed after %.2fs: %s", work_id, time.monotonic() - started, exc)
        raise
    logger.info(
        "Work %s extracted in %.2fs (%d chapters)", work_id, time.monotonic() - started, len(work.chapters)
    )
    return work


async def build_work_feed(client: ArchiveClient, work_id: int) -> bytes:
    work = await load_work(client, work_id)
    return build_feed(work, link=client.canonical_work_url(work_id))
