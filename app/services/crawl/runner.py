from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional

from app.config import load_settings
from app.logging_utils import configure_logging
from app.services.archive_client import ArchiveClient
from app.services.crawl.errors import FeedError
from app.services.feed_service import build_feed
from app.services.work_service import build_work_feed
from .spiders.work_spider import WorkSpider

logger = logging.getLogger(__name__)


async def _fetch_feed(work_id: int) -> bytes:
    settings = load_settings()
    client = ArchiveClient(settings)
    try:
        if settings.has_credentials:
            await client.login(settings.username, settings.password)
        return await build_work_feed(client, work_id)
    finally:
        await client.aclose()


def render_file(work_id: int, path: str, *, site: str) -> bytes:
    """Render a feed from a saved full-work HTML page, linking against ``site``."""
    with open(path, "r", encoding="utf-8") as f:
        html = f.read()
    work = WorkSpider().parse_html(work_id, html, site=site)
    return build_feed(work, link=f"{site.rstrip('/')}/works/{work_id}")


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(description="AO3 work feed tools")
    sub = parser.add_subparsers(dest="cmd", required=True)

    feed = sub.add_parser("feed", help="Render the RSS feed for one work")
    feed.add_argument("work_id", type=int, help="Numeric work id")
    feed.add_argument("--file", help="Local full-work HTML file instead of fetching")
    feed.add_argument("--out", help="Write the feed here instead of stdout")

    serve = sub.add_parser("serve", help="Run the HTTP server")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)

    args = parser.parse_args(argv)

    try:
        settings = load_settings()
    except FeedError as exc:
        parser.error(str(exc))
    configure_logging(settings.log_level)

    if args.cmd == "feed":
        if args.work_id < 0:
            parser.error("work_id must be non-negative")
        try:
            if args.file:
                data = render_file(args.work_id, args.file, site=settings.base_url)
            else:
                data = asyncio.run(_fetch_feed(args.work_id))
        except FeedError as exc:
            logger.error("Could not build feed for work %s: %s", args.work_id, exc)
            return 1
        if args.out:
            with open(args.out, "wb") as f:
                f.write(data)
            print(args.out)
        else:
            sys.stdout.buffer.write(data)
            sys.stdout.buffer.write(b"\n")
        return 0

    if args.cmd == "serve":
        import uvicorn

        uvicorn.run("app.main:app", host=args.host or settings.host, port=args.port or settings.port)
        return 0

    parser.error("unknown command")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
