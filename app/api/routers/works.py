import logging
from typing import AsyncIterator

from fastapi import APIRouter, Depends, HTTPException, Path
from fastapi.responses import StreamingResponse

from app.api.deps import get_archive_client, get_settings
from app.config import Settings
from app.services.archive_client import ArchiveClient
from app.services.crawl.errors import FeedError
from app.services.feed_service import MEDIA_TYPE
from app.services.keepalive import keepalive_stream
from app.services.work_service import build_work_feed, load_work

logger = logging.getLogger(__name__)

router = APIRouter(tags=["works"])


async def _resume(first: bytes, rest: AsyncIterator[bytes], work_id: int) -> AsyncIterator[bytes]:
    yield first
    try:
        async for chunk in rest:
            yield chunk
    except FeedError as exc:
        # Headers and heartbeats are already out; all we can do is cut the body short
        logger.error("Work %s failed mid-stream: %s", work_id, exc)
        raise
    finally:
        await rest.aclose()


@router.get("/work/{work_id}")
async def api_work_feed(
    work_id: int = Path(..., ge=0, description="Numeric work id"),
    client: ArchiveClient = Depends(get_archive_client),
    settings: Settings = Depends(get_settings),
) -> StreamingResponse:
    """Stream the RSS feed for one work.

    Keepalive comments are emitted every ``keepalive_interval`` seconds while
    the work is fetched and extracted. The first chunk is awaited before the
    response starts, so a failure within the first interval is reported with
    a proper error status. Later failures terminate the chunked body.
    """
    stream = keepalive_stream(build_work_feed(client, work_id), interval=settings.keepalive_interval)
    try:
        first = await stream.__anext__()
    except FeedError as exc:
        await stream.aclose()
        raise HTTPException(status_code=exc.http_status, detail=str(exc))

    return StreamingResponse(
        _resume(first, stream, work_id),
        media_type=MEDIA_TYPE,
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
    )


@router.get("/work/{work_id}/preview")
async def api_work_preview(
    work_id: int = Path(..., ge=0),
    client: ArchiveClient = Depends(get_archive_client),
):
    """Extracted work as JSON, without the feed encoding or keepalive stream."""
    try:
        work = await load_work(client, work_id)
    except FeedError as exc:
        raise HTTPException(status_code=exc.http_status, detail=str(exc))
    return work.model_dump(mode="json")


@router.get("/health")
def api_health(client: ArchiveClient = Depends(get_archive_client)):
    return {"ok": True, "authenticated": client.authenticated}
