import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.config import load_settings
from app.logging_utils import configure_logging
from app.services.archive_client import ArchiveClient

# Routers
from app.api.routers.works import router as works_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the shared ArchiveClient (logging in if configured) and close it on shutdown.

    Configuration and login errors propagate, so the server never starts with
    a half-configured or rejected credential pair.
    """
    settings = load_settings()
    configure_logging(settings.log_level)
    client = ArchiveClient(settings)
    try:
        if settings.has_credentials:
            await client.login(settings.username, settings.password)
        else:
            logger.info("No credentials configured; serving unauthenticated")
        app.state.settings = settings
        app.state.archive_client = client
        yield
    finally:
        await client.aclose()


app = FastAPI(title="AO3 RSS", version="0.1", lifespan=lifespan)

app.include_router(works_router)
