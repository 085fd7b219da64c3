from fastapi import HTTPException, Request

from app.config import Settings
from app.services.archive_client import ArchiveClient


def get_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or Settings()


def get_archive_client(request: Request) -> ArchiveClient:
    """Return the ArchiveClient built during startup."""
    client = getattr(request.app.state, "archive_client", None)
    if client is None:
        raise HTTPException(status_code=503, detail="Archive client not initialised")
    return client
