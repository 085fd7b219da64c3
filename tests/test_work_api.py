import asyncio
import xml.etree.ElementTree as ET
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from app.api.deps import get_archive_client, get_settings
from app.config import Settings
from app.main import app
from app.services.crawl.errors import TransportError
from app.services.keepalive import KEEPALIVE_CHUNK


def read_fixture(name: str) -> str:
    p = Path(__file__).parent / "fixtures" / name
    return p.read_text(encoding="utf-8")


class _FakeArchive:
    base_url = "https://archiveofourown.org"
    authenticated = False

    def __init__(self, html: str = "", *, delay: float = 0.0, error: Exception = None):
        self.html = html
        self.delay = delay
        self.error = error
        self.calls = []

    def canonical_work_url(self, work_id: int) -> str:
        return f"{self.base_url}/works/{work_id}"

    async def fetch_work_html(self, work_id: int) -> str:
        self.calls.append(work_id)
        await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.html


@pytest.fixture
def use_archive():
    def _install(fake: _FakeArchive, **client_kwargs) -> TestClient:
        app.dependency_overrides[get_archive_client] = lambda: fake
        app.dependency_overrides[get_settings] = lambda: Settings(keepalive_interval=0.1)
        return TestClient(app, **client_kwargs)

    yield _install
    app.dependency_overrides.clear()


def test_work_feed_streams_rss(use_archive):
    fake = _FakeArchive(read_fixture("work_12345.html"))
    client = use_archive(fake)
    resp = client.get("/work/12345")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("application/rss+xml")
    assert fake.calls == [12345]
    channel = ET.fromstring(resp.content).find("channel")
    assert channel.findtext("title") == "Sample Fic"
    assert channel.findtext("pubDate") == "Wed, 01 Jan 2020 00:00:00 +0000"
    assert len(channel.findall("item")) == 2


def test_slow_work_is_preceded_by_keepalives(use_archive):
    fake = _FakeArchive(read_fixture("work_12345.html"), delay=0.25)
    client = use_archive(fake)
    resp = client.get("/work/12345")
    assert resp.status_code == 200
    assert resp.content.startswith(KEEPALIVE_CHUNK * 2 + b"<rss")
    # Leading comments are ignored by XML consumers
    assert ET.fromstring(resp.content).find("channel/title").text == "Sample Fic"


def test_failure_after_heartbeats_cuts_body_short(use_archive):
    fake = _FakeArchive(delay=0.25, error=TransportError("boom", url="http://x"))
    client = use_archive(fake, raise_server_exceptions=False)
    resp = client.get("/work/1")
    # Status was committed with the first heartbeat
    assert resp.status_code == 200
    assert resp.content.startswith(KEEPALIVE_CHUNK)
    assert resp.content.replace(KEEPALIVE_CHUNK, b"") == b""
    assert b"<rss" not in resp.content


def test_missing_work_maps_to_404(use_archive):
    fake = _FakeArchive(error=TransportError("HTTP 404", url="http://x", status_code=404))
    client = use_archive(fake)
    resp = client.get("/work/1")
    assert resp.status_code == 404


def test_unextractable_page_is_a_failure(use_archive):
    client = use_archive(_FakeArchive("<html><body>maintenance</body></html>"))
    resp = client.get("/work/1")
    assert resp.status_code == 502
    assert "title" in resp.json()["detail"]


def test_work_id_must_be_unsigned(use_archive):
    client = use_archive(_FakeArchive())
    assert client.get("/work/-3").status_code == 422
    assert client.get("/work/abc").status_code == 422


def test_preview_returns_json(use_archive):
    client = use_archive(_FakeArchive(read_fixture("work_12345.html")))
    resp = client.get("/work/12345/preview")
    assert resp.status_code == 200
    data = resp.json()
    assert data["title"] == "Sample Fic"
    assert data["publish_date"] == "2020-01-01"
    assert [c["title"] for c in data["chapters"]] == ["Chapter 1: Beginning", "Chapter 2: Ending"]


def test_health_reports_auth_state(use_archive):
    client = use_archive(_FakeArchive())
    resp = client.get("/health")
    assert resp.json() == {"ok": True, "authenticated": False}
