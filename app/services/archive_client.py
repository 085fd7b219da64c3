"""Outbound HTTP access to the archive.

One ArchiveClient is built at startup and shared by every request handler.
Its httpx session (cookies included) is only written during ``login``, which
runs before the server accepts requests; afterwards handlers only read it.
"""

from __future__ import annotations

import logging
import urllib.parse
from typing import Optional

import httpx
from selectolax.parser import HTMLParser

from app.config import Settings
from app.services.crawl.errors import TransportError

logger = logging.getLogger(__name__)

# Skip the adult-content interstitial and render every chapter on one page
WORK_QUERY = {"view_adult": "true", "view_full_work": "true"}
LOGIN_PATH = "/users/login"


class ArchiveClient:
    def __init__(self, settings: Settings, *, http: Optional[httpx.AsyncClient] = None) -> None:
        self.settings = settings
        self.base_url = settings.base_url.rstrip("/")
        self.authenticated = False
        self._http = http or httpx.AsyncClient(
            timeout=settings.request_timeout,
            headers={"User-Agent": settings.user_agent},
            follow_redirects=True,
        )

    # --- URLs ---
    def work_url(self, work_id: int) -> str:
        return f"{self.base_url}/works/{work_id}?{urllib.parse.urlencode(WORK_QUERY)}"

    def canonical_work_url(self, work_id: int) -> str:
        return f"{self.base_url}/works/{work_id}"

    # --- Public API ---
    async def fetch_work_html(self, work_id: int) -> str:
        """GET the full-work page and return its markup. No retries."""
        url = self.work_url(work_id)
        logger.debug("Fetching work %s from %s", work_id, url)
        try:
            resp = await self._http.get(url)
        except httpx.HTTPError as exc:
            raise TransportError(f"Request failed: {exc.__class__.__name__}: {exc}", url=url) from exc

        if resp.status_code >= 400:
            raise TransportError(
                f"Archive answered HTTP {resp.status_code}", url=url, status_code=resp.status_code
            )
        content_type = resp.headers.get("content-type", "")
        if content_type and not (content_type.startswith("text/") or "xml" in content_type):
            raise TransportError(
                f"Unexpected content type {content_type!r}", url=url, status_code=resp.status_code
            )
        try:
            return resp.text
        except (UnicodeDecodeError, LookupError) as exc:
            raise TransportError(f"Unreadable body: {exc}", url=url, status_code=resp.status_code) from exc

    async def login(self, username: str, password: str) -> None:
        """Log in once so later fetches see restricted works.

        The login form carries a CSRF token that has to be echoed back. A
        successful login redirects away from the login page and sets the
        ``user_credentials`` cookie; a failed one re-renders the form.
        """
        url = f"{self.base_url}{LOGIN_PATH}"
        try:
            form_resp = await self._http.get(url)
            form_resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise TransportError(f"Could not load login form: {exc}", url=url) from exc

        token_node = HTMLParser(form_resp.text).css_first("input[name=authenticity_token]")
        token = token_node.attributes.get("value") if token_node is not None else None
        if not token:
            raise TransportError("Login form has no authenticity_token", url=url, status_code=form_resp.status_code)

        data = {
            "authenticity_token": token,
            "user[login]": username,
            "user[password]": password,
            "user[remember_me]": "1",
            "commit": "Log In",
        }
        try:
            resp = await self._http.post(url, data=data, follow_redirects=False)
        except httpx.HTTPError as exc:
            raise TransportError(f"Login request failed: {exc}", url=url) from exc

        if not self._login_succeeded(resp):
            raise TransportError("Login rejected", url=url, status_code=resp.status_code)
        self.authenticated = True
        logger.info("Logged in as %s", username)

    async def aclose(self) -> None:
        await self._http.aclose()

    # --- Internals ---
    def _login_succeeded(self, resp: httpx.Response) -> bool:
        if "user_credentials" in resp.cookies:
            return True
        if not resp.is_redirect:
            return False
        location = resp.headers.get("location", "")
        return LOGIN_PATH not in urllib.parse.urlsplit(location).path
