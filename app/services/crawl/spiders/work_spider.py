from __future__ import annotations

import logging
import re
import urllib.parse
from datetime import date, datetime
from typing import List, Optional

from selectolax.parser import HTMLParser, Node

from app.config import DEFAULT_BASE_URL
from app.models.work import Chapter, Work
from ..base import Spider
from ..errors import FormatError, MissingFieldError

logger = logging.getLogger(__name__)

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _clean_text(node: Node) -> str:
    return " ".join((node.text() or "").split())


def _has_class(node: Node, cls: str) -> bool:
    return cls in (node.attributes.get("class") or "").split()


def _inner_html(node: Node) -> str:
    return "".join(child.html or "" for child in node.iter(include_text=True)).strip()


def _first_direct_child(node: Node, cls: str) -> Optional[Node]:
    for child in node.iter():
        if _has_class(child, cls):
            return child
    return None


def parse_date(text: str, field: str) -> date:
    """Parse a strict YYYY-MM-DD date, raising FormatError otherwise."""
    raw = (text or "").strip()
    if not _DATE_RE.match(raw):
        raise FormatError(field, raw)
    try:
        return datetime.strptime(raw, "%Y-%m-%d").date()
    except ValueError:
        raise FormatError(field, raw)


class WorkSpider(Spider):
    """Selector-driven projection of a full-work page onto Work/Chapter.

    Every lookup takes the first match in document order. Required fields
    that are missing or malformed abort the whole extraction; there is no
    partially populated Work.

    Selectors (CSS):
      - title_sel: work title heading
      - summary_sel: work summary block inside the preface
      - notes_sel / end_notes_sel: optional work-level notes
      - published_sel / updated_sel: <dd> holding YYYY-MM-DD dates
      - chapters_sel: chapter containers, in order
      - chapter_title_sel, chapter_summary_sel, chapter_notes_sel,
        chapter_end_notes_sel: relative to a chapter container
      - content_class: class of the chapter body, which must be a direct child
    """

    name = "ao3_work"

    def __init__(
        self,
        client=None,
        *,
        title_sel: str = "h2.title",
        summary_sel: str = "#workskin > .preface .summary .userstuff",
        notes_sel: str = "#workskin > .preface .notes .userstuff",
        end_notes_sel: str = "#work_endnotes .userstuff",
        published_sel: str = "dd.published",
        updated_sel: str = "dd.status",
        chapters_sel: str = "#chapters > .chapter",
        chapter_title_sel: str = ".title",
        chapter_summary_sel: str = ".summary > .userstuff",
        chapter_notes_sel: str = ".notes:not(.end) > .userstuff",
        chapter_end_notes_sel: str = ".end.notes > .userstuff",
        content_class: str = "userstuff",
    ) -> None:
        self.client = client
        self.title_sel = title_sel
        self.summary_sel = summary_sel
        self.notes_sel = notes_sel
        self.end_notes_sel = end_notes_sel
        self.published_sel = published_sel
        self.updated_sel = updated_sel
        self.chapters_sel = chapters_sel
        self.chapter_title_sel = chapter_title_sel
        self.chapter_summary_sel = chapter_summary_sel
        self.chapter_notes_sel = chapter_notes_sel
        self.chapter_end_notes_sel = chapter_end_notes_sel
        self.content_class = content_class

    # --- Public API ---
    async def fetch(self, work_id: int) -> Work:
        if self.client is None:
            raise RuntimeError("WorkSpider.fetch needs an ArchiveClient")
        html = await self.client.fetch_work_html(work_id)
        return self.parse_html(work_id, html, site=self.client.base_url)

    def parse_html(self, work_id: int, html: str, *, site: str = DEFAULT_BASE_URL) -> Work:
        doc = HTMLParser(html)

        title_node = doc.css_first(self.title_sel)
        title = _clean_text(title_node) if title_node else ""
        if not title:
            raise MissingFieldError("title")

        summary_node = doc.css_first(self.summary_sel)
        summary = None
        if summary_node is not None:
            summary = (summary_node.text() or "").strip() or None

        publish_date = self._date(doc, self.published_sel, "publish_date")
        update_date = self._date(doc, self.updated_sel, "update_date")

        chapters: List[Chapter] = [
            self._chapter(node, index, site) for index, node in enumerate(doc.css(self.chapters_sel), start=1)
        ]
        logger.debug("Extracted work %s with %d chapters", work_id, len(chapters))

        return Work(
            work_id=work_id,
            title=title,
            summary=summary,
            notes=self._optional_html(doc, self.notes_sel),
            end_notes=self._optional_html(doc, self.end_notes_sel),
            publish_date=publish_date,
            update_date=update_date,
            chapters=tuple(chapters),
        )

    # --- Internals ---
    @staticmethod
    def _date(doc: HTMLParser, selector: str, field: str) -> date:
        node = doc.css_first(selector)
        if node is None:
            raise MissingFieldError(field)
        return parse_date(node.text(), field)

    @staticmethod
    def _optional_html(root, selector: str) -> Optional[str]:
        node = root.css_first(selector)
        if node is None:
            return None
        return _inner_html(node) or None

    def _chapter(self, node: Node, index: int, site: str) -> Chapter:
        title_node = node.css_first(self.chapter_title_sel)
        if title_node is None:
            raise MissingFieldError("chapter.title", chapter=index)
        title = _clean_text(title_node)
        if not title:
            raise MissingFieldError("chapter.title", chapter=index)

        anchor = title_node.css_first("a")
        href = anchor.attributes.get("href") if anchor is not None else None
        if not href:
            raise MissingFieldError("chapter.link", chapter=index)

        content_node = _first_direct_child(node, self.content_class)
        content = _inner_html(content_node) if content_node is not None else ""
        if not content:
            raise MissingFieldError("chapter.content", chapter=index)

        return Chapter(
            title=title,
            link=urllib.parse.urljoin(site.rstrip("/") + "/", href),
            summary=self._optional_html(node, self.chapter_summary_sel),
            notes=self._optional_html(node, self.chapter_notes_sel),
            content=content,
            end_notes=self._optional_html(node, self.chapter_end_notes_sel),
        )
