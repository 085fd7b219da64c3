"""RSS 2.0 synthesis for extracted works.

``work_to_channel`` maps a Work onto plain channel/item records and
``render_rss`` encodes them with ElementTree. Output is deterministic: the
same Work always renders to the same bytes.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from email.utils import format_datetime
from typing import List, Optional

from app.models.work import Work
from app.services.crawl.errors import SerializationInvariantError

CONTENT_NS = "http://purl.org/rss/1.0/modules/content/"
GENERATOR = "https://github.com/kitlith/ao3rss_rs"
DEFAULT_DESCRIPTION = "AO3 Fic"
MEDIA_TYPE = "application/rss+xml"


@dataclass
class FeedItem:
    title: str
    link: str
    content: str
    description: Optional[str] = None

    @property
    def guid(self) -> str:
        return self.link


@dataclass
class FeedChannel:
    title: str
    link: str
    description: str
    pub_date: str
    last_build_date: str
    generator: str = GENERATOR
    items: List[FeedItem] = field(default_factory=list)


def rfc822(d: date) -> str:
    """Midnight UTC on ``d``, e.g. 'Wed, 01 Jan 2020 00:00:00 +0000'."""
    return format_datetime(datetime.combine(d, time(0, 0), tzinfo=timezone.utc))


def work_to_channel(work: Work, *, link: str) -> FeedChannel:
    return FeedChannel(
        title=work.title,
        link=link,
        description=work.summary or DEFAULT_DESCRIPTION,
        pub_date=rfc822(work.publish_date),
        last_build_date=rfc822(work.update_date),
        items=[
            FeedItem(title=ch.title, link=ch.link, content=ch.content, description=ch.summary)
            for ch in work.chapters
        ],
    )


def _text(parent: ET.Element, tag: str, value: str) -> ET.Element:
    el = ET.SubElement(parent, tag)
    el.text = value
    return el


def _require(value: Optional[str], what: str) -> str:
    if not value:
        raise SerializationInvariantError(f"Cannot serialize feed: empty {what}")
    return value


def render_rss(channel: FeedChannel) -> bytes:
    # The content namespace is declared by hand so it is present even with no items
    rss = ET.Element("rss", {"version": "2.0", "xmlns:content": CONTENT_NS})
    ch = ET.SubElement(rss, "channel")
    _text(ch, "title", _require(channel.title, "channel title"))
    _text(ch, "link", _require(channel.link, "channel link"))
    _text(ch, "description", _require(channel.description, "channel description"))
    _text(ch, "pubDate", _require(channel.pub_date, "pubDate"))
    _text(ch, "lastBuildDate", _require(channel.last_build_date, "lastBuildDate"))
    _text(ch, "generator", channel.generator)

    for i, item in enumerate(channel.items, start=1):
        it = ET.SubElement(ch, "item")
        _text(it, "title", _require(item.title, f"item {i} title"))
        _text(it, "link", _require(item.link, f"item {i} link"))
        if item.description:
            _text(it, "description", item.description)
        _text(it, "content:encoded", _require(item.content, f"item {i} content"))
        guid = _text(it, "guid", item.guid)
        guid.set("isPermaLink", "true")

    # No XML declaration: keepalive comments may precede the root element, and
    # a declaration is only legal as the very first bytes of the document
    return ET.tostring(rss, encoding="utf-8", xml_declaration=False)


def build_feed(work: Work, *, link: str) -> bytes:
    return render_rss(work_to_channel(work, link=link))
