"""Fetching and parsing RSS feeds."""

from __future__ import annotations

import html
import urllib.error
import urllib.request
import xml.etree.ElementTree as ET
from dataclasses import dataclass

USER_AGENT = "gator"
DEFAULT_TIMEOUT = 30.0


class FeedError(Exception):
    """Raised when a feed cannot be fetched or parsed."""


@dataclass(frozen=True)
class RSSItem:
    title: str = ""
    link: str = ""
    description: str = ""
    pub_date: str = ""


@dataclass(frozen=True)
class RSSFeed:
    title: str = ""
    link: str = ""
    description: str = ""
    items: tuple[RSSItem, ...] = ()


def _text(parent: ET.Element, tag: str) -> str:
    child = parent.find(tag)
    return "" if child is None else "".join(child.itertext())


def _item(element: ET.Element) -> RSSItem:
    return RSSItem(
        title=html.unescape(_text(element, "title")),
        link=_text(element, "link"),
        description=html.unescape(_text(element, "description")),
        pub_date=_text(element, "pubDate"),
    )


def parse_feed(data: bytes | str) -> RSSFeed:
    """Parse an RSS document, unescaping HTML entities in titles and descriptions."""
    try:
        root = ET.fromstring(data)
    except (ET.ParseError, ValueError) as exc:
        raise FeedError(f"error: {exc}") from exc
    channel = root.find("channel")
    if channel is None:
        return RSSFeed()
    return RSSFeed(
        title=html.unescape(_text(channel, "title")),
        link=_text(channel, "link"),
        description=html.unescape(_text(channel, "description")),
        items=tuple(_item(element) for element in channel.findall("item")),
    )


def fetch_feed(url: str, timeout: float = DEFAULT_TIMEOUT) -> RSSFeed:
    """Download the feed at ``url`` and parse it."""
    try:
        request = urllib.request.Request(url, headers={"User-Agent": USER_AGENT})
        with urllib.request.urlopen(request, timeout=timeout) as response:
            data = response.read()
    except (urllib.error.URLError, OSError, ValueError) as exc:
        raise FeedError(f"error: {exc}") from exc
    return parse_feed(data)