"""
Canonical identity extraction for batch listings.

A history listing push is a list of entries shaped like:

    {
        "comm_msg_info": {"datetime": 1500000000, ...},
        "app_msg_ext_info": {
            "title": "...",
            "content_url": "https://mp.weixin.qq.com/s?__biz=...&amp;mid=...&amp;idx=1",
            "cover": "...",
            "digest": "...",
            "source_url": "...",
            "author": "...",
            "copyright_stat": 11,
            "multi_app_msg_item_list": [{...same keys...}, ...]
        }
    }

Each entry bundles one primary article plus zero or more sub-articles that
share the push timestamp. This module flattens them into ListingUnit
objects, each carrying its own (biz, mid, idx) identity.
"""

from __future__ import annotations

from datetime import datetime, timezone
import html
import logging
import re
from typing import Any
from urllib.parse import parse_qs, urlparse

from .types import CanonicalArticleId, ListingUnit

logger = logging.getLogger(__name__)

_DOC_ID_RULES = {
    "biz": re.compile(r'var biz = "([^"]+)"'),
    "mid": re.compile(r'var mid = "([^"]+)"'),
    "idx": re.compile(r'var idx = "([^"]+)"'),
}


def parse_identity(link: str | None) -> CanonicalArticleId | None:
    """Parse the (biz, mid, idx) triple from an article link.

    Args:
        link: Article URL, already HTML-unescaped

    Returns:
        The canonical id, or None if any of the three parameters is missing

    Example:
        >>> parse_identity("https://host/s?__biz=Bz1&mid=Mid1&idx=2")
        CanonicalArticleId(biz='Bz1', mid='Mid1', idx='2')
    """
    if not link:
        return None
    query = parse_qs(urlparse(link).query)
    values = [query.get(name, [""])[0] for name in ("__biz", "mid", "idx")]
    if not all(values):
        return None
    biz, mid, idx = values
    return CanonicalArticleId(biz=biz, mid=mid, idx=idx)


def identity_from_document(body: str | None) -> CanonicalArticleId | None:
    """Read the identity embedded in a detail page's inline script.

    Used for short links (``/s/<token>``) that carry no query parameters.
    """
    if not body:
        return None
    values = {}
    for name, pattern in _DOC_ID_RULES.items():
        match = pattern.search(body)
        if not match:
            return None
        values[name] = match.group(1)
    return CanonicalArticleId(**values)


def candidate_units(entries: list[dict[str, Any]]) -> list[tuple[dict[str, Any], str | None]]:
    """Flatten listing entries into (message, publish_at) pairs.

    An entry with k sub-items yields k+1 pairs that all share the entry's
    publish timestamp. Entries without a message object yield nothing.
    """
    pairs: list[tuple[dict[str, Any], str | None]] = []
    for entry in entries:
        app_msg = entry.get("app_msg_ext_info")
        if not app_msg:
            continue
        publish_at = _publish_at(entry.get("comm_msg_info") or {})
        pairs.append((app_msg, publish_at))
        for sub_msg in app_msg.get("multi_app_msg_item_list") or []:
            pairs.append((sub_msg, publish_at))
    return pairs


def to_unit(app_msg: dict[str, Any], publish_at: str | None) -> ListingUnit | None:
    """Convert one listing message into a ListingUnit, or None if it is unusable."""
    title = app_msg.get("title")
    link = app_msg.get("content_url")
    if not (title and link):
        return None

    title = html.unescape(title)
    link = html.unescape(link)
    article_id = parse_identity(link)
    if article_id is None:
        logger.debug("Listing link has no identity: %s", link)
        return None

    return ListingUnit(
        id=article_id,
        title=title,
        link=link,
        publish_at=publish_at,
        cover=app_msg.get("cover"),
        digest=_unescape(app_msg.get("digest")),
        source_url=app_msg.get("source_url"),
        author=app_msg.get("author"),
        copyright_stat=app_msg.get("copyright_stat"),
    )


def extract_units(entries: list[dict[str, Any]]) -> list[ListingUnit]:
    """Extract every usable article from a batch listing.

    Messages without a title or link, or whose link has no identity, are
    dropped. This is ordinary filtering and never raises.
    """
    units = [to_unit(app_msg, publish_at) for app_msg, publish_at in candidate_units(entries)]
    return [unit for unit in units if unit is not None]


def _unescape(value: str | None) -> str | None:
    return html.unescape(value) if value else value


def _publish_at(comm_msg: dict[str, Any]) -> str | None:
    timestamp = comm_msg.get("datetime")
    if timestamp is None:
        return None
    try:
        return datetime.fromtimestamp(int(timestamp), tz=timezone.utc).isoformat()
    except (TypeError, ValueError, OverflowError, OSError):
        logger.debug("Listing entry has a malformed timestamp: %r", timestamp)
        return None
