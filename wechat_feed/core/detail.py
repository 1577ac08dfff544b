"""
Field extraction from WeChat article detail pages.

Detail pages carry most of their metadata in inline script variables
(``var msg_title = "...";``) rather than in markup, so fields are read with
a table of independent regular expressions. A rule that does not match
simply leaves its field empty.

The article body lives in the ``#js_content`` container and is read with
BeautifulSoup, either as inner markup or as plain text.
"""

from __future__ import annotations

from datetime import datetime, timezone
import html
import re
from typing import Callable

from bs4 import BeautifulSoup

from .types import DetailFields, DetailOutcome

# Present on pages for deleted, blocked or otherwise unavailable articles.
INVALID_MARKERS = ("global_error_msg", "icon_msg warn")

CONTENT_SELECTOR = "#js_content"

_CJK_RE = re.compile(r"[\u4e00-\u9fa5]")


def _epoch_to_iso(value: str) -> str:
    return datetime.fromtimestamp(int(value), tz=timezone.utc).isoformat()


# (field name, pattern, converter). Text fields are HTML-unescaped to match listing units.
DETAIL_RULES: list[tuple[str, re.Pattern[str], Callable[[str], str] | None]] = [
    ("wechat_id", re.compile(r'<span class="profile_meta_value">(.+?)</span>'), None),
    ("username", re.compile(r'var user_name = "(.+?)"'), None),
    ("title", re.compile(r'var msg_title = "(.+?)";'), html.unescape),
    ("publish_at", re.compile(r'var ct = "(\d+)";'), _epoch_to_iso),
    ("source_url", re.compile(r"var msg_source_url = '(.*?)';"), None),
    ("cover", re.compile(r'var msg_cdn_url = "(.+?)";'), None),
    ("digest", re.compile(r'var msg_desc = "(.+?)";'), html.unescape),
    ("headimg", re.compile(r'var hd_head_img = "(.+?)"'), None),
    ("nickname", re.compile(r'var nickname = "(.+?)"'), html.unescape),
]


def is_invalid(body: str) -> bool:
    """Return True if the page says the article was removed or blocked."""
    return any(marker in body for marker in INVALID_MARKERS)


def extract_fields(body: str) -> DetailFields:
    """Apply every rule in DETAIL_RULES independently.

    When a variable appears more than once the first occurrence is used.
    """
    found: dict[str, str] = {}
    for name, pattern, convert in DETAIL_RULES:
        match = pattern.search(body)
        value = match.group(1) if match else None
        if not value:
            continue
        if convert is not None:
            try:
                value = convert(value)
            except (ValueError, OverflowError, OSError):
                continue
        found[name] = value

    detail = DetailFields(**found)
    # Accounts without a custom id show their display name here instead.
    if detail.wechat_id and _CJK_RE.search(detail.wechat_id):
        detail.wechat_id = detail.username
    return detail


def parse_detail(body: str) -> DetailOutcome:
    """Parse a detail page into a failed or populated outcome."""
    if is_invalid(body):
        return DetailOutcome(failed=True)
    return DetailOutcome(failed=False, fields=extract_fields(body))


def extract_content(body: str, content_type: str) -> str | None:
    """Extract the article body from the content container.

    Args:
        body: Full detail page HTML
        content_type: "html" for the container's inner markup, "text" for plain text

    Returns:
        The stripped body, or None if the container is missing or empty
    """
    soup = BeautifulSoup(body, "html.parser")
    container = soup.select_one(CONTENT_SELECTOR)
    if container is None:
        return None

    if content_type == "html":
        value = container.decode_contents().strip()
        return value or None

    for tag in container(["script", "style", "noscript"]):
        tag.decompose()
    text = container.get_text(separator="\n")
    cleaned = "\n".join([line.strip() for line in text.splitlines() if line.strip()])
    return cleaned if cleaned else None

