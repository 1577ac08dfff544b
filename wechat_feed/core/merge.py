"""
Merge policies for article and profile records.

Two policies exist and are kept as separately named functions so a call
site always states which one it uses:

- overwrite: set the given fields on the record, creating it if needed
- fill gaps: write only when the existing record is incomplete

A record counts as complete when every one of its completeness fields is
non-empty; complete records are never touched by the fill-gaps policy.
"""

from __future__ import annotations

from typing import Any

from ..store import DocumentStore
from .types import POSTS, PROFILES, CanonicalArticleId

ARTICLE_COMPLETE_FIELDS = ("title", "link", "wechat_id")
PROFILE_COMPLETE_FIELDS = ("wechat_id", "username", "headimg")


def is_complete(doc: dict[str, Any] | None, required: tuple[str, ...]) -> bool:
    return doc is not None and all(doc.get(name) for name in required)


async def overwrite_article(
    store: DocumentStore,
    article_id: CanonicalArticleId,
    fields: dict[str, Any],
) -> dict[str, Any] | None:
    """Set fields on the article, creating it if absent. Returns the updated record."""
    return await store.find_one_and_update(POSTS, article_id.as_key(), fields, upsert=True)


async def fill_article_gaps(
    store: DocumentStore,
    article_id: CanonicalArticleId,
    existing: dict[str, Any] | None,
    fields: dict[str, Any],
) -> bool:
    """Write the non-empty fields unless the existing article is already complete.

    Returns:
        True if a write happened
    """
    if is_complete(existing, ARTICLE_COMPLETE_FIELDS):
        return False
    updates = {name: value for name, value in fields.items() if value}
    await store.find_one_and_update(POSTS, article_id.as_key(), updates, upsert=True)
    return True


async def fill_profile_gaps(
    store: DocumentStore,
    biz: str,
    existing: dict[str, Any] | None,
    fields: dict[str, Any],
) -> bool:
    """Write the non-empty fields unless the existing profile is already complete.

    Returns:
        True if a write happened
    """
    if is_complete(existing, PROFILE_COMPLETE_FIELDS):
        return False
    updates = {name: value for name, value in fields.items() if value}
    await store.find_one_and_update(PROFILES, {"biz": biz}, updates, upsert=True)
    return True


async def mark_failed(store: DocumentStore, article_id: CanonicalArticleId) -> None:
    """Flag an article as unavailable. No other field is written."""
    await store.find_one_and_update(POSTS, article_id.as_key(), {"is_fail": True}, upsert=True)
