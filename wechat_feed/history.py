"""Publish history for tracked accounts.

Each saved batch is folded into one record per (biz, publish day) holding
how many articles were pushed that day. The history lets the crawler see
when an account last published without scanning every article.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, Protocol

from .core.types import PUB_RECORDS
from .store import DocumentStore


class PubRecordRecorder(Protocol):
    async def save_pub_records(self, articles: list[dict[str, Any]]) -> None:
        ...


class StorePubRecordRecorder:
    """Writes publish history into the profile_pub_records collection."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def save_pub_records(self, articles: list[dict[str, Any]]) -> None:
        counts = Counter(
            (article["biz"], article["publish_at"][:10])
            for article in articles
            if article.get("biz") and article.get("publish_at")
        )
        for (biz, day), total in counts.items():
            await self.store.find_one_and_update(
                PUB_RECORDS,
                {"biz": biz, "date": day},
                {"total": total},
                upsert=True,
            )
