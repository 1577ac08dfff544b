"""
Ingestion pipeline for WeChat official account articles.

Two entry points feed the article store:
1. ingest_batch: bulk metadata from a history listing push (no page fetch)
2. ingest_detail: one article page, fetched and parsed for fields and body

plus upsert_posts, a plain overwrite-upsert for callers that already hold
article records.

Bulk writes overwrite the listed fields. Detail writes only fill gaps in
incomplete records, so re-crawling a known article is cheap.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from typing import Any, Awaitable, Callable

from .config import PageConfig
from .core import detail as detail_parser
from .core.identity import extract_units, identity_from_document, parse_identity
from .core.merge import fill_article_gaps, fill_profile_gaps, mark_failed, overwrite_article
from .core.profile_cache import ProfileCache
from .core.types import POSTS, PROFILES, Article, CanonicalArticleId, ListingUnit
from .fetch import Fetcher
from .history import PubRecordRecorder
from .logging_utils import LOGGER_NAME, log_event, log_warning
from .store import DocumentStore

QueueDepth = Callable[[], Awaitable[int]]


@dataclass
class IngestStats:
    """Counters for one bulk ingestion run.

    Attributes:
        total: Usable units extracted from the listing
        duplicates: Units dropped because an earlier unit had the same id
        saved: Units written to the store
        failed: Units whose write raised
    """
    total: int = 0
    duplicates: int = 0
    saved: int = 0
    failed: int = 0


@dataclass
class DetailResult:
    """What ingest_detail did for one link.

    status is one of "unresolved", "fetch_failed", "failed" (the article is
    unavailable and was flagged) or "ok".
    """
    status: str
    article_id: CanonicalArticleId | None = None
    article_written: bool = False
    profile_written: bool = False
    content_written: bool = False


class IngestionPipeline:
    """Orchestrates identity extraction, merge policies and store writes.

    Attributes:
        store: Document store for posts and profiles
        page: Body persistence settings
        fetcher: Async fetcher for detail pages
        recorder: Publish history recorder, optional
        queue_depth: Async callable reporting the remaining crawl queue, optional
        profiles: Process-lifetime profile cache
    """

    def __init__(
        self,
        store: DocumentStore,
        page: PageConfig,
        fetcher: Fetcher | None = None,
        recorder: PubRecordRecorder | None = None,
        queue_depth: QueueDepth | None = None,
        logger: logging.Logger | None = None,
        profiles: ProfileCache | None = None,
    ):
        self.store = store
        self.page = page
        self.fetcher = fetcher
        self.recorder = recorder
        self.queue_depth = queue_depth
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self.profiles = profiles or ProfileCache(store)

    async def ingest_batch(
        self,
        entries: list[dict[str, Any]],
        stats: IngestStats | None = None,
    ) -> list[Article]:
        """Save the article metadata carried by a history listing.

        Units are written concurrently; a unit whose write fails is logged
        and left out of the result without affecting the others.

        Args:
            entries: Raw listing entries
            stats: Optional counters updated in place

        Returns:
            The saved articles, one per distinct identity, in listing order
        """
        stats = stats if stats is not None else IngestStats()
        units, duplicates = _unique_units(extract_units(entries))
        stats.total = len(units) + duplicates
        stats.duplicates = duplicates

        results = await asyncio.gather(
            *(overwrite_article(self.store, unit.id, unit.basic_fields()) for unit in units),
            return_exceptions=True,
        )

        saved_docs: list[dict[str, Any]] = []
        for unit, result in zip(units, results):
            if isinstance(result, BaseException):
                stats.failed += 1
                log_warning(
                    self.logger,
                    "Save post failed",
                    event="save_post_failed",
                    biz=unit.id.biz,
                    mid=unit.id.mid,
                    idx=unit.id.idx,
                    error=f"{type(result).__name__}: {result}",
                )
                continue
            if result is not None:
                saved_docs.append(result)
        stats.saved = len(saved_docs)

        saved = [Article.from_doc(doc) for doc in saved_docs]
        if saved:
            await self._log_profile(saved[0].biz)

        for article in saved:
            log_event(
                self.logger,
                f"Saved post {article.publish_at or ''} {article.title}",
                event="post_saved",
                biz=article.biz,
                mid=article.mid,
                idx=article.idx,
                publish_at=article.publish_at,
            )

        if self.recorder is not None and saved_docs:
            await self.recorder.save_pub_records(saved_docs)

        if self.queue_depth is not None:
            await self._log_queue_depth()

        return saved

    async def ingest_detail(self, link: str | None, body: str | None = None) -> DetailResult:
        """Fetch (if needed) and parse one article page, then merge what it holds.

        Args:
            link: Article link; required
            body: Page HTML if the caller already has it

        Returns:
            A DetailResult describing which writes happened
        """
        if not link:
            return DetailResult(status="unresolved")

        article_id = parse_identity(link)
        if article_id is None:
            if body is None:
                body = await self._fetch(link)
            article_id = identity_from_document(body)
        if article_id is None:
            log_warning(self.logger, f"Can not get identity, link: {link}", event="identity_unresolved", link=link)
            return DetailResult(status="unresolved")

        if body is None:
            body = await self._fetch(link)
        if body is None:
            return DetailResult(status="fetch_failed", article_id=article_id)

        outcome = detail_parser.parse_detail(body)
        if outcome.failed:
            await mark_failed(self.store, article_id)
            log_event(self.logger, "Post unavailable", event="post_failed", link=link, **article_id.as_key())
            return DetailResult(status="failed", article_id=article_id)

        found = outcome.fields
        result = DetailResult(status="ok", article_id=article_id)

        doc = await self.store.find_one(POSTS, article_id.as_key())
        result.article_written = await fill_article_gaps(
            self.store,
            article_id,
            doc,
            {
                "link": link,
                "title": found.title,
                "wechat_id": found.wechat_id,
                "publish_at": found.publish_at,
                "source_url": found.source_url,
                "cover": found.cover,
                "digest": found.digest,
            },
        )
        if result.article_written:
            log_event(self.logger, f"Saved post basic info {found.title}", event="post_basic_saved", **article_id.as_key())

        profile = await self.store.find_one(PROFILES, {"biz": article_id.biz})
        result.profile_written = await fill_profile_gaps(
            self.store,
            article_id.biz,
            profile,
            {
                "title": found.nickname,
                "wechat_id": found.wechat_id,
                "username": found.username,
                "headimg": found.headimg,
            },
        )
        if result.profile_written:
            log_event(
                self.logger,
                f"Saved profile basic info {found.nickname}",
                event="profile_basic_saved",
                biz=article_id.biz,
                wechat_id=found.wechat_id,
                username=found.username,
            )

        result.content_written = await self._save_content(article_id, doc, body, found.title)
        return result

    async def upsert_posts(
        self,
        posts: dict[str, Any] | list[dict[str, Any]] | None,
    ) -> dict[str, Any] | list[dict[str, Any] | None] | None:
        """Overwrite-upsert partial article records.

        Each record must carry biz, mid and idx; a record without them yields
        None in its slot. A single record returns a single result and a list
        returns a list of the same length.
        """
        if posts is None:
            return None
        is_list = isinstance(posts, list)
        records = posts if is_list else [posts]

        async def _upsert(record: dict[str, Any]) -> dict[str, Any] | None:
            article_id = CanonicalArticleId.from_record(record)
            if article_id is None:
                return None
            fields = {key: value for key, value in record.items() if key not in ("biz", "mid", "idx")}
            return await overwrite_article(self.store, article_id, fields)

        results = await asyncio.gather(*(_upsert(record) for record in records))
        if is_list:
            return list(results)
        return results[0]

    async def _fetch(self, link: str) -> str | None:
        if self.fetcher is None:
            raise ValueError("A fetcher is required to ingest a link without its page body")
        result = await self.fetcher(link)
        if result.text is None:
            log_warning(
                self.logger,
                f"Fetch failed: {link}",
                event="fetch_failed",
                link=link,
                status_code=result.status_code,
                error=result.error,
            )
        return result.text

    async def _save_content(
        self,
        article_id: CanonicalArticleId,
        doc: dict[str, Any] | None,
        body: str,
        title: str | None,
    ) -> bool:
        if not self.page.is_save_post_content:
            return False

        content_type = self.page.save_content_type
        target = "html" if content_type == "html" else "content"
        if doc and doc.get(target):
            return False

        value = detail_parser.extract_content(body, content_type)
        if not value:
            return False

        await overwrite_article(self.store, article_id, {target: value, "viewed": True, "imported": False})
        log_event(self.logger, f"Saved post content {title or ''}", event="post_content_saved", **article_id.as_key())
        return True

    async def _log_queue_depth(self) -> None:
        try:
            remaining = await self.queue_depth()
        except Exception as exc:  # noqa: BLE001
            log_warning(
                self.logger,
                "Queue depth query failed",
                event="queue_depth_failed",
                error=f"{type(exc).__name__}: {exc}",
            )
            return
        log_event(self.logger, f"Profiles left to crawl: {remaining}", event="queue_depth", remaining=remaining)

    async def _log_profile(self, biz: str) -> None:
        try:
            profile = await self.profiles.resolve(biz)
        except Exception as exc:  # noqa: BLE001
            log_warning(
                self.logger,
                "Profile lookup failed",
                event="profile_lookup_failed",
                biz=biz,
                error=f"{type(exc).__name__}: {exc}",
            )
            return
        if profile and profile.title:
            log_event(self.logger, f"Profile {biz}: {profile.title}", event="profile", biz=biz, title=profile.title)


def _unique_units(units: list[ListingUnit]) -> tuple[list[ListingUnit], int]:
    seen: set[CanonicalArticleId] = set()
    kept: list[ListingUnit] = []
    for unit in units:
        if unit.id in seen:
            continue
        seen.add(unit.id)
        kept.append(unit)
    return kept, len(units) - len(kept)
