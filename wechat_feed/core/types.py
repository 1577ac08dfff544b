"""
Core data types for WeChat article ingestion.

This module defines the records that flow through the pipeline:
- CanonicalArticleId: The (biz, mid, idx) triple identifying an article
- ListingUnit: One identity-bearing article taken from a batch listing
- Article: The persisted article record
- Profile: The persisted publisher (official account) record
- DetailFields / DetailOutcome: What the detail page parser found
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any


POSTS = "posts"
PROFILES = "profiles"
PUB_RECORDS = "profile_pub_records"


@dataclass(frozen=True)
class CanonicalArticleId:
    """Identity of an article, taken from the `__biz`, `mid` and `idx` link parameters.

    Attributes:
        biz: Publisher account identifier
        mid: Message (push) identifier
        idx: Position of the article inside the push, starting at 1
    """
    biz: str
    mid: str
    idx: str

    def as_key(self) -> dict[str, str]:
        """Return the store key for this article."""
        return {"biz": self.biz, "mid": self.mid, "idx": self.idx}

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> CanonicalArticleId | None:
        """Build an id from a record's biz/mid/idx fields, or None if any is missing."""
        biz, mid, idx = record.get("biz"), record.get("mid"), record.get("idx")
        if not (biz and mid and idx):
            return None
        return cls(biz=str(biz), mid=str(mid), idx=str(idx))


@dataclass
class ListingUnit:
    """An article taken from a batch listing, paired with its push timestamp.

    Attributes:
        id: Canonical identity parsed from the link
        title: HTML-unescaped title
        link: HTML-unescaped article link
        publish_at: ISO 8601 publish timestamp shared by every article of the push
        cover: Cover image URL
        digest: Short description
        source_url: External "read more" link
        author: Author name
        copyright_stat: Platform copyright status code
    """
    id: CanonicalArticleId
    title: str
    link: str
    publish_at: str | None = None
    cover: str | None = None
    digest: str | None = None
    source_url: str | None = None
    author: str | None = None
    copyright_stat: int | None = None

    def basic_fields(self) -> dict[str, Any]:
        """Fields written on the bulk path."""
        return {
            "title": self.title,
            "link": self.link,
            "publish_at": self.publish_at,
            "cover": self.cover,
            "digest": self.digest,
            "source_url": self.source_url,
            "author": self.author,
            "copyright_stat": self.copyright_stat,
        }


@dataclass
class Article:
    """A persisted article record keyed by (biz, mid, idx)."""
    biz: str
    mid: str
    idx: str
    title: str | None = None
    link: str | None = None
    publish_at: str | None = None
    cover: str | None = None
    digest: str | None = None
    source_url: str | None = None
    author: str | None = None
    copyright_stat: int | None = None
    wechat_id: str | None = None
    html: str | None = None
    content: str | None = None
    viewed: bool | None = None
    imported: bool | None = None
    is_fail: bool | None = None

    @property
    def id(self) -> CanonicalArticleId:
        return CanonicalArticleId(biz=self.biz, mid=self.mid, idx=self.idx)

    @classmethod
    def from_doc(cls, doc: dict[str, Any]) -> Article:
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in doc.items() if key in known})


@dataclass
class Profile:
    """A persisted publisher account record keyed by biz."""
    biz: str
    title: str | None = None
    wechat_id: str | None = None
    username: str | None = None
    headimg: str | None = None

    @classmethod
    def from_doc(cls, doc: dict[str, Any]) -> Profile:
        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in doc.items() if key in known})


@dataclass
class DetailFields:
    """Fields found on an article detail page. Every field is optional."""
    wechat_id: str | None = None
    username: str | None = None
    title: str | None = None
    publish_at: str | None = None
    source_url: str | None = None
    cover: str | None = None
    digest: str | None = None
    headimg: str | None = None
    nickname: str | None = None


@dataclass
class DetailOutcome:
    """Result of parsing a detail page.

    Either failed is True (the article was removed or blocked) and fields
    is empty, or failed is False and fields holds whatever was found.
    """
    failed: bool
    fields: DetailFields = field(default_factory=DetailFields)
