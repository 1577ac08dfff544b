"""
Document store used by the ingestion pipeline.

The pipeline only needs two operations from its store: look a record up by
key, and atomically set some fields on the record with that key, creating
it if it does not exist. Two backends are provided:

1. MemoryStore: dictionaries in the current process (tests, dry runs)
2. JsonDirStore: one JSON file per record, grouped in a folder per collection

Keys are small dicts such as ``{"biz": ..., "mid": ..., "idx": ...}``; a
record always contains its key fields.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any, Protocol


class DocumentStore(Protocol):
    async def find_one(self, collection: str, key: dict[str, Any]) -> dict[str, Any] | None:
        ...

    async def find_one_and_update(
        self,
        collection: str,
        key: dict[str, Any],
        fields: dict[str, Any],
        upsert: bool = True,
    ) -> dict[str, Any] | None:
        ...


def key_digest(key: dict[str, Any]) -> str:
    """Return a stable SHA256 digest for a record key.

    Example:
        >>> key_digest({"biz": "Bz1"}) == key_digest({"biz": "Bz1"})
        True
    """
    payload = json.dumps(key, sort_keys=True, ensure_ascii=True, default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def _merge(existing: dict[str, Any] | None, key: dict[str, Any], fields: dict[str, Any]) -> dict[str, Any]:
    doc = dict(existing or {})
    doc.update(fields)
    doc.update(key)
    return doc


class MemoryStore:
    """Process-local store backed by dictionaries.

    Every operation completes without yielding to the event loop, so each
    find-and-modify is atomic with respect to other tasks.
    """

    def __init__(self):
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}

    def _records(self, collection: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(collection, {})

    async def find_one(self, collection: str, key: dict[str, Any]) -> dict[str, Any] | None:
        doc = self._records(collection).get(key_digest(key))
        return dict(doc) if doc is not None else None

    async def find_one_and_update(
        self,
        collection: str,
        key: dict[str, Any],
        fields: dict[str, Any],
        upsert: bool = True,
    ) -> dict[str, Any] | None:
        records = self._records(collection)
        digest = key_digest(key)
        existing = records.get(digest)
        if existing is None and not upsert:
            return None
        doc = _merge(existing, key, fields)
        records[digest] = doc
        return dict(doc)

    def all(self, collection: str) -> list[dict[str, Any]]:
        return [dict(doc) for doc in self._records(collection).values()]


class JsonDirStore:
    """Store that keeps one JSON file per record.

    Layout: ``{root}/{collection}/{sha256(key)}.json``. Reads and writes are
    synchronous file operations with no await in between, so a
    find-and-modify cannot interleave with another task in the same loop.

    Attributes:
        root: Directory holding one subfolder per collection
    """

    def __init__(self, root: Path):
        self.root = root

    def path_for(self, collection: str, key: dict[str, Any]) -> Path:
        return self.root / collection / f"{key_digest(key)}.json"

    async def find_one(self, collection: str, key: dict[str, Any]) -> dict[str, Any] | None:
        return self._read(self.path_for(collection, key))

    async def find_one_and_update(
        self,
        collection: str,
        key: dict[str, Any],
        fields: dict[str, Any],
        upsert: bool = True,
    ) -> dict[str, Any] | None:
        path = self.path_for(collection, key)
        existing = self._read(path)
        if existing is None and not upsert:
            return None
        doc = _merge(existing, key, fields)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(doc, f, indent=2, ensure_ascii=False)
        tmp_path.replace(path)
        return doc

    def all(self, collection: str) -> list[dict[str, Any]]:
        folder = self.root / collection
        if not folder.exists():
            return []
        return [self._read(path) for path in sorted(folder.glob("*.json"))]

    @staticmethod
    def _read(path: Path) -> dict[str, Any] | None:
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)


def build_store(backend: str, path: str) -> DocumentStore:
    """Build the store for the configured backend.

    Raises:
        ValueError: If backend is not "json" or "memory"
    """
    if backend == "memory":
        return MemoryStore()
    if backend == "json":
        return JsonDirStore(Path(path))
    raise ValueError(f"Unsupported store backend: {backend}")
