"""
Single-flight, process-lifetime cache for publisher profile lookups.

A bulk listing usually belongs to one publisher, so many concurrent tasks
ask for the same profile at once. The cache collapses those requests into
one store query per key and remembers the answer, including "not found",
until the process exits.

Entries never expire. A profile created or completed by another process
after it was cached here stays invisible to this process until restart;
callers only use the cached value for logging, so the staleness is
accepted rather than paid for with repeated queries.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Generic, Hashable, TypeVar

from ..store import DocumentStore
from .types import PROFILES, Profile

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

ABSENT: Any = object()


class CoalescingLookupCache(Generic[K, V]):
    """Cache that runs at most one backing lookup per key per process.

    Attributes:
        lookup: Async function returning the value for a key, or None if absent
        calls: Number of backing lookups issued so far
    """

    def __init__(self, lookup: Callable[[K], Awaitable[V | None]]):
        self.lookup = lookup
        self.calls = 0
        self._resolved: dict[K, Any] = {}
        self._waiting: dict[K, list[asyncio.Future]] = {}

    def __contains__(self, key: K) -> bool:
        return key in self._resolved

    async def resolve(self, key: K) -> V | None:
        """Return the value for key, querying the backing lookup at most once.

        The first caller for an unresolved key becomes the leader and runs
        the lookup; callers arriving while it is in flight wait for the
        leader's result. There is no await between the membership checks and
        the registration below, so leader election happens exactly once.

        If the lookup raises, the leader and every waiting caller receive the
        same exception and nothing is cached. If the leader is cancelled, the
        waiting callers are cancelled too.
        """
        if key in self._resolved:
            return _unwrap(self._resolved[key])

        waiters = self._waiting.get(key)
        if waiters is not None:
            future = asyncio.get_running_loop().create_future()
            waiters.append(future)
            return _unwrap(await future)

        waiters = []
        self._waiting[key] = waiters
        self.calls += 1
        try:
            value = await self.lookup(key)
        except BaseException as exc:
            del self._waiting[key]
            for future in waiters:
                if future.done():
                    continue
                if isinstance(exc, asyncio.CancelledError):
                    future.cancel()
                else:
                    future.set_exception(exc)
            raise

        stored = ABSENT if value is None else value
        self._resolved[key] = stored
        for future in waiters:
            if not future.done():
                future.set_result(stored)
        del self._waiting[key]
        return _unwrap(stored)


class ProfileCache(CoalescingLookupCache[str, Profile]):
    """Profile lookups by biz, backed by the profiles collection."""

    def __init__(self, store: DocumentStore):
        self.store = store
        super().__init__(self._find)

    async def _find(self, biz: str) -> Profile | None:
        doc = await self.store.find_one(PROFILES, {"biz": biz})
        return Profile.from_doc(doc) if doc else None


def _unwrap(value: Any) -> Any:
    return None if value is ABSENT else value
