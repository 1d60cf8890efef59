"""TTL cache entries and single-flight request coalescing."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Hashable
from typing import Any, Generic, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


class CacheEntry(Generic[T]):
    """
    Cache entry with TTL support.

    Parameters
    ----------
    value : T
        Cached value
    ttl : float
        Time-to-live in seconds
    created_at : float
        Clock value at which the value was stored

    """

    __slots__ = ("created_at", "ttl", "value")

    def __init__(self, value: T, ttl: float, created_at: float) -> None:
        self.value = value
        self.ttl = ttl
        self.created_at = created_at

    @property
    def expires_at(self) -> float:
        """Clock value from which the entry is stale."""
        return self.created_at + self.ttl

    def is_expired(self, now: float) -> bool:
        """
        Check if the entry has expired.

        Parameters
        ----------
        now : float
            Current clock value

        Returns
        -------
        bool
            True once ``now - created_at >= ttl``

        """
        return now - self.created_at >= self.ttl


class TTLCache(Generic[T]):
    """
    In-memory keyed cache with TTL.

    Each ``set`` replaces the whole value stored under a key; entries are
    never partially updated.

    Parameters
    ----------
    default_ttl : float
        Default time-to-live in seconds
    clock : Callable[[], float]
        Clock used for timestamps

    """

    def __init__(self, default_ttl: float = 300, clock: Callable[[], float] = time.time) -> None:
        self.default_ttl = default_ttl
        self._clock = clock
        self._cache: dict[Hashable, CacheEntry[T]] = {}

    def get(self, key: Hashable) -> T | None:
        """
        Get cached value if it exists and hasn't expired.

        Parameters
        ----------
        key : Hashable
            Cache key

        Returns
        -------
        T | None
            Cached value if found and fresh, None otherwise

        """
        entry = self._cache.get(key)
        if entry is None:
            return None

        if entry.is_expired(self._clock()):
            del self._cache[key]
            return None

        return entry.value

    def set(self, key: Hashable, value: T, ttl: float | None = None) -> None:
        """
        Store value in cache with TTL.

        Parameters
        ----------
        key : Hashable
            Cache key
        value : T
            Value to cache
        ttl : float | None
            Time-to-live in seconds. Uses default_ttl if None.

        """
        ttl = self.default_ttl if ttl is None else ttl
        self._cache[key] = CacheEntry(value, ttl, self._clock())

    def clear(self) -> None:
        """Clear all cached entries."""
        self._cache.clear()

    def cleanup_expired(self) -> int:
        """
        Remove all expired entries from cache.

        Returns
        -------
        int
            Number of entries removed

        """
        now = self._clock()
        expired_keys = [key for key, entry in self._cache.items() if entry.is_expired(now)]
        for key in expired_keys:
            del self._cache[key]
        return len(expired_keys)

    def __contains__(self, key: object) -> bool:
        return key in self._cache

    def __len__(self) -> int:
        return len(self._cache)


class SingleFlight:
    """
    Coalesce concurrent calls for the same key into one in-flight task.

    Callers that arrive while a task for their key is running await that
    task instead of starting another. Each waiter is shielded, so a
    cancelled caller does not cancel the shared work.

    """

    def __init__(self) -> None:
        self._inflight: dict[Hashable, asyncio.Task[Any]] = {}

    async def do(self, key: Hashable, factory: Callable[[], Awaitable[T]]) -> T:
        """
        Run ``factory`` for ``key`` unless a run is already in flight.

        Parameters
        ----------
        key : Hashable
            Coalescing key
        factory : Callable[[], Awaitable[T]]
            Zero-argument coroutine factory doing the work

        Returns
        -------
        T
            Result of the shared run; its exception propagates to all waiters

        """
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._inflight[key] = task
            task.add_done_callback(lambda t, k=key: self._forget(k, t))
        else:
            logger.debug("Joining in-flight request for %r", key)
        return await asyncio.shield(task)

    def in_flight(self, key: Hashable) -> bool:
        """Whether a run for ``key`` is currently pending."""
        return key in self._inflight

    def _forget(self, key: Hashable, task: asyncio.Task[Any]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled():
            # Mark the exception retrieved; waiters still get it through shield().
            task.exception()
