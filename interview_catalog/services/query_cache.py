"""In-memory query result cache with tag-based invalidation."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Set, Tuple

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A memoized read result."""

    value: Any
    expires_at: float
    tags: Tuple[str, ...]


class TagRegistry:
    """
    Map from tag to the cache keys carrying it.

    Each tag also has a version counter that moves on every invalidation, so
    a load that started before an invalidation can tell its result is stale.
    """

    def __init__(self) -> None:
        self._keys_by_tag: Dict[str, Set[str]] = {}
        self._versions: Dict[str, int] = {}

    def register(self, key: str, tags: Iterable[str]) -> None:
        for tag in tags:
            self._keys_by_tag.setdefault(tag, set()).add(key)

    def unregister(self, key: str, tags: Iterable[str]) -> None:
        for tag in tags:
            keys = self._keys_by_tag.get(tag)
            if keys is not None:
                keys.discard(key)
                if not keys:
                    del self._keys_by_tag[tag]

    def keys_for(self, tag: str) -> Set[str]:
        return set(self._keys_by_tag.get(tag, ()))

    def all_tags(self) -> list:
        return list(self._keys_by_tag)

    def version(self, tag: str) -> int:
        return self._versions.get(tag, 0)

    def invalidate(self, tag: str) -> Set[str]:
        """Bump the tag's version and return the keys that carried it."""
        self._versions[tag] = self._versions.get(tag, 0) + 1
        return self._keys_by_tag.pop(tag, set())


class QueryCache:
    """
    Memoize async reads under a key until their TTL lapses or a tag is invalidated.

    Concurrent misses on one key share a single load. Failed loads are never
    stored; the error reaches every waiter and the next call retries.
    """

    def __init__(
        self,
        registry: Optional[TagRegistry] = None,
        clock: Callable[[], float] = time.monotonic,
        default_ttl: float = 3600.0,
    ):
        self.registry = registry or TagRegistry()
        self._clock = clock
        self.default_ttl = default_ttl
        self._entries: Dict[str, CacheEntry] = {}
        self._inflight: Dict[str, Tuple[asyncio.Task, Tuple[str, ...]]] = {}
        self.hits = 0
        self.misses = 0

    async def cached_read(
        self,
        key: str,
        tags: Iterable[str],
        ttl: Optional[float],
        fn: Callable[[], Awaitable[Any]],
    ) -> Any:
        """Return the memoized value for key, calling fn on a miss."""
        tags = tuple(tags)
        entry = self._entries.get(key)
        if entry is not None:
            if entry.expires_at > self._clock():
                self.hits += 1
                logger.debug("Cache hit for %s", key)
                return entry.value
            logger.debug("Cache entry expired for %s", key)
            self._drop(key)

        inflight = self._inflight.get(key)
        if inflight is None:
            self.misses += 1
            logger.debug("Cache miss for %s", key)
            ttl = self.default_ttl if ttl is None else ttl
            # Versions are taken now, before the load is scheduled
            versions = {tag: self.registry.version(tag) for tag in tags}
            task = asyncio.ensure_future(self._load(key, tags, versions, ttl, fn))
            self._inflight[key] = (task, tags)
            task.add_done_callback(lambda t, k=key: self._clear_inflight(k, t))
        else:
            task = inflight[0]
        return await asyncio.shield(task)

    async def _load(
        self,
        key: str,
        tags: Tuple[str, ...],
        versions: Dict[str, int],
        ttl: float,
        fn: Callable[[], Awaitable[Any]],
    ) -> Any:
        value = await fn()
        if any(self.registry.version(tag) != v for tag, v in versions.items()):
            logger.debug("Not storing %s; a tag was invalidated during the load", key)
            return value
        self._entries[key] = CacheEntry(value, self._clock() + ttl, tags)
        self.registry.register(key, tags)
        return value

    def _clear_inflight(self, key: str, task: asyncio.Task) -> None:
        current = self._inflight.get(key)
        if current is not None and current[0] is task:
            del self._inflight[key]

    def _drop(self, key: str) -> None:
        entry = self._entries.pop(key, None)
        if entry is not None:
            self.registry.unregister(key, entry.tags)

    def invalidate(self, tag: str) -> int:
        """Drop every entry carrying tag; returns the number of entries removed."""
        keys = self.registry.invalidate(tag)
        removed = 0
        for key in keys:
            if key in self._entries:
                self._drop(key)
                removed += 1
        # New readers must not join a load that began before this invalidation
        for key in [k for k, (_, t) in self._inflight.items() if tag in t]:
            del self._inflight[key]
        logger.debug("Invalidated tag %s (%d entries)", tag, removed)
        return removed

    def invalidate_many(self, tags: Iterable[str]) -> int:
        """Invalidate each distinct tag once."""
        removed = 0
        for tag in dict.fromkeys(tags):
            removed += self.invalidate(tag)
        return removed

    def clear(self) -> None:
        tags = set(self.registry.all_tags())
        for _, inflight_tags in self._inflight.values():
            tags.update(inflight_tags)
        for tag in tags:
            self.registry.invalidate(tag)
        self._entries.clear()
        self._inflight.clear()

    def __len__(self) -> int:
        return len(self._entries)
