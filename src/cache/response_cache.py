# src/cache/response_cache.py
"""
In-process HTTP response cache.

LRU map keyed by path + sorted query + owner, storing the response body with
an ETag, a Last-Modified stamp and invalidation tags. Conditional requests
short-circuit to 304. Entries older than the configured duration are evicted
on read.
"""

import json
import hashlib
import re
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import format_datetime, parsedate_to_datetime
from typing import Any, Callable, Dict, Mapping, Optional, Set, Tuple
from urllib.parse import parse_qsl, urlencode

import structlog

logger = structlog.get_logger(__name__)

DEFAULT_CAPACITY = 2000


@dataclass(frozen=True)
class CacheConfig:
    """Freshness policy for one route family (durations in seconds)."""

    duration: int
    stale_while_revalidate: Optional[int] = None
    private: bool = True
    tags: Tuple[str, ...] = ()

    def cache_control(self) -> str:
        value = f"{'private' if self.private else 'public'}, max-age={self.duration}"
        if self.stale_while_revalidate:
            value += f", stale-while-revalidate={self.stale_while_revalidate}"
        return value


REFERENCE_DATA = CacheConfig(duration=10 * 60, stale_while_revalidate=30 * 60, tags=("reference-data",))
TRADES = CacheConfig(duration=2 * 60, stale_while_revalidate=10 * 60, tags=("trades",))
STATS = CacheConfig(duration=60, stale_while_revalidate=5 * 60, tags=("stats",))
JOURNALS = CacheConfig(duration=5 * 60, stale_while_revalidate=15 * 60, tags=("journals",))

CACHE_CONFIGS = {
    "REFERENCE_DATA": REFERENCE_DATA,
    "TRADES": TRADES,
    "STATS": STATS,
    "JOURNALS": JOURNALS,
}


@dataclass
class CacheRequest:
    """The parts of an incoming request the cache looks at."""

    path: str
    query: str = ""
    owner_id: Optional[str] = None
    headers: Mapping[str, str] = field(default_factory=dict)

    def header(self, name: str) -> Optional[str]:
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None


@dataclass
class CachedResponse:
    status: int
    body: Any
    headers: Dict[str, str]

    @property
    def cache_status(self) -> Optional[str]:
        return self.headers.get("X-Cache-Status")


@dataclass
class _Entry:
    data: Any
    etag: str
    timestamp: float
    last_modified: int
    tags: Tuple[str, ...]


@dataclass(frozen=True)
class GenerationToken:
    """Snapshot of invalidation counters taken before a fetch."""

    epoch: int
    tags: Tuple[Tuple[str, int], ...]


def make_etag(payload: str) -> str:
    return '"' + hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16] + '"'


def canonical_json(data: Any) -> str:
    return json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)


class ResponseCache:
    """Capacity-bounded LRU response cache with tag invalidation."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY, clock: Callable[[], float] = time.time):
        self.capacity = capacity
        self._clock = clock
        self._lock = threading.RLock()
        self._entries: "OrderedDict[str, _Entry]" = OrderedDict()
        self._tags: Dict[str, Set[str]] = {}
        self._generations: Dict[str, int] = {}
        self._epoch = 0
        self._hits = 0
        self._misses = 0

    # ------------------------------------------------------------------ keys

    @staticmethod
    def make_key(request: CacheRequest) -> str:
        path = request.path.rstrip("/") or "/"
        query = request.query.lstrip("?")
        pairs = sorted(parse_qsl(query, keep_blank_values=True))
        key = f"{path}?{urlencode(pairs)}" if pairs else path
        return f"{key}_user_{request.owner_id or 'anonymous'}"

    # ------------------------------------------------------------- get / set

    def get(self, request: CacheRequest, config: CacheConfig) -> Optional[CachedResponse]:
        key = self.make_key(request)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None

            if self._not_modified(request, entry):
                self._entries.move_to_end(key)
                self._hits += 1
                logger.debug("cache_not_modified", key=key)
                return CachedResponse(304, None, self._headers(entry, config))

            age = self._clock() - entry.timestamp
            if age > config.duration:
                self._remove(key)
                self._misses += 1
                logger.debug("cache_expired", key=key, age=round(age, 3))
                return None

            stale = bool(config.stale_while_revalidate) and age > config.stale_while_revalidate
            self._entries.move_to_end(key)
            self._hits += 1

            headers = self._headers(entry, config)
            headers["X-Cache-Status"] = "STALE" if stale else "HIT"
            return CachedResponse(200, entry.data, headers)

    def set(
        self,
        request: CacheRequest,
        data: Any,
        config: CacheConfig,
        generation: Optional[GenerationToken] = None,
    ) -> CachedResponse:
        """Store `data`; a superseded `generation` returns the response unstored."""
        key = self.make_key(request)
        payload = canonical_json(data)
        now = self._clock()
        entry = _Entry(
            data=json.loads(payload),
            etag=make_etag(payload),
            timestamp=now,
            last_modified=int(now),
            tags=tuple(config.tags),
        )

        with self._lock:
            if generation is not None and not self._is_current(generation):
                logger.info("cache_fill_superseded", key=key)
            else:
                if key in self._entries:
                    self._remove(key)
                self._entries[key] = entry
                for tag in entry.tags:
                    self._tags.setdefault(tag, set()).add(key)
                while len(self._entries) > self.capacity:
                    evicted, _ = next(iter(self._entries.items()))
                    self._remove(evicted)
                    logger.debug("cache_evicted", key=evicted)

        headers = self._headers(entry, config)
        headers["X-Cache-Status"] = "MISS"
        return CachedResponse(200, entry.data, headers)

    # ---------------------------------------------------------- invalidation

    def generation(self, config: CacheConfig) -> GenerationToken:
        with self._lock:
            return GenerationToken(
                epoch=self._epoch,
                tags=tuple((tag, self._generations.get(tag, 0)) for tag in config.tags),
            )

    def invalidate_by_tag(self, tag: str) -> int:
        with self._lock:
            self._generations[tag] = self._generations.get(tag, 0) + 1
            keys = self._tags.pop(tag, set())
            removed = 0
            for key in keys:
                if key in self._entries:
                    self._remove(key)
                    removed += 1
        logger.debug("cache_tag_invalidated", tag=tag, removed=removed)
        return removed

    def invalidate_by_pattern(self, pattern: str) -> int:
        regex = re.compile(pattern)
        with self._lock:
            self._epoch += 1
            keys = [key for key in self._entries if regex.search(key)]
            for key in keys:
                self._remove(key)
        logger.debug("cache_pattern_invalidated", pattern=pattern, removed=len(keys))
        return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._tags.clear()
            self._epoch += 1
            self._hits = 0
            self._misses = 0

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {
                "size": len(self._entries),
                "capacity": self.capacity,
                "tags": len(self._tags),
                "hits": self._hits,
                "misses": self._misses,
            }

    def tag_keys(self, tag: str) -> Set[str]:
        with self._lock:
            return set(self._tags.get(tag, set()))

    def __contains__(self, request: CacheRequest) -> bool:
        with self._lock:
            return self.make_key(request) in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # -------------------------------------------------------------- internals

    def _remove(self, key: str) -> None:
        entry = self._entries.pop(key, None)
        if entry is None:
            return
        for tag in entry.tags:
            members = self._tags.get(tag)
            if members is None:
                continue
            members.discard(key)
            if not members:
                del self._tags[tag]

    def _is_current(self, token: GenerationToken) -> bool:
        if token.epoch != self._epoch:
            return False
        return all(self._generations.get(tag, 0) == seen for tag, seen in token.tags)

    @staticmethod
    def _not_modified(request: CacheRequest, entry: _Entry) -> bool:
        if_none_match = request.header("If-None-Match")
        if if_none_match and if_none_match == entry.etag:
            return True

        if_modified_since = request.header("If-Modified-Since")
        if if_modified_since:
            try:
                since = parsedate_to_datetime(if_modified_since)
            except (TypeError, ValueError):
                return False
            if since.tzinfo is None:
                since = since.replace(tzinfo=timezone.utc)
            return since.timestamp() >= entry.last_modified
        return False

    @staticmethod
    def _headers(entry: _Entry, config: CacheConfig) -> Dict[str, str]:
        last_modified = datetime.fromtimestamp(entry.last_modified, tz=timezone.utc)
        return {
            "ETag": entry.etag,
            "Last-Modified": format_datetime(last_modified, usegmt=True),
            "Cache-Control": config.cache_control(),
        }
