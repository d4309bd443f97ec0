from __future__ import annotations

import random
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from .joblog import SkillLogger
from .utils import md5_hex, write_text_atomic

CACHE_TTL_SEC = 15 * 60
CACHE_SUFFIX = ".xml"

SOURCE_CACHE = "cache"
SOURCE_FETCH = "fetch"
SOURCE_STALE = "stale"


def cache_key(query: str, limit: int) -> str:
    return md5_hex(f"{query}_{limit}")


@dataclass
class CachedBody:
    body: str
    source: str


class FetchCache:
    """Raw response bodies on disk, fresh for ``ttl_seconds`` after their last write."""

    def __init__(
        self,
        cache_dir: Path,
        ttl_seconds: float = CACHE_TTL_SEC,
        clock: Callable[[], float] = time.time,
        logger: Optional[SkillLogger] = None,
    ) -> None:
        self.cache_dir = cache_dir
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.logger = logger

    def path_for(self, key: str) -> Path:
        return self.cache_dir / f"{key}{CACHE_SUFFIX}"

    def read_fresh(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        try:
            age = self.clock() - path.stat().st_mtime
            if age >= self.ttl_seconds:
                return None
            return path.read_text(encoding="utf-8")
        except OSError:
            return None

    def read_any(self, key: str) -> Optional[str]:
        try:
            return self.path_for(key).read_text(encoding="utf-8")
        except OSError:
            return None

    def write(self, key: str, body: str) -> bool:
        try:
            write_text_atomic(self.path_for(key), body)
        except OSError as exc:
            if self.logger:
                self.logger.log(f"Cache write failed for {key}: {exc}")
            return False
        return True


def cached_fetch(
    cache: FetchCache,
    key: str,
    fetch: Callable[[], str],
    jitter_max: float = 2.0,
    sleep: Callable[[float], None] = time.sleep,
    rng: Callable[[], float] = random.random,
) -> CachedBody:
    """Serve a fresh cache entry or fetch, falling back to a stale entry if the fetch fails.

    The random pre-fetch pause only spreads out independent runs started at the
    same moment; it does not coordinate them.
    """
    body = cache.read_fresh(key)
    if body is not None:
        return CachedBody(body=body, source=SOURCE_CACHE)

    if jitter_max > 0:
        sleep(rng() * jitter_max)
    try:
        body = fetch()
    except Exception as exc:
        stale = cache.read_any(key)
        if stale is None:
            raise
        if cache.logger:
            cache.logger.log(f"Fetch failed ({exc}); serving stale cache entry {key}.")
        return CachedBody(body=stale, source=SOURCE_STALE)
    cache.write(key, body)
    return CachedBody(body=body, source=SOURCE_FETCH)
