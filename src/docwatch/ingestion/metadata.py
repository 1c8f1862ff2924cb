"""Fetch remote documents and probe for their existence."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, Optional

from .cache import TimedCache, existence_key
from .detectors import HashComputer
from .models import FileInfo
from .transport import Transport, TransportError

LOGGER = logging.getLogger(__name__)

DEFAULT_EXISTENCE_TTL = 30.0


def _utc_now_token() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class MetadataFetcher:
    """Turn transport responses into :class:`FileInfo` records.

    Owns the existence cache consulted by :meth:`test_file_exists` and a
    content cache holding the last successful fetch per URL.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        hasher: HashComputer | None = None,
        existence_cache: TimedCache[bool] | None = None,
        existence_ttl: float = DEFAULT_EXISTENCE_TTL,
        now_token: Callable[[], str] = _utc_now_token,
    ) -> None:
        self.transport = transport
        self.hasher = hasher or HashComputer()
        self.existence_cache: TimedCache[bool] = (
            existence_cache if existence_cache is not None else TimedCache()
        )
        self.existence_ttl = existence_ttl
        self._now_token = now_token
        self._content: Dict[str, FileInfo] = {}
        self._content_lock = threading.Lock()

    def get_file_info(self, url: str) -> FileInfo:
        """GET ``url`` and describe the result.

        Transport failures and non-2xx statuses yield ``FileInfo.missing()``.
        The last-modified token prefers ``Last-Modified``, then ``Date``, then
        the current UTC time.
        """
        try:
            response = self.transport.request("GET", url)
        except TransportError as exc:
            LOGGER.debug("Fetch failed for %s: %s", url, exc)
            return FileInfo.missing()

        if not response.ok:
            LOGGER.debug("Fetch of %s returned status %s", url, response.status)
            return FileInfo.missing()

        content = response.body
        last_modified = (
            response.header("last-modified") or response.header("date") or self._now_token()
        )
        info = FileInfo(
            exists=True,
            content=content,
            fingerprint=self.hasher.compute(content),
            last_modified=last_modified,
            size=len(content),
        )
        with self._content_lock:
            self._content[url] = info
        return info

    def test_file_exists(self, url: str) -> bool:
        """Return whether ``url`` answers a HEAD request with a 2xx status.

        Results younger than the existence TTL are served from the cache;
        otherwise the probe runs and its result, failures included, is stored.
        """
        key = existence_key(url)
        cached = self.existence_cache.get(key, self.existence_ttl)
        if cached is not None:
            return cached

        try:
            exists = self.transport.request("HEAD", url).ok
        except TransportError as exc:
            LOGGER.debug("Existence probe failed for %s: %s", url, exc)
            exists = False

        self.existence_cache.set(key, exists)
        return exists

    def cached_info(self, url: str) -> Optional[FileInfo]:
        """Return the last successful fetch of ``url``, if any."""
        with self._content_lock:
            return self._content.get(url)

    def invalidate(self, url: str) -> None:
        """Forget the cached existence result and content for ``url``."""
        self.existence_cache.delete(existence_key(url))
        with self._content_lock:
            self._content.pop(url, None)

    def retain_content(self, urls: Iterable[str]) -> int:
        """Drop cached content for every URL not in ``urls``.

        Returns:
            int: Number of dropped bodies.
        """
        keep = set(urls)
        with self._content_lock:
            stale = [url for url in self._content if url not in keep]
            for url in stale:
                del self._content[url]
        if stale:
            LOGGER.debug("Dropped cached content for %d document(s)", len(stale))
        return len(stale)

    def cleanup_cache(self, max_age: float) -> int:
        """Evict existence entries older than ``max_age`` seconds."""
        removed = self.existence_cache.cleanup(max_age)
        if removed:
            LOGGER.debug("Evicted %d stale existence cache entries", removed)
        return removed


__all__ = ["MetadataFetcher", "DEFAULT_EXISTENCE_TTL"]
