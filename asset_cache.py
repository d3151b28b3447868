"""In-memory LRU caches and source resolution for banner assets.

Backgrounds and avatar badges are expensive to decode and resize, while the
dashboard re-renders the same inputs on every slider move. ``BannerCaches``
keeps the finished PNG buffers; ``AssetStore`` turns an avatar/background
source (local path or URL) into raw bytes, persisting remote downloads to a
content cache on disk.

Neither class locks. Callers sharing one instance across threads must add
their own mutex around ``get``/``put``.
"""
from __future__ import annotations

import hashlib
from collections import OrderedDict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Generic, Hashable, Optional, TypeVar
from urllib.parse import urlparse

import requests

from banner_errors import DownloadError
from logging_utils import get_logger

logger = get_logger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

_DEFAULT_HEADERS = {"User-Agent": "welcome-banner/1.0 (+https://github.com)"}


class LRUCache(Generic[K, V]):
    """Bounded mapping that evicts the least recently used entry."""

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError("LRU capacity must be positive")
        self.capacity = capacity
        self._entries: "OrderedDict[K, V]" = OrderedDict()

    def get(self, key: K) -> Optional[V]:
        if key not in self._entries:
            return None
        self._entries.move_to_end(key)
        return self._entries[key]

    def put(self, key: K, value: V) -> None:
        if key in self._entries:
            self._entries.move_to_end(key)
        self._entries[key] = value
        while len(self._entries) > self.capacity:
            evicted, _ = self._entries.popitem(last=False)
            logger.debug("LRU evicted: %s", evicted)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> list:
        """Keys ordered from least to most recently used."""
        return list(self._entries.keys())


@dataclass
class BannerCaches:
    """Process-wide caches, constructed once at startup and injected into renderers."""

    background: LRUCache[str, bytes] = field(default_factory=lambda: LRUCache(24))
    avatar: LRUCache[str, bytes] = field(default_factory=lambda: LRUCache(48))

    @classmethod
    def with_capacity(cls, background: int, avatar: int) -> "BannerCaches":
        return cls(background=LRUCache(background), avatar=LRUCache(avatar))


def is_url(source: object) -> bool:
    if not isinstance(source, str):
        return False
    return source.startswith("http://") or source.startswith("https://")


def url_cache_name(url: str) -> str:
    """File name for a downloaded URL: sha1 prefix plus the URL path extension."""
    digest = hashlib.sha1(url.encode("utf-8")).hexdigest()[:16]
    suffix = Path(urlparse(url).path).suffix.lower().lstrip(".")
    return f"{digest}.{suffix or 'bin'}"


class AssetStore:
    """Resolve local paths and URLs to raw bytes with an on-disk download cache."""

    def __init__(
        self,
        cache_dir: Path,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = 20.0,
    ) -> None:
        self.cache_dir = cache_dir
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update(_DEFAULT_HEADERS)

    def read(self, source: str | Path) -> bytes:
        """Return the bytes behind ``source``.

        Local paths must exist (``FileNotFoundError`` otherwise); URLs raise
        ``DownloadError`` on network failure or a non-2xx response.
        """
        if is_url(source):
            return self.fetch_url(str(source))
        path = Path(source).expanduser()
        if not path.is_file():
            raise FileNotFoundError(f"Asset not found: {path}")
        return path.read_bytes()

    def fetch_url(self, url: str) -> bytes:
        cached = self.cache_path(url)
        if cached.exists():
            return cached.read_bytes()

        try:
            response = self._session.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise DownloadError(url, str(exc)) from exc
        if not 200 <= response.status_code < 300:
            raise DownloadError(url, f"HTTP {response.status_code}")

        payload = response.content
        try:
            cached.parent.mkdir(parents=True, exist_ok=True)
            cached.write_bytes(payload)
        except OSError as exc:
            logger.warning("Could not persist download cache %s: %s", cached.name, exc)
        logger.info("Downloaded asset: %s (%d bytes)", url, len(payload))
        return payload

    def cache_path(self, url: str) -> Path:
        return self.cache_dir / url_cache_name(url)

    @staticmethod
    def background_key(source: Optional[str | Path]) -> str:
        """Cache key for a background: file path + mtime, URL, or the gradient fallback."""
        if source is None:
            return "gradient"
        if is_url(source):
            return f"url:{source}"
        path = Path(source).expanduser()
        return f"file:{path}:{path.stat().st_mtime_ns}"


__all__ = ["AssetStore", "BannerCaches", "LRUCache", "is_url", "url_cache_name"]
