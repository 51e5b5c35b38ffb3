# aeo_engine/cache.py
"""
File-backed cache for third-party lookup responses.

- Storage: diskcache.Cache.
- Location: a visible folder in CWD by default, or the OS app cache dir via
  platformdirs when the directory is "os-default".
- Scope: JSON payloads from read-only APIs (Wikipedia, Wikidata). Non-2xx
  responses are only kept when `store_errors` is set.
"""
from __future__ import annotations

import dataclasses
import logging
import os
import time
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlencode

import diskcache
from platformdirs import user_cache_dir

log = logging.getLogger(__name__)

DEFAULT_DIRECTORY = ".aeo_engine_cache"


@dataclasses.dataclass
class CacheConfig:
    enabled: bool = True
    # A concrete path, or "os-default" for the per-user cache location.
    directory: str = DEFAULT_DIRECTORY
    expire_seconds: int = 24 * 3600
    store_errors: bool = False

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> "CacheConfig":
        raw = raw or {}
        return cls(
            enabled=bool(raw.get("enabled", True)),
            directory=str(raw.get("directory", DEFAULT_DIRECTORY)),
            expire_seconds=int(raw.get("expire_seconds", 24 * 3600)),
            store_errors=bool(raw.get("store_errors", False)),
        )


def cache_key(url: str, params: Mapping[str, Any] | None = None) -> str:
    """Stable key: the URL plus its query parameters sorted by name."""
    if not params:
        return url
    query = urlencode(sorted((k, str(v)) for k, v in params.items()))
    return f"{url}?{query}"


class FileCache:
    """
    Thin wrapper over diskcache.
    Keys: `cache_key(url, params)` strings.
    Values: dict with url, status, payload, fetched_at.
    """

    def __init__(self, cfg: CacheConfig, app_name: str = "aeo_engine"):
        self.cfg = cfg
        self.app_name = app_name
        self._cache: diskcache.Cache | None = None
        if not cfg.enabled:
            log.info("Lookup cache disabled")
            return
        directory = cfg.directory
        if directory == "os-default":
            directory = user_cache_dir(app_name, appauthor=False)
        log.debug("Lookup cache at %s", directory)
        self._cache = diskcache.Cache(directory)

    def close(self) -> None:
        if self._cache is not None:
            self._cache.close()

    @property
    def enabled(self) -> bool:
        return self._cache is not None

    @property
    def directory(self) -> str | None:
        if self._cache is None:
            return None
        return str(self._cache.directory)

    def _dir_size_bytes(self) -> int:
        d = self.directory
        if not d or not Path(d).exists():
            return 0
        total = 0
        for p in Path(d).rglob("*"):
            try:
                if p.is_file():
                    total += p.stat().st_size
            except OSError:
                continue
        return total

    def stats(self) -> dict[str, int | str]:
        if self._cache is None:
            return {"items": 0, "bytes": 0, "directory": ""}
        return {
            "items": len(self._cache),
            "bytes": self._dir_size_bytes(),
            "directory": os.path.abspath(self.directory or ""),
        }

    def clear_all(self) -> None:
        if self._cache is None:
            log.warning("Cache disabled, nothing to clear")
            return
        self._cache.clear()

    def get(self, key: str) -> dict[str, Any] | None:
        if self._cache is None:
            return None
        return self._cache.get(key)

    def set_json(self, key: str, *, url: str, status: int, payload: Any) -> bool:
        """Store a response. Returns False when it was not cached."""
        if self._cache is None:
            return False
        if not 200 <= status < 300 and not self.cfg.store_errors:
            log.debug("Not caching status %d for %s", status, key)
            return False
        self._cache.set(
            key,
            {
                "url": url,
                "status": status,
                "payload": payload,
                "fetched_at": time.time(),
            },
            expire=self.cfg.expire_seconds,
        )
        return True
