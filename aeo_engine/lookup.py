# aeo_engine/lookup.py
"""
HTTPX client for third-party read-only JSON APIs (Wikipedia, Wikidata).

Responsibilities:
- Plain GET with query parameters and a per-request timeout.
- Honor the on-disk response cache for successful JSON payloads.
- Turn every failure into ExternalLookupError so rules have one thing to catch.

A single LookupClient is shared by all rules in a batch; httpx.AsyncClient is
safe for concurrent use.
"""
from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx

from aeo_engine.cache import CacheConfig, FileCache, cache_key
from aeo_engine.errors import ExternalLookupError

log = logging.getLogger(__name__)


class LookupClient:
    """
    Config keys consumed:
      - lookup_timeout: float (seconds)
      - user_agent: str
      - cache: {enabled, directory, expire_seconds, store_errors}
    """

    def __init__(
        self,
        config: Mapping[str, Any],
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        cache: FileCache | None = None,
    ):
        self.config = config
        self.timeout = float(config.get("lookup_timeout", 10.0))
        self._transport = transport
        self._cache = cache
        self._owns_cache = False
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "LookupClient":
        headers = {
            "User-Agent": self.config.get("user_agent", "aeo_engine"),
            "Accept": "application/json",
        }
        if self._cache is None and "cache" in self.config:
            self._cache = FileCache(CacheConfig.from_mapping(self.config["cache"]))
            self._owns_cache = True
        self._client = httpx.AsyncClient(
            follow_redirects=True,
            timeout=self.timeout,
            headers=headers,
            transport=self._transport,
        )
        log.debug("Lookup client opened (timeout=%.1fs)", self.timeout)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        if self._cache is not None and self._owns_cache:
            self._cache.close()
        log.debug("Lookup client closed.")

    async def get_json(self, url: str, params: Mapping[str, Any] | None = None) -> Any:
        if self._client is None:
            raise RuntimeError("LookupClient must be used as an async context manager")

        key = cache_key(url, params)
        if self._cache is not None:
            hit = self._cache.get(key)
            if hit and 200 <= int(hit.get("status", 0)) < 300:
                log.debug("Cache hit for %s", key)
                return hit.get("payload")

        try:
            resp = await self._client.get(url, params=dict(params or {}))
        except httpx.TimeoutException as e:
            log.warning("Timeout after %.1fs calling %s", self.timeout, url)
            raise ExternalLookupError(url, f"timeout: {e}") from e
        except httpx.RequestError as e:
            log.warning("Network error calling %s: %s", url, e)
            raise ExternalLookupError(url, f"network error: {e}") from e

        if resp.status_code >= 400:
            log.warning("HTTP %d from %s", resp.status_code, url)
            if self._cache is not None:
                self._cache.set_json(key, url=str(resp.url), status=resp.status_code, payload=None)
            raise ExternalLookupError(url, f"HTTP {resp.status_code}")

        try:
            payload = resp.json()
        except ValueError as e:
            raise ExternalLookupError(url, f"invalid JSON: {e}") from e

        if self._cache is not None:
            self._cache.set_json(key, url=str(resp.url), status=resp.status_code, payload=payload)
        return payload
