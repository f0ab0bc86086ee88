"""Fetch synteny alignments from a REST endpoint, with caching and request sharing.

Expected API response format (paths are configurable)::

    {
      "alignments": [
        {
          "query": {"name": "chr1", "start": 1000, "end": 2000, "length": 50000},
          "target": {"name": "chr5", "start": 3000, "end": 4000, "length": 60000},
          "strand": "+",
          "numResidueMatches": 950,
          "alignmentBlockLength": 1000,
          "mappingQuality": 60
        }
      ]
    }
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Optional

import httpx

from alignment import parse_alignments
from schemas import AdapterConfig, Region, SyntenyFeature

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {"Content-Type": "application/json"}


class SyntenyAdapterError(Exception):
    """Base error for the synteny adapter."""


class AdapterConfigError(SyntenyAdapterError):
    """The adapter configuration cannot be used to issue a request."""


class FetchError(SyntenyAdapterError):
    """The remote endpoint could not be reached or answered with an error."""


class FetchAborted(FetchError):
    """The request was cancelled through its stop token."""


class StopToken:
    """Cancellation signal handed to get_features to abort the underlying fetch."""

    def __init__(self):
        self._event = asyncio.Event()

    def stop(self) -> None:
        self._event.set()

    @property
    def stopped(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


@dataclass
class CacheEntry:
    features: list[SyntenyFeature]
    timestamp: float  # ms, from the adapter clock


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


class SyntenyAdapter:
    """
    Serves synteny features for a region from a configurable REST API.

    Results are cached per key for ``cache_timeout`` ms, and concurrent
    requests for the same key share a single fetch. With
    ``client_side_filter`` the whole dataset is fetched once per assembly
    and filtered locally by overlap with each requested region.
    """

    def __init__(
        self,
        config: AdapterConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.config = config
        self._transport = transport
        self._clock = clock or _monotonic_ms
        self._cache: dict[str, CacheEntry] = {}
        # Pending fetches, one per cache key
        self._in_flight: dict[str, asyncio.Task] = {}
        self._refresh_task: Optional[asyncio.Task] = None
        self._refresh_released = False
        self._start_auto_refresh()

    async def __aenter__(self) -> "SyntenyAdapter":
        self._start_auto_refresh()
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.free_resources()

    def _start_auto_refresh(self) -> None:
        interval = self.config.refresh_interval
        if interval <= 0 or self._refresh_released:
            return
        if self._refresh_task is not None and not self._refresh_task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop yet; the first get_features call starts the timer
            return
        self._refresh_task = loop.create_task(self._auto_refresh(interval / 1000))

    async def _auto_refresh(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            logger.info("Refresh interval elapsed, clearing %d cache entries", len(self._cache))
            self._cache.clear()

    def cache_key(self, region: Region) -> str:
        """Key under which a region's features are cached and fetched."""
        assembly_name = region.assembly_name or "default"
        if self.config.client_side_filter:
            # The full dataset is cached once per assembly
            return f"global:{assembly_name}"
        return f"{assembly_name}:{region.ref_name}:{region.start}-{region.end}"

    def _is_fresh(self, entry: CacheEntry) -> bool:
        """Entries live for cache_timeout ms; a timeout of 0 disables caching."""
        timeout = self.config.cache_timeout
        if timeout == 0:
            return False
        return self._clock() - entry.timestamp < timeout

    async def get_ref_names(self) -> list[str]:
        """Reference names are not known until the API is queried."""
        return []

    async def has_data_for_ref_name(self, ref_name: str) -> bool:
        return True

    async def get_features(
        self, region: Region, options: Optional[dict[str, Any]] = None
    ) -> AsyncIterator[SyntenyFeature]:
        """
        Yield the features for a region.

        Nothing happens until the generator is iterated. Recognised options:
        ``cancellation_token`` (or ``stop_token``), a StopToken that aborts
        the network request.
        """
        options = options or {}
        self._start_auto_refresh()

        key = self.cache_key(region)
        cached = self._cache.get(key)
        if cached is not None and self._is_fresh(cached):
            logger.debug("Cache hit for %s", key)
            features = cached.features
        else:
            logger.debug("Cache miss for %s", key)
            features = await self._resolve(key, region, options)

        if self.config.client_side_filter:
            features = [f for f in features if region.overlaps(f)]

        for feature in features:
            yield feature

    async def _resolve(self, key: str, region: Region, options: dict[str, Any]) -> list[SyntenyFeature]:
        """
        Wait for the shared fetch of a key, starting it if none is pending.

        Every caller waits behind a shield, so a caller leaving early never
        cancels the fetch for the others. A joiner's own stop token only
        ends that joiner's wait; the starter's token is threaded into the
        request and aborts it for everyone.
        """
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._fetch_and_store(key, region, options))
            # Mark the outcome retrieved even if every waiter has gone
            task.add_done_callback(lambda t: t.cancelled() or t.exception())
            self._in_flight[key] = task
            return await asyncio.shield(task)

        logger.debug("Joining in-flight request for %s", key)
        token = options.get("cancellation_token") or options.get("stop_token")
        if token is None:
            return await asyncio.shield(task)
        if token.stopped:
            raise FetchAborted(f"SyntenyAdapter: wait for {key} was aborted")
        return await self._until_stopped(task, token, f"wait for {key}")

    async def _fetch_and_store(self, key: str, region: Region, options: dict[str, Any]) -> list[SyntenyFeature]:
        """Run the fetch for a key, then release its in-flight slot and cache the result."""
        try:
            features = await self._fetch_features(region, options)
        finally:
            if self._in_flight.get(key) is asyncio.current_task():
                del self._in_flight[key]

        if self.config.cache_timeout > 0:
            self._cache[key] = CacheEntry(features=features, timestamp=self._clock())
        return features

    def _region_params(self, region: Region) -> dict[str, str]:
        params = {
            "refName": region.ref_name,
            "start": str(region.start),
            "end": str(region.end),
        }
        if region.assembly_name:
            params["assemblyName"] = region.assembly_name
        return params

    async def _fetch_features(self, region: Region, options: dict[str, Any]) -> list[SyntenyFeature]:
        """Fetch features from the REST endpoint."""
        if not self.config.url:
            raise AdapterConfigError("SyntenyAdapter: url configuration is required")

        params = self._region_params(region) if self.config.append_region_params else None
        headers = {**DEFAULT_HEADERS, **self.config.request_headers}
        token = options.get("cancellation_token") or options.get("stop_token")

        if token is None:
            data = await self._request(params, headers)
        else:
            data = await self._request_until_stopped(token, params, headers)

        return parse_alignments(
            data,
            self.config.field_mapping(),
            self.config.assembly_names,
            region.assembly_name,
        )

    async def _request(self, params: Optional[dict[str, str]], headers: dict[str, str]) -> Any:
        url = self.config.url
        logger.info("Fetching synteny data: %s %s params=%s", self.config.method, url, params)

        async with httpx.AsyncClient(transport=self._transport, timeout=self.config.request_timeout) as client:
            try:
                resp = await client.request(self.config.method, url, params=params, headers=headers)
            except httpx.RequestError as exc:
                raise FetchError(f"SyntenyAdapter: network error fetching {url}: {exc}") from exc

        if not resp.is_success:
            raise FetchError(
                f"SyntenyAdapter: HTTP {resp.status_code}: {resp.reason_phrase} "
                f"- Failed to fetch from {resp.request.url}"
            )

        try:
            return resp.json()
        except ValueError as exc:
            raise FetchError(f"SyntenyAdapter: invalid JSON from {resp.request.url}") from exc

    async def _request_until_stopped(
        self, token: StopToken, params: Optional[dict[str, str]], headers: dict[str, str]
    ) -> Any:
        if token.stopped:
            raise FetchAborted(f"SyntenyAdapter: request to {self.config.url} was aborted")

        request = asyncio.ensure_future(self._request(params, headers))
        try:
            return await self._until_stopped(request, token, f"request to {self.config.url}")
        finally:
            request.cancel()

    async def _until_stopped(self, future: asyncio.Future, token: StopToken, what: str) -> Any:
        """Result of ``future``, or FetchAborted if the token fires first. Never cancels ``future``."""
        stopped = asyncio.ensure_future(token.wait())
        try:
            await asyncio.wait({future, stopped}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stopped.cancel()
        if future.done():
            return future.result()
        raise FetchAborted(f"SyntenyAdapter: {what} was aborted")

    def free_resources(self, region: Optional[Region] = None) -> None:
        """Drop one region's cache entry, or everything including the refresh timer."""
        if region is not None:
            self._cache.pop(self.cache_key(region), None)
            return

        self._cache.clear()
        self._refresh_released = True
        if self._refresh_task is not None:
            self._refresh_task.cancel()
            self._refresh_task = None
