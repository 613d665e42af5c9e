from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from typing import Awaitable, Callable, Deque, Dict, Optional

from capper.core.models import UNKNOWN_PLACE, Coordinate, GeocodeResult, PlaceComponents

from .cache import GeocodeCache
from .providers import GeocoderConfig, GeocodeUnavailable, ReverseGeocoder

logger = logging.getLogger(__name__)


def describe_place(components: PlaceComponents) -> GeocodeResult:
    """
    Build a display title and subtitle from place components.

    The title is the most specific level available (venue, neighbourhood,
    locality, region, country). The subtitle is the next broader of locality or
    region followed by the country, skipping anything at or below the title.
    """
    levels = [
        components.name,
        components.neighbourhood,
        components.locality,
        components.region,
        components.country,
    ]
    title_level = next((i for i, value in enumerate(levels) if value), None)
    if title_level is None:
        return GeocodeResult(title=UNKNOWN_PLACE, country_code=components.country_code)

    title = levels[title_level]
    parts: list[str] = []
    area = next(
        (levels[i] for i in (2, 3) if i > title_level and levels[i] and levels[i] != title),
        None,
    )
    if area:
        parts.append(area)
    country = components.country
    if country and title_level < 4 and country != title and country not in parts:
        parts.append(country)
    return GeocodeResult(
        title=title,  # type: ignore[arg-type]
        subtitle=", ".join(parts),
        country_code=components.country_code,
    )


class RateLimiter:
    """Sliding one-minute window limiter for outbound geocode requests."""

    def __init__(
        self,
        per_minute: int,
        *,
        max_wait: float = 15.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.per_minute = per_minute
        self.max_wait = max_wait
        self._clock = clock
        self._sleep = sleep
        self._stamps: Deque[float] = deque()

    def reserve(self) -> float:
        """Record a request slot and return how long to wait before using it."""
        now = self._clock()
        while self._stamps and self._stamps[0] <= now - 60.0:
            self._stamps.popleft()
        wait = 0.0
        if len(self._stamps) >= self.per_minute:
            wait = max(0.0, min(self.max_wait, 60.0 - (now - self._stamps[0])))
        self._stamps.append(now + wait)
        return wait

    async def acquire(self) -> None:
        if self.per_minute <= 0:
            return
        wait = self.reserve()
        if wait > 0:
            logger.debug("Geocode rate limit reached; waiting %.1fs", wait)
            await self._sleep(wait)


class GeocodingResolver:
    """
    Resolve coordinates to place labels, best effort.

    Lookups are shared per cache key: concurrent callers for the same rounded
    coordinate await a single backend call. Failures never raise; they yield
    the "Unknown Place" result and are not cached.
    """

    def __init__(
        self,
        provider: ReverseGeocoder,
        *,
        config: Optional[GeocoderConfig] = None,
        cache: Optional[GeocodeCache] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        self.provider = provider
        self.config = config or GeocoderConfig.from_env()
        self.cache = cache or GeocodeCache(precision=self.config.cache_precision)
        self.rate_limiter = rate_limiter or RateLimiter(self.config.rate_limit_per_minute)
        self.external_calls = 0
        self._inflight: Dict[str, asyncio.Task[GeocodeResult]] = {}

    async def resolve(self, coordinate: Coordinate) -> GeocodeResult:
        key = self.cache.key_for(coordinate)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._lookup(key, coordinate))
            self._inflight[key] = task
            task.add_done_callback(lambda _: self._inflight.pop(key, None))
        # Cancelling this caller must not cancel the lookup other callers share.
        return await asyncio.shield(task)

    async def _lookup(self, key: str, coordinate: Coordinate) -> GeocodeResult:
        await self.rate_limiter.acquire()
        self.external_calls += 1
        try:
            components = await asyncio.wait_for(
                self.provider.reverse(coordinate.latitude, coordinate.longitude),
                timeout=self.config.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Reverse geocode timed out for %s", key)
            return GeocodeResult.unknown()
        except GeocodeUnavailable as exc:
            logger.warning("Reverse geocode unavailable for %s: %s", key, exc)
            return GeocodeResult.unknown()
        except Exception:
            logger.exception("Reverse geocode failed unexpectedly for %s", key)
            return GeocodeResult.unknown()

        result = describe_place(components)
        if result.is_unknown:
            logger.info("Reverse geocode for %s named no place; not caching", key)
            return result
        await self.cache.store_result(key, result)
        return result

    async def aclose(self) -> None:
        await self.provider.aclose()
