# puphax/application/fallback.py
"""
Fallback Coordinator: answer from the live upstream when it is usable,
otherwise (or when it fails) from the offline Query Engine.

Both paths return a `DrugSearchResponse` of the same shape; `provenance`
tells callers which source produced it. Retries and backoff belong to the
upstream client, not here.
"""
from __future__ import annotations

import logging
import time
from typing import Optional

from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from puphax.application.query_engine import QueryEngine
from puphax.domain.ports import AvailabilityPort, CachePort, UpstreamPort
from puphax.domain.query import (
    DrugSearchResponse, FilterSpecification, Provenance, ResultPage, SearchInfo,
)

logger = logging.getLogger("puphax.fallback")


class UpstreamAvailability(AvailabilityPort):
    """Binary availability flag, flipped by the upstream health policy."""

    def __init__(self, available: bool = True):
        self._available = available

    def is_available(self) -> bool:
        return self._available

    def mark_available(self) -> None:
        if not self._available:
            logger.info("upstream marked available")
        self._available = True

    def mark_unavailable(self, reason: str | None = None) -> None:
        if self._available:
            logger.warning("upstream marked unavailable: %s", reason or "-")
        self._available = False


class FallbackCoordinator:
    def __init__(
        self,
        engine: QueryEngine,
        upstream: Optional[UpstreamPort],
        availability: AvailabilityPort,
        cache: Optional[CachePort] = None,
        cache_ttl: int = 3600,
    ):
        self.engine = engine
        self.upstream = upstream
        self.availability = availability
        self.cache = cache
        self.cache_ttl = cache_ttl

    def upstream_usable(self) -> bool:
        return self.upstream is not None and self.availability.is_available()

    async def search(self, spec: FilterSpecification) -> DrugSearchResponse:
        t0 = time.time()

        if self.upstream_usable():
            cached = await self._cache_get(spec)
            if cached is not None:
                return self._respond(cached, Provenance.LIVE, spec, t0, cache_hit=True)
            try:
                page = await self.upstream.search(spec)
            except Exception as e:
                logger.warning("upstream search failed (%s: %s); answering from offline snapshot",
                               type(e).__name__, e)
            else:
                await self._cache_set(spec, page)
                return self._respond(page, Provenance.LIVE, spec, t0)
        else:
            logger.info("upstream unavailable; answering from offline snapshot")

        # CPU-bound scan over the snapshot; keep it off the event loop
        page = await run_in_threadpool(self.engine.search, spec)
        return self._respond(page, Provenance.OFFLINE, spec, t0)

    # ──────────────────────────────────────────────────────────────
    def _respond(self, page: ResultPage, provenance: Provenance, spec: FilterSpecification,
                 t0: float, cache_hit: bool = False) -> DrugSearchResponse:
        info = SearchInfo(
            term=spec.term,
            filters=spec.active_filters(),
            response_time_ms=int((time.time() - t0) * 1000),
            cache_hit=cache_hit,
        )
        logger.info("[search] term=%r provenance=%s total=%d returned=%d cache_hit=%s ms=%d",
                    spec.term, provenance.value, page.total_count, len(page.items),
                    cache_hit, info.response_time_ms)
        return DrugSearchResponse.from_page(page, provenance, info)

    async def _cache_get(self, spec: FilterSpecification) -> Optional[ResultPage]:
        if self.cache is None:
            return None
        try:
            hit = await self.cache.get(spec.cache_key())
        except Exception as e:
            logger.warning("cache get failed: %s", e)
            return None
        if hit is None:
            return None
        try:
            return ResultPage.model_validate(hit)
        except ValidationError:
            logger.warning("discarding malformed cache entry")
            return None

    async def _cache_set(self, spec: FilterSpecification, page: ResultPage) -> None:
        if self.cache is None:
            return
        try:
            await self.cache.set(spec.cache_key(), page.model_dump(mode="json"), ttl=self.cache_ttl)
        except Exception as e:
            logger.warning("cache set failed: %s", e)
