"""
Price aggregation entry point.

    check cache ── hit ──> done
        │ miss
    resolve title + load exchange rates
        │
    fan out to every adapter (all-settled)
        │
    estimate (optional) -> reconcile -> persist -> done

Partial data is a success. Only a failure that leaves nothing to return
becomes an ``AggregationFailure``.
"""

from __future__ import annotations

import asyncio
import dataclasses
from datetime import timedelta
from typing import Awaitable, Callable, Mapping, Sequence

import httpx
import structlog

from gamedeals.core.config import settings
from gamedeals.core.currency import RateTable, fetch_rate_table
from gamedeals.core.errors import AggregationFailure, ValidationError
from gamedeals.marketplaces.base import FetchContext, SourceAdapter, build_client
from gamedeals.marketplaces.estimate import EstimationAdapter
from gamedeals.models.prices import AggregatedPriceSet, PriceObservation, TrustTier
from gamedeals.services.cache import CacheGateway
from gamedeals.services.name_resolver import NameResolver
from gamedeals.services.reconciler import reconcile

logger = structlog.get_logger(__name__)


def validate_identifier(appid) -> str:
    if appid is None:
        raise ValidationError("appid is required")
    appid = str(appid).strip()
    if not appid:
        raise ValidationError("appid is required")
    return appid


class PriceAggregator:
    def __init__(
        self,
        adapters: Sequence[SourceAdapter],
        cache: CacheGateway | None = None,
        estimator: EstimationAdapter | None = None,
        name_resolver: NameResolver | None = None,
        configured_stores: Sequence[str] | None = None,
        max_age: timedelta | None = None,
        min_available_count: int | None = None,
        min_total_rows: int | None = None,
        fallback_urls: Mapping[str, str] | None = None,
        client_factory: Callable[[], httpx.AsyncClient] = build_client,
        rate_loader: Callable[[httpx.AsyncClient], Awaitable[RateTable]] = fetch_rate_table,
    ):
        self.adapters = list(adapters)
        self.cache = cache
        self.estimator = estimator
        self.name_resolver = name_resolver or NameResolver()
        self.configured_stores = list(configured_stores or settings.CONFIGURED_STORES)
        self.max_age = max_age or timedelta(minutes=settings.CACHE_MAX_AGE_MINUTES)
        self.min_available_count = (
            min_available_count
            if min_available_count is not None
            else settings.CACHE_MIN_AVAILABLE
        )
        self.min_total_rows = (
            min_total_rows if min_total_rows is not None else settings.CACHE_MIN_ROWS
        )
        self.fallback_urls = fallback_urls
        self.client_factory = client_factory
        self.rate_loader = rate_loader

    # -------------------------
    # Public API
    # -------------------------

    async def get_prices(self, appid, use_cache: bool = True) -> AggregatedPriceSet:
        appid = validate_identifier(appid)

        try:
            if use_cache:
                cached = self._read_cache(appid)
                if cached is not None:
                    return cached
            return await self._fetch_live(appid)
        except Exception as e:
            logger.exception("aggregation.failed", appid=appid, error=str(e))
            raise AggregationFailure(str(e)) from e

    # -------------------------
    # Stages
    # -------------------------

    def _read_cache(self, appid: str) -> AggregatedPriceSet | None:
        if self.cache is None:
            return None

        rows = self.cache.read_fresh(
            appid,
            max_age=self.max_age,
            min_available_count=self.min_available_count,
            min_total_rows=self.min_total_rows,
        )
        if rows is None:
            return None

        price_set = reconcile(appid, rows, self.configured_stores, self.fallback_urls)
        return dataclasses.replace(price_set, from_cache=True)

    async def _fetch_live(self, appid: str) -> AggregatedPriceSet:
        async with self.client_factory() as client:
            rates, title = await asyncio.gather(
                self.rate_loader(client),
                self.name_resolver.resolve(client, appid),
            )
            ctx = FetchContext(client=client, rates=rates)

            active = [
                a
                for a in self.adapters
                if title or a.trust_tier == TrustTier.AUTHORITATIVE
            ]
            if not title:
                logger.info(
                    "aggregation.secondary_skipped",
                    appid=appid,
                    skipped=[a.key for a in self.adapters if a not in active],
                )

            observations = await self._fan_out(appid, title, ctx, active)

        observations.extend(self._estimate(appid, observations))

        price_set = reconcile(
            appid, observations, self.configured_stores, self.fallback_urls
        )

        written = self.cache.persist(price_set) if self.cache is not None else 0

        logger.info(
            "aggregation.completed",
            appid=appid,
            title=title,
            rates=rates.source,
            observations=len(observations),
            available=price_set.available_count,
            cached=written,
        )
        return price_set

    async def _fan_out(
        self,
        appid: str,
        title: str | None,
        ctx: FetchContext,
        adapters: Sequence[SourceAdapter],
    ) -> list[PriceObservation]:
        results = await asyncio.gather(
            *(a.fetch(appid, title, ctx) for a in adapters),
            return_exceptions=True,
        )

        observations: list[PriceObservation] = []
        for adapter, result in zip(adapters, results):
            if isinstance(result, BaseException):
                # adapters are not supposed to raise; keep siblings' results anyway
                logger.error("adapter.escaped", adapter=adapter.key, error=repr(result))
                continue
            observations.extend(result)
        return observations

    def _estimate(
        self, appid: str, observations: Sequence[PriceObservation]
    ) -> list[PriceObservation]:
        if self.estimator is None:
            return []

        reference = next(
            (
                o
                for o in observations
                if o.trust_tier == TrustTier.AUTHORITATIVE and o.available
            ),
            None,
        )
        covered = {o.store for o in observations if o.available}
        missing = [s for s in self.configured_stores if s not in covered]
        return self.estimator.estimate(appid, reference, missing)
