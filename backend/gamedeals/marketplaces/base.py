from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from gamedeals.core.config import settings
from gamedeals.core.currency import RateTable
from gamedeals.core.errors import UpstreamUnavailable
from gamedeals.models.prices import PriceObservation, TrustTier

logger = structlog.get_logger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept-Language": "pt-BR,pt;q=0.9,en-US;q=0.8,en;q=0.7",
}


def get_proxy() -> str | None:
    return settings.OUTBOUND_PROXY or None


def build_client(**kwargs) -> httpx.AsyncClient:
    kwargs.setdefault("headers", DEFAULT_HEADERS)
    kwargs.setdefault("timeout", settings.HTTP_TIMEOUT_SECONDS)
    kwargs.setdefault("follow_redirects", True)
    proxy = get_proxy()
    if proxy and "transport" not in kwargs:
        kwargs["proxy"] = proxy
    return httpx.AsyncClient(**kwargs)


@dataclass(frozen=True)
class FetchContext:
    """Shared, read-only inputs for every adapter call in one aggregation run."""

    client: httpx.AsyncClient
    rates: RateTable
    country: str = settings.STORE_COUNTRY
    language: str = settings.STORE_LANGUAGE


class SourceAdapter(ABC):
    key: str = ""
    store: str = ""
    trust_tier: TrustTier = TrustTier.SCRAPED
    requires_title: bool = True

    async def fetch(
        self, appid: str, title: str | None, ctx: FetchContext
    ) -> list[PriceObservation]:
        """
        Always completes. Network errors, non-2xx answers, malformed
        payloads and missing price fields all end up as an empty list.
        """
        if self.requires_title and not title:
            return []

        try:
            observations = await self.collect(appid, title, ctx)
        except Exception as e:
            logger.warning(
                "adapter.failed",
                adapter=self.key,
                appid=appid,
                error_type=type(e).__name__,
                error=str(e),
            )
            return []

        logger.debug("adapter.done", adapter=self.key, appid=appid, found=len(observations))
        return observations

    async def collect(
        self, appid: str, title: str | None, ctx: FetchContext
    ) -> list[PriceObservation]:
        obs = await self._fetch(appid, title, ctx)
        return [obs] if obs is not None else []

    @abstractmethod
    async def _fetch(
        self, appid: str, title: str | None, ctx: FetchContext
    ) -> PriceObservation | None: ...

    async def _get(
        self, ctx: FetchContext, url: str, params: dict | None = None
    ) -> httpx.Response:
        return await http_get(ctx.client, self.store, url, params)

    async def _get_json(
        self, ctx: FetchContext, url: str, params: dict | None = None
    ) -> Any:
        return await http_get_json(ctx.client, self.store, url, params)


# -------------------------
# Transport helpers
# -------------------------


async def http_get(
    client: httpx.AsyncClient, store: str, url: str, params: dict | None = None
) -> httpx.Response:
    try:
        r = await client.get(url, params=params)
    except httpx.HTTPError as e:
        raise UpstreamUnavailable(store, f"transport: {e}") from e

    if not r.is_success:
        raise UpstreamUnavailable(store, f"HTTP {r.status_code}")
    return r


async def http_get_json(
    client: httpx.AsyncClient, store: str, url: str, params: dict | None = None
) -> Any:
    r = await http_get(client, store, url, params)
    try:
        return r.json()
    except ValueError as e:
        raise UpstreamUnavailable(store, "malformed JSON") from e
