from __future__ import annotations

from typing import Any

import httpx
import structlog

from gamedeals.core.config import settings
from gamedeals.core.currency import MinorUnits, to_display_currency
from gamedeals.core.errors import UpstreamUnavailable
from gamedeals.core.pricing import clamp_discount, derive_discount
from gamedeals.marketplaces.base import FetchContext, SourceAdapter, http_get_json
from gamedeals.models.prices import NOT_FOUND_TEXT, PriceObservation, TrustTier

logger = structlog.get_logger(__name__)

STORE_NAME = "Steam"
APP_DETAILS_URL = "https://store.steampowered.com/api/appdetails"


async def fetch_app_details(
    client: httpx.AsyncClient,
    appid: str,
    country: str = settings.STORE_COUNTRY,
    language: str = settings.STORE_LANGUAGE,
    **extra,
) -> dict[str, Any]:
    """Return the ``data`` block of the app-details lookup, or raise."""
    payload = await http_get_json(
        client,
        STORE_NAME,
        APP_DETAILS_URL,
        params={"appids": appid, "cc": country.lower(), "l": language, **extra},
    )
    if not isinstance(payload, dict):
        raise UpstreamUnavailable(STORE_NAME, "unexpected payload shape")

    entry = payload.get(str(appid)) or {}
    if not isinstance(entry, dict):
        raise UpstreamUnavailable(STORE_NAME, "unexpected payload shape")
    if not entry.get("success") or not isinstance(entry.get("data"), dict):
        raise UpstreamUnavailable(STORE_NAME, "app not found")
    return entry["data"]


class SteamAdapter(SourceAdapter):
    """
    Authoritative store. Never silently absent: when no price can be
    read, it reports an unavailable "N/A" entry instead of nothing.
    """

    key = "steam"
    store = STORE_NAME
    trust_tier = TrustTier.AUTHORITATIVE
    requires_title = False

    def store_url(self, appid: str) -> str:
        return f"https://store.steampowered.com/app/{appid}"

    def not_found(self, appid: str) -> PriceObservation:
        return PriceObservation.unavailable(
            store=self.store,
            purchase_url=self.store_url(appid),
            trust_tier=self.trust_tier,
            status_text=NOT_FOUND_TEXT,
        )

    async def fetch(self, appid, title, ctx) -> list[PriceObservation]:
        observations = await super().fetch(appid, title, ctx)
        return observations or [self.not_found(appid)]

    async def _fetch(self, appid, title, ctx) -> PriceObservation | None:
        try:
            data = await fetch_app_details(
                ctx.client, appid, ctx.country, ctx.language
            )
        except UpstreamUnavailable as e:
            logger.info("steam.not_found", appid=appid, reason=e.reason)
            return self.not_found(appid)

        overview = data.get("price_overview")
        if not overview:
            if data.get("is_free"):
                return PriceObservation(
                    store=self.store,
                    purchase_url=self.store_url(appid),
                    trust_tier=self.trust_tier,
                    available=True,
                    current_amount=to_display_currency(
                        MinorUnits(0), settings.DISPLAY_CURRENCY, ctx.rates
                    ),
                )
            return self.not_found(appid)

        currency = overview.get("currency") or settings.DISPLAY_CURRENCY
        final = to_display_currency(
            MinorUnits(int(overview["final"])), currency, ctx.rates
        )
        initial_raw = int(overview.get("initial") or 0)
        initial = (
            to_display_currency(MinorUnits(initial_raw), currency, ctx.rates)
            if initial_raw > 0
            else final
        )

        discount = overview.get("discount_percent")
        return PriceObservation(
            store=self.store,
            purchase_url=self.store_url(appid),
            trust_tier=self.trust_tier,
            available=True,
            current_amount=final,
            original_amount=initial,
            discount_percent=(
                clamp_discount(discount)
                if discount is not None
                else derive_discount(final, initial)
            ),
        )
