from __future__ import annotations

from decimal import Decimal
from typing import Mapping
from urllib.parse import quote

import structlog

from gamedeals.core.config import settings
from gamedeals.core.currency import MinorUnits, to_display_currency
from gamedeals.core.errors import UpstreamUnavailable
from gamedeals.core.pricing import clamp_discount, derive_discount, parse_price_to_decimal
from gamedeals.marketplaces.base import FetchContext, SourceAdapter
from gamedeals.models.prices import PriceObservation, TrustTier

logger = structlog.get_logger(__name__)

PRICES_URL = "https://api.gog.com/products/{product_id}/prices"
SEARCH_URL = "https://embed.gog.com/games/ajax/filtered"
GAME_URL = "https://www.gog.com/game/{slug}"


def parse_minor_amount(raw) -> tuple[MinorUnits, str | None]:
    """
    The prices endpoint reports amounts like ``"3999 BRL"`` (cents, then
    an optional currency code).
    """
    parts = str(raw).split()
    if not parts:
        raise ValueError("empty amount")
    return MinorUnits(int(parts[0])), (parts[1] if len(parts) > 1 else None)


class GogAdapter(SourceAdapter):
    """
    Product ids come from the override table when the canonical id is
    known there. Otherwise the catalog search is queried by title and the
    first product is used.
    """

    key = "gog"
    store = "GOG"
    trust_tier = TrustTier.DIRECT_API

    def __init__(self, overrides: Mapping[str, Mapping[str, str]] | None = None):
        self.overrides = (
            overrides if overrides is not None else settings.GOG_PRODUCT_OVERRIDES
        )

    async def _fetch(self, appid, title, ctx) -> PriceObservation | None:
        mapping = self.overrides.get(str(appid))
        if mapping:
            return await self._fetch_by_product_id(mapping["id"], mapping["slug"], ctx)
        return await self._fetch_by_search(title, ctx)

    # -------------------------
    # Product prices endpoint
    # -------------------------

    async def _fetch_by_product_id(
        self, product_id: str, slug: str, ctx: FetchContext
    ) -> PriceObservation | None:
        payload = await self._get_json(
            ctx,
            PRICES_URL.format(product_id=product_id),
            params={"countryCode": ctx.country.upper()},
        )

        prices = ((payload or {}).get("_embedded") or {}).get("prices") or []
        if not prices:
            logger.info("gog.no_price", product_id=product_id)
            return None

        entry = prices[0]
        final_minor, final_code = parse_minor_amount(entry["finalPrice"])
        base_minor, base_code = parse_minor_amount(entry.get("basePrice", entry["finalPrice"]))

        currency = (
            ((entry.get("currency") or {}).get("code"))
            or final_code
            or settings.DISPLAY_CURRENCY
        )
        final = to_display_currency(final_minor, currency, ctx.rates)
        base = to_display_currency(base_minor, base_code or currency, ctx.rates)

        discount = entry.get("discountPercentage")
        return PriceObservation(
            store=self.store,
            purchase_url=GAME_URL.format(slug=slug),
            trust_tier=TrustTier.DIRECT_API,
            available=True,
            current_amount=final,
            original_amount=base,
            discount_percent=(
                clamp_discount(discount) if discount else derive_discount(final, base)
            ),
        )

    # -------------------------
    # Catalog search
    # -------------------------

    async def _fetch_by_search(
        self, title: str | None, ctx: FetchContext
    ) -> PriceObservation | None:
        if not title:
            return None

        payload = await self._get_json(
            ctx, SEARCH_URL, params={"mediaType": "game", "search": title}
        )
        products = (payload or {}).get("products") or []
        if not products:
            return None

        product = products[0]
        price = product.get("price") or {}

        if price.get("isFree"):
            final = base = Decimal("0")
        else:
            final = parse_price_to_decimal(str(price.get("finalAmount") or ""))
            base = parse_price_to_decimal(str(price.get("baseAmount") or "")) or final
        if final is None:
            raise UpstreamUnavailable(self.store, "search result without price")

        currency = price.get("currency") or "USD"
        final = to_display_currency(final, currency, ctx.rates)
        base = to_display_currency(base, currency, ctx.rates)

        url = product.get("url") or ""
        if url.startswith("/"):
            url = f"https://www.gog.com{url}"

        return PriceObservation(
            store=self.store,
            purchase_url=url or f"https://www.gog.com/en/games?query={quote(title)}",
            trust_tier=TrustTier.DIRECT_API,
            available=True,
            current_amount=final,
            original_amount=base,
            discount_percent=(
                clamp_discount(price["discountPercentage"])
                if price.get("discountPercentage")
                else derive_discount(final, base)
            ),
        )
