from __future__ import annotations

import structlog

from gamedeals.core.currency import to_display_currency
from gamedeals.core.pricing import clamp_discount, derive_discount, parse_price_to_decimal
from gamedeals.marketplaces.base import FetchContext, SourceAdapter
from gamedeals.models.prices import PriceObservation, TrustTier

logger = structlog.get_logger(__name__)

DEALS_URL = "https://www.cheapshark.com/api/1.0/deals"
REDIRECT_URL = "https://www.cheapshark.com/redirect?dealID={deal_id}"

# vendor store codes -> display names; anything else is dropped
STORE_CODES = {
    "1": "Steam",
    "3": "GreenManGaming",
    "7": "GOG",
    "11": "Humble Store",
    "15": "Fanatical",
    "25": "Epic Games",
}

AUTHORITATIVE_STORE = "Steam"


class CheapSharkAdapter(SourceAdapter):
    """Multi-store deal index keyed by the canonical id. One call, many stores."""

    key = "cheapshark"
    store = "CheapShark"
    trust_tier = TrustTier.FUZZY_SEARCH
    requires_title = False

    async def collect(self, appid, title, ctx: FetchContext) -> list[PriceObservation]:
        deals = await self._get_json(ctx, DEALS_URL, params={"steamAppID": appid})
        if not isinstance(deals, list):
            return []

        observations: dict[str, PriceObservation] = {}
        for deal in deals:
            obs = self._deal_to_observation(deal, ctx)
            if obs is None:
                continue
            # one per store, cheapest deal wins
            prev = observations.get(obs.store)
            if prev is None or obs.current_amount < prev.current_amount:
                observations[obs.store] = obs

        return list(observations.values())

    async def _fetch(self, appid, title, ctx) -> PriceObservation | None:
        found = await self.collect(appid, title, ctx)
        return found[0] if found else None

    def _deal_to_observation(self, deal: dict, ctx: FetchContext) -> PriceObservation | None:
        store = STORE_CODES.get(str(deal.get("storeID")))
        if store is None or store == AUTHORITATIVE_STORE:
            return None

        sale = parse_price_to_decimal(str(deal.get("salePrice") or ""))
        normal = parse_price_to_decimal(str(deal.get("normalPrice") or "")) or sale
        if sale is None:
            return None

        current = to_display_currency(sale, "USD", ctx.rates)
        original = to_display_currency(normal, "USD", ctx.rates)

        savings = deal.get("savings")
        try:
            discount = clamp_discount(round(float(savings)))
        except (TypeError, ValueError):
            discount = derive_discount(current, original)

        return PriceObservation(
            store=store,
            purchase_url=REDIRECT_URL.format(deal_id=deal.get("dealID", "")),
            trust_tier=self.trust_tier,
            available=True,
            current_amount=current,
            original_amount=original,
            discount_percent=discount,
        )
