"""
Heuristic competitor pricing.

Manufactures a price for stores that produced no observation by taking a
fixed fraction of the authoritative price. Output is always tagged
``TrustTier.ESTIMATED``, so it is never cached, never counted as an
available store, and loses to any real observation for the same store.
Disabled unless ``estimate`` is listed in ``ENABLED_ADAPTERS``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Mapping

from gamedeals.core.config import settings
from gamedeals.core.pricing import derive_discount, quantize
from gamedeals.models.prices import PriceObservation, TrustTier


class EstimationAdapter:
    key = "estimate"
    trust_tier = TrustTier.ESTIMATED

    def __init__(
        self,
        factors: Mapping[str, float] | None = None,
        default_factor: float | None = None,
        fallback_urls: Mapping[str, str] | None = None,
    ):
        self.factors = factors if factors is not None else settings.ESTIMATE_FACTORS
        self.default_factor = (
            default_factor
            if default_factor is not None
            else settings.DEFAULT_ESTIMATE_FACTOR
        )
        self.fallback_urls = (
            fallback_urls if fallback_urls is not None else settings.STORE_FALLBACK_URLS
        )

    def estimate(
        self,
        appid: str,
        reference: PriceObservation | None,
        missing_stores: Iterable[str],
    ) -> list[PriceObservation]:
        if (
            reference is None
            or not reference.available
            or reference.is_estimated
            or not reference.current_amount
        ):
            return []

        out = []
        for store in missing_stores:
            if store == reference.store:
                continue
            factor = Decimal(str(self.factors.get(store, self.default_factor)))
            current = quantize(reference.current_amount * factor)
            original = reference.original_amount or reference.current_amount
            out.append(
                PriceObservation(
                    store=store,
                    purchase_url=self.fallback_urls.get(store, "").format(appid=appid),
                    trust_tier=self.trust_tier,
                    available=True,
                    current_amount=current,
                    original_amount=original,
                    discount_percent=derive_discount(current, original),
                )
            )
        return out
