from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import IntEnum

from gamedeals.core.pricing import format_price


class TrustTier(IntEnum):
    """Higher value wins when two observations claim the same store."""

    ESTIMATED = 1
    SCRAPED = 2
    FUZZY_SEARCH = 3
    DIRECT_API = 4
    AUTHORITATIVE = 5


PLACEHOLDER_TEXT = "Check store"
NOT_FOUND_TEXT = "N/A"


@dataclass(frozen=True)
class PriceObservation:
    store: str
    purchase_url: str
    trust_tier: TrustTier
    available: bool
    current_amount: Decimal | None = None
    original_amount: Decimal | None = None
    discount_percent: int = 0
    status_text: str | None = None  # shown instead of a price when unavailable

    def __post_init__(self):
        if not self.available:
            if self.current_amount is not None or self.original_amount is not None:
                raise ValueError("unavailable observation cannot carry amounts")
            return
        if self.current_amount is None or self.current_amount < 0:
            raise ValueError("available observation needs a non-negative amount")
        if self.original_amount is None:
            object.__setattr__(self, "original_amount", self.current_amount)
        if not 0 <= self.discount_percent <= 100:
            raise ValueError(f"discount out of range: {self.discount_percent}")

    @classmethod
    def unavailable(
        cls,
        store: str,
        purchase_url: str,
        trust_tier: TrustTier,
        status_text: str = PLACEHOLDER_TEXT,
    ) -> "PriceObservation":
        return cls(
            store=store,
            purchase_url=purchase_url,
            trust_tier=trust_tier,
            available=False,
            status_text=status_text,
        )

    @property
    def is_estimated(self) -> bool:
        return self.trust_tier == TrustTier.ESTIMATED

    @property
    def is_cacheable(self) -> bool:
        return (
            self.available
            and not self.is_estimated
            and self.current_amount is not None
            and self.current_amount > 0
        )


@dataclass(frozen=True)
class AggregatedPriceSet:
    game_identifier: str
    entries: dict[str, PriceObservation]
    generated_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    from_cache: bool = False

    def ordered(self) -> list[PriceObservation]:
        return list(self.entries.values())

    @property
    def available_count(self) -> int:
        return sum(
            1 for e in self.entries.values() if e.available and not e.is_estimated
        )


def price_text(obs: PriceObservation, symbol: str) -> str:
    if not obs.available:
        return obs.status_text or PLACEHOLDER_TEXT
    return _amount_text(obs.current_amount, symbol, obs.is_estimated)


def original_price_text(obs: PriceObservation, symbol: str) -> str:
    if not obs.available:
        return obs.status_text or PLACEHOLDER_TEXT
    return _amount_text(obs.original_amount, symbol, obs.is_estimated)


def _amount_text(amount: Decimal, symbol: str, estimated: bool) -> str:
    if amount == 0:
        return "Free"
    text = format_price(amount, symbol)
    return f"~ {text}" if estimated else text
