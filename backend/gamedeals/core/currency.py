"""
Display-currency conversion.

Storefronts report money either in major units ("59.99") or in integer
minor units (5999). Minor-unit amounts are carried as ``MinorUnits`` so
that they cannot be normalized without the division by 100.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from types import MappingProxyType
from typing import Mapping

import httpx
import structlog

from gamedeals.core.config import settings
from gamedeals.core.errors import CurrencyError
from gamedeals.core.pricing import quantize

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class MinorUnits:
    value: int

    def to_major(self) -> Decimal:
        return Decimal(self.value) / 100


@dataclass(frozen=True)
class RateTable:
    """Immutable snapshot: display-currency units per one unit of each currency."""

    display_currency: str
    rates: Mapping[str, Decimal] = field(default_factory=dict)
    source: str = "fallback"

    def __post_init__(self):
        rates = {code.upper(): Decimal(str(v)) for code, v in self.rates.items()}
        rates[self.display_currency.upper()] = Decimal("1")
        object.__setattr__(self, "rates", MappingProxyType(rates))

    def rate_for(self, currency: str) -> Decimal:
        try:
            return self.rates[currency.upper()]
        except KeyError:
            raise CurrencyError(f"No exchange rate for {currency}") from None


def fallback_rate_table() -> RateTable:
    return RateTable(
        display_currency=settings.DISPLAY_CURRENCY,
        rates={"USD": Decimal(settings.FALLBACK_USD_RATE)},
        source="fallback",
    )


def to_display_currency(
    amount: Decimal | MinorUnits, source_currency: str, rate_table: RateTable
) -> Decimal:
    if isinstance(amount, MinorUnits):
        amount = amount.to_major()
    elif not isinstance(amount, Decimal):
        raise TypeError(
            f"amount must be Decimal or MinorUnits, got {type(amount).__name__}"
        )

    if amount < 0:
        raise CurrencyError(f"Negative amount {amount}")

    if source_currency.upper() == rate_table.display_currency.upper():
        return quantize(amount)

    return quantize(amount * rate_table.rate_for(source_currency))


async def fetch_rate_table(client: httpx.AsyncClient) -> RateTable:
    """
    Pull live USD-based rates and rebase them on the display currency.
    Any failure yields the hardcoded fallback, never an exception.
    """
    display = settings.DISPLAY_CURRENCY.upper()
    try:
        r = await client.get(settings.EXCHANGE_RATE_URL)
        r.raise_for_status()
        usd_rates = r.json().get("rates") or {}

        display_per_usd = Decimal(str(usd_rates[display]))
        rates = {}
        for code, per_usd in usd_rates.items():
            per_usd = Decimal(str(per_usd))
            if per_usd > 0:
                rates[code] = display_per_usd / per_usd
        rates["USD"] = display_per_usd

        return RateTable(display_currency=display, rates=rates, source="live")
    except (
        httpx.HTTPError,
        ValueError,
        KeyError,
        InvalidOperation,
        TypeError,
        AttributeError,
    ) as e:
        logger.warning("rates.fallback", error=str(e))
        return fallback_rate_table()
