from __future__ import annotations

import json
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterator
from urllib.parse import quote, urljoin

import structlog
from bs4 import BeautifulSoup

from gamedeals.core.currency import to_display_currency
from gamedeals.core.pricing import parse_price_to_decimal
from gamedeals.marketplaces.base import FetchContext, SourceAdapter
from gamedeals.models.prices import PriceObservation, TrustTier
from gamedeals.services.normalization import titles_match

logger = structlog.get_logger(__name__)

BASE_URL = "https://www.nuuvem.com"
SEARCH_URL = BASE_URL + "/br-pt/catalog/search/{query}"

PRICE_PATTERN = re.compile(r"R\$\s*(\d[\d.,]*)")


@dataclass
class ScrapedPrice:
    amount: Decimal
    currency: str
    url: str | None = None
    name: str | None = None


def _walk_json_ld(node) -> Iterator[dict]:
    if isinstance(node, list):
        for item in node:
            yield from _walk_json_ld(item)
    elif isinstance(node, dict):
        if "offers" in node:
            yield node
        for key in ("@graph", "itemListElement", "item"):
            if key in node:
                yield from _walk_json_ld(node[key])


class NuuvemAdapter(SourceAdapter):
    """
    Searches the public catalog page by title. Prices are pulled from the
    markup with progressively weaker strategies:

    1) embedded JSON-LD offers
    2) price data attributes / meta tags
    3) currency-prefixed amounts anywhere in the raw markup
    """

    key = "nuuvem"
    store = "Nuuvem"
    trust_tier = TrustTier.SCRAPED

    async def _fetch(self, appid, title, ctx: FetchContext) -> PriceObservation | None:
        search_url = SEARCH_URL.format(query=quote(title, safe=""))
        r = await self._get(ctx, search_url)

        scraped = self.extract_price(r.text, title)
        if scraped is None:
            logger.info("nuuvem.no_price", appid=appid, title=title)
            return None

        amount = to_display_currency(scraped.amount, scraped.currency, ctx.rates)
        return PriceObservation(
            store=self.store,
            purchase_url=urljoin(BASE_URL, scraped.url) if scraped.url else search_url,
            trust_tier=self.trust_tier,
            available=True,
            current_amount=amount,
        )

    # -------------------------
    # Parsing helpers
    # -------------------------

    def extract_price(self, html: str, title: str) -> ScrapedPrice | None:
        soup = BeautifulSoup(html, "html.parser")
        return (
            self._from_json_ld(soup, title)
            or self._from_attributes(soup)
            or self._from_markup(html)
        )

    def _from_json_ld(self, soup: BeautifulSoup, title: str) -> ScrapedPrice | None:
        for script in soup.find_all("script", type="application/ld+json"):
            try:
                data = json.loads(script.string or "")
            except ValueError:
                continue

            for product in _walk_json_ld(data):
                name = product.get("name")
                if name and not titles_match(name, title):
                    continue

                offers = product["offers"]
                if isinstance(offers, list):
                    offers = offers[0] if offers else {}
                if not isinstance(offers, dict):
                    continue

                amount = parse_price_to_decimal(
                    str(offers.get("price") or offers.get("lowPrice") or "")
                )
                if amount is None:
                    continue

                return ScrapedPrice(
                    amount=amount,
                    currency=offers.get("priceCurrency") or "BRL",
                    url=product.get("url") or offers.get("url"),
                    name=name,
                )
        return None

    def _from_attributes(self, soup: BeautifulSoup) -> ScrapedPrice | None:
        el = soup.select_one("[data-price]")
        if el and el.get("data-price"):
            amount = parse_price_to_decimal(el["data-price"])
            if amount is not None:
                link = el if el.name == "a" else el.find_parent("a")
                return ScrapedPrice(
                    amount=amount,
                    currency=el.get("data-currency") or "BRL",
                    url=link.get("href") if link else None,
                )

        meta = soup.select_one(
            'meta[itemprop="price"], meta[property="product:price:amount"]'
        )
        if meta and meta.get("content"):
            amount = parse_price_to_decimal(meta["content"])
            if amount is not None:
                return ScrapedPrice(amount=amount, currency="BRL")

        return None

    def _from_markup(self, html: str) -> ScrapedPrice | None:
        match = PRICE_PATTERN.search(html)
        if not match:
            return None
        amount = parse_price_to_decimal(match.group(1))
        if amount is None:
            return None
        return ScrapedPrice(amount=amount, currency="BRL")
