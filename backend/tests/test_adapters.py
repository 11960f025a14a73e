"""
Tests for storefront source adapters.

Every adapter is driven through ``httpx.MockTransport``; no real network.
"""

import json
from decimal import Decimal

import httpx
import pytest

from conftest import observed
from gamedeals.marketplaces.base import SourceAdapter
from gamedeals.marketplaces.cheapshark import CheapSharkAdapter
from gamedeals.marketplaces.estimate import EstimationAdapter
from gamedeals.marketplaces.gog import GogAdapter, parse_minor_amount
from gamedeals.marketplaces.nuuvem import NuuvemAdapter
from gamedeals.marketplaces.registry import build_adapters, build_estimator
from gamedeals.marketplaces.steam import SteamAdapter
from gamedeals.models.prices import NOT_FOUND_TEXT, TrustTier
from gamedeals.services.name_resolver import NameResolver


def steam_payload(appid="292030", data=None, success=True):
    return {appid: {"success": success, "data": data or {}}}


def json_handler(payload, status=200):
    def handler(request):
        return httpx.Response(status, json=payload)

    return handler


def failing_handler(request):
    raise httpx.ConnectError("connection refused", request=request)


# =============================================================
# TEST: Authoritative adapter
# =============================================================


class TestSteamAdapter:
    @pytest.mark.asyncio
    async def test_paid_game(self, make_ctx):
        payload = steam_payload(
            data={
                "name": "The Witcher 3: Wild Hunt",
                "price_overview": {
                    "currency": "BRL",
                    "initial": 12999,
                    "final": 5999,
                    "discount_percent": 54,
                    "final_formatted": "R$ 59,99",
                },
            }
        )
        [obs] = await SteamAdapter().fetch("292030", None, make_ctx(json_handler(payload)))

        assert obs.store == "Steam"
        assert obs.trust_tier == TrustTier.AUTHORITATIVE
        assert obs.available is True
        assert obs.current_amount == Decimal("59.99")
        assert obs.original_amount == Decimal("129.99")
        assert obs.discount_percent == 54
        assert obs.purchase_url == "https://store.steampowered.com/app/292030"

    @pytest.mark.asyncio
    async def test_sends_country_and_language(self, make_ctx):
        seen = {}

        def handler(request):
            seen.update(request.url.params)
            return httpx.Response(200, json=steam_payload())

        await SteamAdapter().fetch("292030", None, make_ctx(handler))

        assert seen["appids"] == "292030"
        assert seen["cc"] == "br"
        assert seen["l"] == "pt"

    @pytest.mark.asyncio
    async def test_free_game(self, make_ctx):
        payload = steam_payload(appid="570", data={"name": "Dota 2", "is_free": True})
        [obs] = await SteamAdapter().fetch("570", None, make_ctx(json_handler(payload)))

        assert obs.available is True
        assert obs.current_amount == Decimal("0")

    @pytest.mark.asyncio
    async def test_delisted_game_reports_not_found(self, make_ctx):
        payload = steam_payload(success=False)
        [obs] = await SteamAdapter().fetch("292030", None, make_ctx(json_handler(payload)))

        assert obs.available is False
        assert obs.current_amount is None
        assert obs.status_text == NOT_FOUND_TEXT

    @pytest.mark.asyncio
    async def test_network_error_reports_not_found(self, make_ctx):
        [obs] = await SteamAdapter().fetch("292030", None, make_ctx(failing_handler))

        assert obs.store == "Steam"
        assert obs.available is False

    @pytest.mark.asyncio
    async def test_malformed_price_reports_not_found(self, make_ctx):
        payload = steam_payload(data={"price_overview": {"final": "abc"}})
        [obs] = await SteamAdapter().fetch("292030", None, make_ctx(json_handler(payload)))

        assert obs.available is False


# =============================================================
# TEST: Direct-API secondary adapter
# =============================================================


class TestGogAdapter:
    @pytest.mark.asyncio
    async def test_override_uses_product_prices_in_minor_units(self, make_ctx):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["country"] = request.url.params.get("countryCode")
            return httpx.Response(
                200,
                json={
                    "_embedded": {
                        "prices": [
                            {
                                "currency": {"code": "BRL"},
                                "basePrice": "7999 BRL",
                                "finalPrice": "3999 BRL",
                            }
                        ]
                    }
                },
            )

        adapter = GogAdapter(overrides={"292030": {"id": "1207664643", "slug": "the_witcher_3_wild_hunt"}})
        [obs] = await adapter.fetch("292030", "The Witcher 3", make_ctx(handler))

        assert seen["path"] == "/products/1207664643/prices"
        assert seen["country"] == "BR"
        assert obs.current_amount == Decimal("39.99")
        assert obs.original_amount == Decimal("79.99")
        assert obs.discount_percent == 50
        assert obs.purchase_url == "https://www.gog.com/game/the_witcher_3_wild_hunt"
        assert obs.trust_tier == TrustTier.DIRECT_API

    @pytest.mark.asyncio
    async def test_search_converts_usd(self, make_ctx):
        payload = {
            "products": [
                {
                    "title": "Hades",
                    "url": "/game/hades",
                    "price": {
                        "finalAmount": "12.49",
                        "baseAmount": "24.99",
                        "discountPercentage": 50,
                        "isFree": False,
                    },
                },
                {"title": "Hades II", "url": "/game/hades_ii", "price": {}},
            ]
        }
        [obs] = await GogAdapter(overrides={}).fetch(
            "1145360", "Hades", make_ctx(json_handler(payload))
        )

        assert obs.current_amount == Decimal("62.45")
        assert obs.original_amount == Decimal("124.95")
        assert obs.discount_percent == 50
        assert obs.purchase_url == "https://www.gog.com/game/hades"

    @pytest.mark.asyncio
    async def test_empty_search_is_none(self, make_ctx):
        result = await GogAdapter(overrides={}).fetch(
            "1", "Nothing", make_ctx(json_handler({"products": []}))
        )
        assert result == []

    @pytest.mark.asyncio
    async def test_non_success_status_is_none(self, make_ctx):
        result = await GogAdapter(overrides={}).fetch(
            "1", "Hades", make_ctx(json_handler({}, status=503))
        )
        assert result == []

    @pytest.mark.asyncio
    async def test_without_title_is_skipped(self, make_ctx):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={})

        assert await GogAdapter(overrides={}).fetch("1", None, make_ctx(handler)) == []
        assert calls == []

    def test_parse_minor_amount(self):
        minor, code = parse_minor_amount("3999 BRL")
        assert minor.to_major() == Decimal("39.99")
        assert code == "BRL"


# =============================================================
# TEST: Aggregator adapter
# =============================================================


class TestCheapSharkAdapter:
    DEALS = [
        {"storeID": "1", "salePrice": "9.99", "normalPrice": "39.99", "savings": "75.0", "dealID": "s"},
        {"storeID": "7", "salePrice": "11.99", "normalPrice": "39.99", "savings": "70.017", "dealID": "g"},
        {"storeID": "7", "salePrice": "12.99", "normalPrice": "39.99", "savings": "67.5", "dealID": "g2"},
        {"storeID": "25", "salePrice": "10.00", "normalPrice": "40.00", "savings": "75", "dealID": "e"},
        {"storeID": "999", "salePrice": "1.00", "normalPrice": "40.00", "savings": "97", "dealID": "x"},
    ]

    @pytest.mark.asyncio
    async def test_expands_and_maps_stores(self, make_ctx):
        result = await CheapSharkAdapter().fetch(
            "292030", None, make_ctx(json_handler(self.DEALS))
        )
        by_store = {o.store: o for o in result}

        assert set(by_store) == {"GOG", "Epic Games"}
        assert by_store["GOG"].current_amount == Decimal("59.95")
        assert by_store["GOG"].discount_percent == 70
        assert by_store["GOG"].purchase_url.endswith("dealID=g")
        assert by_store["Epic Games"].current_amount == Decimal("50.00")
        assert all(o.trust_tier == TrustTier.FUZZY_SEARCH for o in result)

    @pytest.mark.asyncio
    async def test_queries_by_identifier(self, make_ctx):
        seen = {}

        def handler(request):
            seen.update(request.url.params)
            return httpx.Response(200, json=[])

        assert await CheapSharkAdapter().fetch("292030", None, make_ctx(handler)) == []
        assert seen["steamAppID"] == "292030"

    @pytest.mark.asyncio
    async def test_malformed_json_is_none(self, make_ctx):
        def handler(request):
            return httpx.Response(200, text="not json")

        assert await CheapSharkAdapter().fetch("1", None, make_ctx(handler)) == []


# =============================================================
# TEST: Scrape adapter
# =============================================================


class TestNuuvemAdapter:
    TITLE = "The Witcher® 3: Wild Hunt"

    @pytest.mark.asyncio
    async def test_json_ld_offers(self, make_ctx):
        ld = {
            "@context": "https://schema.org",
            "@type": "ItemList",
            "itemListElement": [
                {
                    "@type": "ListItem",
                    "item": {
                        "@type": "Product",
                        "name": "The Witcher 3: Wild Hunt",
                        "url": "/br-pt/item/the-witcher-3-wild-hunt",
                        "offers": {"price": "44.99", "priceCurrency": "BRL"},
                    },
                }
            ],
        }
        html = f'<html><script type="application/ld+json">{json.dumps(ld)}</script></html>'

        def handler(request):
            return httpx.Response(200, text=html)

        [obs] = await NuuvemAdapter().fetch("292030", self.TITLE, make_ctx(handler))

        assert obs.store == "Nuuvem"
        assert obs.trust_tier == TrustTier.SCRAPED
        assert obs.current_amount == Decimal("44.99")
        assert obs.purchase_url == "https://www.nuuvem.com/br-pt/item/the-witcher-3-wild-hunt"

    def test_unrelated_json_ld_falls_back_to_attributes(self):
        ld = {"@type": "Product", "name": "Hollow Knight", "offers": {"price": "10"}}
        html = (
            f'<script type="application/ld+json">{json.dumps(ld)}</script>'
            '<a href="/br-pt/item/witcher"><span data-price="29,90">R$ 29,90</span></a>'
        )

        scraped = NuuvemAdapter().extract_price(html, self.TITLE)

        assert scraped.amount == Decimal("29.90")
        assert scraped.url == "/br-pt/item/witcher"

    def test_regex_last_resort(self):
        scraped = NuuvemAdapter().extract_price(
            "<div>Preço: R$ 1.299,90</div>", self.TITLE
        )
        assert scraped.amount == Decimal("1299.90")
        assert scraped.currency == "BRL"

    def test_nothing_found(self):
        assert NuuvemAdapter().extract_price("<html></html>", self.TITLE) is None

    @pytest.mark.asyncio
    async def test_network_error_is_none(self, make_ctx):
        assert await NuuvemAdapter().fetch("1", self.TITLE, make_ctx(failing_handler)) == []

    @pytest.mark.asyncio
    async def test_slash_in_title_stays_in_one_path_segment(self, make_ctx):
        seen = []

        def handler(request):
            seen.append(request.url.raw_path)
            return httpx.Response(200, text="<div>R$ 19,90</div>")

        [obs] = await NuuvemAdapter().fetch("2784260", "Fate/stay night", make_ctx(handler))

        assert seen == [b"/br-pt/catalog/search/Fate%2Fstay%20night"]
        assert obs.current_amount == Decimal("19.90")


# =============================================================
# TEST: Estimation and registry
# =============================================================


class TestEstimationAdapter:
    def test_fractional_discount_off_reference(self):
        adapter = EstimationAdapter(
            factors={"Nuuvem": 0.92}, default_factor=0.9, fallback_urls={}
        )
        reference = observed("Steam", "100.00", TrustTier.AUTHORITATIVE)

        result = {o.store: o for o in adapter.estimate("1", reference, ["GOG", "Nuuvem"])}

        assert result["GOG"].current_amount == Decimal("90.00")
        assert result["Nuuvem"].current_amount == Decimal("92.00")
        assert all(o.trust_tier == TrustTier.ESTIMATED for o in result.values())
        assert not any(o.is_cacheable for o in result.values())

    def test_no_reference_no_estimate(self):
        adapter = EstimationAdapter(factors={}, default_factor=0.9, fallback_urls={})
        assert adapter.estimate("1", None, ["GOG"]) == []
        assert adapter.estimate("1", observed("Steam", "0", TrustTier.AUTHORITATIVE), ["GOG"]) == []


class TestRegistry:
    def test_build_adapters_by_key(self):
        adapters = build_adapters(["steam", "nuuvem", "estimate", "unknown"])
        assert [a.key for a in adapters] == ["steam", "nuuvem"]
        assert all(isinstance(a, SourceAdapter) for a in adapters)

    def test_estimator_only_when_enabled(self):
        assert build_estimator(["steam"]) is None
        assert isinstance(build_estimator(["steam", "estimate"]), EstimationAdapter)


class TestNameResolver:
    @pytest.mark.asyncio
    async def test_resolves_title(self):
        payload = steam_payload(data={"name": "  The Witcher 3: Wild Hunt "})
        async with httpx.AsyncClient(transport=httpx.MockTransport(json_handler(payload))) as client:
            assert await NameResolver().resolve(client, "292030") == "The Witcher 3: Wild Hunt"

    @pytest.mark.asyncio
    async def test_failure_is_none(self):
        async with httpx.AsyncClient(transport=httpx.MockTransport(failing_handler)) as client:
            assert await NameResolver().resolve(client, "292030") is None

    @pytest.mark.asyncio
    async def test_not_found_is_none(self):
        payload = steam_payload(success=False)
        async with httpx.AsyncClient(transport=httpx.MockTransport(json_handler(payload))) as client:
            assert await NameResolver().resolve(client, "292030") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("entry", ["oops", [1], 42])
    async def test_non_object_entry_is_none(self, entry):
        payload = {"292030": entry}
        async with httpx.AsyncClient(transport=httpx.MockTransport(json_handler(payload))) as client:
            assert await NameResolver().resolve(client, "292030") is None
