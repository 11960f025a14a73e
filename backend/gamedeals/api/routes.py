from __future__ import annotations

from functools import lru_cache

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse

from gamedeals.api.schemas import PriceRequest, PricesOut
from gamedeals.core.config import settings
from gamedeals.core.errors import UpstreamUnavailable
from gamedeals.db.session import SessionLocal
from gamedeals.marketplaces.base import build_client, http_get_json
from gamedeals.marketplaces.registry import build_adapters, build_estimator
from gamedeals.marketplaces.steam import APP_DETAILS_URL
from gamedeals.services.aggregator import PriceAggregator, validate_identifier
from gamedeals.services.cache import CacheGateway

router = APIRouter(tags=["prices"])


@lru_cache(maxsize=1)
def get_aggregator() -> PriceAggregator:
    return PriceAggregator(
        adapters=build_adapters(),
        cache=CacheGateway(SessionLocal),
        estimator=build_estimator(),
    )


@router.post("/prices", response_model=PricesOut)
async def fetch_game_prices(
    payload: PriceRequest | None = None,
    aggregator: PriceAggregator = Depends(get_aggregator),
):
    appid = validate_identifier(payload.appid if payload else None)
    price_set = await aggregator.get_prices(appid)
    return PricesOut.from_price_set(price_set, settings.DISPLAY_CURRENCY_SYMBOL)


@router.get("/prices/{appid}", response_model=PricesOut)
async def get_game_prices(
    appid: str,
    aggregator: PriceAggregator = Depends(get_aggregator),
):
    price_set = await aggregator.get_prices(validate_identifier(appid))
    return PricesOut.from_price_set(price_set, settings.DISPLAY_CURRENCY_SYMBOL)


@router.options("/prices")
@router.options("/prices/{appid}")
@router.options("/games/details")
def preflight():
    return Response(status_code=204)


@router.post("/games/details")
async def fetch_game_details(payload: PriceRequest | None = None):
    """Raw store detail payload for one title, keyed by appid."""
    appid = validate_identifier(payload.appid if payload else None)

    try:
        async with build_client() as client:
            return await http_get_json(
                client,
                "Steam",
                APP_DETAILS_URL,
                params={
                    "appids": appid,
                    "cc": settings.STORE_COUNTRY.lower(),
                    "l": settings.STORE_LANGUAGE,
                },
            )
    except UpstreamUnavailable as e:
        return JSONResponse(status_code=502, content={"error": e.reason})
