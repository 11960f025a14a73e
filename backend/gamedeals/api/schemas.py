from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from gamedeals.models.prices import (
    AggregatedPriceSet,
    PriceObservation,
    original_price_text,
    price_text,
)


class PriceRequest(BaseModel):
    appid: str | int | None = Field(
        default=None, validation_alias=AliasChoices("appid", "gameIdentifier")
    )

    model_config = ConfigDict(
        json_schema_extra={"example": {"appid": "292030"}},
    )


class StorePriceOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    store: str
    price: str
    original_price: str
    discount: int
    buy_url: str
    available: bool
    numeric_price: float | None = None
    numeric_original_price: float | None = None

    @classmethod
    def from_observation(cls, obs: PriceObservation, symbol: str) -> "StorePriceOut":
        return cls(
            store=obs.store,
            price=price_text(obs, symbol),
            original_price=original_price_text(obs, symbol),
            discount=obs.discount_percent,
            buy_url=obs.purchase_url,
            available=obs.available,
            numeric_price=(
                float(obs.current_amount) if obs.current_amount is not None else None
            ),
            numeric_original_price=(
                float(obs.original_amount) if obs.original_amount is not None else None
            ),
        )


class PricesOut(BaseModel):
    prices: list[StorePriceOut]

    @classmethod
    def from_price_set(cls, price_set: AggregatedPriceSet, symbol: str) -> "PricesOut":
        return cls(
            prices=[
                StorePriceOut.from_observation(obs, symbol)
                for obs in price_set.ordered()
            ]
        )
