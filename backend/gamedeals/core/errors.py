class GameDealsError(Exception):
    """Base class for every error raised inside the price service."""


class ValidationError(GameDealsError):
    """Request is missing a required input. Nothing was fetched or written."""


class UpstreamUnavailable(GameDealsError):
    """A storefront call failed, answered non-2xx, or returned an unusable payload."""

    def __init__(self, store: str, reason: str):
        super().__init__(f"{store}: {reason}")
        self.store = store
        self.reason = reason


class CurrencyError(GameDealsError):
    pass


class CacheUnavailable(GameDealsError):
    pass


class AggregationFailure(GameDealsError):
    """Nothing could be built for the request. Only this one reaches the caller."""

    public_message = "Failed to fetch prices"
