import asyncio
import sys

import structlog

from gamedeals.core.errors import GameDealsError
from gamedeals.core.logger import configure_logging
from gamedeals.services.aggregator import PriceAggregator

logger = structlog.get_logger(__name__)


async def run_refresh_cycle(aggregator: PriceAggregator, appids: list[str]) -> dict:
    """Live re-fetch for each id, bypassing the cache read. Returns per-id outcome."""
    outcome = {}
    for appid in appids:
        try:
            price_set = await aggregator.get_prices(appid, use_cache=False)
            outcome[appid] = price_set.available_count
        except GameDealsError as e:
            # keep cycle alive
            logger.error("refresh.failed", appid=appid, error=str(e))
            outcome[appid] = None
    return outcome


def main(argv: list[str] | None = None) -> int:
    from gamedeals.api.routes import get_aggregator

    configure_logging()
    appids = list(argv if argv is not None else sys.argv[1:])
    if not appids:
        print("usage: python -m gamedeals.jobs.refresh_prices <appid> [<appid> ...]")
        return 2

    outcome = asyncio.run(run_refresh_cycle(get_aggregator(), appids))
    return 0 if all(v is not None for v in outcome.values()) else 1


if __name__ == "__main__":
    sys.exit(main())
