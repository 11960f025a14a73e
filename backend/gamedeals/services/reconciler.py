from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timezone
from typing import Iterable, Mapping, Sequence

import structlog

from gamedeals.core.config import settings
from gamedeals.models.prices import (
    PLACEHOLDER_TEXT,
    AggregatedPriceSet,
    PriceObservation,
    TrustTier,
)

logger = structlog.get_logger(__name__)


def _preference(obs: PriceObservation):
    # highest tier first, then cheapest; unknown amounts sort last
    return (
        -int(obs.trust_tier),
        obs.current_amount is None,
        obs.current_amount if obs.current_amount is not None else 0,
    )


def pick_best(candidates: Sequence[PriceObservation]) -> PriceObservation:
    observed = [c for c in candidates if not c.is_estimated]
    return min(observed or candidates, key=_preference)


def placeholder(
    store: str, appid: str, fallback_urls: Mapping[str, str] | None = None
) -> PriceObservation:
    urls = fallback_urls if fallback_urls is not None else settings.STORE_FALLBACK_URLS
    return PriceObservation.unavailable(
        store=store,
        purchase_url=urls.get(store, "").format(appid=appid),
        trust_tier=TrustTier.ESTIMATED,
        status_text=PLACEHOLDER_TEXT,
    )


def reconcile(
    appid: str,
    observations: Iterable[PriceObservation],
    configured_stores: Sequence[str],
    fallback_urls: Mapping[str, str] | None = None,
    generated_at: datetime | None = None,
) -> AggregatedPriceSet:
    """
    Collapse observations to exactly one entry per configured store, in
    configured order. Same-store conflicts keep the most trusted
    observation, then the cheapest. Stores nobody reported get a
    placeholder.
    """
    stores = list(dict.fromkeys(configured_stores))
    wanted = set(stores)

    grouped: dict[str, list[PriceObservation]] = defaultdict(list)
    for obs in observations:
        if obs.store not in wanted:
            logger.debug("reconcile.unconfigured_store", appid=appid, store=obs.store)
            continue
        grouped[obs.store].append(obs)

    entries: dict[str, PriceObservation] = {}
    for store in stores:
        candidates = grouped.get(store)
        if candidates:
            entries[store] = pick_best(candidates)
        else:
            entries[store] = placeholder(store, appid, fallback_urls)

    return AggregatedPriceSet(
        game_identifier=appid,
        entries=entries,
        generated_at=generated_at or datetime.now(timezone.utc),
    )
