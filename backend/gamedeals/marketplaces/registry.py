from __future__ import annotations

from typing import Iterable

import structlog

from gamedeals.core.config import settings
from gamedeals.marketplaces.base import SourceAdapter
from gamedeals.marketplaces.cheapshark import CheapSharkAdapter
from gamedeals.marketplaces.estimate import EstimationAdapter
from gamedeals.marketplaces.gog import GogAdapter
from gamedeals.marketplaces.nuuvem import NuuvemAdapter
from gamedeals.marketplaces.steam import SteamAdapter

logger = structlog.get_logger(__name__)

ADAPTER_TYPES: dict[str, type[SourceAdapter]] = {
    SteamAdapter.key: SteamAdapter,
    GogAdapter.key: GogAdapter,
    CheapSharkAdapter.key: CheapSharkAdapter,
    NuuvemAdapter.key: NuuvemAdapter,
}


def build_adapters(keys: Iterable[str] | None = None) -> list[SourceAdapter]:
    keys = list(keys if keys is not None else settings.ENABLED_ADAPTERS)
    adapters = []
    for key in keys:
        if key == EstimationAdapter.key:
            continue
        adapter_type = ADAPTER_TYPES.get(key)
        if adapter_type is None:
            logger.warning("adapters.unknown", key=key)
            continue
        adapters.append(adapter_type())
    return adapters


def build_estimator(keys: Iterable[str] | None = None) -> EstimationAdapter | None:
    keys = list(keys if keys is not None else settings.ENABLED_ADAPTERS)
    return EstimationAdapter() if EstimationAdapter.key in keys else None
