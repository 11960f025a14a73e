from __future__ import annotations

import httpx
import structlog

from gamedeals.core.errors import UpstreamUnavailable
from gamedeals.marketplaces.steam import fetch_app_details

logger = structlog.get_logger(__name__)


class NameResolver:
    """
    Looks up a display title for a canonical id. The title only drives
    free-text search on secondary stores; ``None`` means "skip them".
    """

    async def resolve(self, client: httpx.AsyncClient, appid: str) -> str | None:
        try:
            data = await fetch_app_details(client, appid, filters="basic")
        except UpstreamUnavailable as e:
            logger.info("name.unresolved", appid=appid, reason=e.reason)
            return None

        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            logger.info("name.unresolved", appid=appid, reason="no name in payload")
            return None

        logger.debug("name.resolved", appid=appid, title=name)
        return name.strip()
