"""
Cache gateway over the ``game_prices`` table.

Reads are all-or-nothing: either every row for the identifier passes
the freshness bar and is returned, or the caller gets a miss and
re-fetches everything live. Storage errors never escape this module.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Callable, Sequence

import structlog
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from gamedeals.core.config import settings
from gamedeals.core.errors import CacheUnavailable
from gamedeals.db.models.game_price import GamePrice
from gamedeals.models.prices import (
    AggregatedPriceSet,
    PriceObservation,
    TrustTier,
    original_price_text,
    price_text,
)

logger = structlog.get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(ts: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


def record_to_observation(row: GamePrice) -> PriceObservation:
    available = bool(row.available) and row.numeric_price is not None
    if not available:
        return PriceObservation.unavailable(
            store=row.store,
            purchase_url=row.buy_url,
            trust_tier=TrustTier(row.trust_tier),
            status_text=row.price,
        )
    return PriceObservation(
        store=row.store,
        purchase_url=row.buy_url,
        trust_tier=TrustTier(row.trust_tier),
        available=True,
        current_amount=Decimal(row.numeric_price),
        original_amount=(
            Decimal(row.numeric_original_price)
            if row.numeric_original_price is not None
            else None
        ),
        discount_percent=row.discount or 0,
    )


class CacheGateway:
    def __init__(
        self,
        session_factory: sessionmaker | Callable[[], Session],
        clock: Callable[[], datetime] = utcnow,
        currency_symbol: str | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock
        self._symbol = currency_symbol or settings.DISPLAY_CURRENCY_SYMBOL

    # -------------------------
    # Read
    # -------------------------

    def read_fresh(
        self,
        appid: str,
        max_age: timedelta,
        min_available_count: int,
        min_total_rows: int,
    ) -> list[PriceObservation] | None:
        try:
            rows = self._load_rows(appid)
        except CacheUnavailable as e:
            logger.warning("cache.unavailable", appid=appid, op="read", error=str(e))
            return None

        if not rows:
            logger.info("cache.miss", appid=appid, reason="empty")
            return None

        cutoff = self._clock() - max_age
        if any(_aware(r.last_updated) < cutoff for r in rows):
            logger.info("cache.miss", appid=appid, reason="stale")
            return None

        if len(rows) < min_total_rows:
            logger.info("cache.miss", appid=appid, reason="rows", rows=len(rows))
            return None

        try:
            observations = [record_to_observation(r) for r in rows]
        except (ValueError, InvalidOperation) as e:
            logger.warning("cache.miss", appid=appid, reason="undecodable", error=str(e))
            return None

        available = sum(1 for o in observations if o.is_cacheable)
        if available < min_available_count:
            logger.info("cache.miss", appid=appid, reason="available", available=available)
            return None

        logger.info("cache.hit", appid=appid, rows=len(rows), available=available)
        return observations

    def _load_rows(self, appid: str) -> Sequence[GamePrice]:
        try:
            with self._session_factory() as db:
                rows = db.scalars(select(GamePrice).where(GamePrice.appid == appid)).all()
                db.expunge_all()
                return rows
        except SQLAlchemyError as e:
            raise CacheUnavailable(str(e)) from e

    # -------------------------
    # Write
    # -------------------------

    def upsert(self, appid: str, obs: PriceObservation) -> None:
        if not obs.is_cacheable:
            raise ValueError(f"refusing to cache non-observed price for {obs.store}")

        values = {
            "appid": appid,
            "store": obs.store,
            "price": price_text(obs, self._symbol),
            "original_price": original_price_text(obs, self._symbol),
            "discount": obs.discount_percent,
            "buy_url": obs.purchase_url,
            "available": True,
            "numeric_price": obs.current_amount,
            "numeric_original_price": obs.original_amount,
            "trust_tier": int(obs.trust_tier),
            "last_updated": self._clock(),
        }

        try:
            with self._session_factory() as db:
                insert = (
                    pg_insert
                    if db.get_bind().dialect.name == "postgresql"
                    else sqlite_insert
                )
                stmt = insert(GamePrice).values(**values)
                stmt = stmt.on_conflict_do_update(
                    index_elements=["appid", "store"],
                    set_={
                        k: stmt.excluded[k]
                        for k in values
                        if k not in ("appid", "store")
                    },
                )
                db.execute(stmt)
                db.commit()
        except SQLAlchemyError as e:
            raise CacheUnavailable(str(e)) from e

    def persist(self, price_set: AggregatedPriceSet) -> int:
        """Write every cacheable entry. Failures are logged and skipped."""
        written = 0
        for obs in price_set.ordered():
            if not obs.is_cacheable:
                continue
            try:
                self.upsert(price_set.game_identifier, obs)
                written += 1
            except CacheUnavailable as e:
                logger.error(
                    "cache.unavailable",
                    appid=price_set.game_identifier,
                    store=obs.store,
                    op="write",
                    error=str(e),
                )
        return written
