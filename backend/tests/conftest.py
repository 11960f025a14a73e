import os

# keep the import-time engine off the production database
os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from gamedeals.core.currency import RateTable
from gamedeals.db.models import Base
from gamedeals.marketplaces.base import FetchContext
from gamedeals.models.prices import PriceObservation, TrustTier


STORES = ["Steam", "GOG", "Nuuvem"]


class MutableClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def rates():
    return RateTable(display_currency="BRL", rates={"USD": Decimal("5.00")})


@pytest.fixture
def clock():
    return MutableClock(datetime(2026, 10, 16, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, autoflush=False)
    engine.dispose()


@pytest.fixture
def make_ctx(rates):
    """Build a FetchContext whose client answers through ``handler``."""
    clients = []

    def _make(handler) -> FetchContext:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(client)
        return FetchContext(client=client, rates=rates, country="BR", language="pt")

    return _make


def observed(
    store: str,
    amount: str,
    tier: TrustTier = TrustTier.DIRECT_API,
    original: str | None = None,
    discount: int = 0,
) -> PriceObservation:
    return PriceObservation(
        store=store,
        purchase_url=f"https://example.com/{store.lower()}",
        trust_tier=tier,
        available=True,
        current_amount=Decimal(amount),
        original_amount=Decimal(original) if original else None,
        discount_percent=discount,
    )
