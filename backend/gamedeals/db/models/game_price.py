from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from gamedeals.db.base import Base


class GamePrice(Base):
    """One cached price per (appid, store). Rows are upserted, never appended."""

    __tablename__ = "game_prices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    appid: Mapped[str] = mapped_column(String(32), nullable=False, index=True)
    store: Mapped[str] = mapped_column(String(64), nullable=False)

    price: Mapped[str] = mapped_column(Text, nullable=False)
    original_price: Mapped[str] = mapped_column(Text, nullable=False)
    discount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    buy_url: Mapped[str] = mapped_column(Text, nullable=False)
    available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    numeric_price: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    numeric_original_price: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    trust_tier: Mapped[int] = mapped_column(Integer, nullable=False)

    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("appid", "store", name="uq_game_prices_appid_store"),
        Index("ix_game_prices_appid_last_updated", "appid", "last_updated"),
    )

    def __repr__(self):
        return f"<GamePrice(appid='{self.appid}', store='{self.store}')>"
