"""create_game_prices

Revision ID: 5c1e8a2f4b7d
Revises:
Create Date: 2026-10-16 10:12:31.402118

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "5c1e8a2f4b7d"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "game_prices",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("appid", sa.String(length=32), nullable=False),
        sa.Column("store", sa.String(length=64), nullable=False),
        sa.Column("price", sa.Text(), nullable=False),
        sa.Column("original_price", sa.Text(), nullable=False),
        sa.Column("discount", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("buy_url", sa.Text(), nullable=False),
        sa.Column("available", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("numeric_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("numeric_original_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("trust_tier", sa.Integer(), nullable=False),
        sa.Column(
            "last_updated",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("appid", "store", name="uq_game_prices_appid_store"),
    )
    op.create_index("ix_game_prices_appid", "game_prices", ["appid"])
    op.create_index(
        "ix_game_prices_appid_last_updated", "game_prices", ["appid", "last_updated"]
    )


def downgrade() -> None:
    op.drop_index("ix_game_prices_appid_last_updated", table_name="game_prices")
    op.drop_index("ix_game_prices_appid", table_name="game_prices")
    op.drop_table("game_prices")
