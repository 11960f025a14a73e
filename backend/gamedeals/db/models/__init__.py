from gamedeals.db.base import Base
from gamedeals.db.models.game_price import GamePrice

__all__ = [
    "Base",
    "GamePrice",
]
