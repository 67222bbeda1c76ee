from .base import Base
from .ledger import (
    ActionEventTable,
    AssetTable,
    MarketTable,
    PositionTable,
    ProtocolTable,
    UserTable,
)

__all__ = (
    "ActionEventTable",
    "AssetTable",
    "Base",
    "MarketTable",
    "PositionTable",
    "ProtocolTable",
    "UserTable",
)
