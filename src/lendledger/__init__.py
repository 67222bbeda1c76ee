from .checksum_cache import get_checksum_address
from .config import settings
from .logging import logger
from .version import __version__

# isort: split

from .decoding import decode_pool_log
from .engine import LedgerEngine, ProcessingResult, ProcessingStatus
from .events import EventKind, LedgerEvent, parse_event
from .identity import entity_key, event_key, position_key
from .oracle import BalanceOracle, BalanceResult, Web3BalanceOracle
from .store import EntityStore, SqlEntityStore

# isort: split

from . import exceptions, ledger

__all__ = (
    "BalanceOracle",
    "BalanceResult",
    "EntityStore",
    "EventKind",
    "LedgerEngine",
    "LedgerEvent",
    "ProcessingResult",
    "ProcessingStatus",
    "SqlEntityStore",
    "Web3BalanceOracle",
    "__version__",
    "decode_pool_log",
    "entity_key",
    "event_key",
    "exceptions",
    "get_checksum_address",
    "ledger",
    "logger",
    "parse_event",
    "position_key",
    "settings",
)
