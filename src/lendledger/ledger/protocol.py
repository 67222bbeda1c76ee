"""
The protocol-wide aggregate and the market grouping entity.
"""

from lendledger.constants import DEFAULT_MARKET_ID, DEFAULT_MARKET_NAME, PROTOCOL_ID
from lendledger.database.models import MarketTable, ProtocolTable
from lendledger.events import EventKind
from lendledger.ledger.common import Upserted, subtract_floor
from lendledger.logging import logger
from lendledger.store import EntityStore

# Counter incremented once per successfully processed event of each kind. Reserve configuration and
# rate events are recorded but have no counter.
EVENT_COUNTERS: dict[EventKind, str] = {
    EventKind.SUPPLY: "total_supplies",
    EventKind.WITHDRAW: "total_withdraws",
    EventKind.BORROW: "total_borrows",
    EventKind.REPAY: "total_repays",
    EventKind.LIQUIDATION_CALL: "total_liquidations",
}


def get_or_create_protocol(store: EntityStore) -> Upserted[ProtocolTable]:
    """
    Get the protocol singleton, creating it with zeroed counters on the first event ever processed.
    """

    if (protocol := store.load(ProtocolTable, PROTOCOL_ID)) is not None:
        return Upserted(entity=protocol, created=False)

    protocol = ProtocolTable(
        id=PROTOCOL_ID,
        total_value_locked_usd=0,
        total_borrowed_usd=0,
        total_users=0,
        total_supplies=0,
        total_borrows=0,
        total_repays=0,
        total_withdraws=0,
        total_liquidations=0,
    )
    store.save(protocol)
    logger.debug("Created protocol aggregate")
    return Upserted(entity=protocol, created=True)


def get_or_create_market(store: EntityStore) -> Upserted[MarketTable]:
    if (market := store.load(MarketTable, DEFAULT_MARKET_ID)) is not None:
        return Upserted(entity=market, created=False)

    market = MarketTable(
        id=DEFAULT_MARKET_ID,
        name=DEFAULT_MARKET_NAME,
        description="",
        market_size_usd=0,
        asset_count=0,
        last_update_block=None,
    )
    store.save(market)
    return Upserted(entity=market, created=True)


def increment_event_counter(protocol: ProtocolTable, kind: EventKind) -> None:
    try:
        counter = EVENT_COUNTERS[kind]
    except KeyError:
        return
    setattr(protocol, counter, getattr(protocol, counter) + 1)


def add_value_locked(protocol: ProtocolTable, amount: int) -> None:
    protocol.total_value_locked_usd += amount


def remove_value_locked(protocol: ProtocolTable, amount: int) -> None:
    protocol.total_value_locked_usd = subtract_floor(protocol.total_value_locked_usd, amount)


def add_borrowed(protocol: ProtocolTable, amount: int) -> None:
    protocol.total_borrowed_usd += amount


def remove_borrowed(protocol: ProtocolTable, amount: int) -> None:
    protocol.total_borrowed_usd = subtract_floor(protocol.total_borrowed_usd, amount)
