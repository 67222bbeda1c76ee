"""
Per-user aggregates.

The `total_supplied_usd` and `total_borrowed_usd` columns are running sums of raw token amounts. No
price conversion is applied, so amounts of different assets are added together as-is.
"""

from lendledger.database.models import ProtocolTable, UserTable
from lendledger.identity import entity_key
from lendledger.ledger.common import Upserted, subtract_floor
from lendledger.logging import logger
from lendledger.store import EntityStore


def get_or_create_user(
    store: EntityStore,
    protocol: ProtocolTable,
    address: str,
) -> Upserted[UserTable]:
    """
    Get the user for the address, or create a zeroed user and count it in the protocol aggregate.

    The protocol entity is mutated in place and saved by the caller along with the other entities
    touched by the event.
    """

    key = entity_key(address)

    if (user := store.load(UserTable, key)) is not None:
        return Upserted(entity=user, created=False)

    user = UserTable(
        id=key,
        total_supplied_usd=0,
        total_borrowed_usd=0,
        total_collateral_usd=0,
        health_factor=0,
        supply_count=0,
        withdraw_count=0,
        borrow_count=0,
        repay_count=0,
        liquidation_count=0,
    )
    store.save(user)
    protocol.total_users += 1
    logger.debug(f"Created user {key}")
    return Upserted(entity=user, created=True)


def add_supplied(user: UserTable, amount: int) -> None:
    user.total_supplied_usd += amount


def remove_supplied(user: UserTable, amount: int) -> None:
    user.total_supplied_usd = subtract_floor(user.total_supplied_usd, amount)


def add_borrowed(user: UserTable, amount: int) -> None:
    user.total_borrowed_usd += amount


def remove_borrowed(user: UserTable, amount: int) -> None:
    user.total_borrowed_usd = subtract_floor(user.total_borrowed_usd, amount)
