"""
Per-(user, asset) balances with scaled-balance rebasing.

A position stores each side (supplied balance and variable debt) as a scaled amount with the index
snapshot it was recorded at. Before any mutation the stored amount is brought forward to the
asset's current index:

    live = scaled * current_index // snapshot_index

The delta is applied to the live amount, clamped at zero, and the result is stored as the new
scaled amount with the current index as the new snapshot. A snapshot of zero is treated as a
multiplier of one.

If a balance oracle is supplied, the on-chain `balanceOf` for the aToken (balance) or variable debt
token (debt) replaces the locally computed result. The local result is kept if the call reverts or
the reserve has no known token address.
"""

from dataclasses import dataclass

from web3.types import BlockIdentifier

from lendledger.constants import ZERO_ADDRESS
from lendledger.database.models import AssetTable, PositionTable
from lendledger.identity import entity_key, position_key
from lendledger.ledger.common import Upserted, subtract_floor
from lendledger.libraries.ray_math import mul_div_floor
from lendledger.logging import logger
from lendledger.oracle import BalanceOracle
from lendledger.store import EntityStore


@dataclass(frozen=True, slots=True)
class PositionSide:
    """
    Attribute names for one side of a position and the asset values it is measured against.
    """

    name: str
    scaled: str
    snapshot: str
    current: str
    mirror: str
    asset_index: str
    asset_token: str


COLLATERAL = PositionSide(
    name="balance",
    scaled="scaled_balance",
    snapshot="last_liquidity_index",
    current="current_balance",
    mirror="deposited_amount",
    asset_index="liquidity_index",
    asset_token="a_token_address",
)
DEBT = PositionSide(
    name="debt",
    scaled="scaled_debt",
    snapshot="last_variable_borrow_index",
    current="current_debt",
    mirror="borrowed_amount",
    asset_index="variable_borrow_index",
    asset_token="variable_debt_token_address",
)


def rebase(scaled: int, snapshot_index: int, current_index: int) -> int:
    """
    Bring a scaled amount recorded at `snapshot_index` forward to `current_index`, rounding down.
    """

    if snapshot_index == 0:
        return scaled
    return mul_div_floor(scaled, current_index, snapshot_index)


def get_or_create_position(
    store: EntityStore,
    user: str,
    asset: AssetTable,
) -> Upserted[PositionTable]:
    key = position_key(user, asset.id)

    if (position := store.load(PositionTable, key)) is not None:
        return Upserted(entity=position, created=False)

    position = PositionTable(
        id=key,
        user_id=entity_key(user),
        asset_id=asset.id,
        deposited_amount=0,
        borrowed_amount=0,
        scaled_balance=0,
        scaled_debt=0,
        last_liquidity_index=asset.liquidity_index,
        last_variable_borrow_index=asset.variable_borrow_index,
        current_balance=0,
        current_debt=0,
    )
    store.save(position)
    logger.debug(f"Created position {key}")
    return Upserted(entity=position, created=True)


def accrued(position: PositionTable, asset: AssetTable, side: PositionSide) -> int:
    """
    Get the live amount for one side of the position at the asset's current index.
    """

    return rebase(
        scaled=getattr(position, side.scaled),
        snapshot_index=getattr(position, side.snapshot),
        current_index=getattr(asset, side.asset_index),
    )


def _authoritative_amount(
    position: PositionTable,
    asset: AssetTable,
    side: PositionSide,
    local_amount: int,
    oracle: BalanceOracle,
    block_identifier: BlockIdentifier | None,
) -> int:
    token = getattr(asset, side.asset_token)
    if token == ZERO_ADDRESS:
        logger.warning(
            f"Position {position.id}: no token address for the {side.name} of asset {asset.id}, "
            f"keeping local estimate {local_amount}"
        )
        return local_amount

    result = oracle.try_balance_of(token, position.user_id, block_identifier)
    if result.reverted:
        logger.warning(
            f"Position {position.id}: balanceOf on {token} failed, "
            f"keeping local {side.name} estimate {local_amount}"
        )
        return local_amount

    if result.value != local_amount:
        logger.debug(
            f"Position {position.id}: on-chain {side.name} {result.value} replaces "
            f"local estimate {local_amount}"
        )
    return result.value


def _update_side(
    position: PositionTable,
    asset: AssetTable,
    side: PositionSide,
    *,
    increase: int = 0,
    decrease: int = 0,
    oracle: BalanceOracle | None = None,
    block_identifier: BlockIdentifier | None = None,
) -> int:
    new_amount = subtract_floor(accrued(position, asset, side) + increase, decrease)

    if oracle is not None:
        new_amount = _authoritative_amount(
            position=position,
            asset=asset,
            side=side,
            local_amount=new_amount,
            oracle=oracle,
            block_identifier=block_identifier,
        )

    setattr(position, side.scaled, new_amount)
    setattr(position, side.snapshot, getattr(asset, side.asset_index))
    setattr(position, side.current, new_amount)
    setattr(position, side.mirror, new_amount)
    return new_amount


def deposit(
    position: PositionTable,
    asset: AssetTable,
    amount: int,
    oracle: BalanceOracle | None = None,
    block_identifier: BlockIdentifier | None = None,
) -> int:
    """
    Add a supplied amount to the position balance. Returns the new balance.
    """

    return _update_side(
        position,
        asset,
        COLLATERAL,
        increase=amount,
        oracle=oracle,
        block_identifier=block_identifier,
    )


def withdraw(
    position: PositionTable,
    asset: AssetTable,
    amount: int,
    oracle: BalanceOracle | None = None,
    block_identifier: BlockIdentifier | None = None,
) -> int:
    """
    Remove a withdrawn amount from the position balance. An amount at or above the accrued balance
    leaves a zero balance. Returns the new balance.
    """

    return _update_side(
        position,
        asset,
        COLLATERAL,
        decrease=amount,
        oracle=oracle,
        block_identifier=block_identifier,
    )


def borrow(
    position: PositionTable,
    asset: AssetTable,
    amount: int,
    oracle: BalanceOracle | None = None,
    block_identifier: BlockIdentifier | None = None,
) -> int:
    return _update_side(
        position,
        asset,
        DEBT,
        increase=amount,
        oracle=oracle,
        block_identifier=block_identifier,
    )


def repay(
    position: PositionTable,
    asset: AssetTable,
    amount: int,
    oracle: BalanceOracle | None = None,
    block_identifier: BlockIdentifier | None = None,
) -> int:
    return _update_side(
        position,
        asset,
        DEBT,
        decrease=amount,
        oracle=oracle,
        block_identifier=block_identifier,
    )
