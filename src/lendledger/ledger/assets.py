"""
Per-reserve cumulative state: liquidity totals, rates, indices, and configuration.
"""

from lendledger.constants import DEFAULT_DECIMALS, ZERO_ADDRESS
from lendledger.database.models import AssetTable
from lendledger.identity import entity_key
from lendledger.ledger.common import Upserted, subtract_floor
from lendledger.ledger.protocol import get_or_create_market
from lendledger.libraries.ray_math import RAY, ray_div_floor
from lendledger.logging import logger
from lendledger.store import EntityStore


def get_or_create_asset(store: EntityStore, address: str) -> Upserted[AssetTable]:
    """
    Get the asset for the reserve address, or create it with zeroed totals, indices at one ray,
    flags disabled and token addresses set to the zero address.

    The first asset ever created also creates the default market.
    """

    key = entity_key(address)

    if (asset := store.load(AssetTable, key)) is not None:
        return Upserted(entity=asset, created=False)

    market = get_or_create_market(store).entity
    asset = AssetTable(
        id=key,
        market_id=market.id,
        symbol="",
        name="",
        decimals=DEFAULT_DECIMALS,
        price_usd=0,
        total_supplied=0,
        total_borrowed=0,
        available_liquidity=0,
        total_liquidity=0,
        utilization_rate=0,
        liquidity_rate=0,
        variable_borrow_rate=0,
        liquidity_index=RAY,
        variable_borrow_index=RAY,
        ltv=0,
        liquidation_threshold=0,
        liquidation_bonus=0,
        reserve_factor=0,
        is_active=False,
        is_frozen=False,
        borrowing_enabled=False,
        usage_as_collateral_enabled=False,
        a_token_address=ZERO_ADDRESS,
        variable_debt_token_address=ZERO_ADDRESS,
        last_update_timestamp=0,
    )
    market.asset_count += 1
    store.save(asset)
    store.save(market)
    logger.debug(f"Created asset {key}")
    return Upserted(entity=asset, created=True)


def recompute_utilization(asset: AssetTable) -> None:
    """
    Recalculate total liquidity and the utilization rate.

    Utilization is `total_borrowed / total_liquidity` as a ray, rounded down. The rounding is
    observable: a reserve with 1 unit borrowed out of 3 reports 333333333333333333333333333.
    """

    asset.total_liquidity = asset.available_liquidity + asset.total_borrowed
    asset.utilization_rate = (
        ray_div_floor(asset.total_borrowed, asset.total_liquidity)
        if asset.total_liquidity > 0
        else 0
    )


def apply_rate_update(
    asset: AssetTable,
    *,
    liquidity_rate: int,
    variable_borrow_rate: int,
    liquidity_index: int,
    variable_borrow_index: int,
    timestamp: int,
) -> None:
    """
    Overwrite the rates and indices with the values reported by the pool.

    Indices are trusted as given. A decrease is logged as a data quality warning but still applied.
    """

    if liquidity_index < asset.liquidity_index:
        logger.warning(
            f"Asset {asset.id}: liquidity index decreased from {asset.liquidity_index} "
            f"to {liquidity_index} at timestamp {timestamp}"
        )
    if variable_borrow_index < asset.variable_borrow_index:
        logger.warning(
            f"Asset {asset.id}: variable borrow index decreased from "
            f"{asset.variable_borrow_index} to {variable_borrow_index} at timestamp {timestamp}"
        )

    asset.liquidity_rate = liquidity_rate
    asset.variable_borrow_rate = variable_borrow_rate
    asset.liquidity_index = liquidity_index
    asset.variable_borrow_index = variable_borrow_index
    asset.last_update_timestamp = timestamp

    recompute_utilization(asset)


def add_supply(asset: AssetTable, amount: int) -> None:
    """
    Add a supplied amount to the asset's supply and available liquidity.
    """
    asset.total_supplied += amount
    asset.available_liquidity += amount
    recompute_utilization(asset)


def remove_supply(asset: AssetTable, amount: int) -> None:
    """
    Remove a withdrawn amount from the supply and available liquidity, each clamped at zero.
    """
    asset.total_supplied = subtract_floor(asset.total_supplied, amount)
    asset.available_liquidity = subtract_floor(asset.available_liquidity, amount)
    recompute_utilization(asset)


def add_debt(asset: AssetTable, amount: int) -> None:
    """
    Move a borrowed amount from available liquidity, clamped at zero, to the borrowed total.
    """
    asset.total_borrowed += amount
    asset.available_liquidity = subtract_floor(asset.available_liquidity, amount)
    recompute_utilization(asset)


def remove_debt(asset: AssetTable, amount: int) -> None:
    """
    Return a repaid amount to available liquidity. Only the part covered by the borrowed total is
    returned, and the borrowed total is clamped at zero.
    """
    retired = min(amount, asset.total_borrowed)
    asset.total_borrowed -= retired
    asset.available_liquidity += retired
    recompute_utilization(asset)


def apply_reserve_initialization(
    asset: AssetTable,
    *,
    a_token: str,
    variable_debt_token: str,
) -> None:
    asset.a_token_address = entity_key(a_token)
    asset.variable_debt_token_address = entity_key(variable_debt_token)
    asset.is_active = True


def apply_collateral_configuration(
    asset: AssetTable,
    *,
    ltv: int,
    liquidation_threshold: int,
    liquidation_bonus: int,
) -> None:
    """
    Set the collateral parameters. A reserve with a zero liquidation threshold cannot be used as
    collateral.
    """

    asset.ltv = ltv
    asset.liquidation_threshold = liquidation_threshold
    asset.liquidation_bonus = liquidation_bonus
    asset.usage_as_collateral_enabled = liquidation_threshold != 0
