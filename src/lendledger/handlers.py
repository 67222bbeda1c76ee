"""
Per-kind event handlers.

Handlers receive a validated event and the unit-of-work collaborators through `HandlerContext`,
mutate the affected entities, save them, and append the event record. They do not commit; the
engine commits or rolls back once the handler returns.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from lendledger.config import LedgerSettings
from lendledger.database.models import ProtocolTable
from lendledger.events import (
    BaseEvent,
    BorrowEvent,
    CollateralConfigurationChangedEvent,
    EventKind,
    LiquidationCallEvent,
    PriceReportedEvent,
    RepayEvent,
    ReserveActiveEvent,
    ReserveBorrowingEvent,
    ReserveDataUpdatedEvent,
    ReserveFactorChangedEvent,
    ReserveFrozenEvent,
    ReserveInitializedEvent,
    SupplyEvent,
    WithdrawEvent,
)
from lendledger.exceptions import LedgerValueError
from lendledger.ledger import assets, positions, protocol, users
from lendledger.ledger.recorder import record_event
from lendledger.logging import logger
from lendledger.oracle import BalanceOracle
from lendledger.store import EntityStore


@dataclass
class HandlerContext[E: BaseEvent]:
    """Context object passed to event handlers containing all necessary state."""

    event: E
    store: EntityStore
    protocol: ProtocolTable
    settings: LedgerSettings
    oracle: BalanceOracle | None = None


def _process_supply_event(context: HandlerContext[SupplyEvent]) -> None:
    """
    Credit the supplied amount to the position of the account the supply was made for.
    """

    # EVENT DEFINITION
    # event Supply(
    #     address indexed reserve,
    #     address user,
    #     address indexed onBehalfOf,
    #     uint256 amount,
    #     uint16 indexed referralCode
    # );
    event = context.event
    store = context.store

    asset = assets.get_or_create_asset(store, event.reserve).entity
    owner = users.get_or_create_user(store, context.protocol, event.on_behalf_of).entity
    position = positions.get_or_create_position(store, owner.id, asset).entity

    positions.deposit(
        position,
        asset,
        event.amount,
        oracle=context.oracle,
        block_identifier=event.block_number,
    )
    assets.add_supply(asset, event.amount)
    users.add_supplied(owner, event.amount)
    owner.supply_count += 1
    protocol.add_value_locked(context.protocol, event.amount)
    protocol.increment_event_counter(context.protocol, event.kind)

    for entity in (asset, owner, position, context.protocol):
        store.save(entity)

    record_event(
        store,
        event,
        user_id=owner.id,
        asset_id=asset.id,
        position_id=position.id,
        amount=event.amount,
        initiator=event.user,
        on_behalf_of=event.on_behalf_of,
        referral_code=event.referral_code,
    )


def _process_withdraw_event(context: HandlerContext[WithdrawEvent]) -> None:
    # EVENT DEFINITION
    # event Withdraw(
    #     address indexed reserve,
    #     address indexed user,
    #     address indexed to,
    #     uint256 amount
    # );
    event = context.event
    store = context.store

    asset = assets.get_or_create_asset(store, event.reserve).entity
    owner = users.get_or_create_user(store, context.protocol, event.user).entity
    position = positions.get_or_create_position(store, owner.id, asset).entity

    positions.withdraw(
        position,
        asset,
        event.amount,
        oracle=context.oracle,
        block_identifier=event.block_number,
    )
    assets.remove_supply(asset, event.amount)
    users.remove_supplied(owner, event.amount)
    owner.withdraw_count += 1
    protocol.remove_value_locked(context.protocol, event.amount)
    protocol.increment_event_counter(context.protocol, event.kind)

    for entity in (asset, owner, position, context.protocol):
        store.save(entity)

    record_event(
        store,
        event,
        user_id=owner.id,
        asset_id=asset.id,
        position_id=position.id,
        amount=event.amount,
        to=event.to,
    )


def _process_borrow_event(context: HandlerContext[BorrowEvent]) -> None:
    """
    Add the borrowed amount to the variable debt of the account the borrow was made for.
    """

    # EVENT DEFINITION
    # event Borrow(
    #     address indexed reserve,
    #     address user,
    #     address indexed onBehalfOf,
    #     uint256 amount,
    #     DataTypes.InterestRateMode interestRateMode,
    #     uint256 borrowRate,
    #     uint16 indexed referralCode
    # );
    event = context.event
    store = context.store

    asset = assets.get_or_create_asset(store, event.reserve).entity
    owner = users.get_or_create_user(store, context.protocol, event.on_behalf_of).entity
    position = positions.get_or_create_position(store, owner.id, asset).entity

    positions.borrow(
        position,
        asset,
        event.amount,
        oracle=context.oracle,
        block_identifier=event.block_number,
    )
    assets.add_debt(asset, event.amount)
    users.add_borrowed(owner, event.amount)
    owner.borrow_count += 1
    protocol.add_borrowed(context.protocol, event.amount)
    protocol.increment_event_counter(context.protocol, event.kind)

    for entity in (asset, owner, position, context.protocol):
        store.save(entity)

    record_event(
        store,
        event,
        user_id=owner.id,
        asset_id=asset.id,
        position_id=position.id,
        amount=event.amount,
        initiator=event.user,
        on_behalf_of=event.on_behalf_of,
        interest_rate_mode=event.interest_rate_mode,
        borrow_rate=event.borrow_rate,
        referral_code=event.referral_code,
    )


def _process_repay_event(context: HandlerContext[RepayEvent]) -> None:
    # EVENT DEFINITION
    # event Repay(
    #     address indexed reserve,
    #     address indexed user,
    #     address indexed repayer,
    #     uint256 amount,
    #     bool useATokens
    # );
    event = context.event
    store = context.store

    asset = assets.get_or_create_asset(store, event.reserve).entity
    owner = users.get_or_create_user(store, context.protocol, event.user).entity
    position = positions.get_or_create_position(store, owner.id, asset).entity

    positions.repay(
        position,
        asset,
        event.amount,
        oracle=context.oracle,
        block_identifier=event.block_number,
    )
    assets.remove_debt(asset, event.amount)
    users.remove_borrowed(owner, event.amount)
    owner.repay_count += 1
    protocol.remove_borrowed(context.protocol, event.amount)
    protocol.increment_event_counter(context.protocol, event.kind)

    for entity in (asset, owner, position, context.protocol):
        store.save(entity)

    record_event(
        store,
        event,
        user_id=owner.id,
        asset_id=asset.id,
        position_id=position.id,
        amount=event.amount,
        repayer=event.repayer,
        use_a_tokens=event.use_a_tokens,
    )


def _process_liquidation_call_event(context: HandlerContext[LiquidationCallEvent]) -> None:
    """
    Reduce the borrower's debt in the debt asset by the covered amount.

    The borrower's collateral position is reduced by the seized amount only if
    `liquidation_reduces_collateral` is enabled. Otherwise the collateral side is left to be
    corrected by the next balance read for that position.
    """

    # EVENT DEFINITION
    # event LiquidationCall(
    #     address indexed collateralAsset,
    #     address indexed debtAsset,
    #     address indexed user,
    #     uint256 debtToCover,
    #     uint256 liquidatedCollateralAmount,
    #     address liquidator,
    #     bool receiveAToken
    # );
    event = context.event
    store = context.store

    collateral_asset = assets.get_or_create_asset(store, event.collateral_asset).entity
    debt_asset = assets.get_or_create_asset(store, event.debt_asset).entity
    borrower = users.get_or_create_user(store, context.protocol, event.user).entity
    debt_position = positions.get_or_create_position(store, borrower.id, debt_asset).entity

    positions.repay(
        debt_position,
        debt_asset,
        event.debt_to_cover,
        oracle=context.oracle,
        block_identifier=event.block_number,
    )
    assets.remove_debt(debt_asset, event.debt_to_cover)
    users.remove_borrowed(borrower, event.debt_to_cover)
    protocol.remove_borrowed(context.protocol, event.debt_to_cover)

    touched = [collateral_asset, debt_asset, borrower, debt_position, context.protocol]

    if context.settings.liquidation_reduces_collateral:
        collateral_position = positions.get_or_create_position(
            store, borrower.id, collateral_asset
        ).entity
        positions.withdraw(
            collateral_position,
            collateral_asset,
            event.liquidated_collateral_amount,
            oracle=context.oracle,
            block_identifier=event.block_number,
        )
        assets.remove_supply(collateral_asset, event.liquidated_collateral_amount)
        users.remove_supplied(borrower, event.liquidated_collateral_amount)
        protocol.remove_value_locked(context.protocol, event.liquidated_collateral_amount)
        touched.append(collateral_position)

    borrower.liquidation_count += 1
    protocol.increment_event_counter(context.protocol, event.kind)

    for entity in touched:
        store.save(entity)

    record_event(
        store,
        event,
        user_id=borrower.id,
        asset_id=debt_asset.id,
        position_id=debt_position.id,
        amount=event.debt_to_cover,
        collateral_asset_id=collateral_asset.id,
        debt_asset_id=debt_asset.id,
        debt_to_cover=event.debt_to_cover,
        liquidated_collateral_amount=event.liquidated_collateral_amount,
        liquidator=event.liquidator,
        receive_a_token=event.receive_a_token,
    )


def _process_reserve_data_update_event(context: HandlerContext[ReserveDataUpdatedEvent]) -> None:
    """
    Process a ReserveDataUpdated event to update asset rates and indices.
    """

    # EVENT DEFINITION
    # event ReserveDataUpdated(
    #     address indexed reserve,
    #     uint256 liquidityRate,
    #     uint256 stableBorrowRate,
    #     uint256 variableBorrowRate,
    #     uint256 liquidityIndex,
    #     uint256 variableBorrowIndex
    # );
    event = context.event

    asset = assets.get_or_create_asset(context.store, event.reserve).entity
    assets.apply_rate_update(
        asset,
        liquidity_rate=event.liquidity_rate,
        variable_borrow_rate=event.variable_borrow_rate,
        liquidity_index=event.liquidity_index,
        variable_borrow_index=event.variable_borrow_index,
        timestamp=event.block_timestamp,
    )
    context.store.save(asset)

    record_event(context.store, event, asset_id=asset.id)


def _process_reserve_initialized_event(context: HandlerContext[ReserveInitializedEvent]) -> None:
    # EVENT DEFINITION
    # event ReserveInitialized(
    #     address indexed asset,
    #     address indexed aToken,
    #     address stableDebtToken,
    #     address variableDebtToken,
    #     address interestRateStrategyAddress
    # );
    event = context.event

    asset = assets.get_or_create_asset(context.store, event.asset).entity
    assets.apply_reserve_initialization(
        asset,
        a_token=event.a_token,
        variable_debt_token=event.variable_debt_token,
    )
    context.store.save(asset)
    logger.info(f"Initialized reserve {asset.id} (aToken {event.a_token})")

    record_event(context.store, event, asset_id=asset.id)


def _process_collateral_configuration_changed_event(
    context: HandlerContext[CollateralConfigurationChangedEvent],
) -> None:
    # EVENT DEFINITION
    # event CollateralConfigurationChanged(
    #     address indexed asset,
    #     uint256 ltv,
    #     uint256 liquidationThreshold,
    #     uint256 liquidationBonus
    # );
    event = context.event

    asset = assets.get_or_create_asset(context.store, event.asset).entity
    assets.apply_collateral_configuration(
        asset,
        ltv=event.ltv,
        liquidation_threshold=event.liquidation_threshold,
        liquidation_bonus=event.liquidation_bonus,
    )
    context.store.save(asset)

    record_event(context.store, event, asset_id=asset.id)


def _process_reserve_factor_changed_event(
    context: HandlerContext[ReserveFactorChangedEvent],
) -> None:
    # EVENT DEFINITION
    # event ReserveFactorChanged(
    #     address indexed asset,
    #     uint256 oldReserveFactor,
    #     uint256 newReserveFactor
    # );
    event = context.event

    asset = assets.get_or_create_asset(context.store, event.asset).entity
    if asset.reserve_factor != event.old_reserve_factor:
        logger.warning(
            f"Asset {asset.id}: reserve factor was {asset.reserve_factor}, "
            f"event reports previous value {event.old_reserve_factor}"
        )
    asset.reserve_factor = event.new_reserve_factor
    context.store.save(asset)

    record_event(context.store, event, asset_id=asset.id)


def _process_reserve_borrowing_event(context: HandlerContext[ReserveBorrowingEvent]) -> None:
    event = context.event

    asset = assets.get_or_create_asset(context.store, event.asset).entity
    asset.borrowing_enabled = event.enabled
    context.store.save(asset)

    record_event(context.store, event, asset_id=asset.id)


def _process_reserve_frozen_event(context: HandlerContext[ReserveFrozenEvent]) -> None:
    event = context.event

    asset = assets.get_or_create_asset(context.store, event.asset).entity
    asset.is_frozen = event.frozen
    context.store.save(asset)

    record_event(context.store, event, asset_id=asset.id)


def _process_reserve_active_event(context: HandlerContext[ReserveActiveEvent]) -> None:
    event = context.event

    asset = assets.get_or_create_asset(context.store, event.asset).entity
    asset.is_active = event.active
    context.store.save(asset)

    record_event(context.store, event, asset_id=asset.id)


def _process_price_reported_event(context: HandlerContext[PriceReportedEvent]) -> None:
    event = context.event

    asset = assets.get_or_create_asset(context.store, event.asset).entity
    asset.price_usd = event.price
    context.store.save(asset)

    record_event(context.store, event, asset_id=asset.id, amount=event.price)


EVENT_HANDLERS: dict[EventKind, Callable[[HandlerContext[Any]], None]] = {
    EventKind.SUPPLY: _process_supply_event,
    EventKind.WITHDRAW: _process_withdraw_event,
    EventKind.BORROW: _process_borrow_event,
    EventKind.REPAY: _process_repay_event,
    EventKind.LIQUIDATION_CALL: _process_liquidation_call_event,
    EventKind.RESERVE_DATA_UPDATED: _process_reserve_data_update_event,
    EventKind.RESERVE_INITIALIZED: _process_reserve_initialized_event,
    EventKind.COLLATERAL_CONFIGURATION_CHANGED: _process_collateral_configuration_changed_event,
    EventKind.RESERVE_FACTOR_CHANGED: _process_reserve_factor_changed_event,
    EventKind.RESERVE_BORROWING: _process_reserve_borrowing_event,
    EventKind.RESERVE_FROZEN: _process_reserve_frozen_event,
    EventKind.RESERVE_ACTIVE: _process_reserve_active_event,
    EventKind.PRICE_REPORTED: _process_price_reported_event,
}


def dispatch_event(context: HandlerContext[Any]) -> None:
    """
    Dispatch event to appropriate handler based on event kind.
    """

    kind = context.event.kind
    if kind not in EVENT_HANDLERS:
        raise LedgerValueError(message=f"No handler for event kind {kind!r}")

    logger.debug(f"Processing {kind} event {context.event.key}")
    EVENT_HANDLERS[kind](context)
