"""
Typed inbound events.

Each event carries the delivery metadata shared by all logs (contract address, block number, block
timestamp, transaction hash, log index) plus its kind-specific fields. Models are validated on
construction, so a handler never sees an event with a missing or out-of-range field.
"""

from collections.abc import Mapping
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    StrictBool,
    TypeAdapter,
    ValidationError,
)

from lendledger.exceptions.ledger import InvalidAddress, MalformedEventError
from lendledger.identity import entity_key, transaction_hash_key
from lendledger.types.aliases import ValidatedUint8, ValidatedUint16, ValidatedUint256


class EventKind(StrEnum):
    SUPPLY = "Supply"
    WITHDRAW = "Withdraw"
    BORROW = "Borrow"
    REPAY = "Repay"
    LIQUIDATION_CALL = "LiquidationCall"
    RESERVE_DATA_UPDATED = "ReserveDataUpdated"
    RESERVE_INITIALIZED = "ReserveInitialized"
    COLLATERAL_CONFIGURATION_CHANGED = "CollateralConfigurationChanged"
    RESERVE_FACTOR_CHANGED = "ReserveFactorChanged"
    RESERVE_BORROWING = "ReserveBorrowing"
    RESERVE_FROZEN = "ReserveFrozen"
    RESERVE_ACTIVE = "ReserveActive"
    PRICE_REPORTED = "PriceReported"


def _validate_address(value: Any) -> str:
    try:
        return entity_key(value)
    except InvalidAddress as exc:
        raise ValueError(exc.message) from None


def _validate_transaction_hash(value: Any) -> str:
    try:
        return transaction_hash_key(value)
    except MalformedEventError as exc:
        raise ValueError(exc.message) from None


type Address = Annotated[str, BeforeValidator(_validate_address)]
type TransactionHash = Annotated[str, BeforeValidator(_validate_transaction_hash)]


class BaseEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: EventKind
    contract_address: Address
    block_number: ValidatedUint256
    block_timestamp: ValidatedUint256
    transaction_hash: TransactionHash
    log_index: ValidatedUint256

    @property
    def key(self) -> str:
        """
        The unique key of the event record, `transaction_hash-log_index`.
        """
        return f"{self.transaction_hash}-{self.log_index}"


class SupplyEvent(BaseEvent):
    kind: Literal[EventKind.SUPPLY] = EventKind.SUPPLY
    reserve: Address
    user: Address
    on_behalf_of: Address
    amount: ValidatedUint256
    referral_code: ValidatedUint16


class WithdrawEvent(BaseEvent):
    kind: Literal[EventKind.WITHDRAW] = EventKind.WITHDRAW
    reserve: Address
    user: Address
    to: Address
    amount: ValidatedUint256


class BorrowEvent(BaseEvent):
    kind: Literal[EventKind.BORROW] = EventKind.BORROW
    reserve: Address
    user: Address
    on_behalf_of: Address
    amount: ValidatedUint256
    interest_rate_mode: ValidatedUint8
    borrow_rate: ValidatedUint256
    referral_code: ValidatedUint16


class RepayEvent(BaseEvent):
    kind: Literal[EventKind.REPAY] = EventKind.REPAY
    reserve: Address
    user: Address
    repayer: Address
    amount: ValidatedUint256
    use_a_tokens: StrictBool


class LiquidationCallEvent(BaseEvent):
    kind: Literal[EventKind.LIQUIDATION_CALL] = EventKind.LIQUIDATION_CALL
    collateral_asset: Address
    debt_asset: Address
    user: Address
    debt_to_cover: ValidatedUint256
    liquidated_collateral_amount: ValidatedUint256
    liquidator: Address
    receive_a_token: StrictBool


class ReserveDataUpdatedEvent(BaseEvent):
    kind: Literal[EventKind.RESERVE_DATA_UPDATED] = EventKind.RESERVE_DATA_UPDATED
    reserve: Address
    liquidity_rate: ValidatedUint256
    stable_borrow_rate: ValidatedUint256
    variable_borrow_rate: ValidatedUint256
    liquidity_index: ValidatedUint256
    variable_borrow_index: ValidatedUint256


class ReserveInitializedEvent(BaseEvent):
    kind: Literal[EventKind.RESERVE_INITIALIZED] = EventKind.RESERVE_INITIALIZED
    asset: Address
    a_token: Address
    stable_debt_token: Address
    variable_debt_token: Address
    interest_rate_strategy: Address


class CollateralConfigurationChangedEvent(BaseEvent):
    kind: Literal[EventKind.COLLATERAL_CONFIGURATION_CHANGED] = (
        EventKind.COLLATERAL_CONFIGURATION_CHANGED
    )
    asset: Address
    ltv: ValidatedUint256
    liquidation_threshold: ValidatedUint256
    liquidation_bonus: ValidatedUint256


class ReserveFactorChangedEvent(BaseEvent):
    kind: Literal[EventKind.RESERVE_FACTOR_CHANGED] = EventKind.RESERVE_FACTOR_CHANGED
    asset: Address
    old_reserve_factor: ValidatedUint256
    new_reserve_factor: ValidatedUint256


class ReserveBorrowingEvent(BaseEvent):
    kind: Literal[EventKind.RESERVE_BORROWING] = EventKind.RESERVE_BORROWING
    asset: Address
    enabled: StrictBool


class ReserveFrozenEvent(BaseEvent):
    kind: Literal[EventKind.RESERVE_FROZEN] = EventKind.RESERVE_FROZEN
    asset: Address
    frozen: StrictBool


class ReserveActiveEvent(BaseEvent):
    kind: Literal[EventKind.RESERVE_ACTIVE] = EventKind.RESERVE_ACTIVE
    asset: Address
    active: StrictBool


class PriceReportedEvent(BaseEvent):
    kind: Literal[EventKind.PRICE_REPORTED] = EventKind.PRICE_REPORTED
    asset: Address
    price: ValidatedUint256


LedgerEvent = Annotated[
    SupplyEvent
    | WithdrawEvent
    | BorrowEvent
    | RepayEvent
    | LiquidationCallEvent
    | ReserveDataUpdatedEvent
    | ReserveInitializedEvent
    | CollateralConfigurationChangedEvent
    | ReserveFactorChangedEvent
    | ReserveBorrowingEvent
    | ReserveFrozenEvent
    | ReserveActiveEvent
    | PriceReportedEvent,
    Field(discriminator="kind"),
]

_event_adapter: TypeAdapter[LedgerEvent] = TypeAdapter(LedgerEvent)


def parse_event(payload: Mapping[str, Any]) -> LedgerEvent:
    """
    Build a typed event from a mapping of field names to values, dispatching on the `kind` key.

    Raises `MalformedEventError` listing every missing or invalid field.
    """

    try:
        return _event_adapter.validate_python(dict(payload))
    except ValidationError as exc:
        raise MalformedEventError(
            reason=f"{payload.get('kind', '<missing kind>')} failed validation",
            errors=[
                (".".join(str(part) for part in error["loc"]), error["msg"])
                for error in exc.errors()
            ],
        ) from None
