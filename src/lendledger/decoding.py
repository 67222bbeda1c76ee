"""
Decoding of raw Pool and PoolConfigurator logs into typed events.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import eth_abi.abi
from eth_abi.exceptions import DecodingError
from eth_utils.crypto import keccak
from hexbytes import HexBytes

from lendledger.events import EventKind, LedgerEvent, parse_event
from lendledger.exceptions import MalformedEventError, UnknownEventTopic


@dataclass(frozen=True, slots=True)
class EventLayout:
    """
    ABI layout of a log. Each entry of `indexed` and `data` is a `(field name, ABI type)` pair, in
    the order the values appear in the log topics and data.
    """

    kind: EventKind
    signature: str
    indexed: tuple[tuple[str, str], ...]
    data: tuple[tuple[str, str], ...]

    @property
    def topic(self) -> HexBytes:
        return HexBytes(keccak(text=self.signature))


POOL_EVENT_LAYOUTS: tuple[EventLayout, ...] = (
    EventLayout(
        kind=EventKind.SUPPLY,
        signature="Supply(address,address,address,uint256,uint16)",
        indexed=(
            ("reserve", "address"),
            ("on_behalf_of", "address"),
            ("referral_code", "uint16"),
        ),
        data=(
            ("user", "address"),
            ("amount", "uint256"),
        ),
    ),
    EventLayout(
        kind=EventKind.WITHDRAW,
        signature="Withdraw(address,address,address,uint256)",
        indexed=(
            ("reserve", "address"),
            ("user", "address"),
            ("to", "address"),
        ),
        data=(("amount", "uint256"),),
    ),
    EventLayout(
        kind=EventKind.BORROW,
        signature="Borrow(address,address,address,uint256,uint8,uint256,uint16)",
        indexed=(
            ("reserve", "address"),
            ("on_behalf_of", "address"),
            ("referral_code", "uint16"),
        ),
        data=(
            ("user", "address"),
            ("amount", "uint256"),
            ("interest_rate_mode", "uint8"),
            ("borrow_rate", "uint256"),
        ),
    ),
    EventLayout(
        kind=EventKind.REPAY,
        signature="Repay(address,address,address,uint256,bool)",
        indexed=(
            ("reserve", "address"),
            ("user", "address"),
            ("repayer", "address"),
        ),
        data=(
            ("amount", "uint256"),
            ("use_a_tokens", "bool"),
        ),
    ),
    EventLayout(
        kind=EventKind.LIQUIDATION_CALL,
        signature="LiquidationCall(address,address,address,uint256,uint256,address,bool)",
        indexed=(
            ("collateral_asset", "address"),
            ("debt_asset", "address"),
            ("user", "address"),
        ),
        data=(
            ("debt_to_cover", "uint256"),
            ("liquidated_collateral_amount", "uint256"),
            ("liquidator", "address"),
            ("receive_a_token", "bool"),
        ),
    ),
    EventLayout(
        kind=EventKind.RESERVE_DATA_UPDATED,
        signature="ReserveDataUpdated(address,uint256,uint256,uint256,uint256,uint256)",
        indexed=(("reserve", "address"),),
        data=(
            ("liquidity_rate", "uint256"),
            ("stable_borrow_rate", "uint256"),
            ("variable_borrow_rate", "uint256"),
            ("liquidity_index", "uint256"),
            ("variable_borrow_index", "uint256"),
        ),
    ),
)

CONFIGURATOR_EVENT_LAYOUTS: tuple[EventLayout, ...] = (
    EventLayout(
        kind=EventKind.RESERVE_INITIALIZED,
        signature="ReserveInitialized(address,address,address,address,address)",
        indexed=(
            ("asset", "address"),
            ("a_token", "address"),
        ),
        data=(
            ("stable_debt_token", "address"),
            ("variable_debt_token", "address"),
            ("interest_rate_strategy", "address"),
        ),
    ),
    EventLayout(
        kind=EventKind.COLLATERAL_CONFIGURATION_CHANGED,
        signature="CollateralConfigurationChanged(address,uint256,uint256,uint256)",
        indexed=(("asset", "address"),),
        data=(
            ("ltv", "uint256"),
            ("liquidation_threshold", "uint256"),
            ("liquidation_bonus", "uint256"),
        ),
    ),
    EventLayout(
        kind=EventKind.RESERVE_FACTOR_CHANGED,
        signature="ReserveFactorChanged(address,uint256,uint256)",
        indexed=(("asset", "address"),),
        data=(
            ("old_reserve_factor", "uint256"),
            ("new_reserve_factor", "uint256"),
        ),
    ),
    EventLayout(
        kind=EventKind.RESERVE_BORROWING,
        signature="ReserveBorrowing(address,bool)",
        indexed=(("asset", "address"),),
        data=(("enabled", "bool"),),
    ),
    EventLayout(
        kind=EventKind.RESERVE_FROZEN,
        signature="ReserveFrozen(address,bool)",
        indexed=(("asset", "address"),),
        data=(("frozen", "bool"),),
    ),
    EventLayout(
        kind=EventKind.RESERVE_ACTIVE,
        signature="ReserveActive(address,bool)",
        indexed=(("asset", "address"),),
        data=(("active", "bool"),),
    ),
)

EVENT_LAYOUTS: dict[HexBytes, EventLayout] = {
    layout.topic: layout for layout in (*POOL_EVENT_LAYOUTS, *CONFIGURATOR_EVENT_LAYOUTS)
}
POOL_EVENT_TOPICS: list[HexBytes] = [layout.topic for layout in POOL_EVENT_LAYOUTS]
CONFIGURATOR_EVENT_TOPICS: list[HexBytes] = [layout.topic for layout in CONFIGURATOR_EVENT_LAYOUTS]


def decode_pool_log(log: Mapping[str, Any], block_timestamp: int) -> LedgerEvent:
    """
    Decode a log receipt from the Pool or PoolConfigurator into a typed event.

    Logs do not carry the block timestamp, so the caller must provide it.

    Raises `UnknownEventTopic` if the first topic does not match a known event, and
    `MalformedEventError` if the topics or data do not match the event layout.
    """

    try:
        topics = [HexBytes(topic) for topic in log["topics"]]
        event_topic = topics[0]
    except (KeyError, IndexError, TypeError, ValueError):
        raise MalformedEventError(
            reason="log has no event topic",
            errors=[("topics", repr(log.get("topics")))],
        ) from None

    if (layout := EVENT_LAYOUTS.get(event_topic)) is None:
        raise UnknownEventTopic(topic=event_topic.to_0x_hex())

    if len(topics) != len(layout.indexed) + 1:
        raise MalformedEventError(
            reason=f"{layout.kind} log has {len(topics) - 1} indexed topics, "
            f"expected {len(layout.indexed)}",
        )

    try:
        indexed_values = [
            eth_abi.abi.decode(types=[abi_type], data=topic)[0]
            for (_, abi_type), topic in zip(layout.indexed, topics[1:], strict=True)
        ]
        data_values = eth_abi.abi.decode(
            types=[abi_type for _, abi_type in layout.data],
            data=HexBytes(log["data"]),
        )
    except (DecodingError, KeyError, TypeError, ValueError) as exc:
        raise MalformedEventError(
            reason=f"{layout.kind} log could not be decoded",
            errors=[("data", str(exc))],
        ) from None

    try:
        delivery = {
            "contract_address": log["address"],
            "block_number": log["blockNumber"],
            "transaction_hash": log["transactionHash"],
            "log_index": log["logIndex"],
        }
    except KeyError as exc:
        raise MalformedEventError(
            reason=f"{layout.kind} log is missing delivery metadata",
            errors=[(str(exc.args[0]), "Field required")],
        ) from None

    return parse_event(
        {
            "kind": layout.kind,
            "block_timestamp": block_timestamp,
            **delivery,
            **dict(
                zip(
                    [name for name, _ in layout.indexed],
                    indexed_values,
                    strict=True,
                )
            ),
            **dict(
                zip(
                    [name for name, _ in layout.data],
                    data_values,
                    strict=True,
                )
            ),
        }
    )
