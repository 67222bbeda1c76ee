from typing import Any

import eth_abi.abi
import pytest
from hexbytes import HexBytes

from lendledger.decoding import (
    CONFIGURATOR_EVENT_TOPICS,
    EVENT_LAYOUTS,
    POOL_EVENT_TOPICS,
    decode_pool_log,
)
from lendledger.events import (
    BorrowEvent,
    EventKind,
    LiquidationCallEvent,
    ReserveBorrowingEvent,
    ReserveDataUpdatedEvent,
    ReserveInitializedEvent,
    SupplyEvent,
)
from lendledger.exceptions import MalformedEventError, UnknownEventTopic
from lendledger.libraries.ray_math import RAY
from tests.conftest import (
    A_WETH_ADDRESS,
    ALICE,
    BOB,
    LIQUIDATOR,
    POOL_ADDRESS,
    USDC_ADDRESS,
    VARIABLE_DEBT_WETH_ADDRESS,
    WETH_ADDRESS,
)

TX_HASH = HexBytes("0x" + "12" * 32)


def _topic_for(kind: EventKind) -> HexBytes:
    (topic,) = [topic for topic, layout in EVENT_LAYOUTS.items() if layout.kind is kind]
    return topic


def _encode_topic(abi_type: str, value: Any) -> HexBytes:
    return HexBytes(eth_abi.abi.encode([abi_type], [value]))


def _make_log(
    kind: EventKind,
    indexed: list[tuple[str, Any]],
    data: list[tuple[str, Any]],
    **overrides: Any,
) -> dict[str, Any]:
    log = {
        "address": POOL_ADDRESS,
        "blockNumber": 19_000_000,
        "transactionHash": TX_HASH,
        "logIndex": 42,
        "topics": [
            _topic_for(kind),
            *(_encode_topic(abi_type, value) for abi_type, value in indexed),
        ],
        "data": HexBytes(
            eth_abi.abi.encode(
                [abi_type for abi_type, _ in data],
                [value for _, value in data],
            )
        ),
        "removed": False,
    }
    log.update(overrides)
    return log


@pytest.mark.parametrize(
    ("kind", "topic"),
    [
        (EventKind.SUPPLY, "0x2b627736bca15cd5381dcf80b0bf11fd197d01a037c52b927a881a10fb73ba61"),
        (EventKind.WITHDRAW, "0x3115d1449a7b732c986cba18244e897a450f61e1bb8d589cd2e69e6c8924f9f7"),
        (EventKind.BORROW, "0xb3d084820fb1a9decffb176436bd02558d15fac9b0ddfed8c465bc7359d7dce0"),
        (EventKind.REPAY, "0xa534c8dbe71f871f9f3530e97a74601fea17b426cae02e1c5aee42c96c784051"),
        (
            EventKind.LIQUIDATION_CALL,
            "0xe413a321e8681d831f4dbccbca790d2952b56f977908e45be37335533e005286",
        ),
        (
            EventKind.RESERVE_DATA_UPDATED,
            "0x804c9b842b2748a22bb64b345453a3de7ca54a6ca45ce00d415894979e22897a",
        ),
        (
            EventKind.RESERVE_INITIALIZED,
            "0x3a0ca721fc364424566385a1aa271ed508cc2c0949c2272575fb3013a163a45f",
        ),
    ],
)
def test_event_topics(kind: EventKind, topic: str) -> None:
    assert _topic_for(kind) == HexBytes(topic)


def test_topic_lists() -> None:
    assert len(POOL_EVENT_TOPICS) == 6
    assert len(CONFIGURATOR_EVENT_TOPICS) == 6
    assert set(POOL_EVENT_TOPICS).isdisjoint(CONFIGURATOR_EVENT_TOPICS)


def test_decode_supply() -> None:
    log = _make_log(
        EventKind.SUPPLY,
        indexed=[("address", WETH_ADDRESS), ("address", BOB), ("uint16", 7)],
        data=[("address", ALICE), ("uint256", 10**18)],
    )
    event = decode_pool_log(log, block_timestamp=1_700_000_000)

    assert isinstance(event, SupplyEvent)
    assert event.reserve == WETH_ADDRESS
    assert event.user == ALICE
    assert event.on_behalf_of == BOB
    assert event.amount == 10**18
    assert event.referral_code == 7
    assert event.contract_address == POOL_ADDRESS
    assert event.block_number == 19_000_000
    assert event.block_timestamp == 1_700_000_000
    assert event.key == TX_HASH.to_0x_hex() + "-42"


def test_decode_borrow() -> None:
    log = _make_log(
        EventKind.BORROW,
        indexed=[("address", USDC_ADDRESS), ("address", ALICE), ("uint16", 0)],
        data=[
            ("address", BOB),
            ("uint256", 500),
            ("uint8", 2),
            ("uint256", 4 * 10**25),
        ],
    )
    event = decode_pool_log(log, block_timestamp=1)

    assert isinstance(event, BorrowEvent)
    assert event.user == BOB
    assert event.on_behalf_of == ALICE
    assert event.interest_rate_mode == 2
    assert event.borrow_rate == 4 * 10**25


def test_decode_liquidation_call() -> None:
    log = _make_log(
        EventKind.LIQUIDATION_CALL,
        indexed=[("address", WETH_ADDRESS), ("address", USDC_ADDRESS), ("address", ALICE)],
        data=[
            ("uint256", 150),
            ("uint256", 80),
            ("address", LIQUIDATOR),
            ("bool", True),
        ],
    )
    event = decode_pool_log(log, block_timestamp=1)

    assert isinstance(event, LiquidationCallEvent)
    assert event.collateral_asset == WETH_ADDRESS
    assert event.debt_asset == USDC_ADDRESS
    assert event.debt_to_cover == 150
    assert event.liquidated_collateral_amount == 80
    assert event.liquidator == LIQUIDATOR
    assert event.receive_a_token is True


def test_decode_reserve_data_updated() -> None:
    log = _make_log(
        EventKind.RESERVE_DATA_UPDATED,
        indexed=[("address", WETH_ADDRESS)],
        data=[
            ("uint256", 1),
            ("uint256", 2),
            ("uint256", 3),
            ("uint256", RAY + 4),
            ("uint256", RAY + 5),
        ],
    )
    event = decode_pool_log(log, block_timestamp=1)

    assert isinstance(event, ReserveDataUpdatedEvent)
    assert event.liquidity_rate == 1
    assert event.variable_borrow_rate == 3
    assert event.liquidity_index == RAY + 4
    assert event.variable_borrow_index == RAY + 5


def test_decode_configurator_events() -> None:
    initialized = decode_pool_log(
        _make_log(
            EventKind.RESERVE_INITIALIZED,
            indexed=[("address", WETH_ADDRESS), ("address", A_WETH_ADDRESS)],
            data=[
                ("address", "0x" + "00" * 20),
                ("address", VARIABLE_DEBT_WETH_ADDRESS),
                ("address", "0x" + "11" * 20),
            ],
        ),
        block_timestamp=1,
    )
    assert isinstance(initialized, ReserveInitializedEvent)
    assert initialized.a_token == A_WETH_ADDRESS
    assert initialized.variable_debt_token == VARIABLE_DEBT_WETH_ADDRESS

    borrowing = decode_pool_log(
        _make_log(
            EventKind.RESERVE_BORROWING,
            indexed=[("address", WETH_ADDRESS)],
            data=[("bool", False)],
        ),
        block_timestamp=1,
    )
    assert isinstance(borrowing, ReserveBorrowingEvent)
    assert borrowing.enabled is False


def test_unknown_topic() -> None:
    log = _make_log(
        EventKind.SUPPLY,
        indexed=[],
        data=[],
        topics=[HexBytes("0x" + "ff" * 32)],
    )
    with pytest.raises(UnknownEventTopic, match="0x" + "ff" * 32):
        decode_pool_log(log, block_timestamp=1)


def test_missing_topics() -> None:
    log = _make_log(EventKind.SUPPLY, indexed=[], data=[], topics=[])
    with pytest.raises(MalformedEventError, match="no event topic"):
        decode_pool_log(log, block_timestamp=1)


def test_wrong_number_of_indexed_topics() -> None:
    log = _make_log(
        EventKind.WITHDRAW,
        indexed=[("address", WETH_ADDRESS)],
        data=[("uint256", 1)],
    )
    with pytest.raises(MalformedEventError, match="expected 3"):
        decode_pool_log(log, block_timestamp=1)


def test_truncated_data() -> None:
    log = _make_log(
        EventKind.WITHDRAW,
        indexed=[("address", WETH_ADDRESS), ("address", ALICE), ("address", BOB)],
        data=[],
    )
    with pytest.raises(MalformedEventError, match="could not be decoded"):
        decode_pool_log(log, block_timestamp=1)


def test_missing_delivery_metadata() -> None:
    log = _make_log(
        EventKind.WITHDRAW,
        indexed=[("address", WETH_ADDRESS), ("address", ALICE), ("address", BOB)],
        data=[("uint256", 1)],
    )
    del log["logIndex"]
    with pytest.raises(MalformedEventError, match="delivery metadata"):
        decode_pool_log(log, block_timestamp=1)
