import logging
import os
import tempfile
from collections.abc import Callable, Generator
from typing import Any

import pytest

# Keep the config file created at import time out of the user's home directory
os.environ.setdefault("LENDLEDGER_CONFIG_DIR", tempfile.mkdtemp(prefix="lendledger-tests-"))

from sqlalchemy.orm import Session, sessionmaker  # noqa: E402

from lendledger.config import LedgerSettings  # noqa: E402
from lendledger.database import Base, get_sqlite_engine  # noqa: E402
from lendledger.engine import LedgerEngine  # noqa: E402
from lendledger.events import EventKind  # noqa: E402
from lendledger.logging import logger  # noqa: E402
from lendledger.oracle import BalanceResult  # noqa: E402
from lendledger.store import SqlEntityStore  # noqa: E402

POOL_ADDRESS = "0x87870bca3f3fd6335c3f4ce8392d69350b4fa4e2"
WETH_ADDRESS = "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2"
USDC_ADDRESS = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"
A_WETH_ADDRESS = "0x4d5f47fa6a74757f35c14fd3a6ef8e3c9bc514e8"
VARIABLE_DEBT_WETH_ADDRESS = "0xea51d7853eefb32b6ee06b1c12e6dcca88be0ffe"
ALICE = "0x" + "a11ce".rjust(40, "0")
BOB = "0x" + "b0b".rjust(40, "0")
LIQUIDATOR = "0x" + "dead".rjust(40, "0")


@pytest.fixture(scope="session", autouse=True)
def _set_lendledger_logging():
    """
    Set the logging level to DEBUG for the test run
    """
    logger.setLevel(logging.DEBUG)


@pytest.fixture
def captured_logs(
    caplog: pytest.LogCaptureFixture,
) -> Generator[pytest.LogCaptureFixture, None, None]:
    """
    Capture records from the package logger, which does not propagate to the root logger.
    """
    logger.addHandler(caplog.handler)
    yield caplog
    logger.removeHandler(caplog.handler)


@pytest.fixture
def session() -> Generator[Session, None, None]:
    """
    A session bound to a fresh in-memory SQLite database.
    """

    engine = get_sqlite_engine(None)
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine)()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def store(session: Session) -> SqlEntityStore:
    return SqlEntityStore(session=session)


class StubBalanceOracle:
    """
    Balance oracle returning preset balances. Lookups for unknown (token, holder) pairs revert.
    """

    def __init__(self, balances: dict[tuple[str, str], int] | None = None) -> None:
        self.balances = balances if balances is not None else {}
        self.calls: list[tuple[str, str, Any]] = []

    def try_balance_of(
        self,
        token: str,
        holder: str,
        block_identifier: Any = None,
    ) -> BalanceResult:
        self.calls.append((token, holder, block_identifier))
        try:
            return BalanceResult(value=self.balances[(token, holder)], reverted=False)
        except KeyError:
            return BalanceResult(value=0, reverted=True)


@pytest.fixture
def oracle() -> StubBalanceOracle:
    return StubBalanceOracle()


@pytest.fixture
def engine(store: SqlEntityStore) -> LedgerEngine:
    return LedgerEngine(store=store, settings=LedgerSettings(use_balance_oracle=False))


def transaction_hash(n: int) -> str:
    return "0x" + n.to_bytes(32, "big").hex()


class EventFactory:
    """
    Build event payloads with unique delivery metadata. Each payload is assigned the next log index
    in a single transaction per block.
    """

    def __init__(self) -> None:
        self.block_number = 100
        self.block_timestamp = 1_700_000_000
        self.log_index = 0

    def next_block(self, blocks: int = 1, seconds: int = 12) -> None:
        self.block_number += blocks
        self.block_timestamp += seconds * blocks

    def _payload(self, kind: EventKind, **fields: Any) -> dict[str, Any]:
        self.log_index += 1
        return {
            "kind": kind,
            "contract_address": POOL_ADDRESS,
            "block_number": self.block_number,
            "block_timestamp": self.block_timestamp,
            "transaction_hash": transaction_hash(self.block_number),
            "log_index": self.log_index,
            **fields,
        }

    def supply(
        self,
        amount: int,
        user: str = ALICE,
        on_behalf_of: str | None = None,
        reserve: str = WETH_ADDRESS,
    ) -> dict[str, Any]:
        return self._payload(
            EventKind.SUPPLY,
            reserve=reserve,
            user=user,
            on_behalf_of=user if on_behalf_of is None else on_behalf_of,
            amount=amount,
            referral_code=0,
        )

    def withdraw(
        self,
        amount: int,
        user: str = ALICE,
        reserve: str = WETH_ADDRESS,
    ) -> dict[str, Any]:
        return self._payload(
            EventKind.WITHDRAW,
            reserve=reserve,
            user=user,
            to=user,
            amount=amount,
        )

    def borrow(
        self,
        amount: int,
        user: str = ALICE,
        on_behalf_of: str | None = None,
        reserve: str = WETH_ADDRESS,
    ) -> dict[str, Any]:
        return self._payload(
            EventKind.BORROW,
            reserve=reserve,
            user=user,
            on_behalf_of=user if on_behalf_of is None else on_behalf_of,
            amount=amount,
            interest_rate_mode=2,
            borrow_rate=35 * 10**24,
            referral_code=0,
        )

    def repay(self, amount: int, user: str = ALICE, reserve: str = WETH_ADDRESS) -> dict[str, Any]:
        return self._payload(
            EventKind.REPAY,
            reserve=reserve,
            user=user,
            repayer=user,
            amount=amount,
            use_a_tokens=False,
        )

    def liquidation_call(
        self,
        debt_to_cover: int,
        liquidated_collateral_amount: int,
        user: str = ALICE,
        collateral_asset: str = WETH_ADDRESS,
        debt_asset: str = USDC_ADDRESS,
    ) -> dict[str, Any]:
        return self._payload(
            EventKind.LIQUIDATION_CALL,
            collateral_asset=collateral_asset,
            debt_asset=debt_asset,
            user=user,
            debt_to_cover=debt_to_cover,
            liquidated_collateral_amount=liquidated_collateral_amount,
            liquidator=LIQUIDATOR,
            receive_a_token=True,
        )

    def reserve_data_updated(
        self,
        liquidity_index: int,
        variable_borrow_index: int,
        reserve: str = WETH_ADDRESS,
        liquidity_rate: int = 0,
        variable_borrow_rate: int = 0,
    ) -> dict[str, Any]:
        return self._payload(
            EventKind.RESERVE_DATA_UPDATED,
            reserve=reserve,
            liquidity_rate=liquidity_rate,
            stable_borrow_rate=0,
            variable_borrow_rate=variable_borrow_rate,
            liquidity_index=liquidity_index,
            variable_borrow_index=variable_borrow_index,
        )

    def reserve_initialized(
        self,
        asset: str = WETH_ADDRESS,
        a_token: str = A_WETH_ADDRESS,
        variable_debt_token: str = VARIABLE_DEBT_WETH_ADDRESS,
    ) -> dict[str, Any]:
        return self._payload(
            EventKind.RESERVE_INITIALIZED,
            asset=asset,
            a_token=a_token,
            stable_debt_token="0x" + "00" * 19 + "01",
            variable_debt_token=variable_debt_token,
            interest_rate_strategy="0x" + "00" * 19 + "02",
        )

    def collateral_configuration_changed(
        self,
        ltv: int,
        liquidation_threshold: int,
        liquidation_bonus: int,
        asset: str = WETH_ADDRESS,
    ) -> dict[str, Any]:
        return self._payload(
            EventKind.COLLATERAL_CONFIGURATION_CHANGED,
            asset=asset,
            ltv=ltv,
            liquidation_threshold=liquidation_threshold,
            liquidation_bonus=liquidation_bonus,
        )

    def reserve_flag(self, kind: EventKind, field: str, value: bool, asset: str = WETH_ADDRESS):
        return self._payload(kind, asset=asset, **{field: value})

    def reserve_factor_changed(self, old: int, new: int, asset: str = WETH_ADDRESS):
        return self._payload(
            EventKind.RESERVE_FACTOR_CHANGED,
            asset=asset,
            old_reserve_factor=old,
            new_reserve_factor=new,
        )

    def price_reported(self, price: int, asset: str = WETH_ADDRESS) -> dict[str, Any]:
        return self._payload(EventKind.PRICE_REPORTED, asset=asset, price=price)


@pytest.fixture
def events() -> EventFactory:
    return EventFactory()


@pytest.fixture
def engine_factory(store: SqlEntityStore) -> Callable[..., LedgerEngine]:
    def _make(oracle: Any = None, **settings: Any) -> LedgerEngine:
        return LedgerEngine(store=store, oracle=oracle, settings=LedgerSettings(**settings))

    return _make
