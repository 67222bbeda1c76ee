from sqlalchemy import Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Address, Base, BigInteger
from .types import (
    EntityKeyPrimary,
    ForeignKeyAssetId,
    ForeignKeyMarketId,
    ForeignKeyUserId,
    NullableForeignKeyAssetId,
    NullableForeignKeyPositionId,
    NullableForeignKeyUserId,
)


class MarketTable(Base):
    __tablename__ = "markets"

    id: Mapped[EntityKeyPrimary]
    name: Mapped[str]
    description: Mapped[str]
    market_size_usd: Mapped[BigInteger]
    asset_count: Mapped[int]
    last_update_block: Mapped[int | None]

    # Relationships
    assets: Mapped[list["AssetTable"]] = relationship(
        "AssetTable",
        back_populates="market",
    )


class AssetTable(Base):
    """
    Cumulative state for a single reserve, keyed by the lowercase underlying token address.

    Rates and indices are ray values (1.0 == 10**27). `utilization_rate` is a ray in [0, 10**27].
    Collateral parameters are basis points, as emitted by the pool configurator.
    """

    __tablename__ = "assets"

    id: Mapped[EntityKeyPrimary]
    market_id: Mapped[ForeignKeyMarketId]

    symbol: Mapped[str]
    name: Mapped[str]
    decimals: Mapped[int]
    price_usd: Mapped[BigInteger]

    total_supplied: Mapped[BigInteger]
    total_borrowed: Mapped[BigInteger]
    available_liquidity: Mapped[BigInteger]
    total_liquidity: Mapped[BigInteger]
    utilization_rate: Mapped[BigInteger]

    liquidity_rate: Mapped[BigInteger]
    variable_borrow_rate: Mapped[BigInteger]
    liquidity_index: Mapped[BigInteger]
    variable_borrow_index: Mapped[BigInteger]

    ltv: Mapped[BigInteger]
    liquidation_threshold: Mapped[BigInteger]
    liquidation_bonus: Mapped[BigInteger]
    reserve_factor: Mapped[BigInteger]

    is_active: Mapped[bool]
    is_frozen: Mapped[bool]
    borrowing_enabled: Mapped[bool]
    usage_as_collateral_enabled: Mapped[bool]

    a_token_address: Mapped[Address]
    variable_debt_token_address: Mapped[Address]

    last_update_timestamp: Mapped[int]

    # Relationships
    market: Mapped["MarketTable"] = relationship(
        "MarketTable",
        back_populates="assets",
    )
    positions: Mapped[list["PositionTable"]] = relationship(
        "PositionTable",
        back_populates="asset",
    )


class UserTable(Base):
    """
    Per-wallet aggregates. The `*_usd` columns accumulate raw token amounts without price
    conversion; `total_collateral_usd` and `health_factor` are placeholders that are never computed.
    """

    __tablename__ = "users"

    id: Mapped[EntityKeyPrimary]

    total_supplied_usd: Mapped[BigInteger]
    total_borrowed_usd: Mapped[BigInteger]
    total_collateral_usd: Mapped[BigInteger]
    health_factor: Mapped[BigInteger]

    supply_count: Mapped[int]
    withdraw_count: Mapped[int]
    borrow_count: Mapped[int]
    repay_count: Mapped[int]
    liquidation_count: Mapped[int]

    # Relationships
    positions: Mapped[list["PositionTable"]] = relationship(
        "PositionTable",
        back_populates="user",
    )


class PositionTable(Base):
    """
    Balance and debt for a (user, asset) pair, keyed `user-asset`.

    `scaled_balance` is the balance recorded at the liquidity index snapshot `last_liquidity_index`,
    so the live balance at a later index is `scaled_balance * index // last_liquidity_index`. Debt
    uses the same scheme against the variable borrow index.
    """

    __tablename__ = "positions"

    id: Mapped[EntityKeyPrimary]
    user_id: Mapped[ForeignKeyUserId]
    asset_id: Mapped[ForeignKeyAssetId]

    deposited_amount: Mapped[BigInteger]
    borrowed_amount: Mapped[BigInteger]

    scaled_balance: Mapped[BigInteger]
    scaled_debt: Mapped[BigInteger]
    last_liquidity_index: Mapped[BigInteger]
    last_variable_borrow_index: Mapped[BigInteger]

    current_balance: Mapped[BigInteger]
    current_debt: Mapped[BigInteger]

    # Relationships
    user: Mapped["UserTable"] = relationship(
        "UserTable",
        foreign_keys="PositionTable.user_id",
        back_populates="positions",
    )
    asset: Mapped["AssetTable"] = relationship(
        "AssetTable",
        foreign_keys="PositionTable.asset_id",
        back_populates="positions",
    )


Index(
    "ix_positions_user_asset",
    PositionTable.user_id,
    PositionTable.asset_id,
    unique=True,
)


class ProtocolTable(Base):
    __tablename__ = "protocol"

    id: Mapped[EntityKeyPrimary]

    total_value_locked_usd: Mapped[BigInteger]
    total_borrowed_usd: Mapped[BigInteger]
    total_users: Mapped[int]

    total_supplies: Mapped[int]
    total_borrows: Mapped[int]
    total_repays: Mapped[int]
    total_withdraws: Mapped[int]
    total_liquidations: Mapped[int]


class ActionEventTable(Base):
    """
    Write-once record of a processed event, keyed `transaction_hash-log_index`.

    `user_id` is the owner of the affected position. For Supply and Borrow the account that sent
    the transaction is kept in `initiator`. Columns that do not apply to the event kind are left
    NULL. Amounts are recorded verbatim, even when the ledger clamped the corresponding balance at
    zero.
    """

    __tablename__ = "action_events"

    id: Mapped[EntityKeyPrimary]
    kind: Mapped[str]

    user_id: Mapped[NullableForeignKeyUserId]
    asset_id: Mapped[NullableForeignKeyAssetId]
    position_id: Mapped[NullableForeignKeyPositionId]

    amount: Mapped[BigInteger | None]

    initiator: Mapped[Address | None]
    on_behalf_of: Mapped[Address | None]
    to: Mapped[Address | None]
    repayer: Mapped[Address | None]
    use_a_tokens: Mapped[bool | None]
    interest_rate_mode: Mapped[int | None]
    borrow_rate: Mapped[BigInteger | None]
    referral_code: Mapped[int | None]

    collateral_asset_id: Mapped[NullableForeignKeyAssetId]
    debt_asset_id: Mapped[NullableForeignKeyAssetId]
    debt_to_cover: Mapped[BigInteger | None]
    liquidated_collateral_amount: Mapped[BigInteger | None]
    liquidator: Mapped[Address | None]
    receive_a_token: Mapped[bool | None]

    contract_address: Mapped[Address]
    block_number: Mapped[int]
    block_timestamp: Mapped[int]
    transaction_hash: Mapped[str]
    log_index: Mapped[int]


Index(
    "ix_action_events_block_log",
    ActionEventTable.block_number,
    ActionEventTable.log_index,
)
