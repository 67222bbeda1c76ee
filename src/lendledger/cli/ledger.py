import operator
from typing import cast

import click
import tqdm
from eth_typing import BlockNumber
from web3 import Web3
from web3.types import BlockParams, LogReceipt

from lendledger.checksum_cache import get_checksum_address
from lendledger.cli import cli
from lendledger.cli.utils import get_web3_from_config
from lendledger.config import settings
from lendledger.database import get_scoped_sqlite_session
from lendledger.decoding import CONFIGURATOR_EVENT_TOPICS, POOL_EVENT_TOPICS, decode_pool_log
from lendledger.engine import LedgerEngine, ProcessingStatus
from lendledger.exceptions import LedgerInputError
from lendledger.functions import fetch_logs_retrying, get_number_for_block_identifier
from lendledger.ledger.protocol import get_or_create_market
from lendledger.logging import logger
from lendledger.oracle import Web3BalanceOracle
from lendledger.store import SqlEntityStore


@cli.group
def ledger() -> None:
    """
    Ledger commands
    """


def _resolve_last_block(to_block: str, w3: Web3) -> int:
    """
    Translate a block identifier with an optional offset, e.g. 'latest:-64', into a block number.
    """

    if to_block.isdigit():
        return int(to_block)

    if ":" in to_block:
        parts = to_block.split(":", 1)
        block_tag, offset = cast("tuple[BlockParams, str]", parts)
        block_offset = int(offset.strip())
    else:
        block_tag = cast("BlockParams", to_block)
        block_offset = 0

    if block_tag not in {"latest", "earliest", "pending", "safe", "finalized"}:
        msg = f"Invalid block tag: {block_tag}"
        raise ValueError(msg)

    return get_number_for_block_identifier(identifier=block_tag, w3=w3) + block_offset


def sync_block_range(
    *,
    w3: Web3,
    engine: LedgerEngine,
    start_block: int,
    end_block: int,
    pool_address: str,
    pool_configurator_address: str | None,
    no_progress: bool,
) -> int:
    """
    Fetch, decode and apply all ledger events emitted in the block range. Malformed or unknown logs
    are logged and skipped.

    Returns the number of events applied.
    """

    all_events: list[LogReceipt] = []
    all_events.extend(
        fetch_logs_retrying(
            w3=w3,
            start_block=start_block,
            end_block=end_block,
            address=[get_checksum_address(pool_address)],
            topic_signature=[POOL_EVENT_TOPICS],
        )
    )
    if pool_configurator_address is not None:
        all_events.extend(
            fetch_logs_retrying(
                w3=w3,
                start_block=start_block,
                end_block=end_block,
                address=[get_checksum_address(pool_configurator_address)],
                topic_signature=[CONFIGURATOR_EVENT_TOPICS],
            )
        )

    block_timestamps: dict[int, int] = {}
    applied = 0

    for log in tqdm.tqdm(
        sorted(all_events, key=operator.itemgetter("blockNumber", "logIndex")),
        desc="Processing events",
        leave=False,
        disable=no_progress,
    ):
        if log.get("removed"):
            continue

        block_number = log["blockNumber"]
        if block_number not in block_timestamps:
            block_timestamps[block_number] = w3.eth.get_block(BlockNumber(block_number))[
                "timestamp"
            ]

        try:
            result = engine.process(
                decode_pool_log(log=log, block_timestamp=block_timestamps[block_number])
            )
        except LedgerInputError as exc:
            logger.error(
                f"Skipping log at block {block_number}, index {log.get('logIndex')}: {exc}"
            )
            continue

        if result.status is ProcessingStatus.APPLIED:
            applied += 1

    return applied


@ledger.command(
    "sync",
    help="Apply lending pool events to the ledger database.",
)
@click.option(
    "--chain-id",
    "chain_id",
    default=1,
    show_default=True,
    help="The chain ID of the lending pool.",
)
@click.option(
    "--chunk",
    "chunk_size",
    default=10_000,
    show_default=True,
    help="The maximum number of blocks to process before recording the sync position.",
)
@click.option(
    "--from-block",
    "from_block",
    type=click.IntRange(min=0),
    default=None,
    help=(
        "The first block of the initial sync, overriding `start_block` in the [ledger] section "
        "of the config. Ignored once the ledger has a recorded sync position."
    ),
)
@click.option(
    "--to-block",
    "to_block",
    default="latest:-64",
    show_default=True,
    help=(
        "The last block in the update range. Must be a block number or a valid block identifier: "
        "'earliest', 'finalized', 'safe', 'latest', 'pending'. An identifier can be given with an "
        "optional offset, e.g. 'latest:-64' stops 64 blocks before the chain tip."
    ),
)
@click.option(
    "--no-progress",
    "no_progress",
    is_flag=True,
    default=False,
    show_default=True,
    help="Disable progress bars.",
)
def ledger_sync(
    *,
    chain_id: int,
    chunk_size: int,
    from_block: int | None,
    to_block: str,
    no_progress: bool,
) -> None:
    """
    Process lending pool events from the last synced block to the specified block.
    """

    ledger_settings = settings.ledger
    if ledger_settings.pool_address is None:
        msg = "No pool address is set. Add `pool_address` to the [ledger] section of the config."
        raise click.UsageError(msg)

    if not settings.database.path.exists():
        msg = (
            f"No database found at {settings.database.path}. "
            "Run `lendledger database init` to create it."
        )
        raise click.ClickException(msg)

    w3 = get_web3_from_config(chain_id=chain_id)
    last_block = _resolve_last_block(to_block, w3)

    current_block_number = get_number_for_block_identifier(identifier="latest", w3=w3)
    if last_block > current_block_number:
        msg = f"{to_block} is ahead of the current chain tip."
        raise click.BadParameter(msg, param_hint="--to-block")

    db_session = get_scoped_sqlite_session(database_path=settings.database.path)
    store = SqlEntityStore(session=db_session())
    engine = LedgerEngine(
        store=store,
        oracle=Web3BalanceOracle(w3) if ledger_settings.use_balance_oracle else None,
        settings=ledger_settings,
    )

    market = get_or_create_market(store).entity
    store.commit()

    if market.last_update_block is not None:
        initial_start_block = market.last_update_block + 1
    elif from_block is not None:
        initial_start_block = from_block
    elif ledger_settings.start_block is not None:
        initial_start_block = ledger_settings.start_block
    else:
        db_session.remove()
        msg = (
            "No sync position is recorded. Pass `--from-block` or add `start_block` to the "
            "[ledger] section of the config."
        )
        raise click.UsageError(msg)

    working_start_block = initial_start_block
    if initial_start_block > last_block:
        click.echo(f"Chain {chain_id} has not advanced since the last update.")
        db_session.remove()
        return

    block_pbar = tqdm.tqdm(
        total=last_block - initial_start_block + 1,
        bar_format="{desc} {percentage:3.1f}% |{bar}|",
        leave=False,
        disable=no_progress,
    )

    total_applied = 0
    while True:
        working_end_block = min(last_block, working_start_block + chunk_size - 1)

        block_pbar.set_description(
            f"Processing block range {working_start_block:,} -> {working_end_block:,}"
        )
        block_pbar.refresh()

        total_applied += sync_block_range(
            w3=w3,
            engine=engine,
            start_block=working_start_block,
            end_block=working_end_block,
            pool_address=ledger_settings.pool_address,
            pool_configurator_address=ledger_settings.pool_configurator_address,
            no_progress=no_progress,
        )

        # All events in the range are committed, so stamp the sync position
        market = get_or_create_market(store).entity
        market.last_update_block = working_end_block
        store.save(market)
        store.commit()

        block_pbar.n = working_end_block - initial_start_block + 1
        if working_end_block == last_block:
            break
        working_start_block = working_end_block + 1

    block_pbar.close()
    db_session.remove()
    click.echo(
        f"Applied {total_applied} events from blocks {initial_start_block:,} -> {last_block:,}."
    )
