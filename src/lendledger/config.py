import os
import tomllib
from pathlib import Path
from typing import Annotated

import tomlkit
from pydantic import (
    BaseModel,
    HttpUrl,
    NonNegativeInt,
    PlainSerializer,
    WebsocketUrl,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from lendledger.events import Address
from lendledger.logging import logger
from lendledger.types.aliases import ChainId

CONFIG_DIR = Path(
    os.environ.get("LENDLEDGER_CONFIG_DIR", Path.home() / ".config" / "lendledger")
).expanduser()
CONFIG_FILE = CONFIG_DIR / "config.toml"
DB_PATH = CONFIG_DIR / "lendledger.db"


class DatabaseSettings(BaseModel):
    # Serialize the path as a string representation of the absolute path
    path: Annotated[
        Path,
        PlainSerializer(lambda path: str(path.absolute()), return_type=str),
    ]


class LedgerSettings(BaseModel):
    """
    Behavior switches for the state-accumulation engine.

    `liquidation_reduces_collateral`: if set, a LiquidationCall also decrements the borrower's
        position in the collateral asset by `liquidatedCollateralAmount`. The reference behavior
        leaves the collateral side untouched, so this is off by default.
    `use_balance_oracle`: if set, supply/withdraw/borrow/repay take the on-chain `balanceOf` of the
        aToken or variable debt token as the current balance, falling back to local rebasing
        arithmetic only when that call fails.
    `start_block`: the first block of the initial sync, usually the Pool deployment block. Later
        syncs resume from the recorded sync position.
    """

    liquidation_reduces_collateral: bool = False
    use_balance_oracle: bool = True
    pool_address: Address | None = None
    pool_configurator_address: Address | None = None
    start_block: NonNegativeInt | None = None


class Settings(BaseSettings):
    model_config = SettingsConfigDict()

    database: DatabaseSettings
    rpc: dict[
        ChainId,
        HttpUrl | WebsocketUrl | Path,
    ]
    ledger: LedgerSettings = LedgerSettings()

    @field_validator("rpc", mode="after")
    def validate_paths(
        cls,  # noqa: N805
        rpc_dict: dict[ChainId, HttpUrl | WebsocketUrl | Path],
    ) -> dict[ChainId, HttpUrl | WebsocketUrl | Path]:
        """
        Validate the endpoints.

        This will convert all file paths to an absolute reference, leaving HTTP and WS URLs as-is.
        """

        return {
            chain_id: endpoint.expanduser().absolute() if isinstance(endpoint, Path) else endpoint
            for chain_id, endpoint in rpc_dict.items()
        }


def load_config_from_file(config_path: Path) -> Settings:
    return Settings.model_validate(
        tomllib.loads(
            config_path.read_text(),
        ),
    )


def save_config_to_file(config: Settings, config_path: Path = CONFIG_FILE) -> None:
    config_path.write_text(
        tomlkit.dumps(
            config.model_dump(mode="json", exclude_none=True),
        ),
    )


if not CONFIG_DIR.exists():
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    logger.info(f"Created a configuration directory at {CONFIG_DIR}.")

if CONFIG_FILE.exists():
    settings = load_config_from_file(CONFIG_FILE)
else:
    settings = Settings(
        database=DatabaseSettings(
            path=DB_PATH,
        ),
        rpc={},
    )

    save_config_to_file(settings)
    logger.info(f"Created a configuration file at {CONFIG_FILE}.")
