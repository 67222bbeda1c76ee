"""
On-chain balance lookups used as the authoritative source for position balances.

A lookup never raises for on-chain failures: a revert, an empty return from a non-contract address,
or a transport error all produce `BalanceResult(value=0, reverted=True)`, which tells the position
ledger to keep its locally accrued estimate.
"""

from dataclasses import dataclass
from typing import Protocol

from eth_abi.exceptions import DecodingError
from requests.exceptions import RequestException
from web3 import Web3
from web3.exceptions import Web3Exception
from web3.types import BlockIdentifier

from lendledger.checksum_cache import get_checksum_address
from lendledger.functions import encode_function_calldata, raw_call
from lendledger.logging import logger


@dataclass(frozen=True, slots=True)
class BalanceResult:
    """Result of a balance lookup. `value` is meaningful only if `reverted` is False."""

    value: int
    reverted: bool


class BalanceOracle(Protocol):
    """Protocol for the token balance collaborator."""

    def try_balance_of(
        self,
        token: str,
        holder: str,
        block_identifier: BlockIdentifier | None = None,
    ) -> BalanceResult:
        """
        Get the token balance for the holder.

        Args:
            token: The token contract address
            holder: The account address
            block_identifier: The block to query, defaults to the node's latest block

        Returns:
            BalanceResult with the balance, or with `reverted=True` if the call failed
        """
        ...


class Web3BalanceOracle:
    """
    Balance oracle performing an `eth_call` of `balanceOf(address)` on the token contract.
    """

    def __init__(self, w3: Web3) -> None:
        self.w3 = w3

    def try_balance_of(
        self,
        token: str,
        holder: str,
        block_identifier: BlockIdentifier | None = None,
    ) -> BalanceResult:
        try:
            (balance,) = raw_call(
                w3=self.w3,
                address=get_checksum_address(token),
                calldata=encode_function_calldata(
                    function_prototype="balanceOf(address)",
                    function_arguments=[get_checksum_address(holder)],
                ),
                return_types=["uint256"],
                block_identifier=block_identifier,
            )
        except (DecodingError, RequestException, TimeoutError, Web3Exception) as exc:
            logger.debug(f"balanceOf({holder}) on {token} failed: {exc}")
            return BalanceResult(value=0, reverted=True)

        return BalanceResult(value=balance, reverted=False)
