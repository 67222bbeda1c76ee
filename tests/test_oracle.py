from unittest.mock import MagicMock

import eth_abi.abi
from eth_utils.crypto import keccak
from requests.exceptions import ConnectionError as RequestsConnectionError
from web3.exceptions import ContractLogicError

from lendledger.oracle import BalanceResult, Web3BalanceOracle
from tests.conftest import A_WETH_ADDRESS, ALICE


def test_balance_of_success():
    w3 = MagicMock()
    w3.eth.call.return_value = eth_abi.abi.encode(["uint256"], [1234])

    result = Web3BalanceOracle(w3).try_balance_of(A_WETH_ADDRESS, ALICE, block_identifier=100)

    assert result == BalanceResult(value=1234, reverted=False)
    kwargs = w3.eth.call.call_args.kwargs
    transaction = kwargs["transaction"]
    assert transaction["to"].lower() == A_WETH_ADDRESS
    assert transaction["data"][:4] == keccak(text="balanceOf(address)")[:4]
    assert transaction["data"][4:] == eth_abi.abi.encode(["address"], [ALICE])
    assert kwargs["block_identifier"] == 100


def test_balance_of_revert():
    w3 = MagicMock()
    w3.eth.call.side_effect = ContractLogicError("execution reverted")

    result = Web3BalanceOracle(w3).try_balance_of(A_WETH_ADDRESS, ALICE)
    assert result.reverted


def test_balance_of_empty_return():
    # A call to an address without code returns no data
    w3 = MagicMock()
    w3.eth.call.return_value = b""

    result = Web3BalanceOracle(w3).try_balance_of(A_WETH_ADDRESS, ALICE)
    assert result == BalanceResult(value=0, reverted=True)


def test_balance_of_transport_error():
    w3 = MagicMock()
    w3.eth.call.side_effect = RequestsConnectionError("connection refused")

    assert Web3BalanceOracle(w3).try_balance_of(A_WETH_ADDRESS, ALICE).reverted
