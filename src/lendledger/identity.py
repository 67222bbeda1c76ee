"""
Stable identifiers for ledger entities and event records.

Entity keys are the lowercase hex form of the relevant address, so repeated delivery of an event
always resolves to the same rows. Event record keys combine the transaction hash with the log index,
which is unique under the delivery order guarantee.
"""

from typing import Any

from eth_utils.address import is_hex_address
from hexbytes import HexBytes

from lendledger.exceptions.ledger import InvalidAddress, MalformedEventError

TRANSACTION_HASH_LENGTH = 32


def entity_key(address: Any) -> str:
    """
    Get the canonical key for an address given as a hex string or 20 raw bytes.
    """

    if isinstance(address, (bytes, bytearray)):
        if len(address) != 20:  # noqa: PLR2004
            raise InvalidAddress(address)
        return "0x" + bytes(address).hex()

    if not isinstance(address, str) or not is_hex_address(address):
        raise InvalidAddress(address)

    return address.lower()


def position_key(user: Any, asset: Any) -> str:
    return f"{entity_key(user)}-{entity_key(asset)}"


def transaction_hash_key(transaction_hash: Any) -> str:
    """
    Get the canonical 0x-prefixed lowercase form of a 32-byte transaction hash.
    """

    try:
        tx_hash = HexBytes(transaction_hash)
    except (TypeError, ValueError):
        raise MalformedEventError(
            reason="invalid transaction hash",
            errors=[("transaction_hash", repr(transaction_hash))],
        ) from None

    if len(tx_hash) != TRANSACTION_HASH_LENGTH:
        raise MalformedEventError(
            reason="invalid transaction hash",
            errors=[("transaction_hash", f"expected 32 bytes, got {len(tx_hash)}")],
        )

    return tx_hash.to_0x_hex()


def event_key(transaction_hash: Any, log_index: int) -> str:
    if isinstance(log_index, bool) or not isinstance(log_index, int) or log_index < 0:
        raise MalformedEventError(
            reason="invalid log index",
            errors=[("log_index", repr(log_index))],
        )
    return f"{transaction_hash_key(transaction_hash)}-{log_index}"
