__all__ = (
    "DEFAULT_DECIMALS",
    "DEFAULT_MARKET_ID",
    "DEFAULT_MARKET_NAME",
    "MAX_UINT8",
    "MAX_UINT16",
    "MAX_UINT256",
    "MIN_UINT256",
    "PROTOCOL_ID",
    "ZERO_ADDRESS",
)

import typing


def _min_uint(_: int) -> int:
    return 0


def _max_uint(bits: int) -> int:
    return typing.cast("int", 2**bits - 1)


MIN_UINT8 = _min_uint(8)
MAX_UINT8 = _max_uint(8)

MIN_UINT16 = _min_uint(16)
MAX_UINT16 = _max_uint(16)

MIN_UINT256 = _min_uint(256)
MAX_UINT256 = _max_uint(256)

# Entity keys are lowercase hex, so the zero address is stored in the same form
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Key of the global protocol aggregate
PROTOCOL_ID = "1"

DEFAULT_MARKET_ID = "pooled"
DEFAULT_MARKET_NAME = "Pooled"

# Reserve decimals are unknown until token metadata is provided
DEFAULT_DECIMALS = 18
