from typing import Annotated

from pydantic import Field

from lendledger.constants import MAX_UINT8, MAX_UINT16, MAX_UINT256, MIN_UINT256

type BlockNumber = int
type ChainId = int
type EntityKey = str

type ValidatedUint8 = Annotated[int, Field(strict=True, ge=0, le=MAX_UINT8)]
type ValidatedUint16 = Annotated[int, Field(strict=True, ge=0, le=MAX_UINT16)]
type ValidatedUint256 = Annotated[int, Field(strict=True, ge=MIN_UINT256, le=MAX_UINT256)]
