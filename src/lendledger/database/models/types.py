from typing import Annotated

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import mapped_column

EntityKeyPrimary = Annotated[
    str,
    mapped_column(String(96), primary_key=True),
]
ForeignKeyMarketId = Annotated[
    str,
    mapped_column(ForeignKey("markets.id"), index=True),
]
ForeignKeyAssetId = Annotated[
    str,
    mapped_column(ForeignKey("assets.id"), index=True),
]
ForeignKeyUserId = Annotated[
    str,
    mapped_column(ForeignKey("users.id"), index=True),
]
NullableForeignKeyAssetId = Annotated[
    str | None,
    mapped_column(ForeignKey("assets.id"), index=True),
]
NullableForeignKeyUserId = Annotated[
    str | None,
    mapped_column(ForeignKey("users.id"), index=True),
]
NullableForeignKeyPositionId = Annotated[
    str | None,
    mapped_column(ForeignKey("positions.id"), index=True),
]
