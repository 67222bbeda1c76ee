from lendledger.exceptions.base import (
    ExternalServiceError,
    LedgerError,
    LedgerTypeError,
    LedgerValueError,
)
from lendledger.exceptions.database import BackupExists, EntityStoreError
from lendledger.exceptions.ledger import (
    InvalidAddress,
    LedgerInputError,
    MalformedEventError,
    UnknownEventTopic,
)

from . import database, ledger

__all__ = (
    "BackupExists",
    "EntityStoreError",
    "ExternalServiceError",
    "InvalidAddress",
    "LedgerError",
    "LedgerInputError",
    "LedgerTypeError",
    "LedgerValueError",
    "MalformedEventError",
    "UnknownEventTopic",
    "database",
    "ledger",
)
