"""
Write-once records of processed events.
"""

from typing import Any

from lendledger.database.models import ActionEventTable
from lendledger.events import BaseEvent
from lendledger.exceptions import LedgerValueError
from lendledger.store import EntityStore


def event_exists(store: EntityStore, key: str) -> bool:
    return store.load(ActionEventTable, key) is not None


def record_event(store: EntityStore, event: BaseEvent, **fields: Any) -> ActionEventTable:
    """
    Append the record for a processed event. The delivery metadata is taken from the event, other
    columns are passed as keyword arguments and left NULL if omitted.

    Raises `LedgerValueError` if a record with the same key already exists.
    """

    if event_exists(store, event.key):
        raise LedgerValueError(message=f"Event {event.key} has already been recorded.")

    record = ActionEventTable(
        id=event.key,
        kind=str(event.kind),
        contract_address=event.contract_address,
        block_number=event.block_number,
        block_timestamp=event.block_timestamp,
        transaction_hash=event.transaction_hash,
        log_index=event.log_index,
        **fields,
    )
    store.save(record)
    return record
