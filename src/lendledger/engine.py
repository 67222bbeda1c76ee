"""
Sequential, idempotent application of events to the ledger.

Each event is one unit of work: validate, skip if already recorded, dispatch to the handler for its
kind, then commit. Any failure after validation rolls back every write made for the event, so a
retried event starts from the same state as the first attempt.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from lendledger.config import LedgerSettings
from lendledger.events import BaseEvent, EventKind, LedgerEvent, parse_event
from lendledger.exceptions import EntityStoreError, LedgerInputError
from lendledger.handlers import HandlerContext, dispatch_event
from lendledger.ledger.protocol import get_or_create_protocol
from lendledger.ledger.recorder import event_exists
from lendledger.logging import logger
from lendledger.oracle import BalanceOracle
from lendledger.store import EntityStore


class ProcessingStatus(StrEnum):
    APPLIED = "applied"
    DUPLICATE = "duplicate"
    SKIPPED = "skipped"


@dataclass(frozen=True, slots=True)
class ProcessingResult:
    """Outcome of processing a single event."""

    status: ProcessingStatus
    key: str | None = None
    kind: EventKind | None = None
    error: LedgerInputError | None = None


class LedgerEngine:
    """
    Applies events to an entity store in delivery order.

    The balance oracle is only consulted if `settings.use_balance_oracle` is set. Without an oracle,
    position balances are computed purely from the rebasing arithmetic.
    """

    def __init__(
        self,
        store: EntityStore,
        oracle: BalanceOracle | None = None,
        settings: LedgerSettings | None = None,
    ) -> None:
        self.store = store
        self.settings = settings if settings is not None else LedgerSettings()
        self.oracle = oracle if self.settings.use_balance_oracle else None

    def process(self, event: LedgerEvent | Mapping[str, Any]) -> ProcessingResult:
        """
        Apply a single event and commit its writes.

        Raises `LedgerInputError` before touching the store if the event is malformed, and
        `EntityStoreError` after rolling back if the store fails.
        """

        if not isinstance(event, BaseEvent):
            event = parse_event(event)

        try:
            if event_exists(self.store, event.key):
                logger.debug(f"Skipping duplicate {event.kind} event {event.key}")
                return ProcessingResult(
                    status=ProcessingStatus.DUPLICATE,
                    key=event.key,
                    kind=event.kind,
                )

            dispatch_event(
                HandlerContext(
                    event=event,
                    store=self.store,
                    protocol=get_or_create_protocol(self.store).entity,
                    settings=self.settings,
                    oracle=self.oracle,
                )
            )
            self.store.commit()
        except SQLAlchemyError as exc:
            self.store.rollback()
            raise EntityStoreError(error=f"processing {event.key} failed: {exc}") from exc
        except Exception:
            self.store.rollback()
            raise

        return ProcessingResult(
            status=ProcessingStatus.APPLIED,
            key=event.key,
            kind=event.kind,
        )

    def process_many(
        self,
        events: Iterable[LedgerEvent | Mapping[str, Any]],
    ) -> list[ProcessingResult]:
        """
        Apply events in order. Malformed events are logged and skipped, store failures propagate
        and stop processing at the failed event.
        """

        results: list[ProcessingResult] = []
        for event in events:
            try:
                results.append(self.process(event))
            except LedgerInputError as exc:
                logger.error(f"Skipping event: {exc}")
                results.append(ProcessingResult(status=ProcessingStatus.SKIPPED, error=exc))
        return results
