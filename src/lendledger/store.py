"""
Keyed load/save persistence for ledger entities.

The store wraps a SQLAlchemy session. Loads and saves within one event share the session, so the
engine can make all writes for an event durable together with `commit`, or discard them with
`rollback`. SQLAlchemy errors are re-raised as `EntityStoreError` so callers never mistake a store
failure for a processed event.
"""

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lendledger.database.models import Base
from lendledger.exceptions.database import EntityStoreError


class EntityStore(Protocol):
    """
    Interface for the storage collaborator.
    """

    def load[T: Base](self, entity_type: type[T], key: str) -> T | None: ...
    def save(self, entity: Base) -> None: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        raise EntityStoreError(error=f"{operation} failed: {exc}") from exc


class SqlEntityStore:
    """
    `EntityStore` backed by a SQLAlchemy session.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    @classmethod
    def from_session_factory(cls, session_factory: Callable[[], Session]) -> "SqlEntityStore":
        return cls(session=session_factory())

    def load[T: Base](self, entity_type: type[T], key: str) -> T | None:
        with _store_errors(f"load {entity_type.__tablename__}[{key}]"):
            return self.session.get(entity_type, key)

    def save(self, entity: Base) -> None:
        with _store_errors(f"save {type(entity).__tablename__}"):
            self.session.add(entity)
            self.session.flush()

    def commit(self) -> None:
        with _store_errors("commit"):
            self.session.commit()

    def rollback(self) -> None:
        with _store_errors("rollback"):
            self.session.rollback()
