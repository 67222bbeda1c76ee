"""
Exceptions raised while validating and applying events to the ledger.

Input errors are fatal for the offending event only: no entity is written for it and the caller may
continue with the next event. Store errors abort the current event, which must be retried.
"""

from typing import Any

from lendledger.exceptions.base import LedgerError


class LedgerInputError(LedgerError):
    """
    Base exception for structurally invalid events.
    """


class InvalidAddress(LedgerInputError):
    """
    Raised when a value cannot be interpreted as a 20-byte hex address.
    """

    def __init__(self, address: Any) -> None:
        self.address = address
        super().__init__(message=f"Invalid address: {address!r}")

    def __reduce__(self) -> tuple[type["InvalidAddress"], tuple[Any]]:
        return self.__class__, (self.address,)


class MalformedEventError(LedgerInputError):
    """
    Raised when an event is missing a required field or carries an invalid value.

    The `errors` attribute holds one entry per offending field, in the format `(location, reason)`.
    """

    def __init__(
        self,
        reason: str,
        errors: list[tuple[str, str]] | None = None,
    ) -> None:
        self.reason = reason
        self.errors = errors if errors is not None else []
        details = "; ".join(f"{location}: {msg}" for location, msg in self.errors)
        super().__init__(
            message=f"Malformed event: {reason}" + (f" ({details})" if details else "")
        )

    def __reduce__(
        self,
    ) -> tuple[type["MalformedEventError"], tuple[str, list[tuple[str, str]]]]:
        return self.__class__, (self.reason, self.errors)


class UnknownEventTopic(LedgerInputError):
    """
    Raised when a raw log carries a topic that no decoder is registered for.
    """

    def __init__(self, topic: str) -> None:
        self.topic = topic
        super().__init__(message=f"Unknown event topic: {topic}")

    def __reduce__(self) -> tuple[type["UnknownEventTopic"], tuple[str]]:
        return self.__class__, (self.topic,)
