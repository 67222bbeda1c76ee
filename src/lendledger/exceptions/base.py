class LedgerError(Exception):
    """
    Base exception used as the parent class for all exceptions raised by this package.

    Calling code should catch `LedgerError` and derived classes separately before general
    exceptions, e.g.:

    ```
    try:
        engine.process(event)
    except LedgerInputError:
        ... # skip the malformed event and continue with the next one
    except EntityStoreError:
        ... # retry the same event
    except Exception:
        ... # handle exceptions raised by 3rd party dependencies or Python built-ins
    ```

    An optional string-formatted message may be attached to the exception and retrieved by accessing
    the `.message` attribute.
    """

    message: str | None = None

    def __init__(self, message: str | None = None) -> None:
        if message:
            self.message = message
            super().__init__(message)


class LedgerValueError(LedgerError): ...


class LedgerTypeError(LedgerError): ...


class ExternalServiceError(LedgerError):
    """
    Raised on errors resulting to some call to an external service.
    """

    def __init__(self, error: str) -> None:
        self.error = error
        super().__init__(message=f"External service error: {error}")

    def __reduce__(self) -> tuple[type["ExternalServiceError"], tuple[str]]:
        return self.__class__, (self.error,)
