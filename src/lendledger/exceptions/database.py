import pathlib

from lendledger.exceptions.base import LedgerError


class BackupExists(LedgerError):
    """
    Raised by `lendledger database backup` if a file exists at the target path.
    """

    def __init__(self, path: pathlib.Path) -> None:
        self.path = path
        super().__init__(message=f"A backup at {path} already exists.")

    def __reduce__(self) -> tuple[type["BackupExists"], tuple[pathlib.Path]]:
        return self.__class__, (self.path,)


class EntityStoreError(LedgerError):
    """
    Raised when the entity store fails to load or save. The event being processed was rolled back
    and must be retried.
    """

    def __init__(self, error: str) -> None:
        self.error = error
        super().__init__(message=f"Entity store failure: {error}")

    def __reduce__(self) -> tuple[type["EntityStoreError"], tuple[str]]:
        return self.__class__, (self.error,)
