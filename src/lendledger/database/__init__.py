from lendledger.database.models import Base
from lendledger.database.operations import (
    backup_sqlite_database,
    compact_sqlite_database,
    create_new_sqlite_database,
    get_scoped_sqlite_session,
    get_sqlite_engine,
)

__all__ = (
    "Base",
    "backup_sqlite_database",
    "compact_sqlite_database",
    "create_new_sqlite_database",
    "get_scoped_sqlite_session",
    "get_sqlite_engine",
)
