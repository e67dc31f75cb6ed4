from .sqlite_store import SqliteStateStore
from .store import StateStore

__all__ = [
    "SqliteStateStore",
    "StateStore",
]
