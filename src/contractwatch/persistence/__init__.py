"""Database persistence layer."""

from .db import dispose_engines, get_engine, get_session, init_db
from .models import Base, Contract, StatusChange
from .repo import ContractRepository, StatusChangeRepository
from .store import ContractNotFound, ContractStore, PersistenceError, StatusChangeRecord

__all__ = [
    "dispose_engines",
    "get_engine",
    "get_session",
    "init_db",
    "Base",
    "Contract",
    "StatusChange",
    "ContractRepository",
    "StatusChangeRepository",
    "ContractNotFound",
    "ContractStore",
    "PersistenceError",
    "StatusChangeRecord",
]
