from .database import Base, build_engine, engine, get_db, init_db
from .entities import Transaction, TransactionType

__all__ = [
    "Base",
    "build_engine",
    "engine",
    "get_db",
    "init_db",
    "Transaction",
    "TransactionType",
]
