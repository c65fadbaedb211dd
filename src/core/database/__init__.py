from src.core.database.base import Base, BaseModel, BigIntPK, CreatedAtMixin
from src.core.database.session import async_session, engine, get_db
from src.core.database.transactions import atomic, lock_for_update

__all__ = [
    "Base",
    "BaseModel",
    "BigIntPK",
    "CreatedAtMixin",
    "async_session",
    "atomic",
    "engine",
    "get_db",
    "lock_for_update",
]
