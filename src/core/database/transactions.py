import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import AppException, PersistenceError

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking to a select.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, PostgreSQL honours it.
    """
    return query.with_for_update().execution_options(populate_existing=True)


@asynccontextmanager
async def atomic(
    session: AsyncSession,
    *,
    action: str,
    commit: bool = True,
) -> AsyncIterator[AsyncSession]:
    """
    Run a block as one unit of work.

    Commits at the end when `commit` is set. Any failure rolls the session back,
    so no partial state survives; storage errors surface as PersistenceError.
    With commit=False the caller owns the transaction (composite operations).
    """
    try:
        yield session
        if commit:
            await session.commit()
    except AppException:
        await session.rollback()
        raise
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("Storage failure while trying to %s", action)
        raise PersistenceError(f"Failed to {action}", details={"action": action}) from exc
