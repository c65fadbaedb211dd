import logging
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from src.core.config import settings

logger = logging.getLogger(__name__)


def _engine_options() -> dict:
    options: dict = {"echo": settings.sql_echo, "pool_pre_ping": True}
    # SQLite (local runs, tests) uses a static pool without size settings
    if not settings.database_url.startswith("sqlite"):
        options["pool_size"] = settings.database_pool_size
    return options


engine = create_async_engine(settings.database_url, **_engine_options())
logger.info("Database engine configured for %s", settings.database_host)

async_session = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session.

    Services commit their own units of work through `atomic`; whatever is
    still pending when the route returns is committed here, and any error
    rolls the session back before it propagates.
    """
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
