import logging
from collections.abc import AsyncIterator

from psycopg import AsyncConnection
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from .config import settings
from .schema import ensure_schema

logger = logging.getLogger(__name__)

# Shared async pool used by FastAPI dependencies.
pool: AsyncConnectionPool | None = None


class DatabaseNotConfiguredError(RuntimeError):
    """Raised when a request needs the database but DATABASE_URL is empty."""


async def init_db_pool() -> None:
    global pool

    # Keep app booting in non-DB contexts; endpoints will fail explicitly if used.
    if not settings.database_url:
        logger.warning("DATABASE_URL is not set; event endpoints are unavailable")
        return

    pool = AsyncConnectionPool(
        conninfo=settings.database_url,
        open=False,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        kwargs={"autocommit": True, "row_factory": dict_row},
    )
    await pool.open()
    logger.info("Database pool opened (min=%s, max=%s)", settings.db_pool_min_size, settings.db_pool_max_size)

    if settings.create_schema_on_startup:
        async with pool.connection() as connection:
            await ensure_schema(connection)


async def close_db_pool() -> None:
    global pool

    if pool is None:
        return

    await pool.close()
    pool = None
    logger.info("Database pool closed")


async def get_db_connection() -> AsyncIterator[AsyncConnection]:
    if pool is None:
        raise DatabaseNotConfiguredError("DATABASE_URL is not configured")

    async with pool.connection() as connection:
        yield connection
