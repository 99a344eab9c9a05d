# db/pool.py
from contextlib import asynccontextmanager
from psycopg import AsyncConnection, OperationalError
from psycopg_pool import AsyncConnectionPool, PoolTimeout
from psycopg.rows import dict_row, DictRow
import asyncio
from typing import AsyncIterator, Optional

from lifelog.core.errors import ErrorInfo, ErrorKind, StorageError
from lifelog.core.logger import setup_logger

logger = setup_logger(__name__, include_location=True)

_pool: Optional[AsyncConnectionPool] = None
_lock = asyncio.Lock()


async def init_pool(conninfo: str, min_size: int = 1, max_size: int = 10, timeout: float = 10.0):
    """
    Initialize the global AsyncConnectionPool.

    Connections use dict_row and autocommit: explicit ``conn.transaction()``
    blocks delimit every transaction. Safe to call multiple times.
    """
    global _pool
    async with _lock:
        if _pool is None:
            _pool = AsyncConnectionPool(
                conninfo,
                min_size=min_size,
                max_size=max_size,
                timeout=timeout,
                kwargs={"row_factory": dict_row, "autocommit": True},
                name="lifelog_server",
                open=False
            )
            await _pool.open(wait=True)
            logger.info(f"Database pool opened (min_size={min_size}, max_size={max_size})")


def get_pool() -> AsyncConnectionPool[AsyncConnection[DictRow]]:
    """Return the pool instance."""
    if _pool is None:
        raise RuntimeError("Database pool is not initialized. Call init_pool() first.")
    return _pool


@asynccontextmanager
async def get_pool_connection() -> AsyncIterator[AsyncConnection[DictRow]]:
    """Borrow a connection from the pool for the duration of the block."""
    try:
        pool = get_pool()
    except RuntimeError as e:
        message = f"get_pool_connection: {e}"
        raise StorageError(
            message, info=ErrorInfo(kind=ErrorKind.DB_CONNECTION, code="POOL_NOT_INITIALIZED", message=message)
        ) from e
    try:
        async with pool.connection() as conn:
            yield conn
    except (PoolTimeout, OperationalError) as e:
        raise StorageError.from_exception("get_pool_connection", e) from e


async def close_pool():
    """Close and reset the global connection pool."""
    global _pool
    async with _lock:
        if _pool is not None:
            await _pool.close()
            _pool = None
            logger.info("Database pool closed")
