"""
lifelog.core.db
===============

Connection pool for the server. All state is persisted in PostgreSQL and
every request borrows a connection from the pool opened in the app lifespan:

    async with get_pool_connection() as conn:
        async with conn.transaction():
            await conn.execute("INSERT INTO event_types (value) VALUES (%s)", ("start",))
"""

from lifelog.core.db.pool import init_pool, get_pool, get_pool_connection, close_pool

__all__ = ["init_pool", "get_pool", "get_pool_connection", "close_pool"]
