"""Postgres access with row-level-security context.

Every request gets a connection where ``app.current_user_id`` is set via
``SET LOCAL`` inside a transaction, so Postgres Row-Level Security policies
see the correct owner.  ``weekly_status`` and other ``jsonb`` columns are
decoded to Python dicts by a codec registered on every pooled connection.
"""

from __future__ import annotations

import json
import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import asyncpg

from src.config import Settings, get_settings

logger = logging.getLogger("fitfare.db")

# Module-level connection pool, initialized once at app startup
_pool: asyncpg.Pool | None = None


async def _init_connection(conn: asyncpg.Connection) -> None:
    await conn.set_type_codec(
        "jsonb",
        encoder=json.dumps,
        decoder=json.loads,
        schema="pg_catalog",
    )


async def init_pool(settings: Settings | None = None) -> asyncpg.Pool:
    """Create the asyncpg connection pool. Call once at app startup."""
    global _pool
    s = settings or get_settings()
    _pool = await asyncpg.create_pool(
        s.database_url,
        min_size=s.db_pool_min_size,
        max_size=s.db_pool_max_size,
        command_timeout=s.db_command_timeout,
        init=_init_connection,
    )
    logger.info(
        "Database pool initialized (min=%d, max=%d)",
        s.db_pool_min_size,
        s.db_pool_max_size,
    )
    return _pool


async def close_pool() -> None:
    """Drain the pool. Call at app shutdown."""
    global _pool
    if _pool:
        await _pool.close()
        _pool = None
        logger.info("Database pool closed")


def get_pool() -> asyncpg.Pool:
    if _pool is None:
        raise RuntimeError("Database pool not initialized; call init_pool() first")
    return _pool


@asynccontextmanager
async def get_connection(
    user_id: uuid.UUID | None = None,
    request_id: uuid.UUID | None = None,
) -> AsyncGenerator[asyncpg.Connection, None]:
    """Acquire a connection with RLS session variables set.

    Usage::

        async with get_connection(user_id=ctx.owner_id) as conn:
            rows = await conn.fetch("SELECT * FROM cycles WHERE owner_id = $1", ctx.owner_id)

    The ``SET LOCAL`` calls are scoped to the current transaction so they
    disappear automatically when the connection is returned to the pool.
    Everything executed inside the block commits or rolls back together.
    """
    pool = get_pool()
    async with pool.acquire() as conn:
        async with conn.transaction():
            if user_id:
                await conn.execute(
                    "SELECT set_config('app.current_user_id', $1, true)", str(user_id)
                )
            if request_id:
                await conn.execute(
                    "SELECT set_config('app.request_id', $1, true)", str(request_id)
                )

            yield conn

