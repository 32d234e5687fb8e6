"""
PostgreSQL connection helper for AuthSmith.

This module provides a simple connection function for PostgreSQL access.
Uses psycopg's async connection so queries never block the event loop.
"""

import psycopg
from loguru import logger

from authsmith_core.config import settings
from authsmith_core.runtime.errors import InfrastructureUnavailableError


async def get_db_connection(dsn: str | None = None) -> psycopg.AsyncConnection:
    """
    Open an async PostgreSQL connection.

    The connection is an async context manager and is closed when the
    context exits.

    Usage:
        async with await get_db_connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute("SELECT 1")

    Args:
        dsn: Connection string. Defaults to settings.POSTGRES_DSN.

    Returns:
        psycopg.AsyncConnection: A PostgreSQL connection.

    Raises:
        InfrastructureUnavailableError: The database cannot be reached.
    """
    try:
        conn = await psycopg.AsyncConnection.connect(dsn or settings.POSTGRES_DSN)
    except psycopg.OperationalError as e:
        logger.error(f"Failed to connect to PostgreSQL: {e}")
        raise InfrastructureUnavailableError(
            "Database unavailable.", message_debug=str(e), cause=e
        ) from e
    logger.debug("Connected to PostgreSQL")
    return conn
