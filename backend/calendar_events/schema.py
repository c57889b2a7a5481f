"""DDL for the events table, applied idempotently at startup."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from psycopg import AsyncConnection
else:
    AsyncConnection = Any

logger = logging.getLogger(__name__)

# Zone information is not persisted: timestamptz keeps the absolute instant only.
EVENTS_DDL = (
    """
    CREATE TABLE IF NOT EXISTS events (
        id           UUID         PRIMARY KEY DEFAULT gen_random_uuid(),
        title        TEXT         NOT NULL,
        description  TEXT         NOT NULL,
        start_at     TIMESTAMPTZ  NOT NULL,
        finish_at    TIMESTAMPTZ  NOT NULL,
        location     TEXT         NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS events_start_at_idx ON events (start_at)",
)


async def ensure_schema(connection: AsyncConnection) -> None:
    """Create the events table and its start_at index when missing."""
    async with connection.cursor() as cursor:
        for statement in EVENTS_DDL:
            await cursor.execute(statement)

    logger.info("Events schema is in place")
