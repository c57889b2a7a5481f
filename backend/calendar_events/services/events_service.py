"""Service layer for event CRUD and the monthly preview query."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from calendar_events.errors import EventNotFoundError
from calendar_events.services.event_dates import from_instant, month_window, to_instant

if TYPE_CHECKING:
    from psycopg import AsyncConnection
else:
    AsyncConnection = Any

logger = logging.getLogger(__name__)

EVENT_COLUMNS = "id, title, description, start_at, finish_at, location"


def to_event(row: dict[str, Any]) -> dict[str, Any]:
    """Map a stored row to the full event shape, instants surfaced in UTC."""
    return {
        "id": row["id"],
        "title": row["title"],
        "description": row["description"],
        "start_at": from_instant(row["start_at"]),
        "finish_at": from_instant(row["finish_at"]),
        "location": row.get("location"),
    }


def to_event_preview(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": row["id"],
        "title": row["title"],
        "start_at": from_instant(row["start_at"]),
        "finish_at": from_instant(row["finish_at"]),
        "location": row.get("location"),
    }


def _storage_values(data: dict[str, Any]) -> dict[str, Any]:
    # Zone is dropped here; only the absolute instant reaches the table.
    return {
        "title": data.get("title"),
        "description": data.get("description"),
        "start_at": to_instant(data.get("start_at")),
        "finish_at": to_instant(data.get("finish_at")),
        "location": data.get("location"),
    }


async def _fetch_event_row(connection: AsyncConnection, event_id: UUID) -> dict[str, Any] | None:
    async with connection.cursor() as cursor:
        await cursor.execute(
            f"""
            SELECT {EVENT_COLUMNS}
            FROM events
            WHERE id = %s
            """,
            (event_id,),
        )
        return await cursor.fetchone()


async def _require_event_row(connection: AsyncConnection, event_id: UUID) -> dict[str, Any]:
    row = await _fetch_event_row(connection, event_id)
    if row is None:
        raise EventNotFoundError(event_id)
    return row


async def find_events_starting_between(
    connection: AsyncConnection,
    start: datetime,
    end: datetime,
) -> list[dict[str, Any]]:
    """Rows whose start_at lies in [start, end], both bounds inclusive."""
    async with connection.cursor() as cursor:
        await cursor.execute(
            f"""
            SELECT {EVENT_COLUMNS}
            FROM events
            WHERE start_at BETWEEN %s AND %s
            ORDER BY start_at ASC, id ASC
            """,
            (start, end),
        )
        return await cursor.fetchall()


async def create_event(connection: AsyncConnection, data: dict[str, Any]) -> dict[str, Any]:
    """Persist a new event; storage assigns the id."""
    values = _storage_values(data)
    logger.debug("Creating event %r", values["title"])

    async with connection.cursor() as cursor:
        await cursor.execute(
            f"""
            INSERT INTO events (title, description, start_at, finish_at, location)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING {EVENT_COLUMNS}
            """,
            (
                values["title"],
                values["description"],
                values["start_at"],
                values["finish_at"],
                values["location"],
            ),
        )
        row = await cursor.fetchone()

    return to_event(row)


async def get_event(connection: AsyncConnection, event_id: UUID) -> dict[str, Any]:
    logger.debug("Getting event with id %s", event_id)
    return to_event(await _require_event_row(connection, event_id))


async def update_event(
    connection: AsyncConnection,
    event_id: UUID,
    data: dict[str, Any],
) -> dict[str, Any]:
    """
    Replace every mutable field of an existing event.

    Read-modify-write without a version check, so concurrent updates are
    last-writer-wins. The same-day rule is a create-time rule and is not
    re-applied here.
    """
    logger.debug("Updating event with id %s", event_id)
    current = await _require_event_row(connection, event_id)
    replacement = {**current, **_storage_values(data)}

    async with connection.cursor() as cursor:
        await cursor.execute(
            f"""
            UPDATE events
            SET title = %s,
                description = %s,
                start_at = %s,
                finish_at = %s,
                location = %s
            WHERE id = %s
            RETURNING {EVENT_COLUMNS}
            """,
            (
                replacement["title"],
                replacement["description"],
                replacement["start_at"],
                replacement["finish_at"],
                replacement["location"],
                current["id"],
            ),
        )
        row = await cursor.fetchone()

    # Deleted between the read and the write.
    if row is None:
        raise EventNotFoundError(event_id)

    return to_event(row)


async def delete_event(connection: AsyncConnection, event_id: UUID) -> None:
    """Delete by id. A missing id is not an error."""
    logger.debug("Deleting event with id %s", event_id)
    async with connection.cursor() as cursor:
        await cursor.execute("DELETE FROM events WHERE id = %s", (event_id,))


async def list_event_previews_for_month(
    connection: AsyncConnection,
    reference: datetime,
) -> list[dict[str, Any]]:
    """Previews of events starting in the calendar month of `reference`, in its zone."""
    logger.debug("Getting event previews for date: %s", reference)
    start, end = month_window(reference)
    rows = await find_events_starting_between(connection, start, end)
    return [to_event_preview(row) for row in rows]
