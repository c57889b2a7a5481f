"""Events router: CRUD over single events plus the monthly preview listing."""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from .database import get_db_connection
from .services.event_dates import is_same_day_span, month_window, parse_zoned_datetime
from .services.events_service import (
    create_event,
    delete_event,
    get_event,
    list_event_previews_for_month,
    update_event,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["events"])

ZonedDateTime = Annotated[datetime, BeforeValidator(parse_zoned_datetime)]


def _check_month_reference(value: datetime) -> datetime:
    month_window(value)
    return value


# A reference whose month bounds cannot be represented is rejected as input.
MonthReference = Annotated[ZonedDateTime, AfterValidator(_check_month_reference)]

EVENT_TEXT_PATTERN = re.compile(r"[A-Za-z0-9\s\-@]+", re.ASCII)
SAME_DAY_MESSAGE = "start and finish dates must be on the same day and start must be before finish"


def _check_event_text(value: str, field_name: str) -> str:
    if not EVENT_TEXT_PATTERN.fullmatch(value):
        raise ValueError(
            f"{field_name.capitalize()} must contain only alphanumeric characters, spaces, hyphens, and @ symbols"
        )
    return value


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EventCreateRequest(CamelModel):
    # Absent or null text is reported as blank, not as a type error.
    title: str | None = Field(default=None, validate_default=True)
    description: str | None = Field(default=None, validate_default=True)
    start_at: ZonedDateTime
    finish_at: ZonedDateTime
    location: str | None = None

    @field_validator("title", "description")
    @classmethod
    def check_required_text(cls, value: str | None, info: ValidationInfo) -> str:
        if value is None or not value.strip():
            raise ValueError("must not be blank")
        return _check_event_text(value, info.field_name)

    @field_validator("location")
    @classmethod
    def check_location(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return _check_event_text(value, "location")

    @model_validator(mode="after")
    def check_same_day(self) -> "EventCreateRequest":
        if not is_same_day_span(self.start_at, self.finish_at):
            raise ValueError(SAME_DAY_MESSAGE)
        return self


class EventUpdateRequest(CamelModel):
    # Update carries no charset or same-day rules; only shape is checked.
    title: str
    description: str
    start_at: ZonedDateTime
    finish_at: ZonedDateTime
    location: str | None = None


class EventResponse(CamelModel):
    id: UUID
    title: str
    description: str
    start_at: datetime
    finish_at: datetime
    location: str | None = None


class EventPreviewResponse(CamelModel):
    id: UUID
    title: str
    start_at: datetime
    finish_at: datetime
    location: str | None = None


@router.post("", response_model=EventResponse)
async def create_event_endpoint(
    payload: EventCreateRequest,
    connection: Any = Depends(get_db_connection),
) -> EventResponse:
    """
    Create one event.

    Start and finish must fall on the same calendar date and start must be
    strictly before finish.
    """
    logger.debug("Creating event %s", payload)
    row = await create_event(connection, payload.model_dump())
    return EventResponse(**row)


@router.get("/previews/month", response_model=list[EventPreviewResponse])
async def list_month_previews_endpoint(
    date: MonthReference = Query(
        ...,
        description=(
            "Any timestamp inside the wanted month, ISO-8601 with offset and optional region, "
            "e.g. 2025-10-15T00:00:00+03:00[Europe/Kyiv]. Its zone sets the month boundaries."
        ),
    ),
    connection: Any = Depends(get_db_connection),
) -> list[EventPreviewResponse]:
    """List previews (no description) of events starting in the month of `date`."""
    rows = await list_event_previews_for_month(connection, date)
    return [EventPreviewResponse(**row) for row in rows]


@router.get("/{event_id}", response_model=EventResponse)
async def get_event_endpoint(
    event_id: UUID,
    connection: Any = Depends(get_db_connection),
) -> EventResponse:
    row = await get_event(connection, event_id)
    return EventResponse(**row)


@router.put("/{event_id}", response_model=EventResponse)
async def update_event_endpoint(
    event_id: UUID,
    payload: EventUpdateRequest,
    connection: Any = Depends(get_db_connection),
) -> EventResponse:
    """Replace title, description, times and location of an existing event."""
    row = await update_event(connection, event_id, payload.model_dump())
    return EventResponse(**row)


@router.delete("/{event_id}", response_class=Response)
async def delete_event_endpoint(
    event_id: UUID,
    connection: Any = Depends(get_db_connection),
) -> Response:
    """Delete one event. Deleting an unknown id still succeeds."""
    await delete_event(connection, event_id)
    return Response(status_code=status.HTTP_200_OK)
