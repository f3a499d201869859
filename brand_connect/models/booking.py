"""
Booking Models.

``Booking`` is the persisted row; ``BookingRequest`` is the validated
input accepted by ``BookingStateMachine.create``.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from brand_connect.models.enums import BookingStatus

_TIME_RE: re.Pattern[str] = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

NOTES_MAX_LENGTH: int = 500


class Booking(BaseModel):
    """A client's request for a creative's service.  Never deleted."""

    id: str
    client_id: str
    creative_id: str  # CreativeProfile.id
    service_id: Optional[str] = None
    booking_date: date
    start_time: str
    end_time: str
    total_amount: float = Field(gt=0)
    notes: Optional[str] = None
    status: BookingStatus = BookingStatus.PENDING
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _trim_seconds(cls, value: object) -> object:
        # Postgres ``time`` columns come back as HH:MM:SS.
        if isinstance(value, str) and len(value) == 8 and value.count(":") == 2:
            return value[:5]
        return value


class BookingRequest(BaseModel):
    """Validated booking creation input.

    The date window (today up to the configured advance limit) depends
    on configuration and is enforced by the state machine itself.
    """

    creative_id: str
    service_id: str
    booking_date: date
    start_time: str
    end_time: str
    notes: Optional[str] = Field(default=None, max_length=NOTES_MAX_LENGTH)

    @field_validator("start_time", "end_time")
    @classmethod
    def _validate_time(cls, value: str) -> str:
        if not _TIME_RE.match(value):
            raise ValueError("Time must be in HH:MM format")
        return value

    @model_validator(mode="after")
    def _end_after_start(self) -> "BookingRequest":
        # Zero-padded HH:MM strings order lexicographically.
        if self.end_time <= self.start_time:
            raise ValueError("End time must be after start time")
        return self
