"""Store, working-hours and service data models."""

import uuid
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from booking_engine.config import settings

# Index matches date.weekday(): Monday == 0
WEEKDAYS: tuple[str, ...] = (
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
)


class DaySchedule(BaseModel):
    """Opening hours for one weekday, kept as the raw ``HH:MM`` strings stored per store."""
    start: str
    end: str
    active: bool = False


def default_working_hours() -> dict[str, DaySchedule]:
    """Week used for stores that never configured their hours."""
    cfg = settings.scheduling
    weekday = {"start": cfg.default_open_time, "end": cfg.default_close_time, "active": True}
    weekend = {"start": cfg.default_open_time, "end": cfg.default_weekend_close_time, "active": False}
    return {
        day: DaySchedule(**(weekend if day in ("saturday", "sunday") else weekday))
        for day in WEEKDAYS
    }


class Store(BaseModel):
    """Store record as seen by the scheduling engine."""
    id: str = Field(default_factory=lambda: f"store-{uuid.uuid4().hex[:8]}")
    name: str = ""
    active: bool = True
    working_hours: Optional[dict[str, DaySchedule]] = None
    advance_booking_days: int = Field(
        default_factory=lambda: settings.booking.advance_booking_days, ge=1, le=365
    )
    min_advance_hours: int = Field(
        default_factory=lambda: settings.booking.min_advance_hours, ge=0, le=72
    )


class Service(BaseModel):
    """A bookable service offered by a store."""
    id: str = Field(default_factory=lambda: f"svc-{uuid.uuid4().hex[:8]}")
    store_id: str
    name: str = ""
    duration_minutes: int = Field(gt=0)
    price: Decimal = Field(ge=0)
    active: bool = True

    @field_validator("duration_minutes")
    @classmethod
    def _check_max_duration(cls, value: int) -> int:
        limit = settings.booking.max_service_duration_minutes
        if value > limit:
            raise ValueError(f"duration_minutes must be <= {limit}, got {value}")
        return value
