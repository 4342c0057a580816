"""Appointment, slot and booking request/result data models."""

import datetime as dt
import re
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from booking_engine.errors import PostCommitBookkeepingError
from booking_engine.schemas.coupon_schema import Coupon
from booking_engine.utils import sanitize_name, sanitize_notes, sanitize_phone, truncate_to_minute

MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 100
MAX_NOTES_LENGTH = 500
_PHONE_PATTERN = re.compile(r"^55\d{10,11}$")


class AppointmentStatus(str, Enum):
    """Lifecycle status of an appointment."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"


# Only these statuses hold a slot
ACTIVE_STATUSES = frozenset({AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED})


class ExistingAppointment(BaseModel):
    """The part of an appointment that takes part in overlap checks."""

    id: str = Field(default_factory=lambda: f"APT-{uuid.uuid4().hex[:8].upper()}")
    store_id: str
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    status: AppointmentStatus = AppointmentStatus.PENDING

    @field_validator("start_time", "end_time")
    @classmethod
    def _whole_minutes(cls, value: dt.time) -> dt.time:
        return truncate_to_minute(value)

    @model_validator(mode="after")
    def _check_interval(self) -> "ExistingAppointment":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES


class Appointment(ExistingAppointment):
    """Full appointment record as persisted by the repository."""

    service_id: str
    client_name: str = ""
    client_phone: str = ""
    client_email: Optional[str] = None
    client_id: Optional[str] = None
    notes: Optional[str] = None
    total_price: Decimal = Decimal("0")
    discount_amount: Decimal = Decimal("0")
    coupon_id: Optional[str] = None
    created_at: dt.datetime = Field(default_factory=dt.datetime.now)


class Slot(BaseModel):
    """Candidate start time with its availability flag."""

    model_config = ConfigDict(frozen=True)

    time: dt.time
    available: bool
    reason: Optional[str] = None


class ClientIdentity(BaseModel):
    """Who is booking. ``user_id`` is set only for signed-in users."""

    user_id: Optional[str] = None
    name: str
    phone: str
    email: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _clean_name(cls, value: str) -> str:
        cleaned = sanitize_name(value)
        if not MIN_NAME_LENGTH <= len(cleaned) <= MAX_NAME_LENGTH:
            raise ValueError(
                f"name must have between {MIN_NAME_LENGTH} and {MAX_NAME_LENGTH} characters"
            )
        return cleaned

    @field_validator("phone")
    @classmethod
    def _clean_phone(cls, value: str) -> str:
        cleaned = sanitize_phone(value)
        if not _PHONE_PATTERN.match(cleaned):
            raise ValueError(f"phone must be in the 55XXXXXXXXXXX format, got {value!r}")
        return cleaned

    @field_validator("email")
    @classmethod
    def _clean_email(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        cleaned = value.strip().lower()
        if "@" not in cleaned:
            raise ValueError(f"invalid email: {value!r}")
        return cleaned


class BookingRequest(BaseModel):
    """Validated booking submission."""

    store_id: str
    service_id: str
    date: dt.date
    start_time: dt.time
    client: ClientIdentity
    coupon_code: Optional[str] = None
    notes: Optional[str] = Field(default=None, max_length=MAX_NOTES_LENGTH)

    @field_validator("coupon_code")
    @classmethod
    def _normalize_coupon_code(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        return value.strip().upper()

    @field_validator("start_time")
    @classmethod
    def _whole_minutes(cls, value: dt.time) -> dt.time:
        return truncate_to_minute(value)

    @field_validator("notes")
    @classmethod
    def _clean_notes(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return sanitize_notes(value) or None


class BookingResult(BaseModel):
    """Price and end time computed for an accepted booking."""

    end_time: dt.time
    original_price: Decimal
    discount_amount: Decimal = Decimal("0")
    total_price: Decimal
    applied_coupon: Optional[Coupon] = None


class OutcomeStatus(str, Enum):
    COMMITTED = "committed"
    COMMITTED_WITH_WARNINGS = "committed_with_warnings"


@dataclass
class BookingOutcome:
    """A persisted booking, plus any post-commit side effects that failed."""

    appointment: Appointment
    result: BookingResult
    warnings: list[PostCommitBookkeepingError] = field(default_factory=list)

    @property
    def status(self) -> OutcomeStatus:
        if self.warnings:
            return OutcomeStatus.COMMITTED_WITH_WARNINGS
        return OutcomeStatus.COMMITTED

    @property
    def appointment_id(self) -> str:
        return self.appointment.id
