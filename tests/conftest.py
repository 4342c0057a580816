"""Shared test fixtures and helpers."""

import datetime as dt
from decimal import Decimal
from typing import Optional

import pytest

from booking_engine.booking.service import BookingService
from booking_engine.notifications import AppointmentNotifier
from booking_engine.repository.memory import InMemoryRepository
from booking_engine.scheduling.calendar import WorkingHoursCalendar
from booking_engine.scheduling.slots import SlotGenerator
from booking_engine.schemas.appointment_schema import (
    Appointment,
    AppointmentStatus,
    BookingRequest,
    ClientIdentity,
)
from booking_engine.schemas.coupon_schema import Coupon, CouponType
from booking_engine.schemas.store_schema import DaySchedule, Service, Store

STORE_ID = "store-1"
SERVICE_ID = "svc-1"

# Monday; NOW is the Friday before, well inside the default booking window
BOOKING_DATE = dt.date(2025, 3, 17)
SATURDAY = dt.date(2025, 3, 22)
NOW = dt.datetime(2025, 3, 14, 10, 0)


def t(value: str) -> dt.time:
    """Shorthand for an ``HH:MM`` time."""
    hours, minutes = value.split(":")
    return dt.time(int(hours), int(minutes))


def fixed_clock(now: dt.datetime = NOW):
    return lambda: now


class RecordingNotifier(AppointmentNotifier):
    """Collects events. Raises on every call when ``fail`` is set."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.events: list[tuple[str, str]] = []

    def _record(self, event: str, appointment_id: str) -> None:
        if self.fail:
            raise RuntimeError("notification channel down")
        self.events.append((event, appointment_id))

    def appointment_created(self, appointment, store, service) -> None:
        self._record("created", appointment.id)

    def appointment_cancelled(self, appointment) -> None:
        self._record("cancelled", appointment.id)

    def appointment_rescheduled(self, appointment) -> None:
        self._record("rescheduled", appointment.id)


def make_working_hours(
    start: str = "09:00", end: str = "18:00", weekend: bool = False
) -> dict[str, DaySchedule]:
    """Weekdays open ``start``-``end``; weekends closed unless ``weekend``."""
    hours = {}
    for day in ("monday", "tuesday", "wednesday", "thursday", "friday"):
        hours[day] = DaySchedule(start=start, end=end, active=True)
    for day in ("saturday", "sunday"):
        hours[day] = DaySchedule(start=start, end=end, active=weekend)
    return hours


def make_store(
    store_id: str = STORE_ID,
    working_hours: Optional[dict] = None,
    **kwargs,
) -> Store:
    """Helper to create a Store open Monday-Friday 09:00-18:00."""
    if working_hours is None:
        working_hours = make_working_hours()
    return Store(id=store_id, name="Salão Teste", working_hours=working_hours, **kwargs)


def make_service(
    service_id: str = SERVICE_ID,
    duration_minutes: int = 60,
    price: str = "100.00",
    store_id: str = STORE_ID,
    **kwargs,
) -> Service:
    return Service(
        id=service_id,
        store_id=store_id,
        name=f"Serviço {duration_minutes}min",
        duration_minutes=duration_minutes,
        price=Decimal(price),
        **kwargs,
    )


def make_coupon(
    code: str = "SAVE10",
    coupon_type: CouponType = CouponType.PERCENTAGE,
    value: str = "10",
    store_id: str = STORE_ID,
    **kwargs,
) -> Coupon:
    """Helper to create a Coupon valid from a day before NOW, with no limits."""
    kwargs.setdefault("start_date", NOW - dt.timedelta(days=1))
    return Coupon(code=code, store_id=store_id, type=coupon_type, value=Decimal(value), **kwargs)


def make_appointment(
    start: str,
    end: str,
    status: AppointmentStatus = AppointmentStatus.CONFIRMED,
    date: dt.date = BOOKING_DATE,
    store_id: str = STORE_ID,
    service_id: str = SERVICE_ID,
    **kwargs,
) -> Appointment:
    return Appointment(
        store_id=store_id,
        service_id=service_id,
        date=date,
        start_time=t(start),
        end_time=t(end),
        status=status,
        **kwargs,
    )


def make_request(
    start: str = "10:00",
    service_id: str = SERVICE_ID,
    date: dt.date = BOOKING_DATE,
    coupon_code: Optional[str] = None,
    user_id: Optional[str] = None,
    name: str = "Maria Silva",
    phone: str = "11987654321",
    store_id: str = STORE_ID,
) -> BookingRequest:
    """Helper to create a BookingRequest with a valid client."""
    return BookingRequest(
        store_id=store_id,
        service_id=service_id,
        date=date,
        start_time=t(start),
        client=ClientIdentity(user_id=user_id, name=name, phone=phone),
        coupon_code=coupon_code,
    )


@pytest.fixture
def calendar():
    return WorkingHoursCalendar()


@pytest.fixture
def slot_generator():
    return SlotGenerator(step_minutes=30, occupied_reason="Horário ocupado")


@pytest.fixture
def repository():
    """Repository seeded with one store and a 60-minute service."""
    repo = InMemoryRepository()
    repo.add_store(make_store())
    repo.add_service(make_service())
    yield repo
    repo.reset()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def booking_service(repository, notifier, slot_generator):
    return BookingService(
        repository,
        notifier=notifier,
        slot_generator=slot_generator,
        clock=fixed_clock(),
    )
