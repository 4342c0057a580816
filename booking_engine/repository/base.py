"""
Persistence interface consumed by the booking engine.

Concrete implementations must make two operations atomic:

* ``insert_appointment`` / ``reschedule_appointment`` check for an overlapping
  active appointment and write in one step (a serializable transaction or an
  exclusion constraint), raising AppointmentConflictError on conflict.
* ``increment_coupon_usage`` is a compare-and-increment against the coupon's
  usage limit, never a read-modify-write in application code.
"""

import datetime as dt
from abc import ABC, abstractmethod
from typing import Optional

from booking_engine.schemas.appointment_schema import Appointment, AppointmentStatus
from booking_engine.schemas.coupon_schema import Coupon, CouponUsage
from booking_engine.schemas.store_schema import Service, Store


class AppointmentConflictError(Exception):
    """Storage-level overlap violation. Callers translate it to SlotUnavailableError."""

    def __init__(self, conflicting_id: str) -> None:
        self.conflicting_id = conflicting_id
        super().__init__(f"Overlaps active appointment {conflicting_id}")


class Repository(ABC):
    """Read and write operations the engine needs from storage."""

    @abstractmethod
    def find_store(self, store_id: str) -> Optional[Store]:
        pass

    @abstractmethod
    def find_service(self, service_id: str) -> Optional[Service]:
        pass

    @abstractmethod
    def find_active_appointments(
        self, store_id: str, date: dt.date, exclude_id: Optional[str] = None
    ) -> list[Appointment]:
        """PENDING and CONFIRMED appointments for a store on a date, by start time."""
        pass

    @abstractmethod
    def find_appointment(self, appointment_id: str) -> Optional[Appointment]:
        pass

    @abstractmethod
    def find_coupon(self, code: str, store_id: str) -> Optional[Coupon]:
        """Look a coupon up by code (case-insensitive) within a store."""
        pass

    @abstractmethod
    def find_coupon_usages_for_user(self, coupon_id: str, user_id: str) -> list[CouponUsage]:
        pass

    @abstractmethod
    def insert_appointment(self, appointment: Appointment) -> str:
        """
        Persist a new appointment and return its id.

        Raises:
            AppointmentConflictError: an active appointment already overlaps it.
        """
        pass

    @abstractmethod
    def update_appointment_status(
        self, appointment_id: str, status: AppointmentStatus
    ) -> Appointment:
        pass

    @abstractmethod
    def reschedule_appointment(
        self, appointment_id: str, date: dt.date, start_time: dt.time, end_time: dt.time
    ) -> Appointment:
        """
        Move an appointment, checking overlap against every other active one.

        Raises:
            AppointmentConflictError: the new interval is taken.
        """
        pass

    @abstractmethod
    def increment_coupon_usage(self, coupon_id: str) -> bool:
        """Atomically bump usage_count. Returns False if the limit was already reached."""
        pass

    @abstractmethod
    def record_coupon_usage(self, usage: CouponUsage) -> None:
        pass
