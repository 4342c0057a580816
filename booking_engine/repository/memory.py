"""
In-memory repository.

Reference implementation of the Repository interface used by the test
suite and the console demo. A single re-entrant lock serializes every
check-and-write, which gives the same guarantee a database exclusion
constraint gives: no two active appointments for the same store and date
ever overlap, however many threads book at once.
"""

import datetime as dt
import threading
from typing import Optional

from booking_engine.logging_context import get_request_logger
from booking_engine.repository.base import AppointmentConflictError, Repository
from booking_engine.scheduling.slots import find_conflicts
from booking_engine.schemas.appointment_schema import Appointment, AppointmentStatus
from booking_engine.schemas.coupon_schema import Coupon, CouponUsage
from booking_engine.schemas.store_schema import Service, Store

logger = get_request_logger(__name__)


class InMemoryRepository(Repository):
    """Thread-safe dict-backed storage."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._stores: dict[str, Store] = {}
        self._services: dict[str, Service] = {}
        self._appointments: dict[str, Appointment] = {}
        self._coupons: dict[str, Coupon] = {}
        self._coupon_usages: list[CouponUsage] = []

    # ------------------------------------------------------------------ #
    # Seeding helpers
    # ------------------------------------------------------------------ #

    def add_store(self, store: Store) -> Store:
        with self._lock:
            self._stores[store.id] = store
        return store

    def add_service(self, service: Service) -> Service:
        with self._lock:
            self._services[service.id] = service
        return service

    def add_coupon(self, coupon: Coupon) -> Coupon:
        with self._lock:
            self._coupons[coupon.id] = coupon
        return coupon

    def add_appointment(self, appointment: Appointment) -> Appointment:
        """Store an appointment as-is, without the overlap guard."""
        with self._lock:
            self._appointments[appointment.id] = appointment
        return appointment

    def reset(self) -> None:
        """Clear all data. Used by test fixtures for isolation."""
        with self._lock:
            self._stores.clear()
            self._services.clear()
            self._appointments.clear()
            self._coupons.clear()
            self._coupon_usages.clear()

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def find_store(self, store_id: str) -> Optional[Store]:
        return self._stores.get(store_id)

    def find_service(self, service_id: str) -> Optional[Service]:
        return self._services.get(service_id)

    def _active_on(
        self, store_id: str, date: dt.date, exclude_id: Optional[str] = None
    ) -> list[Appointment]:
        found = [
            appt
            for appt in self._appointments.values()
            if appt.store_id == store_id
            and appt.date == date
            and appt.is_active
            and appt.id != exclude_id
        ]
        return sorted(found, key=lambda appt: appt.start_time)

    def find_active_appointments(
        self, store_id: str, date: dt.date, exclude_id: Optional[str] = None
    ) -> list[Appointment]:
        with self._lock:
            return self._active_on(store_id, date, exclude_id)

    def find_appointment(self, appointment_id: str) -> Optional[Appointment]:
        return self._appointments.get(appointment_id)

    def find_coupon(self, code: str, store_id: str) -> Optional[Coupon]:
        normalized = code.strip().upper()
        with self._lock:
            for coupon in self._coupons.values():
                if coupon.code == normalized and coupon.store_id == store_id:
                    return coupon
        return None

    def find_coupon_usages_for_user(self, coupon_id: str, user_id: str) -> list[CouponUsage]:
        with self._lock:
            return [
                usage
                for usage in self._coupon_usages
                if usage.coupon_id == coupon_id and usage.user_id == user_id
            ]

    def all_appointments(self) -> list[Appointment]:
        with self._lock:
            return list(self._appointments.values())

    def coupon_usages(self) -> list[CouponUsage]:
        with self._lock:
            return list(self._coupon_usages)

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    def _require_appointment(self, appointment_id: str) -> Appointment:
        appointment = self._appointments.get(appointment_id)
        if appointment is None:
            raise KeyError(f"Appointment '{appointment_id}' not found")
        return appointment

    def insert_appointment(self, appointment: Appointment) -> str:
        with self._lock:
            same_day = self._active_on(appointment.store_id, appointment.date)
            if appointment.is_active:
                conflicts = find_conflicts(
                    appointment.start_time, appointment.end_time, same_day
                )
                if conflicts:
                    raise AppointmentConflictError(conflicts[0].id)
            self._appointments[appointment.id] = appointment
        logger.debug("Appointment inserted: %s", appointment.id)
        return appointment.id

    def update_appointment_status(
        self, appointment_id: str, status: AppointmentStatus
    ) -> Appointment:
        with self._lock:
            current = self._require_appointment(appointment_id)
            updated = current.model_copy(update={"status": status})
            self._appointments[appointment_id] = updated
        return updated

    def reschedule_appointment(
        self, appointment_id: str, date: dt.date, start_time: dt.time, end_time: dt.time
    ) -> Appointment:
        with self._lock:
            current = self._require_appointment(appointment_id)
            others = self._active_on(current.store_id, date, exclude_id=appointment_id)
            conflicts = find_conflicts(start_time, end_time, others)
            if conflicts:
                raise AppointmentConflictError(conflicts[0].id)
            updated = current.model_copy(
                update={"date": date, "start_time": start_time, "end_time": end_time}
            )
            self._appointments[appointment_id] = updated
        return updated

    def increment_coupon_usage(self, coupon_id: str) -> bool:
        with self._lock:
            coupon = self._coupons.get(coupon_id)
            if coupon is None:
                raise KeyError(f"Coupon '{coupon_id}' not found")
            if coupon.usage_limit is not None and coupon.usage_count >= coupon.usage_limit:
                return False
            self._coupons[coupon_id] = coupon.model_copy(
                update={"usage_count": coupon.usage_count + 1}
            )
        return True

    def record_coupon_usage(self, usage: CouponUsage) -> None:
        with self._lock:
            self._coupon_usages.append(usage)
