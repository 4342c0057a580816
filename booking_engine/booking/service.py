"""
Booking service: the caller-facing API of the engine.

Route handlers call this module to list bookable slots and to commit a
booking. It loads data through the Repository, delegates the scheduling
decisions to the calendar, slot generator and validator, and runs the
post-commit side effects.

Error policy:
    Anything that goes wrong before the appointment is persisted raises a
    BookingError subclass and nothing is written. Anything that goes wrong
    after (coupon bookkeeping, notifications) is logged and returned as a
    PostCommitBookkeepingError on BookingOutcome.warnings; the booking
    stands.
"""

import datetime as dt
from decimal import Decimal
from typing import Any, Callable, Optional

from booking_engine.booking.coupons import CouponRules, build_quote
from booking_engine.booking.validator import BookingValidator, compute_end_time
from booking_engine.errors import (
    AppointmentNotFoundError,
    BookingWindowError,
    InvalidTransitionError,
    OutsideWorkingHoursError,
    PostCommitBookkeepingError,
    ServiceNotFoundError,
    SlotUnavailableError,
    StoreNotFoundError,
)
from booking_engine.logging_context import get_request_logger
from booking_engine.notifications import AppointmentNotifier, LoggingNotifier
from booking_engine.repository.base import AppointmentConflictError, Repository
from booking_engine.scheduling.calendar import WorkingHoursCalendar
from booking_engine.scheduling.lifecycle import AppointmentLifecycle, StatusTrigger
from booking_engine.scheduling.slots import SlotGenerator
from booking_engine.schemas.appointment_schema import (
    Appointment,
    AppointmentStatus,
    BookingOutcome,
    BookingRequest,
    BookingResult,
    Slot,
)
from booking_engine.schemas.coupon_schema import Coupon, CouponQuote, CouponUsage
from booking_engine.schemas.store_schema import Service, Store

logger = get_request_logger(__name__)


class BookingService:
    """Slot listing, booking commit and appointment changes for all stores."""

    def __init__(
        self,
        repository: Repository,
        notifier: Optional[AppointmentNotifier] = None,
        calendar: Optional[WorkingHoursCalendar] = None,
        slot_generator: Optional[SlotGenerator] = None,
        validator: Optional[BookingValidator] = None,
        clock: Optional[Callable[[], dt.datetime]] = None,
    ) -> None:
        self.repository = repository
        self.notifier = notifier or LoggingNotifier()
        self.calendar = calendar or WorkingHoursCalendar()
        self.slot_generator = slot_generator or SlotGenerator()
        self.validator = validator or BookingValidator()
        self.coupon_rules: CouponRules = self.validator.coupon_rules
        self._clock = clock or dt.datetime.now

    # ------------------------------------------------------------------ #
    # Lookups and pre-persistence checks
    # ------------------------------------------------------------------ #

    def _load_store(self, store_id: str) -> Store:
        store = self.repository.find_store(store_id)
        if store is None or not store.active:
            raise StoreNotFoundError(store_id=store_id)
        return store

    def _load_service(self, store: Store, service_id: str) -> Service:
        service = self.repository.find_service(service_id)
        if service is None or not service.active or service.store_id != store.id:
            raise ServiceNotFoundError(service_id=service_id, store_id=store.id)
        return service

    def _load_appointment(self, appointment_id: str) -> Appointment:
        appointment = self.repository.find_appointment(appointment_id)
        if appointment is None:
            raise AppointmentNotFoundError(appointment_id=appointment_id)
        return appointment

    def _check_booking_window(self, store: Store, date: dt.date, start_time: dt.time) -> None:
        now = self._clock()
        starts_at = dt.datetime.combine(date, start_time)
        lead = starts_at - now
        if starts_at <= now:
            raise BookingWindowError(code="INVALID_DATE", starts_at=starts_at)
        if lead < dt.timedelta(hours=store.min_advance_hours):
            raise BookingWindowError(
                "Agendamento deve ser feito com pelo menos "
                f"{store.min_advance_hours} horas de antecedência",
                code="INSUFFICIENT_ADVANCE_TIME",
                starts_at=starts_at,
            )
        if lead > dt.timedelta(days=store.advance_booking_days):
            raise BookingWindowError(
                "Agendamento não pode ser feito com mais de "
                f"{store.advance_booking_days} dias de antecedência",
                code="EXCESSIVE_ADVANCE_TIME",
                starts_at=starts_at,
            )

    def _check_working_hours(
        self, store: Store, date: dt.date, start_time: dt.time, end_time: dt.time
    ) -> None:
        if not self.calendar.contains(store.working_hours, date, start_time, end_time):
            raise OutsideWorkingHoursError(store_id=store.id, date=date, start_time=start_time)

    def _lookup_coupon(
        self, code: str, store_id: str, user_id: Optional[str]
    ) -> tuple[Optional[Coupon], int]:
        coupon = self.repository.find_coupon(code, store_id)
        redemptions = 0
        if coupon is not None and user_id is not None:
            redemptions = len(self.repository.find_coupon_usages_for_user(coupon.id, user_id))
        return coupon, redemptions

    # ------------------------------------------------------------------ #
    # Post-commit side effects
    # ------------------------------------------------------------------ #

    def _redeem_coupon(
        self, appointment: Appointment, result: BookingResult, user_id: Optional[str]
    ) -> Optional[PostCommitBookkeepingError]:
        coupon = result.applied_coupon
        if coupon is None or result.discount_amount <= 0:
            return None
        counted = False
        try:
            if not self.repository.increment_coupon_usage(coupon.id):
                logger.warning(
                    "Coupon %s reached its usage limit before appointment %s was counted",
                    coupon.code, appointment.id,
                )
                return PostCommitBookkeepingError(
                    "coupon_usage",
                    "Limite de uso do cupom atingido após o agendamento",
                    coupon_id=coupon.id,
                    appointment_id=appointment.id,
                )
            counted = True
            self.repository.record_coupon_usage(CouponUsage(
                coupon_id=coupon.id,
                user_id=user_id,
                appointment_id=appointment.id,
                discount_amount=result.discount_amount,
            ))
        except Exception as exc:
            message = None
            if counted:
                # Counter moved without a usage row: per-user limits undercount this redemption
                message = "Uso do cupom contabilizado sem registro do usuário"
            logger.error(
                "Failed to record coupon usage for appointment %s (counted=%s): %s",
                appointment.id, counted, exc,
            )
            return PostCommitBookkeepingError(
                "coupon_usage",
                message,
                cause=exc,
                coupon_id=coupon.id,
                appointment_id=appointment.id,
                usage_counted=counted,
                usage_recorded=False,
            )
        logger.info("Coupon %s applied to appointment %s", coupon.code, appointment.id)
        return None

    def _notify(
        self, event: str, callback: Callable[..., None], *args: Any
    ) -> Optional[PostCommitBookkeepingError]:
        try:
            callback(*args)
        except Exception as exc:
            logger.error("Notification '%s' failed: %s", event, exc)
            return PostCommitBookkeepingError("notification", cause=exc, event=event)
        return None

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def generate_slots(self, store_id: str, service_id: str, date: dt.date) -> list[Slot]:
        """List candidate start times for a service on a date, flagged available or taken."""
        store = self._load_store(store_id)
        service = self._load_service(store, service_id)
        interval = self.calendar.open_interval(store.working_hours, date)
        if interval is None:
            logger.debug("Store %s closed on %s", store_id, date)
            return []
        appointments = self.repository.find_active_appointments(store_id, date)
        return self.slot_generator.generate(interval, service.duration_minutes, appointments)

    def validate_and_book(self, request: BookingRequest) -> BookingOutcome:
        """
        Re-validate, price and persist a booking.

        Raises:
            StoreNotFoundError, ServiceNotFoundError: unknown or inactive.
            BookingWindowError: too soon, too far ahead, or in the past.
            SlotUnavailableError: outside working hours, crossing midnight,
                or taken (including by a concurrent booking that committed first).
            CouponError: the coupon code failed one of its rules.
        """
        store = self._load_store(request.store_id)
        service = self._load_service(store, request.service_id)
        self._check_booking_window(store, request.date, request.start_time)
        end_time = compute_end_time(request.start_time, service.duration_minutes)
        self._check_working_hours(store, request.date, request.start_time, end_time)

        appointments = self.repository.find_active_appointments(request.store_id, request.date)
        coupon, redemptions = None, 0
        if request.coupon_code is not None:
            coupon, redemptions = self._lookup_coupon(
                request.coupon_code, request.store_id, request.client.user_id
            )

        result = self.validator.validate(
            request,
            service,
            appointments,
            coupon=coupon,
            user_redemptions=redemptions,
            now=self._clock(),
        )

        appointment = Appointment(
            store_id=request.store_id,
            service_id=service.id,
            date=request.date,
            start_time=request.start_time,
            end_time=result.end_time,
            status=AppointmentStatus.PENDING,
            client_name=request.client.name,
            client_phone=request.client.phone,
            client_email=request.client.email,
            client_id=request.client.user_id,
            notes=request.notes,
            total_price=result.total_price,
            discount_amount=result.discount_amount,
            coupon_id=result.applied_coupon.id if result.applied_coupon else None,
        )
        try:
            self.repository.insert_appointment(appointment)
        except AppointmentConflictError as exc:
            logger.info(
                "Conflict on commit for store %s at %s %s (taken by %s)",
                request.store_id, request.date, request.start_time, exc.conflicting_id,
            )
            raise SlotUnavailableError(conflicting_appointment=exc.conflicting_id) from exc

        logger.info(
            "Appointment %s created for store %s on %s %s-%s, total %s",
            appointment.id, appointment.store_id, appointment.date,
            appointment.start_time.strftime("%H:%M"), appointment.end_time.strftime("%H:%M"),
            appointment.total_price,
        )

        warnings = []
        coupon_warning = self._redeem_coupon(appointment, result, request.client.user_id)
        if coupon_warning is not None:
            warnings.append(coupon_warning)
        notify_warning = self._notify(
            "appointment_created", self.notifier.appointment_created, appointment, store, service
        )
        if notify_warning is not None:
            warnings.append(notify_warning)

        return BookingOutcome(appointment=appointment, result=result, warnings=warnings)

    def quote_coupon(
        self, code: str, store_id: str, amount: Decimal, user_id: Optional[str] = None
    ) -> CouponQuote:
        """Validate a coupon against an amount without booking anything."""
        if amount < 0:
            raise ValueError(f"amount must be >= 0, got {amount}")
        coupon, redemptions = self._lookup_coupon(code, store_id, user_id)
        coupon = self.coupon_rules.validate(
            coupon,
            store_id=store_id,
            amount=amount,
            now=self._clock(),
            user_id=user_id,
            user_redemptions=redemptions,
        )
        return build_quote(coupon, amount)

    def update_status(self, appointment_id: str, trigger: StatusTrigger) -> Appointment:
        """
        Apply a status trigger (confirm, cancel, complete, no-show).

        Raises:
            AppointmentNotFoundError: unknown appointment.
            InvalidTransitionError: trigger not allowed from the current status.
        """
        appointment = self._load_appointment(appointment_id)
        lifecycle = AppointmentLifecycle(appointment.status)
        new_status = lifecycle.transition(trigger)
        updated = self.repository.update_appointment_status(appointment_id, new_status)
        logger.info(
            "Appointment %s: %s -> %s", appointment_id, appointment.status.value, new_status.value
        )
        if trigger == StatusTrigger.CANCEL:
            self._notify("appointment_cancelled", self.notifier.appointment_cancelled, updated)
        return updated

    def cancel_appointment(self, appointment_id: str) -> Appointment:
        """Soft-cancel an appointment, freeing its slot."""
        return self.update_status(appointment_id, StatusTrigger.CANCEL)

    def reschedule_appointment(
        self, appointment_id: str, date: dt.date, start_time: dt.time
    ) -> Appointment:
        """
        Move an active appointment to a new date and time.

        The appointment's own interval does not count as a conflict.
        """
        appointment = self._load_appointment(appointment_id)
        if not appointment.is_active:
            raise InvalidTransitionError(
                "Apenas agendamentos pendentes ou confirmados podem ser remarcados",
                status=appointment.status.value,
            )
        store = self._load_store(appointment.store_id)
        service = self.repository.find_service(appointment.service_id)
        if service is None:
            raise ServiceNotFoundError(service_id=appointment.service_id)

        self._check_booking_window(store, date, start_time)
        end_time = compute_end_time(start_time, service.duration_minutes)
        self._check_working_hours(store, date, start_time, end_time)
        others = self.repository.find_active_appointments(
            store.id, date, exclude_id=appointment_id
        )
        self.validator.check_overlap(start_time, end_time, others)

        try:
            updated = self.repository.reschedule_appointment(
                appointment_id, date, start_time, end_time
            )
        except AppointmentConflictError as exc:
            raise SlotUnavailableError(conflicting_appointment=exc.conflicting_id) from exc

        logger.info(
            "Appointment %s rescheduled to %s %s", appointment_id, date,
            start_time.strftime("%H:%M"),
        )
        self._notify("appointment_rescheduled", self.notifier.appointment_rescheduled, updated)
        return updated
