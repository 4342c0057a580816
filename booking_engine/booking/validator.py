"""
Commit-time booking validation and pricing.

The slot list shown to a client can be stale by the time they submit, so
the validator re-checks the requested interval against a freshly read set
of active appointments before anything is persisted, then applies the
coupon rules and computes the committed price.
"""

import datetime as dt
from decimal import Decimal
from typing import Iterable, Optional

from booking_engine.booking.coupons import CouponRules, compute_discount, to_money
from booking_engine.errors import CrossesMidnightError, SlotUnavailableError
from booking_engine.logging_context import get_request_logger
from booking_engine.scheduling.slots import find_conflicts
from booking_engine.schemas.appointment_schema import (
    BookingRequest,
    BookingResult,
    ExistingAppointment,
)
from booking_engine.schemas.coupon_schema import Coupon
from booking_engine.schemas.store_schema import Service

logger = get_request_logger(__name__)


def compute_end_time(start_time: dt.time, duration_minutes: int) -> dt.time:
    """
    End of a booking starting at ``start_time``.

    Raises:
        CrossesMidnightError: the booking would end on the next calendar day.
    """
    start = dt.datetime.combine(dt.date.min, start_time)
    end = start + dt.timedelta(minutes=duration_minutes)
    if end.date() != start.date():
        raise CrossesMidnightError(start_time=start_time, duration_minutes=duration_minutes)
    return end.time()


class BookingValidator:
    """Re-validates a requested slot and prices it."""

    def __init__(self, coupon_rules: Optional[CouponRules] = None) -> None:
        self.coupon_rules = coupon_rules or CouponRules()

    def check_overlap(
        self,
        start_time: dt.time,
        end_time: dt.time,
        active_appointments: Iterable[ExistingAppointment],
        exclude_id: Optional[str] = None,
    ) -> None:
        conflicts = find_conflicts(start_time, end_time, active_appointments, exclude_id)
        if conflicts:
            logger.info(
                "Conflict detected for %s-%s with appointment %s",
                start_time, end_time, conflicts[0].id,
            )
            raise SlotUnavailableError(conflicting_appointment=conflicts[0].id)

    def validate(
        self,
        request: BookingRequest,
        service: Service,
        active_appointments: Iterable[ExistingAppointment],
        coupon: Optional[Coupon] = None,
        user_redemptions: int = 0,
        now: Optional[dt.datetime] = None,
    ) -> BookingResult:
        """
        Validate a booking and compute its price.

        ``coupon`` is the result of looking up ``request.coupon_code``; it is
        None both when no code was given and when the lookup found nothing,
        the two cases being told apart by ``request.coupon_code``.

        Raises:
            SlotUnavailableError: the interval crosses midnight or overlaps
                an active appointment.
            CouponError: a coupon code was given and one of its rules failed.
        """
        end_time = compute_end_time(request.start_time, service.duration_minutes)
        self.check_overlap(request.start_time, end_time, active_appointments)

        price = to_money(service.price)
        discount = Decimal("0.00")
        applied: Optional[Coupon] = None
        if request.coupon_code is not None:
            applied = self.coupon_rules.validate(
                coupon,
                store_id=request.store_id,
                amount=price,
                now=now or dt.datetime.now(),
                user_id=request.client.user_id,
                user_redemptions=user_redemptions,
            )
            discount = compute_discount(applied, price)

        return BookingResult(
            end_time=end_time,
            original_price=price,
            discount_amount=discount,
            total_price=price - discount,
            applied_coupon=applied,
        )
