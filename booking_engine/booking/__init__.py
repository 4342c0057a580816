from booking_engine.booking.coupons import CouponRules, build_quote, compute_discount
from booking_engine.booking.service import BookingService
from booking_engine.booking.validator import BookingValidator, compute_end_time

__all__ = [
    "BookingService",
    "BookingValidator",
    "CouponRules",
    "compute_discount",
    "compute_end_time",
    "build_quote",
]
