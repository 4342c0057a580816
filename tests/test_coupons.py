"""Tests for coupon rules, discount arithmetic and quotes."""

import datetime as dt
from decimal import Decimal

import pytest

from booking_engine.booking.coupons import CouponRules, build_quote, compute_discount, to_money
from booking_engine.errors import (
    CouponExhaustedError,
    CouponExpiredError,
    CouponMinAmountError,
    CouponUserLimitError,
    InvalidCouponError,
)
from booking_engine.schemas.coupon_schema import Coupon, CouponType
from tests.conftest import NOW, STORE_ID, make_coupon


@pytest.fixture
def rules():
    return CouponRules()


class TestCouponModel:
    def test_code_upper_cased(self):
        assert make_coupon(code=" save10 ").code == "SAVE10"

    def test_percentage_above_100_rejected(self):
        with pytest.raises(ValueError, match="percentage"):
            make_coupon(value="150")

    def test_fixed_amount_above_100_allowed(self):
        assert make_coupon(coupon_type=CouponType.FIXED_AMOUNT, value="150").value == 150

    def test_end_before_start_rejected(self):
        with pytest.raises(ValueError, match="end_date"):
            make_coupon(start_date=NOW, end_date=NOW - dt.timedelta(days=1))

    def test_aware_dates_become_naive(self):
        coupon = Coupon.model_validate({
            "code": "SAVE10", "store_id": STORE_ID, "type": "PERCENTAGE", "value": "10",
            "start_date": "2025-01-01T00:00:00Z", "end_date": "2025-12-31T23:59:59-03:00",
        })
        assert coupon.start_date.tzinfo is None
        assert coupon.end_date.tzinfo is None
        assert coupon.start_date < NOW < coupon.end_date

    def test_aware_dates_pass_period_check(self, rules):
        coupon = make_coupon(start_date=dt.datetime(2025, 1, 1, tzinfo=dt.timezone.utc))
        rules.check_period(coupon, NOW)  # should not raise

    def test_blank_code_rejected(self):
        with pytest.raises(ValueError):
            Coupon(code="  ", store_id=STORE_ID, type=CouponType.PERCENTAGE,
                   value=Decimal("10"), start_date=NOW)


class TestCouponRules:
    def test_valid_coupon_passes(self, rules):
        coupon = make_coupon()
        assert rules.validate(coupon, STORE_ID, Decimal("100"), NOW) is coupon

    def test_missing_coupon(self, rules):
        with pytest.raises(InvalidCouponError):
            rules.validate(None, STORE_ID, Decimal("100"), NOW)

    def test_inactive_coupon(self, rules):
        with pytest.raises(InvalidCouponError):
            rules.validate(make_coupon(active=False), STORE_ID, Decimal("100"), NOW)

    def test_other_store_coupon(self, rules):
        with pytest.raises(InvalidCouponError):
            rules.validate(make_coupon(store_id="store-2"), STORE_ID, Decimal("100"), NOW)

    def test_not_yet_valid(self, rules):
        coupon = make_coupon(start_date=NOW + dt.timedelta(hours=1))
        with pytest.raises(CouponExpiredError, match="ainda não"):
            rules.validate(coupon, STORE_ID, Decimal("100"), NOW)

    def test_expired(self, rules):
        coupon = make_coupon(end_date=NOW - dt.timedelta(minutes=1))
        with pytest.raises(CouponExpiredError, match="expirado"):
            rules.validate(coupon, STORE_ID, Decimal("100"), NOW)

    def test_valid_until_end_instant(self, rules):
        coupon = make_coupon(end_date=NOW)
        rules.validate(coupon, STORE_ID, Decimal("100"), NOW)  # should not raise

    def test_exhausted(self, rules):
        coupon = make_coupon(usage_limit=5, usage_count=5)
        with pytest.raises(CouponExhaustedError):
            rules.validate(coupon, STORE_ID, Decimal("100"), NOW)

    def test_zero_usage_limit_means_zero(self, rules):
        with pytest.raises(CouponExhaustedError):
            rules.validate(make_coupon(usage_limit=0), STORE_ID, Decimal("100"), NOW)

    def test_user_limit_reached(self, rules):
        coupon = make_coupon(user_usage_limit=1)
        with pytest.raises(CouponUserLimitError):
            rules.validate(coupon, STORE_ID, Decimal("100"), NOW,
                           user_id="user-1", user_redemptions=1)

    def test_user_limit_skipped_for_anonymous(self, rules):
        coupon = make_coupon(user_usage_limit=1)
        rules.validate(coupon, STORE_ID, Decimal("100"), NOW, user_id=None, user_redemptions=3)

    def test_min_amount_scenario(self, rules):
        coupon = make_coupon(code="SAVE10", value="10", min_amount=Decimal("50"))
        with pytest.raises(CouponMinAmountError, match="R\\$ 50.00"):
            rules.validate(coupon, STORE_ID, Decimal("40"), NOW)

    def test_min_amount_inclusive(self, rules):
        coupon = make_coupon(min_amount=Decimal("50"))
        rules.validate(coupon, STORE_ID, Decimal("50"), NOW)  # should not raise

    def test_rules_checked_in_order(self, rules):
        coupon = make_coupon(
            end_date=NOW - dt.timedelta(days=1),
            start_date=NOW - dt.timedelta(days=2),
            usage_limit=1,
            usage_count=1,
        )
        with pytest.raises(CouponExpiredError):
            rules.validate(coupon, STORE_ID, Decimal("100"), NOW)

    def test_errors_are_retryable(self, rules):
        with pytest.raises(InvalidCouponError) as exc_info:
            rules.validate(None, STORE_ID, Decimal("100"), NOW)
        assert exc_info.value.retryable
        assert exc_info.value.to_dict()["code"] == "COUPON_INVALID"


class TestComputeDiscount:
    def test_percentage(self):
        assert compute_discount(make_coupon(value="10"), Decimal("100")) == Decimal("10.00")

    def test_percentage_clamped_by_max_discount(self):
        coupon = make_coupon(value="50", max_discount=Decimal("20"))
        assert compute_discount(coupon, Decimal("100")) == Decimal("20.00")

    def test_percentage_below_max_discount(self):
        coupon = make_coupon(value="10", max_discount=Decimal("20"))
        assert compute_discount(coupon, Decimal("100")) == Decimal("10.00")

    def test_fixed_amount_never_exceeds_price(self):
        coupon = make_coupon(coupon_type=CouponType.FIXED_AMOUNT, value="1000")
        assert compute_discount(coupon, Decimal("50")) == Decimal("50.00")

    def test_rounds_half_up_to_cents(self):
        coupon = make_coupon(value="15")
        assert compute_discount(coupon, Decimal("33.33")) == Decimal("5.00")
        assert to_money(Decimal("0.125")) == Decimal("0.13")

    def test_full_percentage(self):
        assert compute_discount(make_coupon(value="100"), Decimal("80")) == Decimal("80.00")


class TestBuildQuote:
    def test_quote_fields(self):
        coupon = make_coupon(value="50", max_discount=Decimal("20"))
        quote = build_quote(coupon, Decimal("100"))
        assert quote.code == "SAVE10"
        assert quote.discount_amount == Decimal("20.00")
        assert quote.final_amount == Decimal("80.00")
        assert quote.discount_percentage == Decimal("20.00")

    def test_zero_amount(self):
        quote = build_quote(make_coupon(), Decimal("0"))
        assert quote.discount_amount == Decimal("0.00")
        assert quote.discount_percentage == Decimal("0.00")
        assert quote.final_amount == Decimal("0.00")
