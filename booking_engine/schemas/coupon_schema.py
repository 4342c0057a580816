"""Coupon and coupon redemption data models."""

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class CouponType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED_AMOUNT = "FIXED_AMOUNT"


class Coupon(BaseModel):
    """Store-scoped discount coupon."""

    id: str = Field(default_factory=lambda: f"cpn-{uuid.uuid4().hex[:8]}")
    code: str
    store_id: str
    type: CouponType
    value: Decimal = Field(ge=0)
    min_amount: Optional[Decimal] = Field(default=None, ge=0)
    max_discount: Optional[Decimal] = Field(default=None, ge=0)
    usage_limit: Optional[int] = Field(default=None, ge=0)
    usage_count: int = Field(default=0, ge=0)
    user_usage_limit: Optional[int] = Field(default=None, ge=0)
    active: bool = True
    start_date: datetime
    end_date: Optional[datetime] = None

    @field_validator("code")
    @classmethod
    def _normalize_code(cls, value: str) -> str:
        code = value.strip().upper()
        if not code:
            raise ValueError("code must not be empty")
        return code

    @field_validator("start_date", "end_date")
    @classmethod
    def _to_local_naive(cls, value: Optional[datetime]) -> Optional[datetime]:
        # The engine clock is naive local time
        if value is None or value.tzinfo is None:
            return value
        return value.astimezone().replace(tzinfo=None)

    @model_validator(mode="after")
    def _check_ranges(self) -> "Coupon":
        if self.type == CouponType.PERCENTAGE and self.value > 100:
            raise ValueError(f"percentage coupon value must be within [0, 100], got {self.value}")
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must not precede start_date")
        return self


class CouponUsage(BaseModel):
    """One redemption of a coupon on a specific appointment."""

    id: str = Field(default_factory=lambda: f"use-{uuid.uuid4().hex[:8]}")
    coupon_id: str
    user_id: Optional[str] = None
    appointment_id: str
    discount_amount: Decimal
    created_at: datetime = Field(default_factory=datetime.now)


class CouponQuote(BaseModel):
    """Result of validating a coupon against an amount without booking."""

    coupon_id: str
    code: str
    type: CouponType
    value: Decimal
    original_amount: Decimal
    discount_amount: Decimal
    discount_percentage: Decimal
    final_amount: Decimal
