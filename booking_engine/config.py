"""
Centralized configuration with environment variable overrides.

Slot granularity, booking-window policy and default store hours are
configurable here. Nothing is hardcoded in the scheduling or booking logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class SchedulingConfig:
    """Slot generation and default working-hours settings."""

    slot_step_minutes: int = _safe_int("SLOT_STEP_MINUTES", "30")
    default_open_time: str = os.getenv("DEFAULT_OPEN_TIME", "09:00")
    default_close_time: str = os.getenv("DEFAULT_CLOSE_TIME", "18:00")
    default_weekend_close_time: str = os.getenv("DEFAULT_WEEKEND_CLOSE_TIME", "12:00")
    occupied_reason: str = os.getenv("SLOT_OCCUPIED_REASON", "Horário ocupado")


@dataclass(frozen=True)
class BookingPolicyConfig:
    """Booking window limits applied when a store does not override them."""

    advance_booking_days: int = _safe_int("ADVANCE_BOOKING_DAYS", "30")
    min_advance_hours: int = _safe_int("MIN_ADVANCE_HOURS", "2")
    max_service_duration_minutes: int = _safe_int("MAX_SERVICE_DURATION", "480")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    scheduling: SchedulingConfig = field(default_factory=SchedulingConfig)
    booking: BookingPolicyConfig = field(default_factory=BookingPolicyConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    engine_name: str = os.getenv("ENGINE_NAME", "booking-engine")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if not 1 <= config.scheduling.slot_step_minutes <= 24 * 60:
        raise ValueError(
            "SLOT_STEP_MINUTES must be between 1 and 1440, "
            f"got {config.scheduling.slot_step_minutes}"
        )
    if not config.scheduling.occupied_reason.strip():
        raise ValueError("SLOT_OCCUPIED_REASON must not be empty")
    if not 1 <= config.booking.advance_booking_days <= 365:
        raise ValueError(
            "ADVANCE_BOOKING_DAYS must be between 1 and 365, "
            f"got {config.booking.advance_booking_days}"
        )
    if not 0 <= config.booking.min_advance_hours <= 72:
        raise ValueError(
            f"MIN_ADVANCE_HOURS must be between 0 and 72, got {config.booking.min_advance_hours}"
        )
    if config.booking.max_service_duration_minutes < 1:
        raise ValueError(
            "MAX_SERVICE_DURATION must be >= 1, "
            f"got {config.booking.max_service_duration_minutes}"
        )

    for name, value in [
        ("DEFAULT_OPEN_TIME", config.scheduling.default_open_time),
        ("DEFAULT_CLOSE_TIME", config.scheduling.default_close_time),
        ("DEFAULT_WEEKEND_CLOSE_TIME", config.scheduling.default_weekend_close_time),
    ]:
        parts = value.split(":")
        if len(parts) != 2 or not all(p.isdigit() for p in parts):
            raise ValueError(f"{name} must be in HH:MM format, got {value!r}")
        hours, minutes = int(parts[0]), int(parts[1])
        if not (0 <= hours <= 23 and 0 <= minutes <= 59):
            raise ValueError(f"{name} must be a valid time of day, got {value!r}")


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info("Configuration loaded for '%s'", config.engine_name)
    return config


# Singleton instance
settings = load_config()
