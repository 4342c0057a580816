"""
Working-hours calendar.

Resolves a store's weekly schedule into the open interval for one
calendar date. Pure functions, no I/O.

Usage:
    interval = WorkingHoursCalendar().open_interval(store.working_hours, date(2025, 3, 17))
    if interval is None:
        ...  # closed that day
"""

import datetime as dt
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from booking_engine.errors import ConfigurationError
from booking_engine.logging_context import get_request_logger
from booking_engine.schemas.store_schema import WEEKDAYS, DaySchedule, default_working_hours
from booking_engine.utils import parse_time, to_minutes

logger = get_request_logger(__name__)


@dataclass(frozen=True)
class TimeInterval:
    """Half-open interval ``[start, end)`` within a single day."""

    start: dt.time
    end: dt.time

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ValueError(f"Interval start {self.start} must precede end {self.end}")

    @property
    def duration_minutes(self) -> int:
        return to_minutes(self.end) - to_minutes(self.start)

    def contains(self, start: dt.time, end: dt.time) -> bool:
        """Whether ``[start, end)`` lies entirely inside this interval."""
        return self.start <= start and end <= self.end


def _coerce_day(day_name: str, raw: Any) -> DaySchedule:
    if isinstance(raw, DaySchedule):
        return raw
    try:
        return DaySchedule.model_validate(raw)
    except ValidationError as exc:
        raise ConfigurationError(
            f"Horário de funcionamento inválido para {day_name}", day=day_name, error=exc
        ) from exc


class WorkingHoursCalendar:
    """Translates a weekly working-hours map into per-date open intervals."""

    def resolve_day(
        self, working_hours: Optional[Mapping[str, Any]], date: dt.date
    ) -> Optional[DaySchedule]:
        """Return the raw schedule entry for ``date``'s weekday, or None if absent."""
        hours = working_hours if working_hours is not None else default_working_hours()
        unknown = [key for key in hours if key not in WEEKDAYS]
        if unknown:
            raise ConfigurationError(
                "Dia da semana desconhecido no horário de funcionamento", days=unknown
            )
        day_name = WEEKDAYS[date.weekday()]
        raw = hours.get(day_name)
        if raw is None:
            return None
        return _coerce_day(day_name, raw)

    def open_interval(
        self, working_hours: Optional[Mapping[str, Any]], date: dt.date
    ) -> Optional[TimeInterval]:
        """
        Open interval for ``date``, or None when the store is closed that day.

        Raises:
            ConfigurationError: the day's entry has malformed times or
                start >= end while active.
        """
        day_name = WEEKDAYS[date.weekday()]
        day = self.resolve_day(working_hours, date)
        if day is None or not day.active:
            return None

        start = parse_time(day.start)
        end = parse_time(day.end)
        if start is None or end is None:
            raise ConfigurationError(
                f"Horário mal formatado para {day_name}",
                day=day_name, start=day.start, end=day.end,
            )
        if start >= end:
            raise ConfigurationError(
                f"Horário de abertura deve ser anterior ao de fechamento ({day_name})",
                day=day_name, start=day.start, end=day.end,
            )
        return TimeInterval(start, end)

    def contains(
        self,
        working_hours: Optional[Mapping[str, Any]],
        date: dt.date,
        start: dt.time,
        end: dt.time,
    ) -> bool:
        """Whether a booking ``[start, end)`` on ``date`` fits the store's hours."""
        interval = self.open_interval(working_hours, date)
        if interval is None:
            logger.debug("Store closed on %s (%s)", date, WEEKDAYS[date.weekday()])
            return False
        return interval.contains(start, end)
