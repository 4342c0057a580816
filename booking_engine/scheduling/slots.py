"""
Slot generation and the overlap primitive.

Enumerates candidate start times on a fixed grid inside a store's open
interval and flags each one available or taken, given the appointments
already booked that day.

Intervals are half-open: ``[09:00, 10:00)`` and ``[10:00, 11:00)`` do not
overlap, so back-to-back appointments are both bookable.
"""

import datetime as dt
from typing import Iterable, Iterator, Optional

from booking_engine.config import settings
from booking_engine.logging_context import get_request_logger
from booking_engine.scheduling.calendar import TimeInterval
from booking_engine.schemas.appointment_schema import ExistingAppointment, Slot
from booking_engine.utils import from_minutes, to_minutes

logger = get_request_logger(__name__)


def intervals_overlap(
    a_start: dt.time, a_end: dt.time, b_start: dt.time, b_end: dt.time
) -> bool:
    """Half-open overlap test: ``[a_start, a_end)`` and ``[b_start, b_end)`` share an instant."""
    return a_start < b_end and b_start < a_end


def find_conflicts(
    start: dt.time,
    end: dt.time,
    appointments: Iterable[ExistingAppointment],
    exclude_id: Optional[str] = None,
) -> list[ExistingAppointment]:
    """Active appointments whose interval overlaps ``[start, end)``."""
    return [
        appt
        for appt in appointments
        if appt.is_active
        and appt.id != exclude_id
        and intervals_overlap(start, end, appt.start_time, appt.end_time)
    ]


def has_conflict(
    start: dt.time,
    end: dt.time,
    appointments: Iterable[ExistingAppointment],
    exclude_id: Optional[str] = None,
) -> bool:
    return bool(find_conflicts(start, end, appointments, exclude_id))


class SlotGenerator:
    """
    Produces the ordered slot list for one store, service and date.

    Candidates start at the interval's opening time and advance on a fixed
    grid of ``step_minutes`` (30 by default). A candidate is emitted only
    when the whole service fits before closing time.
    """

    def __init__(
        self, step_minutes: Optional[int] = None, occupied_reason: Optional[str] = None
    ) -> None:
        self.step_minutes = (
            step_minutes if step_minutes is not None else settings.scheduling.slot_step_minutes
        )
        if self.step_minutes < 1:
            raise ValueError(f"step_minutes must be >= 1, got {self.step_minutes}")
        self.occupied_reason = (
            occupied_reason if occupied_reason is not None else settings.scheduling.occupied_reason
        )

    def _candidates(
        self, interval: TimeInterval, duration_minutes: int
    ) -> Iterator[tuple[dt.time, dt.time]]:
        opening = to_minutes(interval.start)
        closing = to_minutes(interval.end)
        current = opening
        while current + duration_minutes <= closing:
            yield from_minutes(current), from_minutes(current + duration_minutes)
            current += self.step_minutes

    def generate(
        self,
        interval: Optional[TimeInterval],
        duration_minutes: int,
        existing_appointments: Iterable[ExistingAppointment],
    ) -> list[Slot]:
        """
        Return slots earliest first.

        An absent interval (store closed) or a service longer than the
        interval yields an empty list. Appointments that are not active
        are ignored.
        """
        if duration_minutes <= 0:
            raise ValueError(f"duration_minutes must be > 0, got {duration_minutes}")
        if interval is None:
            return []

        booked = [appt for appt in existing_appointments if appt.is_active]
        slots: list[Slot] = []
        for start, end in self._candidates(interval, duration_minutes):
            if has_conflict(start, end, booked):
                slots.append(Slot(time=start, available=False, reason=self.occupied_reason))
            else:
                slots.append(Slot(time=start, available=True))

        logger.debug(
            "Generated %d slots (%d available) for %s-%s, duration %d min",
            len(slots), sum(1 for s in slots if s.available),
            interval.start, interval.end, duration_minutes,
        )
        return slots
