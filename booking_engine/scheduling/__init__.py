from booking_engine.scheduling.calendar import TimeInterval, WorkingHoursCalendar
from booking_engine.scheduling.lifecycle import AppointmentLifecycle, StatusTrigger
from booking_engine.scheduling.slots import (
    SlotGenerator,
    find_conflicts,
    has_conflict,
    intervals_overlap,
)

__all__ = [
    "WorkingHoursCalendar",
    "TimeInterval",
    "SlotGenerator",
    "intervals_overlap",
    "find_conflicts",
    "has_conflict",
    "AppointmentLifecycle",
    "StatusTrigger",
]
