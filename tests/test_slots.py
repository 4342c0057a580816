"""Tests for slot generation and the overlap predicate."""

import pytest

from booking_engine.scheduling.calendar import TimeInterval
from booking_engine.scheduling.slots import (
    SlotGenerator,
    find_conflicts,
    has_conflict,
    intervals_overlap,
)
from booking_engine.schemas.appointment_schema import AppointmentStatus
from tests.conftest import make_appointment, t

WORKDAY = TimeInterval(t("09:00"), t("18:00"))


class TestIntervalsOverlap:
    def test_adjacent_intervals_do_not_overlap(self):
        assert not intervals_overlap(t("09:00"), t("10:00"), t("10:00"), t("11:00"))
        assert not intervals_overlap(t("10:00"), t("11:00"), t("09:00"), t("10:00"))

    def test_partial_overlap(self):
        assert intervals_overlap(t("09:00"), t("10:00"), t("09:30"), t("10:30"))

    def test_containment_overlaps_both_ways(self):
        assert intervals_overlap(t("09:00"), t("12:00"), t("10:00"), t("11:00"))
        assert intervals_overlap(t("10:00"), t("11:00"), t("09:00"), t("12:00"))

    def test_identical_intervals_overlap(self):
        assert intervals_overlap(t("14:00"), t("15:00"), t("14:00"), t("15:00"))

    def test_disjoint(self):
        assert not intervals_overlap(t("09:00"), t("09:30"), t("11:00"), t("12:00"))


class TestFindConflicts:
    def test_ignores_inactive_appointments(self):
        appts = [
            make_appointment("10:00", "11:00", status=AppointmentStatus.CANCELLED),
            make_appointment("10:00", "11:00", status=AppointmentStatus.COMPLETED),
            make_appointment("10:00", "11:00", status=AppointmentStatus.NO_SHOW),
        ]
        assert find_conflicts(t("10:00"), t("11:00"), appts) == []

    def test_pending_counts(self):
        pending = make_appointment("10:00", "11:00", status=AppointmentStatus.PENDING)
        assert find_conflicts(t("10:30"), t("11:30"), [pending]) == [pending]

    def test_exclude_id(self):
        appt = make_appointment("10:00", "11:00")
        assert not has_conflict(t("10:00"), t("11:00"), [appt], exclude_id=appt.id)


class TestSlotGenerator:
    def test_occupied_slot_scenario(self, slot_generator):
        existing = [make_appointment("10:00", "10:30")]
        slots = slot_generator.generate(WORKDAY, 30, existing)
        by_time = {s.time: s for s in slots}

        assert not by_time[t("10:00")].available
        assert by_time[t("10:00")].reason == "Horário ocupado"
        assert by_time[t("10:30")].available
        assert by_time[t("10:30")].reason is None

    def test_grid_covers_whole_day(self, slot_generator):
        slots = slot_generator.generate(WORKDAY, 30, [])
        assert len(slots) == 18
        assert slots[0].time == t("09:00")
        assert slots[-1].time == t("17:30")
        assert all(s.available for s in slots)

    def test_service_must_end_by_closing(self, slot_generator):
        slots = slot_generator.generate(WORKDAY, 60, [])
        assert slots[-1].time == t("17:00")

    def test_45_minute_service_in_60_minute_window(self, slot_generator):
        window = TimeInterval(t("09:00"), t("10:00"))
        slots = slot_generator.generate(window, 45, [])
        assert [s.time for s in slots] == [t("09:00")]

    def test_service_longer_than_window(self, slot_generator):
        window = TimeInterval(t("09:00"), t("10:00"))
        assert slot_generator.generate(window, 90, []) == []

    def test_closed_day_yields_empty_list(self, slot_generator):
        assert slot_generator.generate(None, 30, []) == []

    def test_long_service_blocked_by_later_appointment(self, slot_generator):
        existing = [make_appointment("11:00", "11:30")]
        slots = {s.time: s.available for s in slot_generator.generate(WORKDAY, 90, existing)}
        assert slots[t("09:00")]
        assert slots[t("09:30")]
        assert not slots[t("10:00")]
        assert not slots[t("11:00")]
        assert slots[t("11:30")]

    def test_cancelled_appointment_frees_slot(self, slot_generator):
        existing = [make_appointment("10:00", "11:00", status=AppointmentStatus.CANCELLED)]
        slots = slot_generator.generate(WORKDAY, 60, existing)
        assert all(s.available for s in slots)

    def test_output_is_sorted(self, slot_generator):
        existing = [make_appointment("15:00", "16:00"), make_appointment("09:00", "10:00")]
        times = [s.time for s in slot_generator.generate(WORKDAY, 30, existing)]
        assert times == sorted(times)

    def test_idempotent(self, slot_generator):
        existing = [make_appointment("10:00", "10:30"), make_appointment("13:00", "14:00")]
        first = slot_generator.generate(WORKDAY, 30, existing)
        second = slot_generator.generate(WORKDAY, 30, existing)
        assert first == second

    def test_custom_step(self):
        generator = SlotGenerator(step_minutes=15)
        window = TimeInterval(t("09:00"), t("10:00"))
        times = [s.time for s in generator.generate(window, 30, [])]
        assert times == [t("09:00"), t("09:15"), t("09:30")]

    def test_non_positive_duration_rejected(self, slot_generator):
        with pytest.raises(ValueError, match="duration_minutes"):
            slot_generator.generate(WORKDAY, 0, [])

    @pytest.mark.parametrize("step", [0, -5])
    def test_non_positive_step_rejected(self, step):
        with pytest.raises(ValueError, match="step_minutes"):
            SlotGenerator(step_minutes=step)
