"""
Finite state machine for appointment status changes.

Every status change a store owner or admin can make is an explicit
transition with a trigger. Cancelled, completed and no-show appointments
are terminal and no longer hold their slot.

Usage:
    lifecycle = AppointmentLifecycle(AppointmentStatus.PENDING)
    lifecycle.transition(StatusTrigger.CONFIRM)
    assert lifecycle.current_status == AppointmentStatus.CONFIRMED
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from booking_engine.errors import InvalidTransitionError
from booking_engine.logging_context import get_request_logger
from booking_engine.schemas.appointment_schema import ACTIVE_STATUSES, AppointmentStatus

logger = get_request_logger(__name__)


class StatusTrigger(str, Enum):
    """Actions that change an appointment's status."""
    CONFIRM = "confirm"
    CANCEL = "cancel"
    COMPLETE = "complete"
    MARK_NO_SHOW = "mark_no_show"


@dataclass
class Transition:
    """A single valid status transition."""
    from_status: AppointmentStatus
    to_status: AppointmentStatus
    trigger: StatusTrigger


@dataclass
class StatusEntry:
    """Recorded history entry for a status change."""
    status: AppointmentStatus
    entered_at: datetime
    trigger: Optional[StatusTrigger] = None


TERMINAL_STATUSES = frozenset({
    AppointmentStatus.CANCELLED,
    AppointmentStatus.COMPLETED,
    AppointmentStatus.NO_SHOW,
})


class AppointmentLifecycle:
    """Deterministic status machine for a single appointment."""

    TRANSITIONS: list[Transition] = [
        Transition(AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED,
                   StatusTrigger.CONFIRM),
        Transition(AppointmentStatus.PENDING, AppointmentStatus.CANCELLED,
                   StatusTrigger.CANCEL),
        Transition(AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED,
                   StatusTrigger.CANCEL),
        Transition(AppointmentStatus.CONFIRMED, AppointmentStatus.COMPLETED,
                   StatusTrigger.COMPLETE),
        Transition(AppointmentStatus.CONFIRMED, AppointmentStatus.NO_SHOW,
                   StatusTrigger.MARK_NO_SHOW),
    ]

    def __init__(self, status: AppointmentStatus = AppointmentStatus.PENDING) -> None:
        self._current_status = status
        self._history: list[StatusEntry] = [
            StatusEntry(status=status, entered_at=datetime.now())
        ]

    @property
    def current_status(self) -> AppointmentStatus:
        return self._current_status

    def transition(self, trigger: StatusTrigger) -> AppointmentStatus:
        """
        Apply a trigger to the current status.

        Raises:
            InvalidTransitionError: If the trigger is not valid from the current status.
        """
        for t in self.TRANSITIONS:
            if t.from_status == self._current_status and t.trigger == trigger:
                old_status = self._current_status
                self._current_status = t.to_status
                self._history.append(StatusEntry(
                    status=self._current_status,
                    entered_at=datetime.now(),
                    trigger=trigger,
                ))
                logger.debug(
                    "Status transition: %s -> %s (trigger: %s)",
                    old_status.value, self._current_status.value, trigger.value,
                )
                return self._current_status

        valid = [t.value for t in self.get_valid_triggers()]
        raise InvalidTransitionError(
            f"Não é possível aplicar '{trigger.value}' a um agendamento "
            f"'{self._current_status.value}'. Ações válidas: {valid}",
            status=self._current_status.value,
            trigger=trigger.value,
        )

    def get_valid_triggers(self) -> list[StatusTrigger]:
        """Return all triggers valid from the current status."""
        return [t.trigger for t in self.TRANSITIONS if t.from_status == self._current_status]

    def get_history(self) -> list[StatusEntry]:
        return list(self._history)

    def is_terminal(self) -> bool:
        return self._current_status in TERMINAL_STATUSES

    def holds_slot(self) -> bool:
        return self._current_status in ACTIVE_STATUSES
