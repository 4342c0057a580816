"""
Appointment notification seam.

Delivery channels (WhatsApp, email, websocket) live outside the engine.
The booking service calls a notifier only after an appointment is
persisted, and treats any failure as a post-commit warning.
"""

from abc import ABC, abstractmethod

from booking_engine.logging_context import get_request_logger
from booking_engine.schemas.appointment_schema import Appointment
from booking_engine.schemas.store_schema import Service, Store

logger = get_request_logger(__name__)


class AppointmentNotifier(ABC):
    """Receives appointment events once they are durable."""

    @abstractmethod
    def appointment_created(self, appointment: Appointment, store: Store, service: Service) -> None:
        pass

    @abstractmethod
    def appointment_cancelled(self, appointment: Appointment) -> None:
        pass

    @abstractmethod
    def appointment_rescheduled(self, appointment: Appointment) -> None:
        pass


class LoggingNotifier(AppointmentNotifier):
    """Default notifier: records events in the log only."""

    def appointment_created(self, appointment: Appointment, store: Store, service: Service) -> None:
        logger.info(
            "Notify: appointment %s created at %s for %s on %s %s",
            appointment.id, store.name or store.id, service.name or service.id,
            appointment.date, appointment.start_time.strftime("%H:%M"),
        )

    def appointment_cancelled(self, appointment: Appointment) -> None:
        logger.info("Notify: appointment %s cancelled", appointment.id)

    def appointment_rescheduled(self, appointment: Appointment) -> None:
        logger.info(
            "Notify: appointment %s moved to %s %s",
            appointment.id, appointment.date, appointment.start_time.strftime("%H:%M"),
        )
