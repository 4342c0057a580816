from booking_engine.repository.base import AppointmentConflictError, Repository
from booking_engine.repository.memory import InMemoryRepository

__all__ = ["Repository", "AppointmentConflictError", "InMemoryRepository"]
