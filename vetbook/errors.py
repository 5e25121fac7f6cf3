"""Exception types raised by the stores and the dialogue state machine.

Input validation problems are never raised; they are returned as
``ValidationIssue`` lists. These exceptions cover the conditions that must
stay distinguishable from a generic failure.
"""

from datetime import date
from typing import Optional


class BookingError(Exception):
    """Base class for booking-domain errors."""

    code = "BOOKING_ERROR"


class SlotConflictError(BookingError):
    """The (date, time slot) pair is already held by an active appointment."""

    code = "SLOT_TAKEN"

    def __init__(self, scheduled_date: date, time_slot: str) -> None:
        super().__init__(f"Slot {time_slot} on {scheduled_date.isoformat()} is already booked")
        self.scheduled_date = scheduled_date
        self.time_slot = time_slot


class DuplicateBookingError(BookingError):
    """The same phone number already has an active appointment on that date."""

    code = "DUPLICATE_BOOKING"

    def __init__(self, scheduled_date: date, existing_id: str) -> None:
        super().__init__(
            f"Phone already has appointment {existing_id} on {scheduled_date.isoformat()}"
        )
        self.scheduled_date = scheduled_date
        self.existing_id = existing_id


class NotFoundError(BookingError):
    """Base class for unknown-identifier errors."""

    code = "NOT_FOUND"


class AppointmentNotFoundError(NotFoundError):
    def __init__(self, appointment_id: str) -> None:
        super().__init__(f"Appointment {appointment_id} not found")
        self.appointment_id = appointment_id


class SessionNotFoundError(NotFoundError):
    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session {session_id} not found")
        self.session_id = session_id


class ConcurrentUpdateError(BookingError):
    """A session write lost a race with another turn for the same session."""

    code = "CONCURRENT_UPDATE"

    def __init__(self, session_id: str, expected: int, actual: Optional[int]) -> None:
        super().__init__(
            f"Session {session_id} changed concurrently (expected version {expected}, "
            f"found {actual})"
        )
        self.session_id = session_id
        self.expected = expected
        self.actual = actual


class InvalidTransitionError(Exception):
    """Raised when a transition is not valid from the current state."""
