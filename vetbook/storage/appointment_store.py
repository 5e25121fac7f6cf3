"""
Appointment store interface and an in-memory reference implementation.

The store is the only shared mutable resource in the booking core. It is
responsible for keeping "at most one active appointment per (date, slot)"
true under concurrent commits, so ``insert`` and ``update`` perform their
conflict checks and the write as one atomic step. A plain check in the
caller followed by a separate insert is racy and must not be relied on.

In production this would be backed by a database with a partial unique
index on (scheduled_date, scheduled_time_slot) for active rows.
"""

import logging
import threading
from datetime import date, datetime
from typing import Any, Iterable, Optional, Protocol

from vetbook.errors import AppointmentNotFoundError, DuplicateBookingError, SlotConflictError
from vetbook.schemas.booking_schema import (
    INACTIVE_STATUSES,
    Appointment,
    AppointmentFilter,
    AppointmentStatus,
)
from vetbook.utils import normalize_phone

logger = logging.getLogger(__name__)


class AppointmentStore(Protocol):
    """Query and write capabilities the booking core depends on."""

    def find_conflicting(
        self, scheduled_date: date, time_slot: str, exclude_id: Optional[str] = None
    ) -> bool: ...

    def list_booked_slots(self, scheduled_date: date) -> set[str]: ...

    def insert(self, appointment: Appointment) -> str: ...

    def update(self, appointment_id: str, changes: dict[str, Any]) -> Appointment: ...

    def update_status(self, appointment_id: str, status: AppointmentStatus) -> Appointment: ...

    def delete(self, appointment_id: str) -> Appointment: ...

    def find_by_id(self, appointment_id: str) -> Optional[Appointment]: ...

    def find_by_session(self, session_id: str) -> list[Appointment]: ...

    def find_by_date_range(
        self,
        start: date,
        end: date,
        statuses: Optional[Iterable[AppointmentStatus]] = None,
    ) -> list[Appointment]: ...

    def filter_query(self, options: AppointmentFilter) -> tuple[list[Appointment], int]: ...

    def all(self) -> list[Appointment]: ...


def _sort_key(appt: Appointment, sort_by: str) -> tuple:
    if sort_by == "created_at":
        return (appt.created_at,)
    if sort_by == "owner_name":
        return (appt.owner_name.lower(),)
    return (appt.scheduled_date, appt.scheduled_time_slot)


class InMemoryAppointmentStore:
    """Thread-safe dict-backed store with atomic check-and-insert."""

    def __init__(self) -> None:
        self._appointments: dict[str, Appointment] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------ #
    # Conflict queries (caller must hold the lock for check-then-write)
    # ------------------------------------------------------------------ #

    def _slot_holder(
        self, scheduled_date: date, time_slot: str, exclude_id: Optional[str]
    ) -> Optional[Appointment]:
        for appt in self._appointments.values():
            if (
                appt.id != exclude_id
                and appt.scheduled_date == scheduled_date
                and appt.scheduled_time_slot == time_slot
                and appt.status not in INACTIVE_STATUSES
            ):
                return appt
        return None

    def _same_day_booking(
        self, phone: str, scheduled_date: date, exclude_id: Optional[str]
    ) -> Optional[Appointment]:
        wanted = normalize_phone(phone)
        for appt in self._appointments.values():
            if (
                appt.id != exclude_id
                and appt.scheduled_date == scheduled_date
                and appt.status not in INACTIVE_STATUSES
                and normalize_phone(appt.phone) == wanted
            ):
                return appt
        return None

    def find_conflicting(
        self, scheduled_date: date, time_slot: str, exclude_id: Optional[str] = None
    ) -> bool:
        with self._lock:
            return self._slot_holder(scheduled_date, time_slot, exclude_id) is not None

    def list_booked_slots(self, scheduled_date: date) -> set[str]:
        with self._lock:
            return {
                appt.scheduled_time_slot
                for appt in self._appointments.values()
                if appt.scheduled_date == scheduled_date
                and appt.status not in INACTIVE_STATUSES
            }

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    def insert(self, appointment: Appointment) -> str:
        """Insert if the slot is free and the phone has no booking that day.

        Raises:
            SlotConflictError: another active appointment holds the slot.
            DuplicateBookingError: the phone already has an active booking that day.
        """
        with self._lock:
            if self._slot_holder(
                appointment.scheduled_date, appointment.scheduled_time_slot, None
            ):
                logger.warning(
                    "Slot conflict on insert: %s %s",
                    appointment.scheduled_date, appointment.scheduled_time_slot,
                )
                raise SlotConflictError(
                    appointment.scheduled_date, appointment.scheduled_time_slot
                )
            existing = self._same_day_booking(
                appointment.phone, appointment.scheduled_date, None
            )
            if existing is not None:
                logger.warning(
                    "Duplicate booking on %s (existing %s)",
                    appointment.scheduled_date, existing.id,
                )
                raise DuplicateBookingError(appointment.scheduled_date, existing.id)

            self._appointments[appointment.id] = appointment.model_copy(deep=True)
            logger.debug("Appointment stored: %s", appointment.id)
            return appointment.id

    def update(self, appointment_id: str, changes: dict[str, Any]) -> Appointment:
        """Apply field changes, re-checking slot and same-day phone when they move.

        Raises:
            AppointmentNotFoundError: no appointment with that id.
            SlotConflictError: the new slot is held by another active appointment.
            DuplicateBookingError: the phone already has another active booking that day.
        """
        with self._lock:
            current = self._appointments.get(appointment_id)
            if current is None:
                raise AppointmentNotFoundError(appointment_id)

            updated = Appointment.model_validate(
                {**current.model_dump(), **changes, "updated_at": datetime.now()}
            )
            reactivated = not current.is_active and updated.is_active
            date_moved = updated.scheduled_date != current.scheduled_date
            slot_moved = (
                date_moved
                or updated.scheduled_time_slot != current.scheduled_time_slot
                or reactivated
            )
            if slot_moved and updated.is_active and self._slot_holder(
                updated.scheduled_date, updated.scheduled_time_slot, appointment_id
            ):
                logger.warning(
                    "Slot conflict on update of %s: %s %s",
                    appointment_id, updated.scheduled_date, updated.scheduled_time_slot,
                )
                raise SlotConflictError(updated.scheduled_date, updated.scheduled_time_slot)

            phone_changed = normalize_phone(updated.phone) != normalize_phone(current.phone)
            if updated.is_active and (date_moved or phone_changed or reactivated):
                existing = self._same_day_booking(
                    updated.phone, updated.scheduled_date, appointment_id
                )
                if existing is not None:
                    logger.warning(
                        "Duplicate booking on update of %s: %s (existing %s)",
                        appointment_id, updated.scheduled_date, existing.id,
                    )
                    raise DuplicateBookingError(updated.scheduled_date, existing.id)

            self._appointments[appointment_id] = updated
            return updated.model_copy(deep=True)

    def update_status(self, appointment_id: str, status: AppointmentStatus) -> Appointment:
        return self.update(appointment_id, {"status": status})

    def delete(self, appointment_id: str) -> Appointment:
        with self._lock:
            removed = self._appointments.pop(appointment_id, None)
            if removed is None:
                raise AppointmentNotFoundError(appointment_id)
            return removed

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    def find_by_id(self, appointment_id: str) -> Optional[Appointment]:
        with self._lock:
            appt = self._appointments.get(appointment_id)
            return appt.model_copy(deep=True) if appt else None

    def find_by_session(self, session_id: str) -> list[Appointment]:
        with self._lock:
            found = [a for a in self._appointments.values() if a.session_id == session_id]
        found.sort(key=lambda a: (a.scheduled_date, a.scheduled_time_slot), reverse=True)
        return [a.model_copy(deep=True) for a in found]

    def find_by_date_range(
        self,
        start: date,
        end: date,
        statuses: Optional[Iterable[AppointmentStatus]] = None,
    ) -> list[Appointment]:
        """Appointments with ``start <= scheduled_date <= end``, ordered by date and slot."""
        allowed = set(statuses) if statuses is not None else None
        with self._lock:
            found = [
                a for a in self._appointments.values()
                if start <= a.scheduled_date <= end
                and (allowed is None or a.status in allowed)
            ]
        found.sort(key=lambda a: (a.scheduled_date, a.scheduled_time_slot))
        return [a.model_copy(deep=True) for a in found]

    def filter_query(self, options: AppointmentFilter) -> tuple[list[Appointment], int]:
        """Filter, sort, and paginate. Returns (page of appointments, total matches)."""
        with self._lock:
            matches = list(self._appointments.values())

        if options.status is not None:
            matches = [a for a in matches if a.status == options.status]
        if options.on_date is not None:
            matches = [a for a in matches if a.scheduled_date == options.on_date]
        if options.start_date is not None:
            matches = [a for a in matches if a.scheduled_date >= options.start_date]
        if options.end_date is not None:
            matches = [a for a in matches if a.scheduled_date <= options.end_date]
        if options.search:
            needle = options.search.lower()
            matches = [
                a for a in matches
                if needle in a.owner_name.lower()
                or needle in a.pet_name.lower()
                or needle in a.phone.lower()
            ]

        matches.sort(
            key=lambda a: _sort_key(a, options.sort_by),
            reverse=options.sort_order == "desc",
        )
        offset = (options.page - 1) * options.limit
        page = matches[offset:offset + options.limit]
        return [a.model_copy(deep=True) for a in page], len(matches)

    def all(self) -> list[Appointment]:
        with self._lock:
            return [a.model_copy(deep=True) for a in self._appointments.values()]

    def reset(self) -> None:
        """Clear all appointments. Used by test fixtures for isolation."""
        with self._lock:
            self._appointments.clear()
