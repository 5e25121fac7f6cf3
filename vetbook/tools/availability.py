"""
Slot availability engine.

Builds the clinic's bookable time grid for a date and subtracts the slots
already held by active appointments in the store.

``is_slot_available`` is advisory. The authoritative double-booking guard is
the store's atomic ``insert``; callers must never treat a True answer here
as a reservation.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from vetbook.config import ClinicConfig, settings
from vetbook.schemas.booking_schema import DateAvailability, DaySlots, SlotAvailability, TimeSlot
from vetbook.storage.appointment_store import AppointmentStore
from vetbook.utils import format_time_display, format_time_slot, parse_time_slot

logger = logging.getLogger(__name__)

DEFAULT_LOOKAHEAD_DAYS = 14


class SlotAvailabilityEngine:
    """Computes the slot grid and free slots against an appointment store."""

    def __init__(
        self,
        store: AppointmentStore,
        clinic: ClinicConfig = settings.clinic,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._store = store
        self._clinic = clinic
        self._clock = clock

    @property
    def clinic(self) -> ClinicConfig:
        return self._clinic

    def today(self) -> date:
        return self._clock().date()

    def is_operating_day(self, day: date) -> bool:
        return day.weekday() in self._clinic.operating_days

    def is_break_hour(self, hour: int) -> bool:
        return self._clinic.break_start_hour <= hour < self._clinic.break_end_hour

    def daily_grid(self) -> list[TimeSlot]:
        """The slot grid for any operating day, ignoring date rules."""
        clinic = self._clinic
        slots: list[TimeSlot] = []
        for hour in range(clinic.open_hour, clinic.close_hour):
            if self.is_break_hour(hour):
                continue
            for minute in range(0, 60, clinic.slot_minutes):
                slots.append(TimeSlot(
                    time=format_time_slot(hour, minute),
                    display=format_time_display(hour, minute),
                ))
        return slots

    def generate_slot_grid(self, day: date) -> list[TimeSlot]:
        """Ordered start times for ``day``; empty on closed days and past dates."""
        if day < self.today() or not self.is_operating_day(day):
            return []
        return self.daily_grid()

    def available_slots(self, day: date) -> DaySlots:
        """Grid for ``day`` with each slot flagged free or booked."""
        if day < self.today():
            return DaySlots(
                date=day,
                is_operating_day=self.is_operating_day(day),
                is_past=True,
                message="Cannot book appointments for past dates.",
            )
        if not self.is_operating_day(day):
            return DaySlots(
                date=day,
                is_operating_day=False,
                message="The clinic is closed on this day.",
            )

        grid = self.daily_grid()
        booked = self._store.list_booked_slots(day)
        slots = [
            SlotAvailability(time=s.time, display=s.display, available=s.time not in booked)
            for s in grid
        ]
        available_count = sum(1 for s in slots if s.available)
        return DaySlots(
            date=day,
            is_operating_day=True,
            slots=slots,
            total_slots=len(grid),
            available_count=available_count,
            booked_count=len(grid) - available_count,
        )

    def available_dates(
        self, start: Optional[date] = None, day_count: int = DEFAULT_LOOKAHEAD_DAYS
    ) -> list[DateAvailability]:
        """Per-day free-slot summary for ``day_count`` days from ``start`` (default today)."""
        first = start or self.today()
        results: list[DateAvailability] = []
        for offset in range(max(day_count, 0)):
            day = first + timedelta(days=offset)
            operating = self.is_operating_day(day)
            grid = self.generate_slot_grid(day)
            if grid:
                booked = self._store.list_booked_slots(day)
                free = sum(1 for s in grid if s.time not in booked)
            else:
                free = 0
            results.append(DateAvailability(
                date=day,
                day_name=day.strftime("%A"),
                is_operating_day=operating,
                available_slots=free,
                is_full=bool(grid) and free == 0,
            ))
        return results

    def is_slot_available(
        self, day: date, time_slot: str, exclude_id: Optional[str] = None
    ) -> bool:
        """True iff no active appointment holds ``time_slot`` on ``day``."""
        return not self._store.find_conflicting(day, time_slot, exclude_id)

    def suggest_alternatives(
        self,
        day: date,
        limit: Optional[int] = None,
        keep_slot: Optional[str] = None,
    ) -> list[TimeSlot]:
        """Free slots on ``day`` that could still be booked now.

        ``keep_slot`` is treated as free (the caller's own current slot when
        rescheduling).
        """
        limit = limit or self._clinic.max_suggested_slots
        grid = self.generate_slot_grid(day)
        if not grid:
            return []
        booked = self._store.list_booked_slots(day) - {keep_slot}
        earliest = None
        if day == self.today():
            now = self._clock()
            earliest = now.hour * 60 + now.minute + self._clinic.notice_buffer_minutes

        suggestions: list[TimeSlot] = []
        for slot in grid:
            if slot.time in booked:
                continue
            if earliest is not None:
                hour, minute = parse_time_slot(slot.time)
                if hour * 60 + minute < earliest:
                    continue
            suggestions.append(slot)
            if len(suggestions) >= limit:
                break
        return suggestions
