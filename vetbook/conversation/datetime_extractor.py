"""
Date and time extraction from free text.

Resolves relative expressions ("tomorrow", "next friday") and absolute
ones ("30/1", "2026-01-30", "January 30, 2026") against an injected clock.
Not finding a date or a time is a normal outcome and yields None.

Usage:
    extractor = DateTimeExtractor(clock=lambda: datetime(2026, 1, 29, 10, 0))
    extractor.extract_date("tomorrow")   # "2026-01-30"
    extractor.extract_time("2pm")        # "2:00 PM"
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from vetbook.config import ClinicConfig, settings
from vetbook.utils import format_time_display, format_time_slot, parse_time_slot

logger = logging.getLogger(__name__)

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

MONTHS = {
    "january": 1, "jan": 1, "february": 2, "feb": 2, "march": 3, "mar": 3,
    "april": 4, "apr": 4, "may": 5, "june": 6, "jun": 6, "july": 7, "jul": 7,
    "august": 8, "aug": 8, "september": 9, "sept": 9, "sep": 9,
    "october": 10, "oct": 10, "november": 11, "nov": 11, "december": 12, "dec": 12,
}
_MONTH_ALT = "|".join(sorted(MONTHS, key=len, reverse=True))

RELATIVE_DAYS = (
    (re.compile(r"\bday after tomorrow\b"), 2),
    (re.compile(r"\btomorrow\b"), 1),
    (re.compile(r"\btoday\b"), 0),
    (re.compile(r"\bnext week\b"), 7),
)
WEEKDAY_PATTERN = re.compile(r"\b(" + "|".join(WEEKDAYS) + r")\b")
SLASH_DATE = re.compile(r"\b(\d{1,2})/(\d{1,2})(?:/(\d{4}|\d{2}))?\b")
YEAR_FIRST_DATE = re.compile(r"\b(\d{4})[-.](\d{1,2})[-.](\d{1,2})\b")
YEAR_LAST_DATE = re.compile(r"\b(\d{1,2})[-.](\d{1,2})[-.](\d{4})\b")
MONTH_FIRST_DATE = re.compile(
    r"\b(" + _MONTH_ALT + r")\.?\s+(\d{1,2})(?:st|nd|rd|th)?\b(?:,?\s*(\d{4})\b)?"
)
DAY_FIRST_DATE = re.compile(
    r"\b(\d{1,2})(?:st|nd|rd|th)?\s+(?:of\s+)?(" + _MONTH_ALT + r")\b\.?(?:,?\s*(\d{4})\b)?"
)

TIME_OF_DAY = (
    (re.compile(r"\bmorning\b"), (9, 0)),
    (re.compile(r"\b(?:noon|midday)\b"), (12, 0)),
    (re.compile(r"\bafternoon\b"), (14, 0)),
    (re.compile(r"\bevening\b"), (17, 0)),
)
CLOCK_TIME = re.compile(r"\b(\d{1,2}):(\d{2})\s*(am|pm)?\b")
MERIDIEM_TIME = re.compile(r"\b(\d{1,2})\s*(am|pm)\b")
BARE_HOUR = re.compile(r"(?<![/\-.:])\b(\d{1,2})\b(?![/\-.:]\d)")
LATE_PART_OF_DAY = re.compile(r"\b(?:afternoon|evening|tonight)\b")
DATE_PATTERNS = (SLASH_DATE, YEAR_FIRST_DATE, YEAR_LAST_DATE, MONTH_FIRST_DATE, DAY_FIRST_DATE)


@dataclass(frozen=True)
class ParsedDateTime:
    """A concrete booking date and grid-aligned slot parsed from free text."""
    scheduled_date: date
    time_slot: str
    time_defaulted: bool = False

    @property
    def formatted(self) -> str:
        return f"{self.scheduled_date.isoformat()} at {self.time_slot}"


def _prepare(text: Optional[str]) -> str:
    if not text:
        return ""
    lowered = text.lower()
    return lowered.replace("a.m.", "am").replace("p.m.", "pm")


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _to_24h(hour: int, minute: int, meridiem: Optional[str]) -> Optional[tuple[int, int]]:
    """Convert a matched clock reading; None when it cannot be a time of day."""
    if minute > 59 or hour > 24:
        return None
    if meridiem:
        if hour == 0 or hour > 12:
            return None
        if meridiem == "pm" and hour < 12:
            hour += 12
        elif meridiem == "am" and hour == 12:
            hour = 0
    elif hour == 24:
        if minute:
            return None
        hour = 0
    return hour, minute


class DateTimeExtractor:
    """Pulls a calendar date and a time of day out of user text."""

    def __init__(
        self,
        clinic: ClinicConfig = settings.clinic,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._clinic = clinic
        self._clock = clock

    # ------------------------------------------------------------------ #
    # Dates
    # ------------------------------------------------------------------ #

    def resolve_date(self, text: Optional[str]) -> Optional[date]:
        lowered = _prepare(text)
        if not lowered:
            return None
        today = self._clock().date()

        for pattern, offset in RELATIVE_DAYS:
            if pattern.search(lowered):
                return today + timedelta(days=offset)

        match = WEEKDAY_PATTERN.search(lowered)
        if match:
            target = WEEKDAYS.index(match.group(1))
            delta = (target - today.weekday()) % 7 or 7
            return today + timedelta(days=delta)

        for resolver in (
            self._slash_date, self._numeric_date, self._month_first_date, self._day_first_date,
        ):
            resolved = resolver(lowered, today.year)
            if resolved is not None:
                return resolved
        return None

    def extract_date(self, text: Optional[str]) -> Optional[str]:
        """ISO date string (YYYY-MM-DD) for the first date found, or None."""
        resolved = self.resolve_date(text)
        return resolved.isoformat() if resolved else None

    @staticmethod
    def _slash_date(text: str, current_year: int) -> Optional[date]:
        for match in SLASH_DATE.finditer(text):
            day, month, year = match.groups()
            if year is None:
                full_year = current_year
            elif len(year) == 2:
                full_year = 2000 + int(year)
            else:
                full_year = int(year)
            resolved = _safe_date(full_year, int(month), int(day))
            if resolved:
                return resolved
        return None

    @staticmethod
    def _numeric_date(text: str, current_year: int) -> Optional[date]:
        for match in YEAR_FIRST_DATE.finditer(text):
            year, month, day = (int(g) for g in match.groups())
            resolved = _safe_date(year, month, day)
            if resolved:
                return resolved
        for match in YEAR_LAST_DATE.finditer(text):
            day, month, year = (int(g) for g in match.groups())
            resolved = _safe_date(year, month, day)
            if resolved:
                return resolved
        return None

    @staticmethod
    def _month_first_date(text: str, current_year: int) -> Optional[date]:
        for match in MONTH_FIRST_DATE.finditer(text):
            month_name, day, year = match.groups()
            resolved = _safe_date(
                int(year) if year else current_year, MONTHS[month_name], int(day)
            )
            if resolved:
                return resolved
        return None

    @staticmethod
    def _day_first_date(text: str, current_year: int) -> Optional[date]:
        for match in DAY_FIRST_DATE.finditer(text):
            day, month_name, year = match.groups()
            resolved = _safe_date(
                int(year) if year else current_year, MONTHS[month_name], int(day)
            )
            if resolved:
                return resolved
        return None

    # ------------------------------------------------------------------ #
    # Times
    # ------------------------------------------------------------------ #

    def resolve_time(self, text: Optional[str]) -> Optional[tuple[int, int]]:
        """(hour, minute) in 24-hour form.

        Precedence: a colon or am/pm reading, then a bare hour, then a
        part-of-day word, so "tomorrow morning at 10am" resolves to 10:00.
        A bare hour is read as given ("tomorrow 11" is 11:00) unless an
        afternoon or evening word moves it past noon. Numbers that belong
        to a date ("30/1", "feb 15") are never read as hours.
        """
        lowered = _prepare(text)
        if not lowered:
            return None

        for match in CLOCK_TIME.finditer(lowered):
            resolved = _to_24h(int(match.group(1)), int(match.group(2)), match.group(3))
            if resolved:
                return resolved
        for match in MERIDIEM_TIME.finditer(lowered):
            resolved = _to_24h(int(match.group(1)), 0, match.group(2))
            if resolved:
                return resolved

        undated = lowered
        for pattern in DATE_PATTERNS:
            undated = pattern.sub(" ", undated)
        for match in BARE_HOUR.finditer(undated):
            resolved = _to_24h(int(match.group(1)), 0, None)
            if resolved:
                hour, minute = resolved
                if 0 < hour < 12 and LATE_PART_OF_DAY.search(undated):
                    hour += 12
                return hour, minute

        for pattern, value in TIME_OF_DAY:
            if pattern.search(lowered):
                return value
        return None

    def extract_time(self, text: Optional[str]) -> Optional[str]:
        """12-hour display string such as "2:30 PM", or None."""
        resolved = self.resolve_time(text)
        return format_time_display(*resolved) if resolved else None

    def extract_date_time(self, text: Optional[str]) -> Optional[str]:
        """Whichever of date and time were found, joined by a space."""
        parts = [p for p in (self.extract_date(text), self.extract_time(text)) if p]
        return " ".join(parts) if parts else None

    # ------------------------------------------------------------------ #
    # Booking slot
    # ------------------------------------------------------------------ #

    def round_to_slot(self, hour: int, minute: int) -> str:
        """Round to the nearest slot boundary, half up."""
        quantum = self._clinic.slot_minutes
        total = hour * 60 + (minute + quantum // 2) // quantum * quantum
        return format_time_slot((total // 60) % 24, total % 60)

    def parse_date_time(self, text: Optional[str]) -> Optional[ParsedDateTime]:
        """Date plus a grid-aligned slot. None when no date can be found.

        A missing time falls back to the clinic's default slot.
        """
        resolved_date = self.resolve_date(text)
        if resolved_date is None:
            logger.debug("No date found in %r", text)
            return None

        resolved_time = self.resolve_time(text)
        if resolved_time is None:
            default = parse_time_slot(self._clinic.default_time_slot) or (9, 0)
            return ParsedDateTime(
                scheduled_date=resolved_date,
                time_slot=format_time_slot(*default),
                time_defaulted=True,
            )
        return ParsedDateTime(
            scheduled_date=resolved_date,
            time_slot=self.round_to_slot(*resolved_time),
        )
