"""
Field-level and cross-field validation for appointment bookings.

Every rule returns a list of ``ValidationIssue`` and never raises for
expected bad input. Two entry points share the rules:

- full validation (direct booking): every required field is enforced
- partial validation (updates): only the fields present are checked

The dialogue uses the lighter ``is_valid_name`` / ``is_valid_phone``
predicates for its single-field turns.
"""

import logging
import re
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from vetbook.config import ClinicConfig, settings
from vetbook.schemas.booking_schema import AppointmentStatus, PetType, ValidationIssue
from vetbook.tools.services import get_service_ids
from vetbook.utils import parse_time_slot, strip_phone_separators

logger = logging.getLogger(__name__)

# Validation thresholds
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100
PET_NAME_MAX_LENGTH = 50
PHONE_MIN_LENGTH = 10
PHONE_MAX_LENGTH = 15
EMAIL_MAX_LENGTH = 100
REASON_MAX_LENGTH = 500
NOTES_MAX_LENGTH = 1000
PREFERRED_DATE_TIME_MIN_LENGTH = 5

NAME_PATTERN = re.compile(r"^[a-zA-Z\s\-'.]+$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_PATTERN_INTL = re.compile(
    r"^[+]?[(]?[0-9]{1,3}[)]?[-\s.]?[0-9]{1,4}[-\s.]?[0-9]{1,4}[-\s.]?[0-9]{1,9}$"
)
CLEAN_PHONE_PATTERN = re.compile(r"^\+?\d+$")


class ValidationMode(str, Enum):
    FULL = "full"
    PARTIAL = "partial"


def is_valid_name(value: Optional[str]) -> bool:
    """Dialogue check: trimmed length within the owner-name bounds."""
    if not value:
        return False
    return NAME_MIN_LENGTH <= len(value.strip()) <= NAME_MAX_LENGTH


def is_valid_phone(value: Optional[str]) -> bool:
    """Dialogue check: permissive international pattern, or 10-15 clean digits."""
    if not value:
        return False
    clean = strip_phone_separators(value)
    return bool(PHONE_PATTERN_INTL.match(value)) or (
        PHONE_MIN_LENGTH <= len(clean) <= PHONE_MAX_LENGTH
        and bool(CLEAN_PHONE_PATTERN.match(clean))
    )


class ValidationErrors:
    """Aggregates validation issues across all checked fields."""

    def __init__(self) -> None:
        self._errors: list[ValidationIssue] = []

    def add(self, field: str, message: str, code: str = "VALIDATION_ERROR") -> None:
        self._errors.append(ValidationIssue(field=field, message=message, code=code))

    def extend(self, issues: list[ValidationIssue]) -> None:
        self._errors.extend(issues)

    def has_errors(self) -> bool:
        return bool(self._errors)

    @property
    def errors(self) -> list[ValidationIssue]:
        return list(self._errors)

    def first_error(self) -> Optional[ValidationIssue]:
        return self._errors[0] if self._errors else None

    def codes_for(self, field: str) -> list[str]:
        return [e.code for e in self._errors if e.field == field]

    def summary(self) -> str:
        if len(self._errors) == 1:
            return self._errors[0].message
        return "Multiple validation errors"

    def to_response(self) -> dict[str, Any]:
        return {
            "success": False,
            "error": self.summary(),
            "validation_errors": [e.model_dump() for e in self._errors],
        }

    def __len__(self) -> int:
        return len(self._errors)


def _issue(field: str, message: str, code: str) -> ValidationIssue:
    return ValidationIssue(field=field, message=message, code=code)


def parse_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


class BookingValidator:
    """Applies the clinic's booking rules to raw booking data."""

    def __init__(
        self,
        clinic: ClinicConfig = settings.clinic,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._clinic = clinic
        self._clock = clock

    # ------------------------------------------------------------------ #
    # Per-field rules
    # ------------------------------------------------------------------ #

    def validate_owner_name(self, name: Any) -> list[ValidationIssue]:
        field = "owner_name"
        if not name or not isinstance(name, str):
            return [_issue(field, "Owner name is required", "REQUIRED")]

        errors = []
        trimmed = name.strip()
        if not trimmed:
            errors.append(_issue(field, "Owner name cannot be empty", "EMPTY"))
        elif len(trimmed) < NAME_MIN_LENGTH:
            errors.append(_issue(
                field, f"Owner name must be at least {NAME_MIN_LENGTH} characters", "TOO_SHORT"
            ))
        elif len(trimmed) > NAME_MAX_LENGTH:
            errors.append(_issue(
                field, f"Owner name cannot exceed {NAME_MAX_LENGTH} characters", "TOO_LONG"
            ))

        if trimmed and not NAME_PATTERN.match(trimmed):
            errors.append(_issue(
                field,
                "Owner name contains invalid characters. Only letters, spaces, hyphens, "
                "apostrophes, and periods are allowed",
                "INVALID_CHARACTERS",
            ))
        return errors

    def validate_pet_name(self, name: Any) -> list[ValidationIssue]:
        field = "pet_name"
        if not name or not isinstance(name, str):
            return [_issue(field, "Pet name is required", "REQUIRED")]
        trimmed = name.strip()
        if not trimmed:
            return [_issue(field, "Pet name cannot be empty", "EMPTY")]
        if len(trimmed) > PET_NAME_MAX_LENGTH:
            return [_issue(
                field, f"Pet name cannot exceed {PET_NAME_MAX_LENGTH} characters", "TOO_LONG"
            )]
        return []

    def validate_pet_type(self, pet_type: Any) -> list[ValidationIssue]:
        if not pet_type:
            return []
        allowed = [p.value for p in PetType]
        value = pet_type.value if isinstance(pet_type, PetType) else pet_type
        if value not in allowed:
            return [_issue(
                "pet_type", f"Invalid pet type. Must be one of: {', '.join(allowed)}",
                "INVALID_VALUE",
            )]
        return []

    def validate_phone(self, phone: Any) -> list[ValidationIssue]:
        field = "phone"
        if not phone or not isinstance(phone, str):
            return [_issue(field, "Phone number is required", "REQUIRED")]
        trimmed = phone.strip()
        if not trimmed:
            return [_issue(field, "Phone number cannot be empty", "EMPTY")]

        clean = strip_phone_separators(trimmed)
        if len(clean) < PHONE_MIN_LENGTH:
            return [_issue(
                field,
                f"Phone number is too short. Must be at least {PHONE_MIN_LENGTH} digits",
                "TOO_SHORT",
            )]
        if len(clean) > PHONE_MAX_LENGTH:
            return [_issue(
                field,
                f"Phone number is too long. Cannot exceed {PHONE_MAX_LENGTH} digits",
                "TOO_LONG",
            )]
        if not CLEAN_PHONE_PATTERN.match(clean):
            return [_issue(
                field,
                "Phone number contains invalid characters. Only digits and + are allowed",
                "INVALID_FORMAT",
            )]
        return []

    def validate_email(self, email: Any) -> list[ValidationIssue]:
        field = "email"
        if not email:
            return []
        if not isinstance(email, str):
            return [_issue(field, "Email must be a string", "INVALID_TYPE")]

        errors = []
        trimmed = email.strip()
        if trimmed and not EMAIL_PATTERN.match(trimmed):
            errors.append(_issue(field, "Invalid email format", "INVALID_FORMAT"))
        if len(trimmed) > EMAIL_MAX_LENGTH:
            errors.append(_issue(
                field, f"Email cannot exceed {EMAIL_MAX_LENGTH} characters", "TOO_LONG"
            ))
        return errors

    def validate_service(self, service: Any) -> list[ValidationIssue]:
        if not service:
            return []
        valid = get_service_ids()
        if service not in valid:
            return [_issue(
                "service", f"Invalid service. Must be one of: {', '.join(valid)}",
                "INVALID_VALUE",
            )]
        return []

    def validate_scheduled_date(self, value: Any) -> list[ValidationIssue]:
        field = "scheduled_date"
        if not value:
            return [_issue(field, "Scheduled date is required", "REQUIRED")]

        scheduled = parse_date(value)
        if scheduled is None:
            return [_issue(field, "Invalid date format. Use YYYY-MM-DD", "INVALID_FORMAT")]

        errors = []
        today = self._clock().date()
        if scheduled < today:
            errors.append(_issue(
                field, "Cannot book appointments for past dates", "PAST_DATE"
            ))
        if (scheduled - today).days > self._clinic.max_advance_days:
            errors.append(_issue(
                field,
                f"Cannot book appointments more than {self._clinic.max_advance_days} "
                "days in advance",
                "TOO_FAR_FUTURE",
            ))
        if scheduled.weekday() not in self._clinic.operating_days:
            errors.append(_issue(
                field,
                f"The clinic is closed on {scheduled.strftime('%A')}. "
                "Please choose another day.",
                "CLOSED_DAY",
            ))
        return errors

    def validate_time_slot(
        self, time_slot: Any, scheduled_date: Any = None
    ) -> list[ValidationIssue]:
        field = "scheduled_time_slot"
        if not time_slot:
            return [_issue(field, "Time slot is required", "REQUIRED")]

        parsed = parse_time_slot(time_slot) if isinstance(time_slot, str) else None
        if parsed is None or parsed[1] > 59:
            return [_issue(
                field, "Invalid time format. Use HH:MM (e.g., 09:00)", "INVALID_FORMAT"
            )]

        hours, minutes = parsed
        clinic = self._clinic
        errors = []

        if hours < clinic.open_hour or hours >= clinic.close_hour:
            errors.append(_issue(
                field,
                f"Time must be between {clinic.open_hour:02d}:00 and "
                f"{clinic.close_hour:02d}:00",
                "OUTSIDE_HOURS",
            ))
        if clinic.break_start_hour <= hours < clinic.break_end_hour:
            errors.append(_issue(
                field,
                f"This time slot is during the lunch break ({clinic.break_start_hour:02d}:00 - "
                f"{clinic.break_end_hour:02d}:00). Please choose another time.",
                "BREAK_TIME",
            ))
        if minutes % clinic.slot_minutes != 0:
            errors.append(_issue(
                field,
                f"Appointments must start at {clinic.slot_minutes}-minute intervals",
                "INVALID_INTERVAL",
            ))

        scheduled = parse_date(scheduled_date) if scheduled_date else None
        now = self._clock()
        if scheduled is not None and scheduled == now.date():
            if hours < now.hour or (hours == now.hour and minutes <= now.minute):
                errors.append(_issue(
                    field,
                    "Cannot book appointments for a time that has already passed today",
                    "TIME_PASSED",
                ))
            slot_minutes = hours * 60 + minutes
            earliest = now.hour * 60 + now.minute + clinic.notice_buffer_minutes
            if slot_minutes < earliest:
                errors.append(_issue(
                    field,
                    f"Appointments must be booked at least {clinic.notice_buffer_minutes} "
                    "minutes in advance",
                    "INSUFFICIENT_NOTICE",
                ))
        return errors

    def validate_preferred_date_time(self, value: Any) -> list[ValidationIssue]:
        field = "preferred_date_time"
        if not value or not isinstance(value, str):
            return [_issue(field, "Preferred date/time is required", "REQUIRED")]
        if len(value.strip()) < PREFERRED_DATE_TIME_MIN_LENGTH:
            return [_issue(
                field,
                'Please provide a valid date and time (e.g., "tomorrow at 2pm")',
                "TOO_SHORT",
            )]
        return []

    def validate_status(self, status: Any) -> list[ValidationIssue]:
        if not status:
            return []
        allowed = [s.value for s in AppointmentStatus]
        value = status.value if isinstance(status, AppointmentStatus) else status
        if value not in allowed:
            return [_issue(
                "status", f"Invalid status. Must be one of: {', '.join(allowed)}",
                "INVALID_VALUE",
            )]
        return []

    def validate_text_fields(self, reason: Any, notes: Any) -> list[ValidationIssue]:
        errors = []
        for field, value, label, limit in (
            ("reason", reason, "Reason", REASON_MAX_LENGTH),
            ("notes", notes, "Notes", NOTES_MAX_LENGTH),
        ):
            if value is None or value == "":
                continue
            if not isinstance(value, str):
                errors.append(_issue(field, f"{label} must be a string", "INVALID_TYPE"))
            elif len(value) > limit:
                errors.append(_issue(
                    field, f"{label} cannot exceed {limit} characters", "TOO_LONG"
                ))
        return errors

    # ------------------------------------------------------------------ #
    # Entry points
    # ------------------------------------------------------------------ #

    def validate_booking(
        self, data: Mapping[str, Any], mode: ValidationMode = ValidationMode.FULL
    ) -> ValidationErrors:
        """Validate booking data, collecting every issue rather than stopping at the first."""
        if mode == ValidationMode.PARTIAL:
            return self._validate_partial(data)

        result = ValidationErrors()
        result.extend(self.validate_owner_name(data.get("owner_name")))
        result.extend(self.validate_pet_name(data.get("pet_name")))
        result.extend(self.validate_phone(data.get("phone")))
        result.extend(self.validate_scheduled_date(data.get("scheduled_date")))
        result.extend(self.validate_time_slot(
            data.get("scheduled_time_slot"), data.get("scheduled_date")
        ))
        result.extend(self.validate_pet_type(data.get("pet_type")))
        result.extend(self.validate_email(data.get("email")))
        result.extend(self.validate_service(data.get("service")))
        result.extend(self.validate_text_fields(data.get("reason"), data.get("notes")))
        if result.has_errors():
            logger.debug("Full validation failed: %s", [e.code for e in result.errors])
        return result

    def _validate_partial(self, data: Mapping[str, Any]) -> ValidationErrors:
        result = ValidationErrors()
        checks: list[tuple[str, Callable[[Any], list[ValidationIssue]]]] = [
            ("owner_name", self.validate_owner_name),
            ("pet_name", self.validate_pet_name),
            ("phone", self.validate_phone),
            ("scheduled_date", self.validate_scheduled_date),
            ("pet_type", self.validate_pet_type),
            ("email", self.validate_email),
            ("service", self.validate_service),
            ("status", self.validate_status),
            ("preferred_date_time", self.validate_preferred_date_time),
        ]
        for key, check in checks:
            if key in data:
                result.extend(check(data[key]))

        if "scheduled_time_slot" in data:
            result.extend(self.validate_time_slot(
                data["scheduled_time_slot"], data.get("scheduled_date")
            ))
        result.extend(self.validate_text_fields(data.get("reason"), data.get("notes")))
        return result
