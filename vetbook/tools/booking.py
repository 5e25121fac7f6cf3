"""
Appointment operations on top of an ``AppointmentStore``.

Every public operation returns a ``BookingResult`` (or a plain query result)
and never raises for expected conditions. Slot conflicts and duplicate
bookings are reported with their own codes; anything unexpected is logged
and surfaced as ``INTERNAL_ERROR`` without internal detail.

The slot check and the insert happen inside the store's atomic ``insert``.
Nothing here checks availability first and writes second.
"""

import functools
import logging
import uuid
from datetime import date, datetime, timedelta
from typing import Any, Callable, Mapping, Optional

from vetbook.config import ClinicConfig, settings
from vetbook.conversation.datetime_extractor import DateTimeExtractor
from vetbook.errors import AppointmentNotFoundError, DuplicateBookingError, SlotConflictError
from vetbook.prompts import responses
from vetbook.schemas.booking_schema import (
    DELETABLE_STATUSES,
    Appointment,
    AppointmentContext,
    AppointmentFilter,
    AppointmentPage,
    AppointmentStatistics,
    AppointmentStatus,
    BookingResult,
    PetType,
    ServiceCount,
    ValidationIssue,
)
from vetbook.schemas.conversation_schema import BookingTempData, SessionContext
from vetbook.storage.appointment_store import AppointmentStore
from vetbook.tools.availability import SlotAvailabilityEngine
from vetbook.tools.services import DEFAULT_SERVICE_ID, get_service_duration
from vetbook.tools.validation import (
    REASON_MAX_LENGTH,
    BookingValidator,
    ValidationErrors,
    ValidationMode,
    parse_date,
)

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "owner_name", "pet_name", "pet_type", "phone", "email", "service",
    "scheduled_date", "scheduled_time_slot", "preferred_date_time",
    "reason", "notes", "status",
)
UPCOMING_STATUSES = (AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED)
STATISTICS_UPCOMING_LIMIT = 5


def _new_appointment_id() -> str:
    return uuid.uuid4().hex


def _slot_label(scheduled_date: date, time_slot: str) -> str:
    return f"{scheduled_date.isoformat()} at {time_slot}"


def _failure(code: str, message: str, **extra: Any) -> BookingResult:
    return BookingResult(success=False, code=code, message=message, **extra)


def _validation_failure(errors: ValidationErrors) -> BookingResult:
    return _failure("VALIDATION_ERROR", errors.summary(), validation_errors=errors.errors)


def _guarded(failure_message: str) -> Callable:
    """Turn unexpected exceptions into a logged INTERNAL_ERROR result."""

    def decorator(method: Callable[..., BookingResult]) -> Callable[..., BookingResult]:
        @functools.wraps(method)
        def wrapper(*args: Any, **kwargs: Any) -> BookingResult:
            try:
                return method(*args, **kwargs)
            except Exception:
                logger.exception("%s failed", method.__name__)
                return _failure("INTERNAL_ERROR", failure_message)
        return wrapper

    return decorator


class AppointmentService:
    """Creates, changes, and queries appointments."""

    def __init__(
        self,
        store: AppointmentStore,
        engine: Optional[SlotAvailabilityEngine] = None,
        validator: Optional[BookingValidator] = None,
        extractor: Optional[DateTimeExtractor] = None,
        clinic: ClinicConfig = settings.clinic,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._store = store
        self._clock = clock
        self._engine = engine or SlotAvailabilityEngine(store, clinic=clinic, clock=clock)
        self._validator = validator or BookingValidator(clinic=clinic, clock=clock)
        self._extractor = extractor or DateTimeExtractor(clinic=clinic, clock=clock)

    @property
    def engine(self) -> SlotAvailabilityEngine:
        return self._engine

    @property
    def extractor(self) -> DateTimeExtractor:
        return self._extractor

    def _today(self) -> date:
        return self._clock().date()

    # ------------------------------------------------------------------ #
    # Creation
    # ------------------------------------------------------------------ #

    def _insert(self, appointment: Appointment) -> BookingResult:
        """Atomically store ``appointment``, mapping store conflicts to result codes."""
        requested = {
            "requested_date": appointment.scheduled_date,
            "requested_time_slot": appointment.scheduled_time_slot,
        }
        try:
            self._store.insert(appointment)
        except SlotConflictError as exc:
            suggestions = self._engine.suggest_alternatives(exc.scheduled_date)
            return _failure(
                SlotConflictError.code,
                "This time slot is already booked. Please choose another time.",
                suggested_slots=suggestions,
                **requested,
            )
        except DuplicateBookingError as exc:
            return _failure(
                DuplicateBookingError.code,
                "You already have an appointment scheduled for this date. Please choose "
                "a different date or cancel your existing appointment first.",
                existing_appointment_id=exc.existing_id,
                **requested,
            )

        logger.info(
            "Appointment booked: %s for %s (%s) on %s",
            appointment.id, appointment.pet_name, appointment.service,
            _slot_label(appointment.scheduled_date, appointment.scheduled_time_slot),
        )
        return BookingResult(
            success=True,
            message="Appointment booked successfully!",
            appointment=appointment,
        )

    @_guarded("An unexpected error occurred while booking your appointment. Please try again.")
    def create_from_dialogue(
        self,
        session_id: str,
        temp_data: BookingTempData,
        context: Optional[SessionContext] = None,
    ) -> BookingResult:
        """Commit a confirmed chat booking.

        The free-text date/time is parsed into a date and a grid slot, then
        checked against the clinic's date and slot rules before the insert.
        """
        context = context or SessionContext()
        parsed = self._extractor.parse_date_time(temp_data.preferred_date_time)
        if parsed is None:
            return _failure(
                "VALIDATION_ERROR",
                responses.DATE_NOT_UNDERSTOOD,
                validation_errors=[ValidationIssue(
                    field="preferred_date_time",
                    message="Could not parse a date from the provided text.",
                    code="INVALID_FORMAT",
                )],
            )

        errors = ValidationErrors()
        errors.extend(self._validator.validate_scheduled_date(parsed.scheduled_date))
        errors.extend(self._validator.validate_time_slot(parsed.time_slot, parsed.scheduled_date))
        if errors.has_errors():
            logger.info(
                "Chat booking for %s rejected: %s",
                session_id, [e.code for e in errors.errors],
            )
            first = errors.first_error()
            return _failure("VALIDATION_ERROR", first.message, validation_errors=errors.errors)

        appointment = Appointment(
            id=_new_appointment_id(),
            owner_name=(temp_data.owner_name or "").strip(),
            pet_name=(temp_data.pet_name or "").strip(),
            phone=(temp_data.phone or "").strip(),
            scheduled_date=parsed.scheduled_date,
            scheduled_time_slot=parsed.time_slot,
            preferred_date_time=(temp_data.preferred_date_time or "").strip(),
            service=DEFAULT_SERVICE_ID,
            duration=get_service_duration(DEFAULT_SERVICE_ID),
            session_id=session_id,
            conversation_id=session_id,
            context=AppointmentContext(
                user_id=context.user_id,
                source=context.source if context.source != "unknown" else "chat",
            ),
        )
        return self._insert(appointment)

    @_guarded("An unexpected error occurred while booking your appointment. Please try again.")
    def create_direct_appointment(self, request: Mapping[str, Any]) -> BookingResult:
        """Book from structured data with every required field validated."""
        errors = self._validator.validate_booking(request, ValidationMode.FULL)
        if errors.has_errors():
            return _validation_failure(errors)

        scheduled_date = parse_date(request["scheduled_date"])
        time_slot = request["scheduled_time_slot"]
        service = request.get("service") or DEFAULT_SERVICE_ID
        email = (request.get("email") or "").strip() or None

        appointment = Appointment(
            id=_new_appointment_id(),
            owner_name=request["owner_name"].strip(),
            pet_name=request["pet_name"].strip(),
            pet_type=request.get("pet_type") or PetType.OTHER,
            phone=request["phone"].strip(),
            email=email,
            service=service,
            duration=get_service_duration(service),
            scheduled_date=scheduled_date,
            scheduled_time_slot=time_slot,
            preferred_date_time=_slot_label(scheduled_date, time_slot),
            reason=(request.get("reason") or "").strip(),
            notes=(request.get("notes") or "").strip(),
            context=AppointmentContext(
                user_id=request.get("user_id"),
                source=request.get("source") or "api",
            ),
        )
        return self._insert(appointment)

    # ------------------------------------------------------------------ #
    # Changes
    # ------------------------------------------------------------------ #

    @_guarded("An unexpected error occurred while updating the appointment.")
    def update_appointment(
        self, appointment_id: str, changes: Mapping[str, Any]
    ) -> BookingResult:
        """Apply a partial update, re-checking the slot if the date or time moves."""
        current = self._store.find_by_id(appointment_id)
        if current is None:
            return _failure("NOT_FOUND", "Appointment not found. It may have been deleted.")

        requested = {k: v for k, v in changes.items() if k in UPDATABLE_FIELDS}
        if current.status == AppointmentStatus.COMPLETED and set(requested) - {"notes"}:
            return _failure(
                "ALREADY_COMPLETED",
                "Cannot modify a completed appointment. Only notes can be updated.",
            )

        moves_slot = "scheduled_date" in requested or "scheduled_time_slot" in requested
        to_check = dict(requested)
        if moves_slot:
            to_check.setdefault("scheduled_date", current.scheduled_date)
            to_check.setdefault("scheduled_time_slot", current.scheduled_time_slot)
        errors = self._validator.validate_booking(to_check, ValidationMode.PARTIAL)
        if errors.has_errors():
            return _validation_failure(errors)

        updates: dict[str, Any] = {}
        for key, value in requested.items():
            updates[key] = value.strip() if isinstance(value, str) else value
        if "scheduled_date" in updates:
            updates["scheduled_date"] = parse_date(updates["scheduled_date"])
        if "service" in updates:
            updates["duration"] = get_service_duration(updates["service"])
        if moves_slot:
            new_date = updates.get("scheduled_date", current.scheduled_date)
            new_slot = updates.get("scheduled_time_slot", current.scheduled_time_slot)
            updates["preferred_date_time"] = _slot_label(new_date, new_slot)

        try:
            updated = self._store.update(appointment_id, updates)
        except SlotConflictError as exc:
            keep = current.scheduled_time_slot if exc.scheduled_date == current.scheduled_date else None
            return _failure(
                SlotConflictError.code,
                "This time slot is already booked by another appointment.",
                suggested_slots=self._engine.suggest_alternatives(exc.scheduled_date, keep_slot=keep),
            )
        except DuplicateBookingError as exc:
            return _failure(
                DuplicateBookingError.code,
                "This phone number already has an appointment on that date.",
                existing_appointment_id=exc.existing_id,
            )
        except AppointmentNotFoundError:
            return _failure("NOT_FOUND", "Appointment not found. It may have been deleted.")

        logger.info("Appointment updated: %s (%s)", appointment_id, ", ".join(requested))
        return BookingResult(
            success=True,
            message="Appointment updated successfully.",
            appointment=updated,
            updated_fields=list(requested),
        )

    @_guarded("An unexpected error occurred while cancelling the appointment.")
    def cancel_appointment(self, appointment_id: str, reason: str = "") -> BookingResult:
        current = self._store.find_by_id(appointment_id)
        if current is None:
            return _failure("NOT_FOUND", "Appointment not found.")
        if current.status == AppointmentStatus.CANCELLED:
            return _failure("ALREADY_CANCELLED", "This appointment has already been cancelled.")
        if current.status == AppointmentStatus.COMPLETED:
            return _failure("ALREADY_COMPLETED", "Cannot cancel a completed appointment.")
        if current.scheduled_date < self._today():
            return _failure(
                "PAST_APPOINTMENT",
                "Cannot cancel a past appointment. Please mark it as completed or no-show instead.",
            )

        updates: dict[str, Any] = {"status": AppointmentStatus.CANCELLED}
        trimmed = (reason or "").strip()
        if trimmed:
            if len(trimmed) > REASON_MAX_LENGTH:
                return _failure(
                    "VALIDATION_ERROR",
                    f"Cancellation reason cannot exceed {REASON_MAX_LENGTH} characters.",
                    validation_errors=[ValidationIssue(
                        field="reason",
                        message=f"Reason cannot exceed {REASON_MAX_LENGTH} characters",
                        code="TOO_LONG",
                    )],
                )
            note = f"Cancellation reason: {trimmed}"
            updates["notes"] = f"{current.notes}\n{note}" if current.notes else note

        try:
            updated = self._store.update(appointment_id, updates)
        except AppointmentNotFoundError:
            return _failure("NOT_FOUND", "Appointment not found.")

        logger.info("Appointment cancelled: %s", appointment_id)
        return BookingResult(
            success=True, message="Appointment cancelled successfully.", appointment=updated
        )

    @_guarded("An unexpected error occurred while deleting the appointment.")
    def delete_appointment(self, appointment_id: str) -> BookingResult:
        """Hard delete, allowed only once the appointment no longer holds its slot."""
        current = self._store.find_by_id(appointment_id)
        if current is None:
            return _failure("NOT_FOUND", "Appointment not found.")
        if current.status not in DELETABLE_STATUSES:
            return _failure(
                "CANNOT_DELETE_ACTIVE",
                "Only cancelled, completed, or no-show appointments can be deleted. "
                "Please cancel the appointment first.",
            )
        try:
            removed = self._store.delete(appointment_id)
        except AppointmentNotFoundError:
            return _failure("NOT_FOUND", "Appointment not found.")

        logger.info("Appointment deleted: %s", appointment_id)
        return BookingResult(
            success=True, message="Appointment deleted permanently.", appointment=removed
        )

    @_guarded("An unexpected error occurred while updating the appointment status.")
    def update_status(self, appointment_id: str, status: Any) -> BookingResult:
        issues = self._validator.validate_status(status)
        if not status or issues:
            errors = ValidationErrors()
            errors.extend(issues)
            if not status:
                errors.add("status", "Status is required", "REQUIRED")
            return _validation_failure(errors)

        try:
            updated = self._store.update_status(appointment_id, AppointmentStatus(status))
        except AppointmentNotFoundError:
            return _failure("NOT_FOUND", "Appointment not found.")
        except SlotConflictError as exc:
            return _failure(
                SlotConflictError.code,
                "This time slot has been booked by another appointment.",
                suggested_slots=self._engine.suggest_alternatives(exc.scheduled_date),
            )
        except DuplicateBookingError as exc:
            return _failure(
                DuplicateBookingError.code,
                "This phone number already has another appointment on that date.",
                existing_appointment_id=exc.existing_id,
            )

        logger.info("Appointment %s status -> %s", appointment_id, updated.status.value)
        return BookingResult(success=True, message="Status updated.", appointment=updated)

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #

    def get_appointment(self, appointment_id: str) -> BookingResult:
        appointment = self._store.find_by_id(appointment_id)
        if appointment is None:
            return _failure("NOT_FOUND", "Appointment not found.")
        return BookingResult(success=True, appointment=appointment)

    def list_appointments(self, options: Optional[AppointmentFilter] = None) -> AppointmentPage:
        options = options or AppointmentFilter()
        page, total = self._store.filter_query(options)
        pages = -(-total // options.limit)
        return AppointmentPage(
            appointments=page,
            page=options.page,
            limit=options.limit,
            total=total,
            pages=pages,
            has_more=options.page * options.limit < total,
        )

    def appointments_on(self, day: date) -> list[Appointment]:
        return self._store.find_by_date_range(day, day)

    def todays_appointments(self) -> list[Appointment]:
        """Today's appointments that have not been cancelled, in slot order."""
        today = self._today()
        return [
            a for a in self._store.find_by_date_range(today, today)
            if a.status != AppointmentStatus.CANCELLED
        ]

    def upcoming_appointments(self, limit: int = 10) -> list[Appointment]:
        """Pending or confirmed appointments from today onwards."""
        return self._store.find_by_date_range(
            self._today(), date.max, UPCOMING_STATUSES
        )[:limit]

    def get_by_session(self, session_id: str) -> list[Appointment]:
        return self._store.find_by_session(session_id)

    def get_statistics(self) -> AppointmentStatistics:
        """Counts by status and period, plus a service breakdown of active bookings.

        Weeks start on Monday.
        """
        today = self._today()
        week_start = today - timedelta(days=today.weekday())
        week_end = week_start + timedelta(days=6)
        month_start = today.replace(day=1)
        next_month = (month_start + timedelta(days=32)).replace(day=1)

        everything = self._store.all()
        by_status = {status.value: 0 for status in AppointmentStatus}
        services: dict[str, int] = {}
        for appt in everything:
            by_status[appt.status.value] += 1
            if appt.is_active:
                services[appt.service] = services.get(appt.service, 0) + 1

        breakdown = sorted(services.items(), key=lambda item: (-item[1], item[0]))
        return AppointmentStatistics(
            total=len(everything),
            by_status=by_status,
            today=sum(1 for a in everything if a.scheduled_date == today),
            this_week=sum(1 for a in everything if week_start <= a.scheduled_date <= week_end),
            this_month=sum(
                1 for a in everything if month_start <= a.scheduled_date < next_month
            ),
            service_breakdown=[ServiceCount(service=s, count=c) for s, c in breakdown],
            upcoming=self.upcoming_appointments(STATISTICS_UPCOMING_LIMIT),
        )
