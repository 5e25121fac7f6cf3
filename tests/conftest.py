"""Shared test fixtures and helpers."""

from datetime import date, datetime
from typing import Any, Optional

import pytest

from vetbook.config import ClinicConfig
from vetbook.conversation.chat_service import ChatService
from vetbook.conversation.datetime_extractor import DateTimeExtractor
from vetbook.conversation.intent_classifier import IntentClassifier
from vetbook.conversation.state_machine import BookingStateMachine
from vetbook.schemas.booking_schema import Appointment, AppointmentStatus
from vetbook.storage import InMemoryAppointmentStore, InMemoryConversationStore
from vetbook.tools.availability import SlotAvailabilityEngine
from vetbook.tools.booking import AppointmentService
from vetbook.tools.validation import BookingValidator

# Thursday morning; every date-relative test is pinned here.
NOW = datetime(2026, 1, 29, 10, 0)
TODAY = NOW.date()
TOMORROW = date(2026, 1, 30)      # Friday
SATURDAY = date(2026, 1, 31)
SUNDAY = date(2026, 2, 1)
NEXT_MONDAY = date(2026, 2, 2)


def fixed_clock() -> datetime:
    return NOW


@pytest.fixture
def clinic():
    return ClinicConfig(
        name="Test Vet Clinic",
        open_hour=9,
        close_hour=18,
        slot_minutes=30,
        break_start_hour=13,
        break_end_hour=14,
        operating_days=(0, 1, 2, 3, 4, 5),
        max_advance_days=90,
        notice_buffer_minutes=30,
        max_suggested_slots=5,
        default_time_slot="09:00",
    )


@pytest.fixture
def appointment_store():
    return InMemoryAppointmentStore()


@pytest.fixture
def conversation_store():
    return InMemoryConversationStore()


@pytest.fixture
def engine(appointment_store, clinic):
    return SlotAvailabilityEngine(appointment_store, clinic=clinic, clock=fixed_clock)


@pytest.fixture
def validator(clinic):
    return BookingValidator(clinic=clinic, clock=fixed_clock)


@pytest.fixture
def extractor(clinic):
    return DateTimeExtractor(clinic=clinic, clock=fixed_clock)


@pytest.fixture
def classifier():
    return IntentClassifier(threshold=25)


@pytest.fixture
def state_machine(extractor):
    return BookingStateMachine(extractor=extractor)


@pytest.fixture
def appointment_service(appointment_store, engine, validator, extractor, clinic):
    return AppointmentService(
        appointment_store,
        engine=engine,
        validator=validator,
        extractor=extractor,
        clinic=clinic,
        clock=fixed_clock,
    )


@pytest.fixture
def chat_service(conversation_store, appointment_service, classifier, state_machine):
    return ChatService(
        conversation_store,
        appointment_service,
        classifier=classifier,
        state_machine=state_machine,
    )


def make_appointment(
    appointment_id: str = "appt-1",
    scheduled_date: date = TOMORROW,
    time_slot: str = "10:00",
    phone: str = "555-123-4567",
    status: AppointmentStatus = AppointmentStatus.PENDING,
    session_id: Optional[str] = None,
    **overrides: Any,
) -> Appointment:
    """Helper to create an Appointment with sensible defaults."""
    fields = {
        "id": appointment_id,
        "owner_name": "Jane Doe",
        "pet_name": "Rex",
        "phone": phone,
        "scheduled_date": scheduled_date,
        "scheduled_time_slot": time_slot,
        "preferred_date_time": f"{scheduled_date.isoformat()} at {time_slot}",
        "status": status,
        "session_id": session_id,
    }
    fields.update(overrides)
    return Appointment(**fields)


def make_request(**overrides: Any) -> dict[str, Any]:
    """A valid direct-booking request for tomorrow at 10:00."""
    request = {
        "owner_name": "Jane Doe",
        "pet_name": "Rex",
        "pet_type": "dog",
        "phone": "555-123-4567",
        "email": "jane@example.com",
        "service": "checkup",
        "scheduled_date": TOMORROW.isoformat(),
        "scheduled_time_slot": "10:00",
        "reason": "Annual checkup",
    }
    request.update(overrides)
    return request
