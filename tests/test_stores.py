"""Tests for the in-memory appointment and conversation stores."""

import pytest

from vetbook.errors import (
    AppointmentNotFoundError,
    ConcurrentUpdateError,
    DuplicateBookingError,
    SessionNotFoundError,
    SlotConflictError,
)
from vetbook.schemas.booking_schema import AppointmentStatus
from vetbook.schemas.conversation_schema import (
    BookingStatus,
    BookingTempData,
    MessageRole,
    SessionContext,
)
from tests.conftest import NEXT_MONDAY, TOMORROW, make_appointment


class TestAppointmentInsert:
    def test_insert_and_find(self, appointment_store):
        appointment_store.insert(make_appointment("a1"))
        found = appointment_store.find_by_id("a1")
        assert found.pet_name == "Rex"

    def test_slot_conflict(self, appointment_store):
        appointment_store.insert(make_appointment("a1"))
        with pytest.raises(SlotConflictError) as exc:
            appointment_store.insert(make_appointment("a2", phone="555-999-0000"))
        assert exc.value.time_slot == "10:00"
        assert exc.value.code == "SLOT_TAKEN"

    def test_duplicate_phone_same_day(self, appointment_store):
        appointment_store.insert(make_appointment("a1", phone="+1 555 123 4567"))
        with pytest.raises(DuplicateBookingError) as exc:
            appointment_store.insert(
                make_appointment("a2", time_slot="11:00", phone="+1-555-123-4567")
            )
        assert exc.value.existing_id == "a1"

    def test_same_phone_other_day_is_fine(self, appointment_store):
        appointment_store.insert(make_appointment("a1"))
        appointment_store.insert(make_appointment("a2", scheduled_date=NEXT_MONDAY))
        assert len(appointment_store.all()) == 2

    def test_cancelled_slot_can_be_rebooked(self, appointment_store):
        appointment_store.insert(make_appointment("a1", status=AppointmentStatus.CANCELLED))
        appointment_store.insert(make_appointment("a2"))
        assert appointment_store.list_booked_slots(TOMORROW) == {"10:00"}

    def test_returned_copies_are_detached(self, appointment_store):
        appointment_store.insert(make_appointment("a1"))
        copy = appointment_store.find_by_id("a1")
        copy.pet_name = "Changed"
        assert appointment_store.find_by_id("a1").pet_name == "Rex"


class TestAppointmentUpdate:
    def test_update_fields(self, appointment_store):
        appointment_store.insert(make_appointment("a1"))
        updated = appointment_store.update("a1", {"notes": "Bring records"})
        assert updated.notes == "Bring records"
        assert updated.updated_at >= updated.created_at

    def test_status_string_is_coerced(self, appointment_store):
        appointment_store.insert(make_appointment("a1"))
        updated = appointment_store.update("a1", {"status": "cancelled"})
        assert updated.status is AppointmentStatus.CANCELLED
        assert appointment_store.list_booked_slots(TOMORROW) == set()

    def test_move_into_taken_slot(self, appointment_store):
        appointment_store.insert(make_appointment("a1"))
        appointment_store.insert(make_appointment("a2", time_slot="11:00", phone="555-999-0000"))
        with pytest.raises(SlotConflictError):
            appointment_store.update("a2", {"scheduled_time_slot": "10:00"})
        assert appointment_store.find_by_id("a2").scheduled_time_slot == "11:00"

    def test_move_onto_day_booked_by_same_phone(self, appointment_store):
        appointment_store.insert(make_appointment("a1"))
        appointment_store.insert(make_appointment("a2", scheduled_date=NEXT_MONDAY))
        with pytest.raises(DuplicateBookingError) as exc:
            appointment_store.update("a2", {"scheduled_date": TOMORROW, "scheduled_time_slot": "11:00"})
        assert exc.value.existing_id == "a1"
        assert appointment_store.find_by_id("a2").scheduled_date == NEXT_MONDAY

    def test_unrelated_change_skips_duplicate_check(self, appointment_store):
        appointment_store.insert(make_appointment("a1"))
        assert appointment_store.update("a1", {"notes": "x"}).notes == "x"

    def test_update_missing(self, appointment_store):
        with pytest.raises(AppointmentNotFoundError):
            appointment_store.update("nope", {"notes": "x"})

    def test_delete(self, appointment_store):
        appointment_store.insert(make_appointment("a1"))
        removed = appointment_store.delete("a1")
        assert removed.id == "a1"
        assert appointment_store.find_by_id("a1") is None
        with pytest.raises(AppointmentNotFoundError):
            appointment_store.delete("a1")

    def test_date_range_with_statuses(self, appointment_store):
        appointment_store.insert(make_appointment("a1"))
        appointment_store.insert(make_appointment(
            "a2", time_slot="11:00", phone="555-999-0000", status=AppointmentStatus.CONFIRMED
        ))
        found = appointment_store.find_by_date_range(
            TOMORROW, TOMORROW, [AppointmentStatus.CONFIRMED]
        )
        assert [a.id for a in found] == ["a2"]

    def test_reset(self, appointment_store):
        appointment_store.insert(make_appointment("a1"))
        appointment_store.reset()
        assert appointment_store.all() == []


class TestConversationStore:
    def test_find_or_create_is_idempotent(self, conversation_store):
        first = conversation_store.find_or_create("s1", SessionContext(source="website"))
        second = conversation_store.find_or_create("s1", SessionContext(source="ignored"))
        assert first.session_id == second.session_id
        assert second.context.source == "website"
        assert second.booking_state.status == BookingStatus.IDLE

    def test_unknown_session_has_idle_state(self, conversation_store):
        assert conversation_store.get_booking_state("nope").status == BookingStatus.IDLE
        assert conversation_store.get("nope") is None

    def test_append_requires_session(self, conversation_store):
        with pytest.raises(SessionNotFoundError):
            conversation_store.append_message("nope", MessageRole.USER, "hi")

    def test_history_limit(self, conversation_store):
        conversation_store.find_or_create("s1")
        for i in range(5):
            conversation_store.append_message("s1", MessageRole.USER, f"m{i}")
        history = conversation_store.get_history("s1", limit=2)
        assert [m.content for m in history] == ["m3", "m4"]
        assert conversation_store.get_history("s1", limit=0) == []

    def test_versioned_write(self, conversation_store):
        conversation_store.find_or_create("s1")
        data = BookingTempData(owner_name="Jane Doe")
        state = conversation_store.set_booking_state(
            "s1", BookingStatus.COLLECTING_PET_NAME, data, expected_version=0
        )
        assert state.version == 1
        assert conversation_store.get_booking_state("s1").temp_data == data

    def test_stale_write_raises(self, conversation_store):
        conversation_store.find_or_create("s1")
        conversation_store.set_booking_state(
            "s1", BookingStatus.COLLECTING_OWNER_NAME, BookingTempData(), expected_version=0
        )
        with pytest.raises(ConcurrentUpdateError) as exc:
            conversation_store.set_booking_state(
                "s1", BookingStatus.COLLECTING_OWNER_NAME, BookingTempData(), expected_version=0
            )
        assert exc.value.expected == 0
        assert exc.value.actual == 1

    def test_reset_booking_state(self, conversation_store):
        conversation_store.find_or_create("s1")
        conversation_store.set_booking_state(
            "s1", BookingStatus.CONFIRMING, BookingTempData(owner_name="Jane Doe")
        )
        state = conversation_store.reset_booking_state("s1")
        assert state.status == BookingStatus.IDLE
        assert state.temp_data == BookingTempData()

    def test_list_sessions(self, conversation_store):
        conversation_store.find_or_create("s1")
        conversation_store.find_or_create("s2")
        conversation_store.append_message("s1", MessageRole.USER, "latest")
        sessions, total = conversation_store.list_sessions()
        assert total == 2
        assert sessions[0].session_id == "s1"
        assert sessions[0].messages == []
