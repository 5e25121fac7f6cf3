"""Concurrent commits must never double-book a slot."""

import threading
from concurrent.futures import ThreadPoolExecutor

from vetbook.schemas.conversation_schema import BookingTempData
from tests.conftest import TOMORROW, make_request

WORKERS = 8


def _dialogue_data(i: int) -> BookingTempData:
    return BookingTempData(
        owner_name=f"Owner {i}",
        pet_name=f"Pet {i}",
        phone=f"555-010-{i:04d}",
        preferred_date_time="tomorrow at 10am",
    )


class TestConcurrentCommits:
    def test_two_dialogues_race_for_one_slot(self, appointment_service):
        barrier = threading.Barrier(2)

        def commit(i):
            barrier.wait()
            return appointment_service.create_from_dialogue(f"s{i}", _dialogue_data(i))

        with ThreadPoolExecutor(max_workers=2) as pool:
            results = list(pool.map(commit, range(2)))

        codes = sorted(r.code or "OK" for r in results)
        assert codes == ["OK", "SLOT_TAKEN"]
        assert appointment_service.engine.is_slot_available(TOMORROW, "10:00") is False
        assert len(appointment_service.appointments_on(TOMORROW)) == 1

    def test_many_direct_bookings_for_one_slot(self, appointment_service):
        barrier = threading.Barrier(WORKERS)

        def book(i):
            barrier.wait()
            return appointment_service.create_direct_appointment(
                make_request(phone=f"555-020-{i:04d}", owner_name=f"Owner {chr(65 + i)}")
            )

        with ThreadPoolExecutor(max_workers=WORKERS) as pool:
            results = list(pool.map(book, range(WORKERS)))

        assert sum(1 for r in results if r.success) == 1
        assert all(r.code == "SLOT_TAKEN" for r in results if not r.success)
        assert len(appointment_service.appointments_on(TOMORROW)) == 1

    def test_different_slots_all_succeed(self, appointment_service):
        slots = ["09:00", "09:30", "10:00", "10:30"]

        def book(i):
            return appointment_service.create_direct_appointment(
                make_request(phone=f"555-030-{i:04d}", scheduled_time_slot=slots[i])
            )

        with ThreadPoolExecutor(max_workers=len(slots)) as pool:
            results = list(pool.map(book, range(len(slots))))

        assert all(r.success for r in results)
        assert appointment_service.engine.available_slots(TOMORROW).booked_count == 4
