"""Tests for the service catalog."""

from vetbook.tools.services import (
    DEFAULT_SERVICE_ID,
    get_all_services,
    get_pet_types,
    get_service_details,
    get_service_duration,
    get_service_ids,
)


class TestCatalog:
    def test_default_service_is_listed(self):
        assert DEFAULT_SERVICE_ID in get_service_ids()

    def test_all_services_have_durations(self):
        services = get_all_services()
        assert len(services) == len(get_service_ids())
        assert all(s["duration"] > 0 for s in services)

    def test_details(self):
        details = get_service_details("grooming")
        assert details["id"] == "grooming"
        assert details["duration"] == 60

    def test_unknown_details(self):
        assert get_service_details("astrology") is None

    def test_duration_falls_back_to_default(self):
        assert get_service_duration("astrology") == get_service_duration(DEFAULT_SERVICE_ID)
        assert get_service_duration(None) == 30

    def test_pet_types(self):
        types = get_pet_types()
        assert "dog" in types
        assert "other" in types
