"""Tests for booking field validation."""

from datetime import timedelta

import pytest

from vetbook.tools.validation import (
    ValidationErrors,
    ValidationMode,
    is_valid_name,
    is_valid_phone,
    parse_date,
)
from tests.conftest import SUNDAY, TODAY, TOMORROW, make_request


def codes(issues):
    return [issue.code for issue in issues]


class TestDialoguePredicates:
    @pytest.mark.parametrize("value, expected", [
        ("Jo", True),
        ("  J  ", False),
        ("", False),
        (None, False),
        ("x" * 101, False),
        ("Jane O'Neil-Smith", True),
    ])
    def test_is_valid_name(self, value, expected):
        assert is_valid_name(value) is expected

    @pytest.mark.parametrize("value, expected", [
        ("555-123-4567", True),
        ("+1 555 987 6543", True),
        ("0412 345 678", True),
        ("(04) 1234 5678", True),
        ("123", False),
        ("call me", False),
        ("", False),
    ])
    def test_is_valid_phone(self, value, expected):
        assert is_valid_phone(value) is expected


class TestFieldRules:
    def test_owner_name_required(self, validator):
        assert codes(validator.validate_owner_name(None)) == ["REQUIRED"]

    def test_owner_name_whitespace(self, validator):
        assert codes(validator.validate_owner_name("   ")) == ["EMPTY"]

    def test_owner_name_too_short(self, validator):
        assert codes(validator.validate_owner_name("J")) == ["TOO_SHORT"]

    def test_owner_name_invalid_characters(self, validator):
        assert codes(validator.validate_owner_name("Jane99")) == ["INVALID_CHARACTERS"]

    def test_pet_name_too_long(self, validator):
        assert codes(validator.validate_pet_name("R" * 51)) == ["TOO_LONG"]

    def test_pet_type(self, validator):
        assert validator.validate_pet_type("dog") == []
        assert codes(validator.validate_pet_type("dragon")) == ["INVALID_VALUE"]

    @pytest.mark.parametrize("phone, expected", [
        ("123", ["TOO_SHORT"]),
        ("1234567890123456", ["TOO_LONG"]),
        ("555-123-456x", ["INVALID_FORMAT"]),
        ("", ["REQUIRED"]),
        ("   ", ["EMPTY"]),
        ("+1 (555) 123-4567", []),
    ])
    def test_phone(self, validator, phone, expected):
        assert codes(validator.validate_phone(phone)) == expected

    def test_email_optional_but_checked(self, validator):
        assert validator.validate_email(None) == []
        assert codes(validator.validate_email("not-an-email")) == ["INVALID_FORMAT"]
        assert validator.validate_email("jane@example.com") == []

    def test_service(self, validator):
        assert validator.validate_service("checkup") == []
        assert codes(validator.validate_service("astrology")) == ["INVALID_VALUE"]

    def test_status(self, validator):
        assert validator.validate_status("no-show") == []
        assert codes(validator.validate_status("archived")) == ["INVALID_VALUE"]


class TestDateRules:
    def test_valid_future_date(self, validator):
        assert validator.validate_scheduled_date(TOMORROW.isoformat()) == []

    def test_today_is_allowed(self, validator):
        assert validator.validate_scheduled_date(TODAY) == []

    def test_past_date(self, validator):
        past = TODAY - timedelta(days=1)
        assert codes(validator.validate_scheduled_date(past)) == ["PAST_DATE"]

    def test_too_far_ahead(self, validator):
        # 91 days out is a Thursday
        far = TODAY + timedelta(days=91)
        assert codes(validator.validate_scheduled_date(far)) == ["TOO_FAR_FUTURE"]

    def test_last_bookable_day(self, validator):
        # 90 days out is a Wednesday
        assert validator.validate_scheduled_date(TODAY + timedelta(days=90)) == []

    def test_closed_day(self, validator):
        issues = validator.validate_scheduled_date(SUNDAY)
        assert codes(issues) == ["CLOSED_DAY"]
        assert "Sunday" in issues[0].message

    def test_bad_format(self, validator):
        assert codes(validator.validate_scheduled_date("30th of never")) == ["INVALID_FORMAT"]

    def test_required(self, validator):
        assert codes(validator.validate_scheduled_date(None)) == ["REQUIRED"]


class TestTimeSlotRules:
    def test_valid_slot(self, validator):
        assert validator.validate_time_slot("10:30", TOMORROW) == []

    def test_break_time(self, validator):
        assert codes(validator.validate_time_slot("13:30", TOMORROW)) == ["BREAK_TIME"]

    def test_outside_hours(self, validator):
        assert codes(validator.validate_time_slot("18:00", TOMORROW)) == ["OUTSIDE_HOURS"]
        assert codes(validator.validate_time_slot("08:30", TOMORROW)) == ["OUTSIDE_HOURS"]

    def test_off_grid(self, validator):
        assert codes(validator.validate_time_slot("10:15", TOMORROW)) == ["INVALID_INTERVAL"]

    @pytest.mark.parametrize("slot", ["9:00", "10-00", "ten", "10:75"])
    def test_bad_format(self, validator, slot):
        assert codes(validator.validate_time_slot(slot, TOMORROW)) == ["INVALID_FORMAT"]

    def test_time_passed_today(self, validator):
        issues = codes(validator.validate_time_slot("09:30", TODAY))
        assert "TIME_PASSED" in issues
        assert "INSUFFICIENT_NOTICE" in issues

    def test_insufficient_notice_today(self, validator):
        # Now is 10:00, so 10:00 has passed and anything before 10:30 is too soon
        assert codes(validator.validate_time_slot("10:00", TODAY)) == [
            "TIME_PASSED", "INSUFFICIENT_NOTICE",
        ]

    def test_enough_notice_today(self, validator):
        assert validator.validate_time_slot("10:30", TODAY) == []

    def test_today_rules_skipped_for_other_days(self, validator):
        assert validator.validate_time_slot("09:00", TOMORROW) == []


class TestFullValidation:
    def test_valid_request(self, validator):
        assert not validator.validate_booking(make_request()).has_errors()

    def test_missing_fields_are_all_reported(self, validator):
        errors = validator.validate_booking({})
        fields = {e.field for e in errors.errors}
        assert fields == {
            "owner_name", "pet_name", "phone", "scheduled_date", "scheduled_time_slot",
        }
        assert errors.summary() == "Multiple validation errors"

    def test_single_error_summary(self, validator):
        errors = validator.validate_booking(make_request(phone="123"))
        assert len(errors) == 1
        assert errors.codes_for("phone") == ["TOO_SHORT"]
        assert errors.summary().startswith("Phone number is too short")

    def test_reason_too_long(self, validator):
        errors = validator.validate_booking(make_request(reason="x" * 501))
        assert errors.codes_for("reason") == ["TOO_LONG"]

    def test_non_string_text_fields(self, validator):
        errors = validator.validate_booking(make_request(reason=123, notes=["x"]))
        assert errors.codes_for("reason") == ["INVALID_TYPE"]
        assert errors.codes_for("notes") == ["INVALID_TYPE"]


class TestPartialValidation:
    def test_only_present_fields(self, validator):
        errors = validator.validate_booking({"phone": "123"}, ValidationMode.PARTIAL)
        assert [e.code for e in errors.errors] == ["TOO_SHORT"]

    def test_empty_update_is_valid(self, validator):
        assert not validator.validate_booking({}, ValidationMode.PARTIAL).has_errors()

    def test_slot_checked_against_date(self, validator):
        errors = validator.validate_booking(
            {"scheduled_date": TODAY, "scheduled_time_slot": "09:30"}, ValidationMode.PARTIAL
        )
        assert "TIME_PASSED" in errors.codes_for("scheduled_time_slot")

    def test_status_checked(self, validator):
        errors = validator.validate_booking({"status": "lost"}, ValidationMode.PARTIAL)
        assert errors.codes_for("status") == ["INVALID_VALUE"]


class TestValidationErrors:
    def test_to_response(self):
        errors = ValidationErrors()
        errors.add("phone", "Phone number is required", "REQUIRED")
        response = errors.to_response()
        assert response["success"] is False
        assert response["error"] == "Phone number is required"
        assert response["validation_errors"][0]["code"] == "REQUIRED"

    def test_first_error_empty(self):
        assert ValidationErrors().first_error() is None


class TestParseDate:
    def test_iso_string(self):
        assert parse_date("2026-01-30") == TOMORROW

    def test_iso_datetime_string(self):
        assert parse_date("2026-01-30T14:00:00") == TOMORROW

    def test_garbage(self):
        assert parse_date("tomorrow") is None
        assert parse_date(42) is None
