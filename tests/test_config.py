"""Tests for configuration loading and validation."""

import pytest

from vetbook.config import (
    AppConfig,
    ClinicConfig,
    DialogueConfig,
    IntentConfig,
    _safe_int,
    _safe_int_tuple,
    _validate_config,
)


def config_with(**clinic_overrides) -> AppConfig:
    return AppConfig(clinic=ClinicConfig(**clinic_overrides))


class TestConfigValidation:
    def test_default_config_passes_validation(self):
        _validate_config(AppConfig())  # should not raise

    def test_open_after_close(self):
        with pytest.raises(ValueError, match="CLINIC_OPEN_HOUR"):
            _validate_config(config_with(open_hour=18, close_hour=9))

    def test_hour_out_of_range(self):
        with pytest.raises(ValueError, match="CLINIC_CLOSE_HOUR"):
            _validate_config(config_with(close_hour=25))

    def test_slot_must_divide_hour(self):
        with pytest.raises(ValueError, match="SLOT_DURATION_MINUTES"):
            _validate_config(config_with(slot_minutes=25))

    def test_break_outside_hours(self):
        with pytest.raises(ValueError, match="Break window"):
            _validate_config(config_with(break_start_hour=7, break_end_hour=8))

    def test_inverted_break(self):
        with pytest.raises(ValueError, match="BREAK_START_HOUR"):
            _validate_config(config_with(break_start_hour=14, break_end_hour=13))

    def test_empty_operating_days(self):
        with pytest.raises(ValueError, match="OPERATING_DAYS"):
            _validate_config(config_with(operating_days=()))

    def test_bad_weekday_number(self):
        with pytest.raises(ValueError, match="OPERATING_DAYS"):
            _validate_config(config_with(operating_days=(0, 7)))

    def test_max_advance_days(self):
        with pytest.raises(ValueError, match="MAX_ADVANCE_DAYS"):
            _validate_config(config_with(max_advance_days=0))

    def test_negative_notice_buffer(self):
        with pytest.raises(ValueError, match="NOTICE_BUFFER_MINUTES"):
            _validate_config(config_with(notice_buffer_minutes=-5))

    def test_intent_threshold(self):
        with pytest.raises(ValueError, match="INTENT_BOOKING_THRESHOLD"):
            _validate_config(AppConfig(intent=IntentConfig(booking_threshold=0)))

    def test_min_date_time_length(self):
        with pytest.raises(ValueError, match="MIN_DATE_TIME_LENGTH"):
            _validate_config(AppConfig(dialogue=DialogueConfig(min_date_time_length=0)))


class TestEnvParsing:
    def test_safe_int_reads_env(self, monkeypatch):
        monkeypatch.setenv("TEST_INT", "42")
        assert _safe_int("TEST_INT", "1") == 42

    def test_safe_int_default(self, monkeypatch):
        monkeypatch.delenv("TEST_INT", raising=False)
        assert _safe_int("TEST_INT", "7") == 7

    def test_safe_int_rejects_garbage(self, monkeypatch):
        monkeypatch.setenv("TEST_INT", "nine")
        with pytest.raises(ValueError, match="TEST_INT"):
            _safe_int("TEST_INT", "1")

    def test_int_tuple(self, monkeypatch):
        monkeypatch.setenv("TEST_DAYS", "0, 1,2,")
        assert _safe_int_tuple("TEST_DAYS", "0") == (0, 1, 2)

    def test_int_tuple_rejects_garbage(self, monkeypatch):
        monkeypatch.setenv("TEST_DAYS", "mon,tue")
        with pytest.raises(ValueError, match="TEST_DAYS"):
            _safe_int_tuple("TEST_DAYS", "0")


class TestDefaults:
    def test_clinic_defaults(self):
        clinic = ClinicConfig()
        assert clinic.slot_minutes == 30
        assert 6 not in clinic.operating_days

    def test_configs_are_frozen(self):
        clinic = ClinicConfig()
        with pytest.raises(AttributeError):
            clinic.open_hour = 7
