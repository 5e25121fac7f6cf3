"""
Centralized configuration with environment variable overrides.

Clinic hours, slot grid, booking window, and intent thresholds are all
configurable here. Nothing is hardcoded in the scheduling or dialogue logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_int_tuple(env_var: str, default: str) -> tuple[int, ...]:
    """Parse a comma-separated list of integers from an env var."""
    raw = os.getenv(env_var, default)
    try:
        return tuple(int(part) for part in raw.split(",") if part.strip())
    except (ValueError, TypeError, AttributeError):
        raise ValueError(
            f"Invalid integer list for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class ClinicConfig:
    """Opening hours and slot grid for the clinic.

    ``operating_days`` uses Python weekday numbering (Monday is 0).
    """

    name: str = os.getenv("CLINIC_NAME", "Koko Veterinary Clinic")
    open_hour: int = _safe_int("CLINIC_OPEN_HOUR", "9")
    close_hour: int = _safe_int("CLINIC_CLOSE_HOUR", "18")
    slot_minutes: int = _safe_int("SLOT_DURATION_MINUTES", "30")
    break_start_hour: int = _safe_int("BREAK_START_HOUR", "13")
    break_end_hour: int = _safe_int("BREAK_END_HOUR", "14")
    operating_days: tuple[int, ...] = _safe_int_tuple("OPERATING_DAYS", "0,1,2,3,4,5")
    max_advance_days: int = _safe_int("MAX_ADVANCE_DAYS", "90")
    notice_buffer_minutes: int = _safe_int("NOTICE_BUFFER_MINUTES", "30")
    max_suggested_slots: int = _safe_int("MAX_SUGGESTED_SLOTS", "5")
    default_time_slot: str = os.getenv("DEFAULT_TIME_SLOT", "09:00")


@dataclass(frozen=True)
class IntentConfig:
    """Scoring threshold for booking-intent classification."""

    booking_threshold: int = _safe_int("INTENT_BOOKING_THRESHOLD", "25")


@dataclass(frozen=True)
class DialogueConfig:
    """Booking dialogue settings."""

    min_date_time_length: int = _safe_int("MIN_DATE_TIME_LENGTH", "5")
    history_limit: int = _safe_int("HISTORY_LIMIT", "10")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    clinic: ClinicConfig = field(default_factory=ClinicConfig)
    intent: IntentConfig = field(default_factory=IntentConfig)
    dialogue: DialogueConfig = field(default_factory=DialogueConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    assistant_name: str = os.getenv("ASSISTANT_NAME", "vet-booking-assistant")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    clinic = config.clinic

    for name, hour in [
        ("CLINIC_OPEN_HOUR", clinic.open_hour),
        ("CLINIC_CLOSE_HOUR", clinic.close_hour),
        ("BREAK_START_HOUR", clinic.break_start_hour),
        ("BREAK_END_HOUR", clinic.break_end_hour),
    ]:
        if not 0 <= hour <= 24:
            raise ValueError(f"{name} must be between 0 and 24, got {hour}")

    if clinic.open_hour >= clinic.close_hour:
        raise ValueError(
            f"CLINIC_OPEN_HOUR must be before CLINIC_CLOSE_HOUR, "
            f"got {clinic.open_hour} >= {clinic.close_hour}"
        )
    if clinic.slot_minutes < 1 or 60 % clinic.slot_minutes != 0:
        raise ValueError(
            f"SLOT_DURATION_MINUTES must divide 60 evenly, got {clinic.slot_minutes}"
        )
    if clinic.break_start_hour > clinic.break_end_hour:
        raise ValueError(
            "BREAK_START_HOUR must not be after BREAK_END_HOUR, "
            f"got {clinic.break_start_hour} > {clinic.break_end_hour}"
        )
    if clinic.break_start_hour < clinic.open_hour or clinic.break_end_hour > clinic.close_hour:
        raise ValueError("Break window must fall within clinic opening hours")
    if not clinic.operating_days:
        raise ValueError("OPERATING_DAYS must list at least one weekday")
    if any(not 0 <= day <= 6 for day in clinic.operating_days):
        raise ValueError(
            f"OPERATING_DAYS must contain weekday numbers 0-6, got {clinic.operating_days}"
        )
    if clinic.max_advance_days < 1:
        raise ValueError(
            f"MAX_ADVANCE_DAYS must be >= 1, got {clinic.max_advance_days}"
        )
    if clinic.notice_buffer_minutes < 0:
        raise ValueError(
            f"NOTICE_BUFFER_MINUTES must be >= 0, got {clinic.notice_buffer_minutes}"
        )
    if clinic.max_suggested_slots < 1:
        raise ValueError(
            f"MAX_SUGGESTED_SLOTS must be >= 1, got {clinic.max_suggested_slots}"
        )

    if config.intent.booking_threshold < 1:
        raise ValueError(
            f"INTENT_BOOKING_THRESHOLD must be >= 1, got {config.intent.booking_threshold}"
        )
    if config.dialogue.min_date_time_length < 1:
        raise ValueError(
            f"MIN_DATE_TIME_LENGTH must be >= 1, got {config.dialogue.min_date_time_length}"
        )
    if config.dialogue.history_limit < 0:
        raise ValueError(
            f"HISTORY_LIMIT must be >= 0, got {config.dialogue.history_limit}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logger.info("Configuration loaded for '%s'", config.clinic.name)
    return config


# Singleton instance
settings = load_config()
