"""Dynamic bot message construction for the booking dialogue."""

from datetime import date
from typing import Optional

from vetbook.schemas.booking_schema import TimeSlot
from vetbook.schemas.conversation_schema import BookingTempData
from vetbook.utils import format_time_display, parse_time_slot

_FIELD_LABELS = {
    "owner_name": "Owner",
    "pet_name": "Pet",
    "phone": "Phone",
    "preferred_date_time": "Date/Time",
}


def _day_label(value: date) -> str:
    return value.strftime("%A, %B %d").replace(" 0", " ")


def _slot_label(time_slot: str) -> str:
    parsed = parse_time_slot(time_slot)
    return format_time_display(*parsed) if parsed else time_slot


def build_confirmation_prompt(
    temp_data: BookingTempData,
    scheduled_date: Optional[date] = None,
    time_slot: Optional[str] = None,
    time_defaulted: bool = False,
) -> str:
    """Read back the collected details and ask for a yes/no.

    When the date/time answer could be parsed, the slot that will actually
    be booked is spelled out, including a note when no time was given.
    """
    lines = ["Please confirm your appointment details:", ""]
    for key, value in temp_data.collected().items():
        lines.append(f"{_FIELD_LABELS.get(key, key)}: {value}")
    if scheduled_date is not None and time_slot:
        lines.append(f"Booking: {_day_label(scheduled_date)} at {_slot_label(time_slot)}")
        if time_defaulted:
            lines.append(
                f"No time was given, so we'll book the {_slot_label(time_slot)} slot."
            )
    lines.append("")
    lines.append('Reply "yes" to confirm or "no" to start over.')
    return "\n".join(lines)


def build_alternative_times_prompt(
    requested_date: date,
    requested_slot: str,
    alternatives: list[TimeSlot],
) -> str:
    """Tell the user their slot is gone and offer free ones on the same day."""
    day = _day_label(requested_date)
    lines = [f"Sorry, the {requested_slot} slot on {day} has just been taken."]
    if alternatives:
        options = ", ".join(slot.display for slot in alternatives)
        lines.append(f"Available times that day: {options}.")
        lines.append("Which time would you like instead? You can also pick another day.")
    else:
        lines.append("There are no other free times that day. Please choose another day.")
    return "\n".join(lines)


def build_duplicate_booking_prompt(requested_date: date) -> str:
    day = _day_label(requested_date)
    return (
        f"It looks like this phone number already has an appointment on {day}. "
        "Please choose a different day for this booking."
    )


def build_invalid_slot_prompt(reason: str) -> str:
    """Re-ask for a date/time after the parsed slot failed a clinic rule."""
    return f"{reason} When would you like to come in instead?"
