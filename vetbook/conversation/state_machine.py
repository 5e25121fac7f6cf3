"""
Finite state machine for the booking dialogue.

Each session walks Idle -> owner name -> pet name -> phone -> date/time ->
confirmation. Every step is decided by ``advance``, a pure function of
(current status, collected data, user text). The caller persists the result
and runs any side effects afterwards; nothing in this module touches a store.

Usage:
    sm = BookingStateMachine()
    turn = sm.advance(BookingStatus.IDLE, BookingTempData(), "hi")
    assert turn.next_status == BookingStatus.COLLECTING_OWNER_NAME
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from vetbook.config import DialogueConfig, settings
from vetbook.conversation.datetime_extractor import DateTimeExtractor
from vetbook.errors import InvalidTransitionError
from vetbook.prompts import responses
from vetbook.prompts.prompt_templates import build_confirmation_prompt
from vetbook.schemas.conversation_schema import BookingStatus, BookingTempData
from vetbook.tools.validation import is_valid_name, is_valid_phone

logger = logging.getLogger(__name__)

CONFIRM_WORDS = frozenset({"yes", "y", "confirm"})
DECLINE_WORDS = frozenset({"no", "n", "cancel"})


class BookingTrigger(str, Enum):
    """Events that move the dialogue between states."""
    START = "start"
    FIELD_ACCEPTED = "field_accepted"
    FIELD_REJECTED = "field_rejected"
    CONFIRMED = "confirmed"
    DECLINED = "declined"
    UNCLEAR = "unclear"
    COMMITTED = "committed"
    SLOT_UNAVAILABLE = "slot_unavailable"


@dataclass(frozen=True)
class Transition:
    """A single valid state transition."""
    from_state: BookingStatus
    to_state: BookingStatus
    trigger: BookingTrigger


@dataclass(frozen=True)
class DialogueTurn:
    """Outcome of one dialogue step.

    ``commit`` is set only on the Confirming -> Completed edge and tells the
    caller to create the appointment before replying.
    """
    next_status: BookingStatus
    response: str
    temp_data: BookingTempData
    trigger: BookingTrigger
    commit: bool = False


# Single-field steps: state -> (temp_data field, next prompt, retry prompt)
_COLLECTION_STEPS = {
    BookingStatus.COLLECTING_OWNER_NAME: (
        "owner_name", responses.ASK_PET_NAME, responses.INVALID_NAME,
    ),
    BookingStatus.COLLECTING_PET_NAME: (
        "pet_name", responses.ASK_PHONE, responses.INVALID_PET_NAME,
    ),
    BookingStatus.COLLECTING_PHONE: (
        "phone", responses.ASK_DATE_TIME, responses.INVALID_PHONE,
    ),
}


class BookingStateMachine:
    """
    Deterministic booking dialogue.

    Every edge is listed in ``TRANSITIONS``. ``advance`` only produces turns
    whose (status, trigger) pair appears there; anything else is a bug and
    raises ``InvalidTransitionError``.
    """

    TRANSITIONS: list[Transition] = [
        # --- Start ---
        Transition(BookingStatus.IDLE, BookingStatus.COLLECTING_OWNER_NAME,
                   BookingTrigger.START),
        Transition(BookingStatus.COMPLETED, BookingStatus.COLLECTING_OWNER_NAME,
                   BookingTrigger.START),

        # --- Field collection ---
        Transition(BookingStatus.COLLECTING_OWNER_NAME, BookingStatus.COLLECTING_PET_NAME,
                   BookingTrigger.FIELD_ACCEPTED),
        Transition(BookingStatus.COLLECTING_OWNER_NAME, BookingStatus.COLLECTING_OWNER_NAME,
                   BookingTrigger.FIELD_REJECTED),
        Transition(BookingStatus.COLLECTING_PET_NAME, BookingStatus.COLLECTING_PHONE,
                   BookingTrigger.FIELD_ACCEPTED),
        Transition(BookingStatus.COLLECTING_PET_NAME, BookingStatus.COLLECTING_PET_NAME,
                   BookingTrigger.FIELD_REJECTED),
        Transition(BookingStatus.COLLECTING_PHONE, BookingStatus.COLLECTING_DATE_TIME,
                   BookingTrigger.FIELD_ACCEPTED),
        Transition(BookingStatus.COLLECTING_PHONE, BookingStatus.COLLECTING_PHONE,
                   BookingTrigger.FIELD_REJECTED),
        Transition(BookingStatus.COLLECTING_DATE_TIME, BookingStatus.CONFIRMING,
                   BookingTrigger.FIELD_ACCEPTED),
        Transition(BookingStatus.COLLECTING_DATE_TIME, BookingStatus.COLLECTING_DATE_TIME,
                   BookingTrigger.FIELD_REJECTED),

        # --- Confirmation gate ---
        Transition(BookingStatus.CONFIRMING, BookingStatus.COMPLETED,
                   BookingTrigger.CONFIRMED),
        Transition(BookingStatus.CONFIRMING, BookingStatus.IDLE,
                   BookingTrigger.DECLINED),
        Transition(BookingStatus.CONFIRMING, BookingStatus.CONFIRMING,
                   BookingTrigger.UNCLEAR),

        # --- Commit outcome ---
        Transition(BookingStatus.COMPLETED, BookingStatus.IDLE,
                   BookingTrigger.COMMITTED),
        Transition(BookingStatus.COMPLETED, BookingStatus.COLLECTING_DATE_TIME,
                   BookingTrigger.SLOT_UNAVAILABLE),
    ]

    def __init__(
        self,
        config: DialogueConfig = settings.dialogue,
        extractor: Optional[DateTimeExtractor] = None,
    ) -> None:
        self._config = config
        self._extractor = extractor or DateTimeExtractor()

    def next_state(self, current: BookingStatus, trigger: BookingTrigger) -> BookingStatus:
        """
        Look up the target state for a trigger.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        for t in self.TRANSITIONS:
            if t.from_state == current and t.trigger == trigger:
                return t.to_state

        valid = [t.value for t in self.get_valid_triggers(current)]
        raise InvalidTransitionError(
            f"No valid transition from '{current.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def get_valid_triggers(self, current: BookingStatus) -> list[BookingTrigger]:
        """Return all triggers valid from ``current``."""
        return [t.trigger for t in self.TRANSITIONS if t.from_state == current]

    def _turn(
        self,
        current: BookingStatus,
        trigger: BookingTrigger,
        response: str,
        temp_data: BookingTempData,
        commit: bool = False,
    ) -> DialogueTurn:
        next_status = self.next_state(current, trigger)
        logger.debug(
            "Dialogue transition: %s -> %s (trigger: %s)",
            current.value, next_status.value, trigger.value,
        )
        return DialogueTurn(
            next_status=next_status,
            response=response,
            temp_data=temp_data,
            trigger=trigger,
            commit=commit,
        )

    def advance(
        self, status: BookingStatus, temp_data: BookingTempData, text: Optional[str]
    ) -> DialogueTurn:
        """Decide the next dialogue step for one user message."""
        message = (text or "").strip()

        if status in (BookingStatus.IDLE, BookingStatus.COMPLETED):
            return self._turn(
                status, BookingTrigger.START, responses.APPOINTMENT_START, BookingTempData()
            )

        if status in _COLLECTION_STEPS:
            field, next_prompt, retry_prompt = _COLLECTION_STEPS[status]
            if not self._accepts(status, message):
                return self._turn(status, BookingTrigger.FIELD_REJECTED, retry_prompt, temp_data)
            return self._turn(
                status, BookingTrigger.FIELD_ACCEPTED, next_prompt,
                temp_data.merge(**{field: message}),
            )

        if status == BookingStatus.COLLECTING_DATE_TIME:
            if len(message) < self._config.min_date_time_length:
                return self._turn(
                    status, BookingTrigger.FIELD_REJECTED, responses.INVALID_DATE_TIME, temp_data
                )
            updated = temp_data.merge(preferred_date_time=message)
            parsed = self._extractor.parse_date_time(message)
            if parsed is None:
                prompt = build_confirmation_prompt(updated)
            else:
                prompt = build_confirmation_prompt(
                    updated, parsed.scheduled_date, parsed.time_slot, parsed.time_defaulted
                )
            return self._turn(status, BookingTrigger.FIELD_ACCEPTED, prompt, updated)

        if status == BookingStatus.CONFIRMING:
            answer = message.lower()
            if answer in CONFIRM_WORDS:
                return self._turn(
                    status, BookingTrigger.CONFIRMED, responses.BOOKING_SUCCESS, temp_data,
                    commit=True,
                )
            if answer in DECLINE_WORDS:
                return self._turn(
                    status, BookingTrigger.DECLINED, responses.BOOKING_CANCELLED, BookingTempData()
                )
            return self._turn(status, BookingTrigger.UNCLEAR, responses.CONFIRM_RETRY, temp_data)

        raise InvalidTransitionError(f"Unhandled booking status '{status}'")

    @staticmethod
    def _accepts(status: BookingStatus, message: str) -> bool:
        if status == BookingStatus.COLLECTING_OWNER_NAME:
            return is_valid_name(message)
        if status == BookingStatus.COLLECTING_PHONE:
            return is_valid_phone(message)
        return bool(message)

    def resolve_commit(
        self, temp_data: BookingTempData, committed: bool, response: str
    ) -> DialogueTurn:
        """Leave Completed once the caller has tried to store the appointment.

        On success the dialogue returns to Idle with nothing retained. On
        failure every collected field is kept and the date/time is asked for
        again; the next answer overwrites the rejected one.
        """
        if committed:
            return self._turn(
                BookingStatus.COMPLETED, BookingTrigger.COMMITTED, response, BookingTempData()
            )
        return self._turn(
            BookingStatus.COMPLETED, BookingTrigger.SLOT_UNAVAILABLE, response, temp_data
        )
