"""
Chat turn orchestration.

One call to ``process_message`` is one turn: load the session, decide the
next dialogue step with the pure state machine, run the commit if the user
confirmed, then persist the new booking state and log both messages.

Booking-state writes carry the version read at the start of the turn, so
a second turn racing on the same session cannot silently overwrite the
first. If anything unexpected fails mid-turn, the booking state is put back
to its pre-turn snapshot and the user gets a generic apology.
"""

import uuid
from dataclasses import replace
from typing import Optional

from vetbook.config import DialogueConfig, settings
from vetbook.conversation.assistant import AssistantModel, NullAssistantModel
from vetbook.conversation.intent_classifier import (
    IntentClassifier,
    IntentResult,
    extract_booking_details,
    suggested_prompt,
)
from vetbook.conversation.state_machine import BookingStateMachine, BookingTrigger, DialogueTurn
from vetbook.errors import ConcurrentUpdateError
from vetbook.logging_context import get_session_logger, reset_session_id, set_session_id
from vetbook.prompts import responses
from vetbook.prompts.prompt_templates import (
    build_alternative_times_prompt,
    build_duplicate_booking_prompt,
    build_invalid_slot_prompt,
)
from vetbook.schemas.booking_schema import BookingResult
from vetbook.schemas.conversation_schema import (
    BookingState,
    BookingStatus,
    BookingTempData,
    ChatReply,
    Message,
    MessageRole,
    SessionContext,
)
from vetbook.storage.conversation_store import ConversationStore
from vetbook.tools.booking import AppointmentService

logger = get_session_logger(__name__)

_RESTART_STATES = (BookingStatus.IDLE, BookingStatus.COMPLETED)


class ChatService:
    """Drives the booking dialogue for chat sessions."""

    def __init__(
        self,
        conversations: ConversationStore,
        appointments: AppointmentService,
        classifier: Optional[IntentClassifier] = None,
        state_machine: Optional[BookingStateMachine] = None,
        assistant: Optional[AssistantModel] = None,
        dialogue: DialogueConfig = settings.dialogue,
    ) -> None:
        self._conversations = conversations
        self._appointments = appointments
        self._classifier = classifier or IntentClassifier()
        self._state_machine = state_machine or BookingStateMachine(
            dialogue, extractor=appointments.extractor
        )
        self._assistant = assistant or NullAssistantModel()
        self._dialogue = dialogue

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def initialize_session(
        self, session_id: Optional[str] = None, context: Optional[SessionContext] = None
    ) -> ChatReply:
        """Create (or resume) a session and greet the user once."""
        session_id = session_id or uuid.uuid4().hex
        session = self._conversations.find_or_create(session_id, context)
        if not session.messages:
            self._conversations.append_message(session_id, MessageRole.BOT, responses.WELCOME)
        return ChatReply(success=True, response=responses.WELCOME, session_id=session_id)

    def process_message(
        self, session_id: str, message: str, context: Optional[SessionContext] = None
    ) -> ChatReply:
        token = set_session_id(session_id)
        try:
            return self._process(session_id, message, context)
        finally:
            reset_session_id(token)

    def get_history(self, session_id: str, limit: int = 50) -> list[Message]:
        return self._conversations.get_history(session_id, limit)

    def get_booking_state(self, session_id: str) -> BookingState:
        return self._conversations.get_booking_state(session_id)

    # ------------------------------------------------------------------ #
    # Turn handling
    # ------------------------------------------------------------------ #

    def _process(
        self, session_id: str, message: str, context: Optional[SessionContext]
    ) -> ChatReply:
        text = (message or "").strip()
        if not text:
            return ChatReply(
                success=False,
                response="Please type a message.",
                session_id=session_id,
                error_code="EMPTY_MESSAGE",
            )

        session = self._conversations.find_or_create(session_id, context)
        snapshot = session.booking_state
        self._conversations.append_message(session_id, MessageRole.USER, text)

        try:
            reply = self._run_turn(session_id, snapshot, text, session.context)
        except ConcurrentUpdateError:
            logger.warning("Turn lost a race with another message for this session")
            reply = self._error_reply(session_id, "CONCURRENT_UPDATE")
        except Exception:
            logger.exception("Turn failed, restoring booking state %s", snapshot.status.value)
            self._revert(session_id, snapshot)
            reply = self._error_reply(session_id, "INTERNAL_ERROR")

        self._conversations.append_message(session_id, MessageRole.BOT, reply.response)
        return reply

    def _run_turn(
        self, session_id: str, state: BookingState, text: str, context: SessionContext
    ) -> ChatReply:
        intent = None
        if state.status in _RESTART_STATES:
            intent = self._classify(text)
            if not intent.is_booking:
                history = self._conversations.get_history(
                    session_id, self._dialogue.history_limit
                )
                answer = self._assistant.respond(text, history)
                if not answer.is_booking_intent:
                    return ChatReply(success=True, response=answer.text, session_id=session_id)

        turn = self._state_machine.advance(state.status, state.temp_data, text)
        if turn.commit:
            return self._commit(session_id, state, turn, context)
        if intent is not None and turn.trigger == BookingTrigger.START:
            opener = suggested_prompt(intent)
            if opener:
                turn = replace(turn, response=opener)

        self._write_state(session_id, state.version, turn.next_status, turn.temp_data)
        return ChatReply(
            success=True,
            response=turn.response,
            session_id=session_id,
            is_booking_flow=True,
        )

    def _classify(self, text: str) -> IntentResult:
        result = self._classifier.classify(text)
        if result.is_booking:
            details = extract_booking_details(text)
            logger.info(
                "Booking intent detected (score=%d, pets=%s, services=%s)",
                result.score, list(details.pet_types), list(details.services),
            )
        return result

    def _commit(
        self,
        session_id: str,
        state: BookingState,
        turn: DialogueTurn,
        context: SessionContext,
    ) -> ChatReply:
        """Store the appointment, then leave Completed according to the outcome."""
        version = self._write_state(session_id, state.version, turn.next_status, turn.temp_data)
        result = self._appointments.create_from_dialogue(session_id, turn.temp_data, context)

        if result.code == "INTERNAL_ERROR":
            self._revert(session_id, state)
            return self._error_reply(session_id, result.code)

        if result.success:
            final = self._state_machine.resolve_commit(turn.temp_data, True, turn.response)
            self._write_state(session_id, version, final.next_status, final.temp_data)
            return ChatReply(
                success=True,
                response=final.response,
                session_id=session_id,
                is_booking_flow=True,
                is_booking_complete=True,
                appointment_id=result.appointment.id,
            )

        logger.info("Chat booking not stored (%s), asking for a new date/time", result.code)
        final = self._state_machine.resolve_commit(
            turn.temp_data, False, self._commit_failure_message(result)
        )
        self._write_state(session_id, version, final.next_status, final.temp_data)
        return ChatReply(
            success=True,
            response=final.response,
            session_id=session_id,
            is_booking_flow=True,
            error_code=result.code,
        )

    @staticmethod
    def _commit_failure_message(result: BookingResult) -> str:
        if result.code == "SLOT_TAKEN":
            return build_alternative_times_prompt(
                result.requested_date, result.requested_time_slot, result.suggested_slots
            )
        if result.code == "DUPLICATE_BOOKING":
            return build_duplicate_booking_prompt(result.requested_date)
        if any(e.field == "preferred_date_time" for e in result.validation_errors):
            return result.message
        return build_invalid_slot_prompt(result.message)

    # ------------------------------------------------------------------ #
    # State persistence
    # ------------------------------------------------------------------ #

    def _write_state(
        self,
        session_id: str,
        expected_version: int,
        status: BookingStatus,
        temp_data: BookingTempData,
    ) -> int:
        written = self._conversations.set_booking_state(
            session_id, status, temp_data, expected_version=expected_version
        )
        return written.version

    def _revert(self, session_id: str, snapshot: BookingState) -> None:
        try:
            self._conversations.set_booking_state(
                session_id, snapshot.status, snapshot.temp_data
            )
        except Exception:
            logger.exception("Could not restore booking state")

    @staticmethod
    def _error_reply(session_id: str, code: str) -> ChatReply:
        return ChatReply(
            success=False,
            response=responses.ERROR_RESPONSE,
            session_id=session_id,
            error_code=code,
        )
