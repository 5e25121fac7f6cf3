"""
Conversation store interface and an in-memory reference implementation.

Every booking-state write carries the version it was computed from. A write
based on a stale version is rejected with ``ConcurrentUpdateError`` so two
turns racing on the same session cannot both apply a transition.
"""

import logging
import threading
from datetime import datetime
from typing import Optional, Protocol

from vetbook.errors import ConcurrentUpdateError, SessionNotFoundError
from vetbook.schemas.conversation_schema import (
    BookingState,
    BookingStatus,
    BookingTempData,
    ConversationSession,
    Message,
    MessageRole,
    SessionContext,
)

logger = logging.getLogger(__name__)


class ConversationStore(Protocol):
    """Session persistence capabilities the chat service depends on."""

    def find_or_create(
        self, session_id: str, context: Optional[SessionContext] = None
    ) -> ConversationSession: ...

    def get(self, session_id: str) -> Optional[ConversationSession]: ...

    def append_message(self, session_id: str, role: MessageRole, content: str) -> Message: ...

    def get_history(self, session_id: str, limit: int = 50) -> list[Message]: ...

    def get_booking_state(self, session_id: str) -> BookingState: ...

    def set_booking_state(
        self,
        session_id: str,
        status: BookingStatus,
        temp_data: BookingTempData,
        expected_version: Optional[int] = None,
    ) -> BookingState: ...


class InMemoryConversationStore:
    """Thread-safe dict-backed session store with versioned state writes."""

    def __init__(self) -> None:
        self._sessions: dict[str, ConversationSession] = {}
        self._lock = threading.RLock()

    def _require(self, session_id: str) -> ConversationSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def find_or_create(
        self, session_id: str, context: Optional[SessionContext] = None
    ) -> ConversationSession:
        """Return the session for ``session_id``, creating it on first contact."""
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                session = ConversationSession(
                    session_id=session_id,
                    context=context or SessionContext(),
                )
                self._sessions[session_id] = session
                logger.info("Session created: %s (source=%s)", session_id, session.context.source)
            return session.model_copy(deep=True)

    def get(self, session_id: str) -> Optional[ConversationSession]:
        with self._lock:
            session = self._sessions.get(session_id)
            return session.model_copy(deep=True) if session else None

    def append_message(self, session_id: str, role: MessageRole, content: str) -> Message:
        with self._lock:
            session = self._require(session_id)
            message = Message(role=role, content=content)
            session.messages.append(message)
            session.last_activity_at = message.timestamp
            return message

    def get_history(self, session_id: str, limit: int = 50) -> list[Message]:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None or limit <= 0:
                return []
            return [m.model_copy() for m in session.messages[-limit:]]

    def get_booking_state(self, session_id: str) -> BookingState:
        with self._lock:
            session = self._sessions.get(session_id)
            return session.booking_state if session else BookingState()

    def set_booking_state(
        self,
        session_id: str,
        status: BookingStatus,
        temp_data: BookingTempData,
        expected_version: Optional[int] = None,
    ) -> BookingState:
        """Replace the booking state, optionally only if the version still matches."""
        with self._lock:
            session = self._require(session_id)
            current = session.booking_state
            if expected_version is not None and current.version != expected_version:
                logger.warning(
                    "Stale booking-state write for %s: expected v%d, found v%d",
                    session_id, expected_version, current.version,
                )
                raise ConcurrentUpdateError(session_id, expected_version, current.version)

            session.booking_state = BookingState(
                status=status, temp_data=temp_data, version=current.version + 1
            )
            session.last_activity_at = datetime.now()
            return session.booking_state

    def reset_booking_state(self, session_id: str) -> BookingState:
        with self._lock:
            return self.set_booking_state(session_id, BookingStatus.IDLE, BookingTempData())

    def list_sessions(self, page: int = 1, limit: int = 20) -> tuple[list[ConversationSession], int]:
        """Sessions ordered by most recent activity, without their message logs."""
        with self._lock:
            sessions = sorted(
                self._sessions.values(), key=lambda s: s.last_activity_at, reverse=True
            )
            total = len(sessions)
            offset = (page - 1) * limit
            return [
                s.model_copy(update={"messages": []}, deep=True)
                for s in sessions[offset:offset + limit]
            ], total
