"""Chat session, booking dialogue state, and message schemas."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class MessageRole(str, Enum):
    USER = "user"
    BOT = "bot"
    SYSTEM = "system"


class BookingStatus(str, Enum):
    """Steps of the booking dialogue."""
    IDLE = "idle"
    COLLECTING_OWNER_NAME = "collecting_owner_name"
    COLLECTING_PET_NAME = "collecting_pet_name"
    COLLECTING_PHONE = "collecting_phone"
    COLLECTING_DATE_TIME = "collecting_date_time"
    CONFIRMING = "confirming"
    COMPLETED = "completed"


class Message(BaseModel):
    """A single entry in the conversation log."""

    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=datetime.now)


class SessionContext(BaseModel):
    """Caller-supplied metadata, passed through and never validated.

    ``custom_data`` is an opaque payload; insertion order is preserved.
    """

    user_id: Optional[str] = None
    user_name: Optional[str] = None
    pet_name: Optional[str] = None
    source: str = "unknown"
    custom_data: dict[str, Any] = Field(default_factory=dict)


class BookingTempData(BaseModel):
    """Booking fields collected so far in the dialogue."""

    model_config = ConfigDict(frozen=True)

    owner_name: Optional[str] = None
    pet_name: Optional[str] = None
    phone: Optional[str] = None
    preferred_date_time: Optional[str] = None

    def merge(self, **fields: str) -> "BookingTempData":
        """Return a copy with the given fields added or replaced."""
        return self.model_copy(update=fields)

    def collected(self) -> dict[str, str]:
        """Export the fields that have been filled."""
        return self.model_dump(exclude_none=True)


class BookingState(BaseModel):
    """Persisted dialogue position for a session.

    ``version`` increases on every write so stores can reject stale updates.
    """

    model_config = ConfigDict(frozen=True)

    status: BookingStatus = BookingStatus.IDLE
    temp_data: BookingTempData = Field(default_factory=BookingTempData)
    version: int = 0


class ConversationSession(BaseModel):
    """A chat session keyed by ``session_id``."""

    session_id: str
    context: SessionContext = Field(default_factory=SessionContext)
    booking_state: BookingState = Field(default_factory=BookingState)
    messages: list[Message] = Field(default_factory=list)
    is_active: bool = True
    created_at: datetime = Field(default_factory=datetime.now)
    last_activity_at: datetime = Field(default_factory=datetime.now)


class ChatReply(BaseModel):
    """Result of processing one inbound chat message."""

    success: bool
    response: str
    session_id: str
    is_booking_flow: bool = False
    is_booking_complete: bool = False
    appointment_id: Optional[str] = None
    error_code: Optional[str] = None
