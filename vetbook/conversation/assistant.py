"""
Response-generator capability for idle, non-booking chat turns.

The chat service receives an ``AssistantModel`` at construction time. A
hosted language model can be plugged in behind this protocol; the default
``NullAssistantModel`` is rule-free and never calls out.
"""

from dataclasses import dataclass
from typing import Protocol

from vetbook.prompts import responses
from vetbook.schemas.conversation_schema import Message


@dataclass(frozen=True)
class AssistantReply:
    """Generated reply text and whether the model spotted booking intent."""
    text: str
    is_booking_intent: bool = False


class AssistantModel(Protocol):
    def respond(self, message: str, history: list[Message]) -> AssistantReply: ...


class NullAssistantModel:
    """Answers every general message with the same capability summary."""

    def respond(self, message: str, history: list[Message]) -> AssistantReply:
        return AssistantReply(text=responses.ASSISTANT_FALLBACK)
