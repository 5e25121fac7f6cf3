from vetbook.conversation.datetime_extractor import DateTimeExtractor, ParsedDateTime
from vetbook.conversation.intent_classifier import IntentClassifier, IntentResult
from vetbook.conversation.state_machine import (
    BookingStateMachine,
    BookingTrigger,
    DialogueTurn,
)

__all__ = [
    "BookingStateMachine",
    "BookingTrigger",
    "DialogueTurn",
    "IntentClassifier",
    "IntentResult",
    "DateTimeExtractor",
    "ParsedDateTime",
]
