from vetbook.storage.appointment_store import AppointmentStore, InMemoryAppointmentStore
from vetbook.storage.conversation_store import ConversationStore, InMemoryConversationStore

__all__ = [
    "AppointmentStore",
    "InMemoryAppointmentStore",
    "ConversationStore",
    "InMemoryConversationStore",
]
