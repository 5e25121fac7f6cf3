"""
Fixed bot replies for the booking dialogue and chat fallbacks.

Clinic-specific values are injected from configuration, not hardcoded.
"""

from vetbook.config import settings

_clinic = settings.clinic

WELCOME = (
    f"Hello! I'm the {_clinic.name} assistant. I can help you with pet care "
    "questions or book a vet appointment. How can I help you today?"
)

ASK_OWNER_NAME = "Let me collect some information. What is the pet owner's name?"
APPOINTMENT_START = f"I'd be happy to help you book an appointment! {ASK_OWNER_NAME}"
ASK_PET_NAME = "Great! And what is your pet's name?"
ASK_PHONE = "Perfect! What phone number can we reach you at?"
ASK_DATE_TIME = (
    "Almost done! When would you like to schedule the appointment? (Please provide "
    "your preferred date and time, e.g., 'January 30, 2026 at 2:00 PM')"
)

INVALID_NAME = "Please enter a valid name (at least 2 characters)."
INVALID_PET_NAME = "Please enter your pet's name."
INVALID_PHONE = (
    "That doesn't look like a valid phone number. Please enter a valid phone number "
    "(e.g., +1234567890 or 123-456-7890)."
)
INVALID_DATE_TIME = "Please provide a valid date and time for your appointment."
CONFIRM_RETRY = 'Please reply "yes" to confirm or "no" to cancel the booking.'

BOOKING_SUCCESS = (
    "Your appointment has been booked successfully! You'll receive a confirmation "
    "soon. Is there anything else I can help you with?"
)
BOOKING_CANCELLED = (
    "No problem! The booking has been cancelled. Feel free to start over whenever "
    "you're ready. Is there anything else I can help with?"
)

DATE_NOT_UNDERSTOOD = (
    "Sorry, I couldn't work out a date from that. Please tell me a day and time, "
    "for example 'tomorrow at 2pm' or 'January 30 at 10:00 AM'."
)

ERROR_RESPONSE = (
    "I'm sorry, I encountered an issue processing your request. Please try again or "
    "ask a different question."
)

ASSISTANT_FALLBACK = (
    "I can help you book a vet appointment for your pet. Just tell me you'd like "
    "to book an appointment and I'll take your details."
)
