"""
Rule-based booking-intent classifier.

Scores free text against weighted keyword and phrase tables after
normalizing spelling and common chat abbreviations. Classification is a
pure function of the input text and the static tables below, so the same
text always yields the same score.

Usage:
    classifier = IntentClassifier()
    result = classifier.classify("I want to book an appointment for my dog")
    assert result.is_booking
"""

import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

from vetbook.config import settings
from vetbook.prompts import responses

logger = logging.getLogger(__name__)


# --------------------------------------------------------------------------- #
# Term tables
# --------------------------------------------------------------------------- #

PRIMARY_BOOKING_KEYWORDS = (
    "book", "booking", "schedule", "scheduling", "appointment", "appointments",
    "reserve", "reservation", "slot", "visit", "consultation", "checkup",
    "check-up", "check up",
)

BOOKING_ACTION_VERBS = (
    "book", "make", "create", "set", "setup", "set up", "schedule", "arrange",
    "plan", "fix", "reserve", "get", "need", "want", "would like", "looking for",
    "looking to", "interested in", "request", "requesting",
)

APPOINTMENT_NOUNS = (
    "appointment", "appointments", "booking", "bookings", "reservation",
    "reservations", "slot", "slots", "time", "timeslot", "time slot", "visit",
    "visits", "session", "sessions", "consultation", "consultations", "meeting",
    "checkup", "check-up", "check up", "examination", "exam",
)

PET_CONTEXT_KEYWORDS = (
    "pet", "pets", "dog", "dogs", "puppy", "puppies", "cat", "cats", "kitten",
    "kittens", "bird", "birds", "rabbit", "rabbits", "bunny", "bunnies",
    "hamster", "hamsters", "guinea pig", "fish", "turtle", "reptile", "animal",
    "animals", "furry friend", "fur baby", "furbaby",
)

VET_CONTEXT_KEYWORDS = (
    "vet", "vets", "veterinary", "veterinarian", "clinic", "hospital", "doctor",
    "dr", "koko", "grooming", "vaccination", "vaccine", "shots", "treatment",
    "surgery", "spay", "neuter", "dental", "wellness", "annual", "routine",
)

TIME_CONTEXT_KEYWORDS = (
    "today", "tomorrow", "next week", "this week", "monday", "tuesday",
    "wednesday", "thursday", "friday", "saturday", "sunday", "morning",
    "afternoon", "evening", "asap", "soon", "earliest", "available",
    "availability", "when", "date", "time", "am", "pm",
)

BOOKING_PHRASES = (
    # Direct requests
    "book an appointment", "book appointment", "book a slot", "book slot",
    "make an appointment", "make appointment", "schedule an appointment",
    "schedule appointment", "schedule a visit", "get an appointment",
    "set up an appointment", "set up appointment", "setup appointment",
    "reserve a slot", "reserve slot", "fix an appointment",
    # Need / want
    "need an appointment", "need appointment", "need to book", "need to schedule",
    "want an appointment", "want to book", "want to schedule",
    "would like an appointment", "would like to book", "would like to schedule",
    "looking to book", "looking to schedule", "looking for an appointment",
    "interested in booking",
    # Questions
    "can i book", "can i schedule", "can i make an appointment",
    "can i get an appointment", "how do i book", "how to book", "how can i book",
    "how can i schedule", "how to schedule", "how do i schedule",
    "is there availability", "are there any slots", "any available slots",
    "any openings", "any availability", "when can i come", "when can i bring",
    "when is the next available", "what times are available",
    "what slots are available", "do you have availability",
    "do you have any openings",
    # Urgent
    "need to see the vet", "need to see a vet", "bring my pet", "bring my dog",
    "bring my cat", "take my pet", "take my dog", "take my cat",
    "pet needs to see", "dog needs to see", "cat needs to see",
    "get my pet checked", "get my dog checked", "get my cat checked",
    # Service specific
    "book a checkup", "book checkup", "schedule a checkup", "schedule checkup",
    "book vaccination", "schedule vaccination", "book grooming",
    "schedule grooming", "book a consultation", "schedule consultation",
    "book an exam", "schedule an exam", "wellness visit", "routine checkup",
    "annual checkup", "annual visit",
    # Informal
    "come in", "drop by", "stop by", "visit the clinic", "visit the vet",
    "see the doctor", "see the vet", "come for a visit", "arrange a visit",
    "plan a visit",
    # Rescheduling
    "reschedule", "reschedule appointment", "change appointment",
    "change my appointment", "move my appointment", "modify appointment",
    "update appointment", "new appointment", "another appointment",
    "different time", "different date",
)

COMMON_MISSPELLINGS = {
    "apointment": "appointment", "appointement": "appointment",
    "appoinment": "appointment", "appoitment": "appointment",
    "appointmnt": "appointment", "appointmnet": "appointment",
    "appoitnemnt": "appointment", "appintment": "appointment",
    "apponiment": "appointment", "appointmemt": "appointment",
    "appointmet": "appointment", "appointent": "appointment",
    "appotinment": "appointment",
    "bok": "book", "boook": "book", "bokk": "book", "buk": "book",
    "scedule": "schedule", "scehdule": "schedule", "schedle": "schedule",
    "schdule": "schedule", "shedule": "schedule", "schedual": "schedule",
    "shcedule": "schedule", "schedulle": "schedule", "schecule": "schedule",
    "schedlue": "schedule",
    "reservaton": "reservation", "reervation": "reservation",
    "reservtion": "reservation", "resevation": "reservation",
    "reservaion": "reservation",
    "slott": "slot", "slote": "slot", "solt": "slot",
    "vetenary": "veterinary", "veternary": "veterinary", "vetinary": "veterinary",
    "veternarian": "veterinarian", "vetrinarian": "veterinarian",
    "vetirnarian": "veterinarian",
    "chekup": "checkup", "checkp": "checkup", "chekc up": "checkup",
    "chekcup": "checkup", "ceckup": "checkup",
    "consulation": "consultation", "consulatation": "consultation",
    "consultion": "consultation", "consultaion": "consultation",
    "cosultation": "consultation",
    "vacination": "vaccination", "vaccinaion": "vaccination",
    "vaccnation": "vaccination", "vaccinaton": "vaccination",
    "vaxination": "vaccination", "vacine": "vaccine", "vaccin": "vaccine",
    "groming": "grooming", "groomin": "grooming", "grroming": "grooming",
    "tommorow": "tomorrow", "tommorrow": "tomorrow", "tomorow": "tomorrow",
    "tomorro": "tomorrow", "tomoroow": "tomorrow",
    "availble": "available", "avialable": "available", "avaialble": "available",
    "availabel": "available", "avaliable": "available",
}

ABBREVIATIONS = {
    "appt": "appointment", "apt": "appointment", "sched": "schedule",
    "resv": "reservation", "vet": "veterinary", "doc": "doctor", "dr": "doctor",
    "avail": "available", "tmrw": "tomorrow", "tmr": "tomorrow",
    "tomo": "tomorrow", "tom": "tomorrow", "nxt": "next", "wk": "week",
    "mon": "monday", "tue": "tuesday", "tues": "tuesday", "wed": "wednesday",
    "thu": "thursday", "thurs": "thursday", "fri": "friday", "sat": "saturday",
    "sun": "sunday", "morn": "morning", "aft": "afternoon", "eve": "evening",
    "pls": "please", "plz": "please", "u": "you", "ur": "your",
    "asap": "as soon as possible", "b4": "before", "abt": "about",
    "thx": "thanks", "ty": "thank you", "ppl": "people", "msg": "message",
    "info": "information", "mins": "minutes", "hrs": "hours",
}

# Scoring weights
PHRASE_WEIGHT = 50
PRIMARY_WEIGHT = 20
ACTION_VERB_WEIGHT = 15
APPOINTMENT_NOUN_WEIGHT = 10
PET_CONTEXT_WEIGHT = 5
VET_CONTEXT_WEIGHT = 5
TIME_CONTEXT_WEIGHT = 3

VERB_NOUN_BONUS = 25
PET_CONTEXT_BONUS = 15
TIME_NOUN_BONUS = 10

# Each of these alone scores at least PRIMARY_WEIGHT + APPOINTMENT_NOUN_WEIGHT
QUICK_KEYWORDS = (
    "book", "booking", "appointment", "schedule", "reservation", "slot",
    "visit", "checkup", "consultation",
)
QUICK_KEYWORD_MIN_SCORE = PRIMARY_WEIGHT + APPOINTMENT_NOUN_WEIGHT

DETAIL_PET_TYPES = (
    "dog", "cat", "bird", "rabbit", "hamster", "guinea pig", "fish", "turtle",
    "reptile", "puppy", "kitten", "bunny",
)
DETAIL_DAYS = (
    "today", "tomorrow", "monday", "tuesday", "wednesday", "thursday", "friday",
    "saturday", "sunday", "next week", "this week",
)
DETAIL_SERVICES = (
    "checkup", "check-up", "vaccination", "vaccine", "grooming", "dental",
    "surgery", "consultation", "wellness", "examination", "exam", "shots",
    "spay", "neuter", "treatment",
)
DETAIL_TIME_PATTERNS = (
    re.compile(r"\b\d{1,2}:\d{2}\s*(?:am|pm)?\b"),
    re.compile(r"\b\d{1,2}\s*(?:am|pm)\b"),
    re.compile(r"\b(?:morning|afternoon|evening|noon|night)\b"),
)


# --------------------------------------------------------------------------- #
# Normalization
# --------------------------------------------------------------------------- #

@lru_cache(maxsize=None)
def _term_pattern(term: str) -> re.Pattern:
    return re.compile(r"\b" + re.escape(term) + r"\b")


def _contains(text: str, term: str) -> bool:
    return _term_pattern(term).search(text) is not None


def _replace_words(text: str, table: dict[str, str]) -> str:
    for source, target in table.items():
        text = _term_pattern(source).sub(target, text)
    return text


def normalize_text(text: Optional[str]) -> str:
    """Lowercase, strip punctuation except hyphens and apostrophes, collapse spaces."""
    if not text or not isinstance(text, str):
        return ""
    normalized = re.sub(r"\s+", " ", text.lower().strip())
    normalized = re.sub(r"[^\w\s\-']", " ", normalized)
    return re.sub(r"\s+", " ", normalized).strip()


def fix_misspellings(text: str) -> str:
    return _replace_words(text, COMMON_MISSPELLINGS)


def expand_abbreviations(text: str) -> str:
    return _replace_words(text, ABBREVIATIONS)


def prepare_text(text: Optional[str]) -> str:
    """Full normalization pipeline used before any matching."""
    return expand_abbreviations(fix_misspellings(normalize_text(text)))


# --------------------------------------------------------------------------- #
# Results
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class IntentMatches:
    """Terms from each table found in the normalized text."""
    phrases: tuple[str, ...] = ()
    primary_keywords: tuple[str, ...] = ()
    action_verbs: tuple[str, ...] = ()
    appointment_nouns: tuple[str, ...] = ()
    pet_context: tuple[str, ...] = ()
    vet_context: tuple[str, ...] = ()
    time_context: tuple[str, ...] = ()

    def matched_sets(self) -> list[str]:
        return [name for name, terms in vars(self).items() if terms]


@dataclass(frozen=True)
class IntentResult:
    """Outcome of booking-intent classification."""
    is_booking: bool
    confidence: float
    score: int
    matches: IntentMatches = field(default_factory=IntentMatches)
    normalized_text: str = ""


@dataclass(frozen=True)
class BookingDetails:
    """Booking-related tokens spotted in free text."""
    dates: tuple[str, ...] = ()
    times: tuple[str, ...] = ()
    pet_types: tuple[str, ...] = ()
    services: tuple[str, ...] = ()

    @property
    def has_date(self) -> bool:
        return bool(self.dates)

    @property
    def has_time(self) -> bool:
        return bool(self.times)

    @property
    def has_pet_type(self) -> bool:
        return bool(self.pet_types)

    @property
    def has_service(self) -> bool:
        return bool(self.services)


# --------------------------------------------------------------------------- #
# Classifier
# --------------------------------------------------------------------------- #

def _found(text: str, terms: tuple[str, ...]) -> tuple[str, ...]:
    return tuple(term for term in terms if _contains(text, term))


def score_text(prepared: str) -> tuple[int, IntentMatches]:
    """Score already-normalized text. Returns (score, matches)."""
    matches = IntentMatches(
        phrases=_found(prepared, BOOKING_PHRASES),
        primary_keywords=_found(prepared, PRIMARY_BOOKING_KEYWORDS),
        action_verbs=_found(prepared, BOOKING_ACTION_VERBS),
        appointment_nouns=_found(prepared, APPOINTMENT_NOUNS),
        pet_context=_found(prepared, PET_CONTEXT_KEYWORDS),
        vet_context=_found(prepared, VET_CONTEXT_KEYWORDS),
        time_context=_found(prepared, TIME_CONTEXT_KEYWORDS),
    )

    score = (
        len(matches.phrases) * PHRASE_WEIGHT
        + len(matches.primary_keywords) * PRIMARY_WEIGHT
        + len(matches.action_verbs) * ACTION_VERB_WEIGHT
        + len(matches.appointment_nouns) * APPOINTMENT_NOUN_WEIGHT
        + len(matches.pet_context) * PET_CONTEXT_WEIGHT
        + len(matches.vet_context) * VET_CONTEXT_WEIGHT
        + len(matches.time_context) * TIME_CONTEXT_WEIGHT
    )

    if matches.action_verbs and matches.appointment_nouns:
        score += VERB_NOUN_BONUS
    if matches.pet_context and (matches.vet_context or matches.appointment_nouns):
        score += PET_CONTEXT_BONUS
    if matches.time_context and matches.appointment_nouns:
        score += TIME_NOUN_BONUS

    return score, matches


class IntentClassifier:
    """Decides whether a message asks to book an appointment."""

    def __init__(self, threshold: int = settings.intent.booking_threshold) -> None:
        self._threshold = threshold

    @property
    def threshold(self) -> int:
        return self._threshold

    def classify(self, text: Optional[str]) -> IntentResult:
        prepared = prepare_text(text)
        score, matches = score_text(prepared)
        result = IntentResult(
            is_booking=score >= self._threshold,
            confidence=min(score / 100, 1.0),
            score=score,
            matches=matches,
            normalized_text=prepared,
        )
        logger.debug(
            "Intent score %d (booking=%s) sets=%s",
            score, result.is_booking, matches.matched_sets(),
        )
        return result

    def contains_booking_keyword(self, text: Optional[str]) -> bool:
        """Fast pre-check. A True here always agrees with ``classify``.

        Above ``QUICK_KEYWORD_MIN_SCORE`` a lone keyword cannot reach the
        threshold, so the check stays silent and the caller falls back to
        full classification.
        """
        if self._threshold > QUICK_KEYWORD_MIN_SCORE:
            return False
        prepared = prepare_text(text)
        return any(_contains(prepared, keyword) for keyword in QUICK_KEYWORDS)


def classify_intent(text: Optional[str]) -> IntentResult:
    """Classify with the configured threshold."""
    return IntentClassifier().classify(text)


def extract_booking_details(text: Optional[str]) -> BookingDetails:
    """Spot pet types, day words, times, and service words in ``text``."""
    prepared = prepare_text(text)
    times: list[str] = []
    for pattern in DETAIL_TIME_PATTERNS:
        times.extend(pattern.findall(prepared))
    return BookingDetails(
        dates=_found(prepared, DETAIL_DAYS),
        times=tuple(times),
        pet_types=_found(prepared, DETAIL_PET_TYPES),
        services=_found(prepared, DETAIL_SERVICES),
    )


def suggested_prompt(result: IntentResult) -> Optional[str]:
    """Opening line for a new booking, tailored to what the user mentioned.

    Every variant ends by asking for the owner's name, the first thing the
    booking dialogue collects. None when the text is not a booking request.
    """
    if not result.is_booking:
        return None

    matches = result.matches
    if matches.pet_context:
        pet = matches.pet_context[0]
        opener = f"I'd be happy to help you book an appointment for your {pet}!"
    elif "grooming" in matches.vet_context:
        opener = "I can help you schedule a grooming appointment!"
    elif "vaccination" in matches.vet_context or "vaccine" in matches.vet_context:
        opener = "I can help you schedule a vaccination appointment!"
    elif matches.time_context:
        opener = "Great, I'll ask for your preferred date and time in a moment."
    else:
        return responses.APPOINTMENT_START
    return f"{opener} {responses.ASK_OWNER_NAME}"
