"""Tests for booking-intent classification and text normalization."""

import pytest

from vetbook.conversation.intent_classifier import (
    IntentClassifier,
    classify_intent,
    expand_abbreviations,
    extract_booking_details,
    fix_misspellings,
    normalize_text,
    prepare_text,
    suggested_prompt,
)
from vetbook.prompts import responses


class TestNormalization:
    def test_lowercases_and_strips_punctuation(self):
        assert normalize_text("Book an APPOINTMENT, please!!") == "book an appointment please"

    def test_keeps_hyphens_and_apostrophes(self):
        assert normalize_text("I'd like a check-up") == "i'd like a check-up"

    def test_collapses_whitespace(self):
        assert normalize_text("  book   a\tslot  ") == "book a slot"

    def test_empty_and_none(self):
        assert normalize_text("") == ""
        assert normalize_text(None) == ""

    def test_fixes_misspellings(self):
        assert fix_misspellings("need an apointment tommorow") == "need an appointment tomorrow"

    def test_expands_abbreviations(self):
        assert expand_abbreviations("appt tmrw pls") == "appointment tomorrow please"

    def test_abbreviations_match_whole_words_only(self):
        # "u" must not rewrite the inside of other words
        assert expand_abbreviations("sunny but") == "sunny but"

    def test_pipeline_order(self):
        assert prepare_text("Can u BOK an appt?") == "can you book an appointment"


class TestBookingIntent:
    @pytest.mark.parametrize("text", [
        "I want to book an appointment for my dog",
        "Need to make an appt for my cat",
        "can u help me book a slot for tmrw",
        "schedule a checkup",
        "I'd like to reschedule",
        "can I bring my dog in on Monday?",
        "need an apointment",
    ])
    def test_booking_requests(self, classifier, text):
        assert classifier.classify(text).is_booking

    @pytest.mark.parametrize("text", [
        "hello",
        "thank you",
        "goodbye",
        "what are your hours",
        "what services do you offer",
        "where is the clinic located",
    ])
    def test_non_booking_messages(self, classifier, text):
        result = classifier.classify(text)
        assert not result.is_booking
        assert result.score < classifier.threshold

    def test_score_for_full_request(self, classifier):
        result = classifier.classify("I want to book an appointment for my dog")
        assert result.score == 225
        assert result.confidence == 1.0
        assert "book an appointment" in result.matches.phrases
        assert result.matches.pet_context == ("dog",)

    def test_misspelled_and_abbreviated_request(self, classifier):
        result = classifier.classify("Need to make an appt for my cat")
        assert result.score == 155
        assert "appointment" in result.normalized_text

    def test_whole_word_matching(self, classifier):
        # "booklet" and "slotted" contain keywords but are different words
        result = classifier.classify("i read the booklet")
        assert result.matches.primary_keywords == ()

    def test_same_text_same_score(self, classifier):
        first = classifier.classify("book a visit for my rabbit tomorrow")
        second = classifier.classify("book a visit for my rabbit tomorrow")
        assert first == second

    def test_confidence_is_capped(self, classifier):
        assert classifier.classify("book an appointment").confidence <= 1.0

    def test_empty_text(self, classifier):
        result = classifier.classify("")
        assert not result.is_booking
        assert result.score == 0
        assert result.confidence == 0.0

    def test_threshold_is_configurable(self):
        strict = IntentClassifier(threshold=500)
        assert not strict.classify("I want to book an appointment for my dog").is_booking

    def test_module_level_helper(self):
        assert classify_intent("book an appointment").is_booking


class TestQuickKeywordCheck:
    @pytest.mark.parametrize("text", [
        "booking", "appointment", "schedule", "reservation", "slot", "visit",
        "checkup", "consultation", "book",
    ])
    def test_quick_hit_implies_full_classification(self, classifier, text):
        assert classifier.contains_booking_keyword(text)
        assert classifier.classify(text).is_booking

    def test_no_keyword(self, classifier):
        assert not classifier.contains_booking_keyword("what are your hours")

    def test_quick_check_normalizes(self, classifier):
        assert classifier.contains_booking_keyword("need an APPT")

    @pytest.mark.parametrize("threshold", [30, 40, 80])
    def test_quick_hit_agrees_at_any_threshold(self, threshold):
        strict = IntentClassifier(threshold=threshold)
        for text in ["slot", "visit", "book", "book an appointment for my dog"]:
            if strict.contains_booking_keyword(text):
                assert strict.classify(text).is_booking

    def test_high_threshold_disables_quick_check(self):
        strict = IntentClassifier(threshold=40)
        assert not strict.contains_booking_keyword("slot")
        assert not strict.classify("slot").is_booking


class TestBookingDetails:
    def test_extracts_pet_day_time_and_service(self):
        details = extract_booking_details("Vaccination for my puppy tomorrow at 2pm")
        assert details.pet_types == ("puppy",)
        assert details.dates == ("tomorrow",)
        assert "2pm" in details.times
        assert details.services == ("vaccination",)
        assert details.has_date and details.has_time

    def test_nothing_found(self):
        details = extract_booking_details("hello there")
        assert not details.has_date
        assert not details.has_time
        assert not details.has_pet_type
        assert not details.has_service


class TestSuggestedPrompt:
    def test_none_when_not_booking(self, classifier):
        assert suggested_prompt(classifier.classify("hello")) is None

    def test_mentions_pet(self, classifier):
        prompt = suggested_prompt(classifier.classify("book an appointment for my cat"))
        assert "for your cat" in prompt

    def test_grooming(self, classifier):
        prompt = suggested_prompt(classifier.classify("book grooming"))
        assert "grooming" in prompt

    def test_generic(self, classifier):
        prompt = suggested_prompt(classifier.classify("book an appointment"))
        assert prompt.startswith("I'd be happy to help you book an appointment")

    @pytest.mark.parametrize("text", [
        "book an appointment for my cat", "book grooming", "book a vaccination",
        "book an appointment", "schedule an appointment tomorrow",
    ])
    def test_always_asks_for_owner_name(self, classifier, text):
        assert suggested_prompt(classifier.classify(text)).endswith(responses.ASK_OWNER_NAME)
