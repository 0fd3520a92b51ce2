import pytest

from app.core.config import Settings
from app.flow.intents import Intent, IntentResolver, tokenize

defaults = Settings()
resolver = IntentResolver(defaults.VIDEO_INTENT_PHRASES, defaults.EDIT_INTENT_PHRASES)


@pytest.mark.parametrize("text", [
    "yes please animate",
    "Proceed to video!",
    "VIDEO",
    "ok, animate it",
])
def test_proceed_replies(text):
    assert resolver.resolve(text) is Intent.PROCEED_TO_VIDEO


@pytest.mark.parametrize("text", [
    "make another edit",
    "Change the sky",
    "can you modify it?",
])
def test_edit_replies(text):
    assert resolver.resolve(text) is Intent.EDIT_AGAIN


@pytest.mark.parametrize("text", [
    "",
    "hmm not sure",
    "edited",
    "yesterday",
    "videos",
])
def test_unknown_replies(text):
    assert resolver.resolve(text) is Intent.UNKNOWN


def test_reply_matching_both_intents_is_ambiguous():
    assert resolver.matches("edit the video") == [Intent.PROCEED_TO_VIDEO, Intent.EDIT_AGAIN]
    assert resolver.resolve("edit the video") is Intent.UNKNOWN


def test_multi_word_phrase_needs_contiguous_words():
    custom = IntentResolver(["go ahead"], ["redo"])
    assert custom.resolve("sure, go ahead") is Intent.PROCEED_TO_VIDEO
    assert custom.resolve("ahead we go") is Intent.UNKNOWN


def test_tokenize():
    assert tokenize("Don't STOP, 2 go!") == ["don't", "stop", "2", "go"]
    assert tokenize(None) == []
