"""Tests for host reply parsing."""

import json

import pytest

from pic_logger.services.reply_parsing import (
    extract_transcription,
    is_generic_completion,
    normalize_phrase,
)


def test_data_json_transcription_field_wins() -> None:
    payload = {
        "message": "ignored",
        "data": json.dumps({"text": "second", "transcription": "first"}),
    }

    assert extract_transcription(payload) == "first"


def test_data_plain_text_is_used_directly() -> None:
    assert extract_transcription({"data": "  Pier 4 needs paint  "}) == (
        "Pier 4 needs paint"
    )


def test_falls_back_to_message_when_data_empty() -> None:
    assert extract_transcription({"data": "", "message": "Gate is open"}) == (
        "Gate is open"
    )


def test_envelope_transcription_outranks_message() -> None:
    payload = {"message": "Processing request", "transcription": "Crack in beam 3"}

    assert extract_transcription(payload) == "Crack in beam 3"
    assert extract_transcription({"message": "Gate", "text": "Latch"}) == "Latch"


def test_nested_data_mapping() -> None:
    payload = {"data": {"text": "Check the north wall"}}

    assert extract_transcription(payload) == "Check the north wall"


def test_first_string_field_when_no_known_keys() -> None:
    payload = {"data": json.dumps({"count": 3, "note": "Rust on rail"})}

    assert extract_transcription(payload) == "Rust on rail"


def test_whole_payload_serialised_when_no_strings() -> None:
    payload = {"data": json.dumps({"count": 3})}

    assert extract_transcription(payload) == json.dumps({"count": 3})


def test_raw_string_payload() -> None:
    assert extract_transcription("just words") == "just words"
    assert extract_transcription('{"transcription": "decoded"}') == "decoded"


def test_empty_payload_yields_empty_text() -> None:
    assert extract_transcription({}) == ""
    assert extract_transcription({"data": "   "}) == ""


@pytest.mark.parametrize(
    "text",
    [
        "The user's request has been completed.",
        "The user’s request has been completed",
        "  Task completed!  ",
        "OK",
        "Done.",
    ],
)
def test_generic_completion_phrases(text: str) -> None:
    assert is_generic_completion(text)


def test_real_speech_is_not_a_completion_phrase() -> None:
    assert not is_generic_completion("The request for lumber has been completed")
    assert not is_generic_completion("Done with the east side, moving west")


def test_normalize_phrase() -> None:
    assert normalize_phrase("  Hello,   WORLD!! ") == "hello world"
