"""Extract transcription text from untyped host replies.

Host replies arrive as an envelope with a ``message`` string and/or a ``data``
string that may itself hold JSON. Text is chosen in this order:

1. ``transcription`` field
2. ``text`` field
3. ``message`` field
4. first string-valued field
5. the whole payload serialised as JSON

Replies that merely acknowledge the task ("request completed") are treated as
non-answers by ``is_generic_completion``.
"""

import json
import re
from collections.abc import Mapping

_PRIORITY_FIELDS = ("transcription", "text", "message")

GENERIC_COMPLETION_PHRASES = frozenset(
    {
        "the user's request has been completed",
        "the users request has been completed",
        "your request has been completed",
        "the request has been completed",
        "request completed",
        "request has been completed",
        "the task has been completed",
        "task completed",
        "task complete",
        "i have completed the task",
        "i have completed your request",
        "completed successfully",
        "completed",
        "done",
        "ok",
        "okay",
    }
)

_PUNCTUATION = re.compile(r"[^\w\s']")
_WHITESPACE = re.compile(r"\s+")


def extract_transcription(payload: object) -> str:
    """Return the best transcription candidate in a host reply."""
    if isinstance(payload, str):
        return _text_from(_decode(payload))
    if not isinstance(payload, Mapping):
        return "" if payload is None else str(payload).strip()

    data = payload.get("data")
    if isinstance(data, str) and data.strip():
        text = _text_from(_decode(data))
        if text:
            return text
    elif isinstance(data, Mapping) and data:
        text = _text_from(data)
        if text:
            return text

    remainder = {k: v for k, v in payload.items() if k != "data"}
    return _text_from(remainder) if remainder else ""


def is_generic_completion(text: str) -> bool:
    """Return True when ``text`` is a task acknowledgement, not speech."""
    return normalize_phrase(text) in GENERIC_COMPLETION_PHRASES


def normalize_phrase(text: str) -> str:
    """Lower-case ``text`` and strip punctuation and repeated whitespace."""
    cleaned = text.replace("’", "'").lower()
    cleaned = _PUNCTUATION.sub(" ", cleaned)
    return _WHITESPACE.sub(" ", cleaned).strip().strip("'").strip()


def _decode(raw: str) -> object:
    """Parse JSON if possible, otherwise keep the raw text."""
    try:
        return json.loads(raw)
    except ValueError:
        return raw


def _text_from(body: object) -> str:
    if isinstance(body, str):
        return body.strip()
    if isinstance(body, Mapping):
        for key in _PRIORITY_FIELDS:
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        for value in body.values():
            if isinstance(value, str) and value.strip():
                return value.strip()
        return json.dumps(body) if body else ""
    if body is None:
        return ""
    return json.dumps(body)
