"""Tests for the capture session transition function."""

import pytest

from pic_logger.domain.capture import (
    CaptureSession,
    CaptureStatus,
    can_transition,
    transition,
    with_message,
)
from pic_logger.domain.errors import InvalidTransition


def test_every_non_terminal_state_can_cancel() -> None:
    for status in CaptureStatus:
        if status in {CaptureStatus.SAVED, CaptureStatus.CANCELLED}:
            continue
        assert can_transition(status, CaptureStatus.CANCELLED)


def test_saved_only_resets_to_idle() -> None:
    assert can_transition(CaptureStatus.SAVED, CaptureStatus.IDLE)
    assert not can_transition(CaptureStatus.SAVED, CaptureStatus.CANCELLED)


def test_disallowed_transition_raises() -> None:
    with pytest.raises(InvalidTransition):
        transition(CaptureSession(), CaptureStatus.SAVING)


def test_saving_requires_content() -> None:
    session = CaptureSession(status=CaptureStatus.PHOTO_CAPTURED)

    with pytest.raises(InvalidTransition):
        transition(session, CaptureStatus.SAVING)

    saving = transition(
        CaptureSession(status=CaptureStatus.PHOTO_CAPTURED, photo=b"jpeg"),
        CaptureStatus.SAVING,
        message="Saving...",
    )
    assert saving.status == CaptureStatus.SAVING
    assert saving.message == "Saving..."


def test_terminal_transition_discards_content() -> None:
    session = CaptureSession(
        status=CaptureStatus.RECORDED, photo=b"jpeg", audio_clip=b"wav"
    )

    cancelled = transition(session, CaptureStatus.CANCELLED)

    assert cancelled.photo is None
    assert cancelled.audio_clip is None
    assert cancelled.is_terminal


def test_with_message_keeps_state() -> None:
    session = CaptureSession(status=CaptureStatus.RECORDING, photo=b"jpeg")

    updated = with_message(session, "Microphone access denied")

    assert updated.status == CaptureStatus.RECORDING
    assert updated.photo == b"jpeg"
    assert session.message == "Ready"
