"""Capture session state and its transition function."""

from dataclasses import dataclass, replace
from enum import StrEnum

from pic_logger.domain.errors import InvalidTransition


class CaptureStatus(StrEnum):
    """Phases of a capture flow."""

    IDLE = "IDLE"
    CAMERA_STARTING = "CAMERA_STARTING"
    READY = "READY"
    PHOTO_CAPTURED = "PHOTO_CAPTURED"
    RECORDING = "RECORDING"
    RECORDED = "RECORDED"
    SAVING = "SAVING"
    SAVED = "SAVED"
    CANCELLED = "CANCELLED"


TERMINAL_STATUSES = frozenset({CaptureStatus.SAVED, CaptureStatus.CANCELLED})

_ALLOWED: dict[CaptureStatus, frozenset[CaptureStatus]] = {
    CaptureStatus.IDLE: frozenset(
        {CaptureStatus.CAMERA_STARTING, CaptureStatus.CANCELLED}
    ),
    CaptureStatus.CAMERA_STARTING: frozenset(
        {CaptureStatus.READY, CaptureStatus.CANCELLED}
    ),
    CaptureStatus.READY: frozenset(
        {
            CaptureStatus.PHOTO_CAPTURED,
            CaptureStatus.RECORDING,
            CaptureStatus.CANCELLED,
        }
    ),
    CaptureStatus.PHOTO_CAPTURED: frozenset(
        {
            CaptureStatus.PHOTO_CAPTURED,
            CaptureStatus.RECORDING,
            CaptureStatus.SAVING,
            CaptureStatus.CANCELLED,
        }
    ),
    # An empty clip drops back to whatever the photo sub-state was.
    CaptureStatus.RECORDING: frozenset(
        {
            CaptureStatus.RECORDING,
            CaptureStatus.RECORDED,
            CaptureStatus.PHOTO_CAPTURED,
            CaptureStatus.READY,
            CaptureStatus.CANCELLED,
        }
    ),
    CaptureStatus.RECORDED: frozenset(
        {
            CaptureStatus.PHOTO_CAPTURED,
            CaptureStatus.RECORDING,
            CaptureStatus.SAVING,
            CaptureStatus.CANCELLED,
        }
    ),
    CaptureStatus.SAVING: frozenset(
        {CaptureStatus.SAVING, CaptureStatus.SAVED, CaptureStatus.CANCELLED}
    ),
    CaptureStatus.SAVED: frozenset({CaptureStatus.IDLE}),
    CaptureStatus.CANCELLED: frozenset(
        {CaptureStatus.CAMERA_STARTING, CaptureStatus.IDLE}
    ),
}


@dataclass(frozen=True)
class CaptureSession:
    """Snapshot of one capture flow.

    Only ``transition`` and ``with_message`` produce new snapshots; the
    orchestrating service never mutates fields directly.
    """

    status: CaptureStatus = CaptureStatus.IDLE
    photo: bytes | None = None
    audio_clip: bytes | None = None
    transcript: str | None = None
    message: str = "Ready"
    camera_available: bool = False

    @property
    def has_content(self) -> bool:
        return self.photo is not None or self.audio_clip is not None

    @property
    def is_recording(self) -> bool:
        return self.status == CaptureStatus.RECORDING

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


def can_transition(current: CaptureStatus, target: CaptureStatus) -> bool:
    """Return True when ``target`` is reachable from ``current``."""
    return target in _ALLOWED[current]


def transition(
    session: CaptureSession,
    target: CaptureStatus,
    *,
    message: str | None = None,
    **changes: object,
) -> CaptureSession:
    """Return the session moved to ``target`` with the given field changes."""
    if not can_transition(session.status, target):
        raise InvalidTransition(f"{session.status} -> {target}")
    if target == CaptureStatus.SAVING:
        pending = replace(session, **changes)  # type: ignore[arg-type]
        if not pending.has_content:
            raise InvalidTransition("cannot save a session without photo or audio")
    if target in TERMINAL_STATUSES or target == CaptureStatus.IDLE:
        changes = {"photo": None, "audio_clip": None, "transcript": None, **changes}
    if message is not None:
        changes["message"] = message
    return replace(session, status=target, **changes)  # type: ignore[arg-type]


def with_message(session: CaptureSession, message: str) -> CaptureSession:
    """Return the session with new status text and unchanged state."""
    return replace(session, message=message)
