"""Handles for acquired camera and microphone resources."""

from dataclasses import dataclass, field
from uuid import uuid4


def _handle_id() -> str:
    return uuid4().hex


@dataclass(eq=False)
class VideoHandle:
    """Live camera stream owned by one capture session."""

    facing: str
    id: str = field(default_factory=_handle_id)
    streaming: bool = True


@dataclass(eq=False)
class AudioHandle:
    """Live microphone stream owned by one capture session."""

    sample_rate: int
    channels: int
    id: str = field(default_factory=_handle_id)
    streaming: bool = True


@dataclass(eq=False)
class RecordingHandle:
    """An in-progress recording on an acquired microphone."""

    audio: AudioHandle
    id: str = field(default_factory=_handle_id)
    active: bool = True


MediaHandle = VideoHandle | AudioHandle | RecordingHandle
