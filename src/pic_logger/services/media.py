"""Media device port and hardware-independent capture helpers."""

import base64
import io
import threading
from typing import Protocol

import numpy as np
import soundfile as sf
from PIL import Image, ImageOps

from pic_logger.domain.media import (
    AudioHandle,
    MediaHandle,
    RecordingHandle,
    VideoHandle,
)

JPEG_QUALITY = 80


class MediaDevices(Protocol):
    """Interface for camera and microphone acquisition."""

    async def acquire_camera(self, facing: str) -> VideoHandle:
        """Open a live camera stream; raise DeviceError when unavailable."""

    async def capture_photo(
        self, handle: VideoHandle, width: int, height: int
    ) -> bytes:
        """Grab a still frame cropped and scaled to the target size."""

    async def acquire_microphone(self) -> AudioHandle:
        """Open a live microphone stream; raise DeviceError when unavailable."""

    async def begin_audio_recording(self, handle: AudioHandle) -> RecordingHandle:
        """Start buffering audio chunks from the microphone."""

    async def end_audio_recording(self, recording: RecordingHandle) -> bytes:
        """Stop buffering and return the recorded clip."""

    def release(self, handle: MediaHandle | None) -> None:
        """Stop hardware I/O for a handle; safe to call more than once."""


def fit_frame(image: Image.Image, width: int, height: int) -> bytes:
    """Centre-crop and scale a frame to the target size and encode as JPEG."""
    fitted = ImageOps.fit(
        image.convert("RGB"),
        (width, height),
        method=Image.Resampling.LANCZOS,
        centering=(0.5, 0.5),
    )
    buffer = io.BytesIO()
    fitted.save(buffer, format="JPEG", quality=JPEG_QUALITY)
    return buffer.getvalue()


class AudioChunkBuffer:
    """Thread-safe buffer for chunks emitted by an audio callback."""

    def __init__(self) -> None:
        self._chunks: list[np.ndarray] = []
        self._lock = threading.Lock()

    def append(self, chunk: np.ndarray) -> None:
        """Store a copy of ``chunk``; empty chunks are discarded."""
        if chunk.size == 0:
            return
        with self._lock:
            self._chunks.append(chunk.copy())

    def drain(self) -> list[np.ndarray]:
        """Return buffered chunks in arrival order and empty the buffer."""
        with self._lock:
            chunks, self._chunks = self._chunks, []
        return chunks

    def __len__(self) -> int:
        with self._lock:
            return len(self._chunks)


def encode_wav(chunks: list[np.ndarray], sample_rate: int, channels: int) -> bytes:
    """Concatenate chunks into a 16-bit PCM WAV clip; empty input yields b""."""
    frames = [chunk.reshape(-1, channels) for chunk in chunks if chunk.size]
    if not frames:
        return b""
    audio = np.concatenate(frames, axis=0)
    buffer = io.BytesIO()
    sf.write(buffer, audio, sample_rate, format="WAV", subtype="PCM_16")
    return buffer.getvalue()


def to_data_url(data: bytes) -> str:
    """Convert captured bytes to a base64 data URL."""
    mime_type = _detect_mime_type(data)
    encoded = base64.b64encode(data).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _detect_mime_type(data: bytes) -> str:
    """Infer a MIME type for captured media from file signatures."""
    if data.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    if data[:4] == b"RIFF" and data[8:12] == b"WAVE":
        return "audio/wav"
    if data.startswith(b"\x1a\x45\xdf\xa3"):
        return "audio/webm"
    return "application/octet-stream"
