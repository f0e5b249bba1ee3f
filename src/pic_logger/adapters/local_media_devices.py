"""Camera and microphone adapter backed by OpenCV and sounddevice."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from PIL import Image

from pic_logger.domain.errors import CaptureError, DeviceError
from pic_logger.domain.media import (
    AudioHandle,
    MediaHandle,
    RecordingHandle,
    VideoHandle,
)
from pic_logger.services.media import (
    AudioChunkBuffer,
    MediaDevices,
    encode_wav,
    fit_frame,
)

_logger = logging.getLogger(__name__)


@dataclass
class LocalMediaDevices(MediaDevices):
    """Media devices attached to the local machine."""

    sample_rate: int = 16_000
    channels: int = 1
    facing_indices: dict[str, int] = field(
        default_factory=lambda: {"environment": 0, "user": 1}
    )
    _captures: dict[str, Any] = field(default_factory=dict, init=False, repr=False)
    _streams: dict[str, Any] = field(default_factory=dict, init=False, repr=False)
    _buffers: dict[str, AudioChunkBuffer] = field(
        default_factory=dict, init=False, repr=False
    )

    async def acquire_camera(self, facing: str) -> VideoHandle:
        """Open the camera registered for ``facing``."""
        index = self.facing_indices.get(facing)
        if index is None:
            raise DeviceError(f"No camera facing {facing!r}")
        capture = await asyncio.to_thread(_open_camera, index)
        handle = VideoHandle(facing=facing)
        self._captures[handle.id] = capture
        _logger.info("Camera acquired: facing=%s index=%s", facing, index)
        return handle

    async def capture_photo(
        self, handle: VideoHandle, width: int, height: int
    ) -> bytes:
        """Grab the next frame and fit it to ``width`` x ``height``."""
        capture = self._captures.get(handle.id)
        if capture is None or not handle.streaming:
            raise CaptureError("Camera is not streaming")
        return await asyncio.to_thread(_grab_photo, capture, width, height)

    async def acquire_microphone(self) -> AudioHandle:
        """Open the default input device without starting it."""
        handle = AudioHandle(sample_rate=self.sample_rate, channels=self.channels)
        buffer = AudioChunkBuffer()
        stream = await asyncio.to_thread(
            _open_input_stream, self.sample_rate, self.channels, buffer
        )
        self._streams[handle.id] = stream
        self._buffers[handle.id] = buffer
        _logger.info("Microphone acquired: sample_rate=%s", self.sample_rate)
        return handle

    async def begin_audio_recording(self, handle: AudioHandle) -> RecordingHandle:
        """Start the input stream and buffer its chunks."""
        stream = self._streams.get(handle.id)
        if stream is None or not handle.streaming:
            raise DeviceError("Microphone is not available")
        self._buffers[handle.id].drain()
        await asyncio.to_thread(_control_stream, stream, "start")
        return RecordingHandle(audio=handle)

    async def end_audio_recording(self, recording: RecordingHandle) -> bytes:
        """Stop the input stream and encode the buffered chunks."""
        audio = recording.audio
        stream = self._streams.get(audio.id)
        try:
            if recording.active and stream is not None:
                await asyncio.to_thread(_control_stream, stream, "stop")
        finally:
            recording.active = False
        buffer = self._buffers.get(audio.id)
        chunks = buffer.drain() if buffer is not None else []
        return encode_wav(chunks, audio.sample_rate, audio.channels)

    def release(self, handle: MediaHandle | None) -> None:
        """Release camera or microphone resources held by ``handle``."""
        if handle is None:
            return
        if isinstance(handle, RecordingHandle):
            handle.active = False
            handle = handle.audio
        if isinstance(handle, VideoHandle):
            handle.streaming = False
            capture = self._captures.pop(handle.id, None)
            if capture is not None:
                capture.release()
                _logger.info("Camera released")
            return
        handle.streaming = False
        self._buffers.pop(handle.id, None)
        stream = self._streams.pop(handle.id, None)
        if stream is not None:
            stream.abort()
            stream.close()
            _logger.info("Microphone released")

    def release_all(self) -> None:
        """Release every handle still open on this adapter."""
        for capture in self._captures.values():
            capture.release()
        for stream in self._streams.values():
            stream.abort()
            stream.close()
        self._captures.clear()
        self._streams.clear()
        self._buffers.clear()


def _open_camera(index: int) -> Any:
    import cv2

    capture = cv2.VideoCapture(index)
    if not capture.isOpened():
        capture.release()
        raise DeviceError(f"Camera {index} could not be opened")
    return capture


def _read_frame(capture: Any) -> Image.Image:
    import cv2

    ok, frame = capture.read()
    if not ok or frame is None:
        raise CaptureError("Camera returned no frame")
    return Image.fromarray(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB))


def _grab_photo(capture: Any, width: int, height: int) -> bytes:
    return fit_frame(_read_frame(capture), width, height)


def _open_input_stream(
    sample_rate: int, channels: int, buffer: AudioChunkBuffer
) -> Any:
    try:
        import sounddevice as sd
    except OSError as exc:
        raise DeviceError("PortAudio is not available") from exc

    def on_audio(indata, frames, time_info, status) -> None:
        if status:
            _logger.debug("Audio input status: %s", status)
        buffer.append(indata)

    try:
        return sd.InputStream(
            samplerate=sample_rate,
            channels=channels,
            dtype="float32",
            callback=on_audio,
            blocksize=0,
        )
    except sd.PortAudioError as exc:
        raise DeviceError("Microphone access denied") from exc


def _control_stream(stream: Any, action: str) -> None:
    import sounddevice as sd

    try:
        getattr(stream, action)()
    except sd.PortAudioError as exc:
        raise DeviceError(f"Microphone stream failed to {action}") from exc
