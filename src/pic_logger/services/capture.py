"""Capture session orchestration.

Sequences camera start, photo capture, audio recording, transcription and log
entry assembly for one capture flow at a time. Every event runs under a single
FIFO lock so state changes happen in the order events arrived; the only await
taken outside the lock is the transcription round trip during ``save``, which
keeps ``cancel`` responsive while the host is thinking.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from pic_logger.domain.capture import (
    CaptureSession,
    CaptureStatus,
    can_transition,
    transition,
    with_message,
)
from pic_logger.domain.errors import (
    CaptureError,
    ChannelBusy,
    DeviceError,
    StorageError,
)
from pic_logger.domain.logs import LogEntry
from pic_logger.domain.media import AudioHandle, RecordingHandle, VideoHandle
from pic_logger.domain.transcription import (
    BUSY_SENTINEL,
    SEND_FAILED_SENTINEL,
    SENTINELS,
)
from pic_logger.services.logs import LogStore
from pic_logger.services.media import MediaDevices, to_data_url
from pic_logger.services.projects import ProjectStore
from pic_logger.services.transcription import TranscriptionChannel

_logger = logging.getLogger(__name__)

MSG_READY = "Ready"
MSG_STARTING = "Starting camera..."
MSG_CAMERA_READY = "Camera ready"
MSG_CAMERA_DENIED = "Camera access denied"
MSG_CAMERA_UNAVAILABLE = "Camera not available"
MSG_PHOTO_CAPTURED = "Photo captured"
MSG_PHOTO_FAILED = "Photo capture failed"
MSG_RECORDING = "Recording..."
MSG_AUDIO_RECORDED = "Audio recorded"
MSG_NO_AUDIO = "No audio captured"
MSG_MIC_DENIED = "Microphone access denied"
MSG_SELECT_PROJECT = "Please select a project"
MSG_SELECT_PROJECT_FIRST = "Please select a project first"
MSG_NOTHING_TO_SAVE = "Capture photo or audio first"
MSG_SAVING = "Saving..."
MSG_SAVED = "Entry saved!"
MSG_SAVE_FAILED = "Save failed - press Save to retry"
MSG_CANCELLED = "Cancelled"

SessionListener = Callable[[CaptureSession], None]

_CAPTURE_STATUSES = frozenset(
    {
        CaptureStatus.READY,
        CaptureStatus.PHOTO_CAPTURED,
        CaptureStatus.RECORDING,
        CaptureStatus.RECORDED,
    }
)
_RECORD_START_STATUSES = frozenset(
    {CaptureStatus.READY, CaptureStatus.PHOTO_CAPTURED, CaptureStatus.RECORDED}
)


@dataclass
class CaptureSessionService:
    """State machine driving one capture flow at a time."""

    media: MediaDevices
    transcription: TranscriptionChannel
    log_store: LogStore
    projects: ProjectStore
    photo_width: int = 240
    photo_height: int = 282
    camera_facing: str = "environment"
    reset_delay_seconds: float = 1.5
    enhance_transcripts: bool = False
    listeners: list[SessionListener] = field(default_factory=list)
    _session: CaptureSession = field(default_factory=CaptureSession, init=False)
    _video: VideoHandle | None = field(default=None, init=False, repr=False)
    _audio: AudioHandle | None = field(default=None, init=False, repr=False)
    _recording: RecordingHandle | None = field(default=None, init=False, repr=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)
    _generation: int = field(default=0, init=False, repr=False)
    _save_in_flight: bool = field(default=False, init=False, repr=False)
    _reset_task: asyncio.Task[None] | None = field(
        default=None, init=False, repr=False
    )

    @property
    def session(self) -> CaptureSession:
        return self._session

    @property
    def reset_task(self) -> asyncio.Task[None] | None:
        return self._reset_task

    async def start(self) -> CaptureSession:
        """Enter the capture page: acquire the camera and become ready."""
        async with self._lock:
            await self._start_locked()
            return self._session

    async def capture_photo(self) -> CaptureSession:
        """Grab a still frame from the live camera."""
        async with self._lock:
            await self._capture_photo_locked()
            return self._session

    async def toggle_recording(self) -> CaptureSession:
        """Start recording, or stop the recording in progress."""
        async with self._lock:
            if self._session.is_recording:
                await self._stop_recording_locked()
            else:
                await self._start_recording_locked()
            return self._session

    async def start_recording(self) -> CaptureSession:
        async with self._lock:
            await self._start_recording_locked()
            return self._session

    async def stop_recording(self) -> CaptureSession:
        async with self._lock:
            await self._stop_recording_locked()
            return self._session

    async def start_log_entry(self) -> CaptureSession:
        """Hardware long press: capture a photo, then start recording."""
        async with self._lock:
            if not self._current_project():
                self._set(with_message(self._session, MSG_SELECT_PROJECT_FIRST))
                return self._session
            if self._session.status != CaptureStatus.READY:
                _logger.debug("Ignoring long press in %s", self._session.status)
                return self._session
            await self._capture_photo_locked()
            await self._start_recording_locked()
            return self._session

    async def save(self) -> CaptureSession:
        """Transcribe any audio, assemble a log entry and store it.

        A storage failure leaves the session in SAVING with its content kept;
        calling ``save`` again retries without transcribing a second time.
        """
        async with self._lock:
            if self._save_in_flight:
                return self._session
            project = self._current_project()
            if not project:
                self._set(with_message(self._session, MSG_SELECT_PROJECT))
                return self._session
            if self._session.is_recording:
                await self._stop_recording_locked()
            current = self._session
            if current.status == CaptureStatus.SAVING:
                self._set(with_message(current, MSG_SAVING))
            elif not current.has_content:
                self._set(with_message(current, MSG_NOTHING_TO_SAVE))
                return self._session
            elif can_transition(current.status, CaptureStatus.SAVING):
                self._set(transition(current, CaptureStatus.SAVING, message=MSG_SAVING))
            else:
                return self._session
            generation = self._generation
            self._save_in_flight = True
            audio = self._session.audio_clip
            transcript = self._session.transcript

        try:
            if audio is not None and transcript is None:
                transcript = await self._transcribe(audio)
            async with self._lock:
                if generation != self._generation:
                    _logger.info("Session replaced during save; result discarded")
                    return self._session
                return self._store_entry(project, transcript or "")
        finally:
            if generation == self._generation:
                self._save_in_flight = False

    async def cancel(self) -> CaptureSession:
        """Discard the current capture and start a fresh session."""
        async with self._lock:
            if self._session.status == CaptureStatus.SAVED:
                return self._session
            self._begin_new_generation()
            self._release_all()
            if not self._session.is_terminal:
                self._set(
                    transition(
                        self._session, CaptureStatus.CANCELLED, message=MSG_CANCELLED
                    )
                )
            await self._start_locked()
            return self._session

    async def close(self) -> None:
        """Leave the capture page: release hardware without restarting."""
        async with self._lock:
            self._begin_new_generation()
            self._release_all()
            session = self._session
            if session.status == CaptureStatus.IDLE:
                return
            if not session.is_terminal:
                session = transition(
                    session, CaptureStatus.CANCELLED, message=MSG_CANCELLED
                )
            self._set(transition(session, CaptureStatus.IDLE, message=MSG_READY))

    async def _start_locked(self) -> None:
        if self._session.status not in {CaptureStatus.IDLE, CaptureStatus.CANCELLED}:
            return
        self._set(
            transition(
                self._session,
                CaptureStatus.CAMERA_STARTING,
                message=MSG_STARTING,
                camera_available=False,
            )
        )
        try:
            self._video = await self.media.acquire_camera(self.camera_facing)
        except DeviceError as exc:
            _logger.warning("Camera unavailable: %s", exc)
            self._set(
                transition(
                    self._session, CaptureStatus.READY, message=MSG_CAMERA_DENIED
                )
            )
            return
        if self._current_project():
            message = MSG_CAMERA_READY
        else:
            message = MSG_SELECT_PROJECT_FIRST
        self._set(
            transition(
                self._session,
                CaptureStatus.READY,
                message=message,
                camera_available=True,
            )
        )

    async def _capture_photo_locked(self) -> None:
        if self._session.status not in _CAPTURE_STATUSES:
            _logger.debug("Ignoring photo request in %s", self._session.status)
            return
        if self._video is None:
            self._set(with_message(self._session, MSG_CAMERA_UNAVAILABLE))
            return
        try:
            photo = await self.media.capture_photo(
                self._video, self.photo_width, self.photo_height
            )
        except CaptureError as exc:
            _logger.warning("Photo capture failed: %s", exc)
            self._set(with_message(self._session, MSG_PHOTO_FAILED))
            return
        target = (
            CaptureStatus.RECORDING
            if self._session.is_recording
            else CaptureStatus.PHOTO_CAPTURED
        )
        self._set(
            transition(self._session, target, photo=photo, message=MSG_PHOTO_CAPTURED)
        )

    async def _start_recording_locked(self) -> None:
        if self._session.status not in _RECORD_START_STATUSES:
            _logger.debug("Ignoring record request in %s", self._session.status)
            return
        try:
            self._audio = await self.media.acquire_microphone()
            self._recording = await self.media.begin_audio_recording(self._audio)
        except DeviceError as exc:
            _logger.warning("Microphone unavailable: %s", exc)
            self._release_audio()
            self._set(with_message(self._session, MSG_MIC_DENIED))
            return
        except BaseException:
            self._release_audio()
            raise
        self._set(
            transition(self._session, CaptureStatus.RECORDING, message=MSG_RECORDING)
        )

    async def _stop_recording_locked(self) -> None:
        if not self._session.is_recording or self._recording is None:
            return
        clip = b""
        try:
            clip = await self.media.end_audio_recording(self._recording)
        except DeviceError as exc:
            _logger.warning("Recording could not be finalised: %s", exc)
        finally:
            self._release_audio()
            self._settle_recording(clip)

    def _settle_recording(self, clip: bytes) -> None:
        session = self._session
        if clip:
            self._set(
                transition(
                    session,
                    CaptureStatus.RECORDED,
                    audio_clip=clip,
                    message=MSG_AUDIO_RECORDED,
                )
            )
            return
        if session.audio_clip is not None:
            target = CaptureStatus.RECORDED
        elif session.photo is not None:
            target = CaptureStatus.PHOTO_CAPTURED
        else:
            target = CaptureStatus.READY
        self._set(transition(session, target, message=MSG_NO_AUDIO))

    async def _transcribe(self, audio: bytes) -> str:
        try:
            text = await self.transcription.transcribe(audio)
        except ChannelBusy:
            _logger.info("Transcription channel busy; saving with placeholder")
            return BUSY_SENTINEL
        except Exception:
            _logger.exception("Transcription failed")
            return SEND_FAILED_SENTINEL
        if self.enhance_transcripts and text not in SENTINELS:
            try:
                text = await self.transcription.enhance(text)
            except ChannelBusy:
                _logger.info("Skipping transcript clean-up; channel busy")
        return text

    def _store_entry(self, project: str, transcript: str) -> CaptureSession:
        session = transition(self._session, CaptureStatus.SAVING, transcript=transcript)
        self._set(session)
        entry = LogEntry(
            photo=to_data_url(session.photo) if session.photo else None,
            audio=to_data_url(session.audio_clip) if session.audio_clip else None,
            transcription=transcript,
            timestamp=datetime.now(tz=UTC).isoformat(),
        )
        try:
            self.log_store.save(project, entry)
        except StorageError as exc:
            _logger.warning("Saving log entry failed: %s", exc)
            self._set(with_message(self._session, MSG_SAVE_FAILED))
            return self._session
        self._release_camera()
        self._set(
            transition(
                self._session,
                CaptureStatus.SAVED,
                message=MSG_SAVED,
                camera_available=False,
            )
        )
        self._reset_task = asyncio.get_running_loop().create_task(
            self._reset_after_delay(self._generation)
        )
        return self._session

    async def _reset_after_delay(self, generation: int) -> None:
        await asyncio.sleep(self.reset_delay_seconds)
        async with self._lock:
            if generation != self._generation:
                return
            if self._session.status != CaptureStatus.SAVED:
                return
            self._begin_new_generation()
            self._set(transition(self._session, CaptureStatus.IDLE, message=MSG_READY))
            await self._start_locked()

    def _begin_new_generation(self) -> None:
        self._generation += 1
        self._save_in_flight = False
        task = self._reset_task
        self._reset_task = None
        if task is not None and not task.done() and task is not _current_task():
            task.cancel()

    def _current_project(self) -> str | None:
        try:
            return self.projects.current()
        except StorageError:
            _logger.exception("Could not read the current project")
            return None

    def _release_audio(self) -> None:
        self.media.release(self._recording)
        self.media.release(self._audio)
        self._recording = None
        self._audio = None

    def _release_camera(self) -> None:
        self.media.release(self._video)
        self._video = None

    def _release_all(self) -> None:
        self._release_audio()
        self._release_camera()

    def _set(self, session: CaptureSession) -> None:
        if session.status != self._session.status:
            _logger.info(
                "Capture session %s -> %s", self._session.status, session.status
            )
        self._session = session
        for listener in self.listeners:
            listener(session)


def _current_task() -> asyncio.Task[object] | None:
    try:
        return asyncio.current_task()
    except RuntimeError:
        return None
