"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field

import pytest

from pic_logger.config import Settings
from pic_logger.containers import AppContainer
from pic_logger.domain.errors import (
    CaptureError,
    DeviceError,
    HostSendError,
    RecognitionError,
    StorageError,
)
from pic_logger.domain.media import (
    AudioHandle,
    MediaHandle,
    RecordingHandle,
    VideoHandle,
)
from pic_logger.services.capture import CaptureSessionService
from pic_logger.services.host_channel import HostBridge, HostTransport, InboundPayload
from pic_logger.services.logs import LogStore
from pic_logger.services.media import MediaDevices
from pic_logger.services.pages import LogBrowser, PageRouter
from pic_logger.services.projects import ProjectStore
from pic_logger.services.speech import SpeechRecognizer
from pic_logger.services.storage import InMemoryKeyValueStorage
from pic_logger.services.transcription import TranscriptionChannel

FAKE_PHOTO = b"\xff\xd8\xff\xe0fake-jpeg"
FAKE_CLIP = b"RIFF\x24\x00\x00\x00WAVEfake-pcm"


@dataclass
class FakeMediaDevices(MediaDevices):
    """Fake camera and microphone that track every handle."""

    photo: bytes = FAKE_PHOTO
    clip: bytes = FAKE_CLIP
    camera_error: bool = False
    microphone_error: bool = False
    photo_error: bool = False
    acquired: list[MediaHandle] = field(default_factory=list)
    released: list[MediaHandle] = field(default_factory=list)
    photo_sizes: list[tuple[int, int]] = field(default_factory=list)

    async def acquire_camera(self, facing: str) -> VideoHandle:
        if self.camera_error:
            raise DeviceError("Permission denied")
        handle = VideoHandle(facing=facing)
        self.acquired.append(handle)
        return handle

    async def capture_photo(
        self, handle: VideoHandle, width: int, height: int
    ) -> bytes:
        if self.photo_error or not handle.streaming:
            raise CaptureError("No frame")
        self.photo_sizes.append((width, height))
        return self.photo

    async def acquire_microphone(self) -> AudioHandle:
        if self.microphone_error:
            raise DeviceError("Permission denied")
        handle = AudioHandle(sample_rate=16_000, channels=1)
        self.acquired.append(handle)
        return handle

    async def begin_audio_recording(self, handle: AudioHandle) -> RecordingHandle:
        recording = RecordingHandle(audio=handle)
        self.acquired.append(recording)
        return recording

    async def end_audio_recording(self, recording: RecordingHandle) -> bytes:
        recording.active = False
        return self.clip

    def release(self, handle: MediaHandle | None) -> None:
        if handle is None or handle in self.released:
            return
        if isinstance(handle, RecordingHandle):
            handle.active = False
        else:
            handle.streaming = False
        self.released.append(handle)

    @property
    def live(self) -> list[MediaHandle]:
        return [handle for handle in self.acquired if handle not in self.released]

    def live_of(self, kind: type) -> list[MediaHandle]:
        return [handle for handle in self.live if isinstance(handle, kind)]


@dataclass
class FakeHostTransport(HostTransport):
    """Fake host that records requests and optionally replies on the next tick."""

    bridge: HostBridge
    reply: InboundPayload | None = None
    replies: list[InboundPayload] = field(default_factory=list)
    fail: bool = False
    sent: list[str] = field(default_factory=list)

    def post_message(self, message: str) -> None:
        if self.fail:
            raise HostSendError("Host unreachable")
        self.sent.append(message)
        payload = self.replies.pop(0) if self.replies else self.reply
        if payload is not None:
            asyncio.get_running_loop().call_soon(self.bridge.deliver, payload)


@dataclass
class FakeSpeechRecognizer(SpeechRecognizer):
    """Fake on-device recognizer."""

    text: str = "spoken on device"
    fail: bool = False
    calls: list[bytes] = field(default_factory=list)

    async def recognize(self, audio: bytes) -> str:
        self.calls.append(audio)
        if self.fail:
            raise RecognitionError("No speech detected")
        return self.text


@dataclass
class FailingKeyValueStorage(InMemoryKeyValueStorage):
    """In-memory storage whose writes can be switched to fail."""

    fail_writes: bool = False
    fail_keys: set[str] = field(default_factory=set)

    def set_item(self, key: str, value: str) -> None:
        if self.fail_writes or key in self.fail_keys:
            raise StorageError(f"Failed to store {key!r}")
        super().set_item(key, value)


@dataclass
class CaptureHarness:
    """A capture service wired to fakes."""

    media: FakeMediaDevices
    storage: FailingKeyValueStorage
    bridge: HostBridge
    host: FakeHostTransport
    recognizer: FakeSpeechRecognizer | None
    transcription: TranscriptionChannel
    log_store: LogStore
    projects: ProjectStore
    service: CaptureSessionService


def build_harness(  # noqa: PLR0913
    *,
    project: str | None = "Trip",
    reply: InboundPayload | None = None,
    host_fail: bool = False,
    connected: bool = True,
    recognizer: FakeSpeechRecognizer | None = None,
    timeout_seconds: float = 0.05,
    reset_delay_seconds: float = 0.0,
    enhance_transcripts: bool = False,
    media: FakeMediaDevices | None = None,
) -> CaptureHarness:
    storage = FailingKeyValueStorage()
    bridge = HostBridge()
    host = FakeHostTransport(bridge=bridge, reply=reply, fail=host_fail)
    if connected:
        bridge.transport = host
    transcription = TranscriptionChannel(
        bridge=bridge,
        recognizer=recognizer,
        timeout_seconds=timeout_seconds,
        enhance_timeout_seconds=timeout_seconds,
    )
    log_store = LogStore(storage)
    projects = ProjectStore(storage, log_store)
    if project:
        projects.create(project)
    fake_media = media or FakeMediaDevices()
    service = CaptureSessionService(
        media=fake_media,
        transcription=transcription,
        log_store=log_store,
        projects=projects,
        reset_delay_seconds=reset_delay_seconds,
        enhance_transcripts=enhance_transcripts,
    )
    return CaptureHarness(
        media=fake_media,
        storage=storage,
        bridge=bridge,
        host=host,
        recognizer=recognizer,
        transcription=transcription,
        log_store=log_store,
        projects=projects,
        service=service,
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        storage_backend="memory",
        supabase_url=None,
        supabase_service_key=None,
        host_mode="none",
        host_url=None,
        openai_api_key=None,
        local_asr_model=None,
        transcription_timeout_seconds=0.05,
        saved_reset_delay_seconds=0.0,
    )


@pytest.fixture
def container(settings: Settings) -> AppContainer:
    harness = build_harness(
        project=None,
        reply={"data": '{"transcription": "Bridge looks solid"}'},
        timeout_seconds=settings.transcription_timeout_seconds,
        reset_delay_seconds=settings.saved_reset_delay_seconds,
    )
    page_router = PageRouter(
        bridge=harness.bridge,
        capture=harness.service,
        logs=LogBrowser(harness.log_store, harness.projects),
    )

    async def close_resources() -> None:
        await harness.service.close()

    return AppContainer(
        settings=settings,
        storage=harness.storage,
        bridge=harness.bridge,
        media=harness.media,
        transcription=harness.transcription,
        log_store=harness.log_store,
        project_store=harness.projects,
        capture_service=harness.service,
        page_router=page_router,
        close_resources=close_resources,
    )
