"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from pic_logger.adapters.faster_whisper_recognizer import FasterWhisperRecognizer
from pic_logger.adapters.httpx_host_transport import HttpxHostTransport
from pic_logger.adapters.local_media_devices import LocalMediaDevices
from pic_logger.adapters.openai_host_transport import OpenAIHostTransport
from pic_logger.adapters.supabase_key_value_storage import SupabaseKeyValueStorage
from pic_logger.config import Settings, camera_indices
from pic_logger.services.capture import CaptureSessionService
from pic_logger.services.host_channel import HostBridge
from pic_logger.services.logs import LogStore
from pic_logger.services.media import MediaDevices
from pic_logger.services.pages import LogBrowser, PageRouter
from pic_logger.services.projects import ProjectStore
from pic_logger.services.speech import SpeechRecognizer
from pic_logger.services.storage import InMemoryKeyValueStorage, KeyValueStorage
from pic_logger.services.transcription import TranscriptionChannel


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    storage: KeyValueStorage
    bridge: HostBridge
    media: MediaDevices
    transcription: TranscriptionChannel
    log_store: LogStore
    project_store: ProjectStore
    capture_service: CaptureSessionService
    page_router: PageRouter
    close_resources: Callable[[], Awaitable[None]]


def build_storage(settings: Settings) -> KeyValueStorage:
    """Create the configured key/value storage backend."""
    if settings.storage_backend == "memory":
        return InMemoryKeyValueStorage()
    if not settings.supabase_url or not settings.supabase_service_key:
        raise ValueError("Supabase storage needs SUPABASE_URL and SUPABASE_SERVICE_KEY")
    client = create_client(settings.supabase_url, settings.supabase_service_key)
    return SupabaseKeyValueStorage(client, table=settings.storage_table)


def build_bridge(
    settings: Settings,
) -> tuple[HostBridge, Callable[[], Awaitable[None]] | None]:
    """Create the host bridge and return the transport's close hook, if any."""
    bridge = HostBridge()
    if settings.host_mode == "openai":
        if not settings.openai_api_key:
            raise ValueError("OpenAI host mode needs OPENAI_API_KEY")
        openai_transport = OpenAIHostTransport.create(
            api_key=settings.openai_api_key,
            bridge=bridge,
            model=settings.openai_model,
        )
        bridge.transport = openai_transport
        return bridge, openai_transport.close
    if settings.host_mode == "http":
        if not settings.host_url:
            raise ValueError("HTTP host mode needs HOST_URL")
        http_transport = HttpxHostTransport.create(settings.host_url)
        bridge.transport = http_transport
        return bridge, http_transport.close
    return bridge, None


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    storage = build_storage(resolved_settings)
    bridge, close_transport = build_bridge(resolved_settings)
    recognizer: SpeechRecognizer | None = None
    if resolved_settings.local_asr_model:
        recognizer = FasterWhisperRecognizer(
            model_name=resolved_settings.local_asr_model,
            device=resolved_settings.local_asr_device,
        )
    media = LocalMediaDevices(
        sample_rate=resolved_settings.audio_sample_rate,
        channels=resolved_settings.audio_channels,
        facing_indices=camera_indices(
            resolved_settings.camera_facing, resolved_settings.camera_index
        ),
    )
    transcription = TranscriptionChannel(
        bridge=bridge,
        recognizer=recognizer,
        timeout_seconds=resolved_settings.transcription_timeout_seconds,
    )
    log_store = LogStore(storage)
    project_store = ProjectStore(storage, log_store)
    capture_service = CaptureSessionService(
        media=media,
        transcription=transcription,
        log_store=log_store,
        projects=project_store,
        photo_width=resolved_settings.capture_width,
        photo_height=resolved_settings.capture_height,
        camera_facing=resolved_settings.camera_facing,
        reset_delay_seconds=resolved_settings.saved_reset_delay_seconds,
        enhance_transcripts=resolved_settings.enhance_transcripts,
    )
    page_router = PageRouter(
        bridge=bridge,
        capture=capture_service,
        logs=LogBrowser(log_store, project_store),
    )

    async def close_resources() -> None:
        await capture_service.close()
        media.release_all()
        if close_transport is not None:
            await close_transport()

    return AppContainer(
        settings=resolved_settings,
        storage=storage,
        bridge=bridge,
        media=media,
        transcription=transcription,
        log_store=log_store,
        project_store=project_store,
        capture_service=capture_service,
        page_router=page_router,
        close_resources=close_resources,
    )
