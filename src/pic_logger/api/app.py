"""FastAPI application factory."""

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from pic_logger.api.models import CaptureSnapshot, PageState
from pic_logger.api.projects import router as projects_router
from pic_logger.app_logging import configure_logging
from pic_logger.containers import AppContainer
from pic_logger.domain.capture import CaptureSession
from pic_logger.domain.errors import StorageError
from pic_logger.services.host_channel import InboundPayload
from pic_logger.services.pages import HardwareEvent, Page


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        state_container.page_router.attach()
        try:
            await state_container.page_router.load_page(Page.CAPTURE)
        except Exception:
            logger.exception("Failed to open the capture page")
        yield
        await state_container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(projects_router)

    @app.exception_handler(StorageError)
    async def storage_error_handler(
        request: Request, exc: StorageError
    ) -> JSONResponse:
        logger.warning("Storage error on %s: %s", request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Storage unavailable"},
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/host/message")
    async def host_message(request: Request) -> dict[str, str]:
        """Receive a host reply and hand it to the inbound slot."""
        state_container: AppContainer = request.app.state.container
        raw = (await request.body()).decode("utf-8", errors="replace")
        state_container.bridge.deliver(_parse_host_payload(raw))
        return {"status": "ok"}

    @app.post("/hardware/{event}")
    async def hardware_event(event: HardwareEvent, request: Request) -> PageState:
        """Forward a physical control event to the active page."""
        router = request.app.state.container.page_router
        handled = await router.handle_hardware_event(event)
        return PageState(page=router.current_page.value, handled=handled)

    @app.post("/pages/{name}")
    async def load_page(name: Page, request: Request) -> PageState:
        router = request.app.state.container.page_router
        page = await router.load_page(name)
        return PageState(page=page.value)

    @app.get("/capture")
    async def capture_state(request: Request) -> CaptureSnapshot:
        """Return the capture session as currently displayed."""
        state_container: AppContainer = request.app.state.container
        return _snapshot(state_container, state_container.capture_service.session)

    @app.post("/capture/photo")
    async def capture_photo(request: Request) -> CaptureSnapshot:
        state_container: AppContainer = _capture_page_container(request)
        session = await state_container.capture_service.capture_photo()
        return _snapshot(state_container, session)

    @app.post("/capture/record")
    async def toggle_recording(request: Request) -> CaptureSnapshot:
        """Start recording, or stop the recording in progress."""
        state_container: AppContainer = _capture_page_container(request)
        session = await state_container.capture_service.toggle_recording()
        return _snapshot(state_container, session)

    @app.post("/capture/save")
    async def save_entry(request: Request) -> CaptureSnapshot:
        """Transcribe and store the captured entry."""
        state_container: AppContainer = _capture_page_container(request)
        session = await state_container.capture_service.save()
        return _snapshot(state_container, session)

    @app.post("/capture/cancel")
    async def cancel_capture(request: Request) -> CaptureSnapshot:
        state_container: AppContainer = _capture_page_container(request)
        session = await state_container.capture_service.cancel()
        return _snapshot(state_container, session)

    return app


def _capture_page_container(request: Request) -> AppContainer:
    container: AppContainer = request.app.state.container
    if container.page_router.current_page != Page.CAPTURE:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Capture page is not active",
        )
    return container


def _snapshot(container: AppContainer, session: CaptureSession) -> CaptureSnapshot:
    return CaptureSnapshot.from_session(session, container.project_store.current())


def _parse_host_payload(raw: str) -> InboundPayload:
    try:
        decoded = json.loads(raw)
    except ValueError:
        return raw
    if isinstance(decoded, dict | str):
        return decoded
    return raw
