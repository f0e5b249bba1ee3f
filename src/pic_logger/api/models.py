"""Pydantic models for the HTTP surface."""

from pydantic import BaseModel

from pic_logger.domain.capture import CaptureSession
from pic_logger.domain.logs import LogEntry
from pic_logger.services.media import to_data_url


class CaptureSnapshot(BaseModel):
    """Capture session state as shown on the device screen."""

    status: str
    message: str
    camera_available: bool
    has_photo: bool
    has_audio: bool
    photo: str | None = None
    transcript: str | None = None
    project: str | None = None

    @classmethod
    def from_session(
        cls, session: CaptureSession, project: str | None
    ) -> "CaptureSnapshot":
        return cls(
            status=session.status.value,
            message=session.message,
            camera_available=session.camera_available,
            has_photo=session.photo is not None,
            has_audio=session.audio_clip is not None,
            photo=to_data_url(session.photo) if session.photo else None,
            transcript=session.transcript,
            project=project,
        )


class ProjectCreate(BaseModel):
    """Request body for creating a project."""

    name: str


class ProjectList(BaseModel):
    """Projects in creation order plus the current selection."""

    projects: list[str]
    current_project: str | None = None


class LogEntryList(BaseModel):
    """A project's log entries, newest first."""

    project: str
    entries: list[LogEntry]


class PageState(BaseModel):
    """Active page after a navigation or hardware event."""

    page: str
    handled: bool = True
