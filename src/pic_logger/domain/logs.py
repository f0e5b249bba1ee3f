"""Models for persisted log entries and project documents."""

from pydantic import BaseModel, ConfigDict, Field


class LogEntry(BaseModel):
    """A timestamped photo and/or voice memo filed under a project."""

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    photo: str | None = None
    audio: str | None = None
    transcription: str = ""
    timestamp: str


class ProjectLog(BaseModel):
    """Stored log collection for one project."""

    model_config = ConfigDict(populate_by_name=True)

    project_name: str = Field(alias="projectName")
    entries: list[LogEntry] = Field(default_factory=list)


class ProjectIndex(BaseModel):
    """Stored list of projects and the current selection."""

    model_config = ConfigDict(populate_by_name=True)

    projects: list[str] = Field(default_factory=list)
    current_project: str | None = Field(default=None, alias="currentProject")
