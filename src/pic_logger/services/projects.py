"""Project management and current-project selection."""

import logging
from dataclasses import dataclass, field

from pydantic import ValidationError

from pic_logger.domain.errors import StorageError
from pic_logger.domain.logs import ProjectIndex
from pic_logger.services.logs import LogStore
from pic_logger.services.storage import KeyValueStorage

_logger = logging.getLogger(__name__)

PROJECTS_KEY = "projects"


@dataclass
class ProjectStore:
    """Keeps the project list and the current selection in device storage."""

    storage: KeyValueStorage
    log_store: LogStore
    _index: ProjectIndex | None = field(default=None, init=False, repr=False)

    def list_projects(self) -> list[str]:
        """Return project names in creation order."""
        return list(self._load().projects)

    def current(self) -> str | None:
        """Return the selected project, if any."""
        return self._load().current_project

    def create(self, name: str) -> bool:
        """Create and select a project; blank or duplicate names are refused."""
        trimmed = name.strip() if name else ""
        if not trimmed:
            return False
        index = self._load().model_copy(deep=True)
        if trimmed in index.projects:
            return False
        index.projects.append(trimmed)
        index.current_project = trimmed
        self._save(index)
        _logger.info("Created project %s", trimmed)
        return True

    def select(self, name: str) -> bool:
        """Make an existing project current."""
        index = self._load().model_copy(deep=True)
        if name not in index.projects:
            return False
        index.current_project = name
        self._save(index)
        return True

    def delete(self, name: str) -> bool:
        """Delete a project and all of its log entries."""
        index = self._load().model_copy(deep=True)
        if name not in index.projects:
            return False
        index.projects.remove(name)
        if index.current_project == name:
            index.current_project = index.projects[0] if index.projects else None
        self._save(index)
        self.log_store.delete_all(name)
        _logger.info("Deleted project %s", name)
        return True

    def reload(self) -> None:
        """Drop the cached index so the next read hits storage."""
        self._index = None

    def _load(self) -> ProjectIndex:
        if self._index is not None:
            return self._index
        raw = self.storage.get_item(PROJECTS_KEY)
        if not raw:
            self._index = ProjectIndex()
            return self._index
        try:
            index = ProjectIndex.model_validate_json(raw)
        except ValidationError as exc:
            raise StorageError("Project list is unreadable") from exc
        if index.current_project is None and index.projects:
            index.current_project = index.projects[0]
            self._save(index)
        self._index = index
        return index

    def _save(self, index: ProjectIndex) -> None:
        self.storage.set_item(PROJECTS_KEY, index.model_dump_json(by_alias=True))
        self._index = index
