"""Per-project log entry storage."""

import logging
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import uuid4

from pydantic import ValidationError

from pic_logger.domain.errors import StorageError
from pic_logger.domain.logs import LogEntry, ProjectLog
from pic_logger.services.storage import KeyValueStorage

_logger = logging.getLogger(__name__)


def log_key(project: str) -> str:
    """Storage key holding a project's log collection."""
    return f"log_{project}"


def new_entry_id() -> str:
    """Generate a unique entry id at save time."""
    return f"entry_{int(time.time() * 1000)}_{uuid4().hex[:9]}"


@dataclass
class LogStore:
    """Persists log entries under a project-scoped storage namespace."""

    storage: KeyValueStorage

    def save(self, project: str, entry: LogEntry) -> LogEntry:
        """Store ``entry`` with a fresh id and return the stored entry."""
        if not project:
            raise StorageError("A project is required to save an entry")
        stored = entry.model_copy(update={"id": new_entry_id()})
        log = self._load(project)
        log.entries.append(stored)
        log.entries.sort(key=_sort_key, reverse=True)
        self._write(project, log)
        _logger.info("Saved log entry %s for project %s", stored.id, project)
        return stored

    def list_entries(self, project: str) -> list[LogEntry]:
        """Return a project's entries, newest first."""
        entries = list(self._load(project).entries)
        entries.sort(key=_sort_key, reverse=True)
        return entries

    def delete_entry(self, project: str, entry_id: str) -> bool:
        """Remove one entry; return False when it does not exist."""
        log = self._load(project)
        remaining = [entry for entry in log.entries if entry.id != entry_id]
        if len(remaining) == len(log.entries):
            return False
        log.entries = remaining
        self._write(project, log)
        return True

    def delete_all(self, project: str) -> bool:
        """Remove every entry stored for ``project``."""
        self.storage.remove_item(log_key(project))
        _logger.info("Deleted all log entries for project %s", project)
        return True

    def _load(self, project: str) -> ProjectLog:
        raw = self.storage.get_item(log_key(project))
        if not raw:
            return ProjectLog(project_name=project)
        try:
            return ProjectLog.model_validate_json(raw)
        except ValidationError as exc:
            raise StorageError(f"Log for project {project!r} is unreadable") from exc

    def _write(self, project: str, log: ProjectLog) -> None:
        self.storage.set_item(
            log_key(project), log.model_dump_json(by_alias=True)
        )


def _sort_key(entry: LogEntry) -> datetime:
    try:
        parsed = datetime.fromisoformat(entry.timestamp)
    except ValueError:
        return datetime.min.replace(tzinfo=UTC)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
