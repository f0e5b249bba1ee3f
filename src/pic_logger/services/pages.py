"""Page routing for hardware events and default host messages."""

import logging
from dataclasses import dataclass, field
from enum import StrEnum

from pic_logger.domain.logs import LogEntry
from pic_logger.services.capture import CaptureSessionService
from pic_logger.services.host_channel import HostBridge, InboundPayload
from pic_logger.services.logs import LogStore
from pic_logger.services.projects import ProjectStore

_logger = logging.getLogger(__name__)


class Page(StrEnum):
    """Pages the device shell can show."""

    WELCOME = "welcome"
    CAPTURE = "capture"
    LOGS = "logs"
    PROJECTS = "projects"


class HardwareEvent(StrEnum):
    """Events raised by the device's physical controls."""

    LONG_PRESS_START = "long_press_start"
    SCROLL_UP = "scroll_up"
    SCROLL_DOWN = "scroll_down"


@dataclass
class LogBrowser:
    """Entries of the current project with a scroll position."""

    log_store: LogStore
    projects: ProjectStore
    entries: list[LogEntry] = field(default_factory=list)
    position: int = 0

    def load(self) -> list[LogEntry]:
        """Reload entries for the current project, newest first."""
        project = self.projects.current()
        self.entries = self.log_store.list_entries(project) if project else []
        self.position = min(self.position, max(len(self.entries) - 1, 0))
        return self.entries

    def scroll_up(self) -> None:
        self.position = max(self.position - 1, 0)

    def scroll_down(self) -> None:
        self.position = min(self.position + 1, max(len(self.entries) - 1, 0))

    def selected(self) -> LogEntry | None:
        if not self.entries:
            return None
        return self.entries[self.position]

    def delete(self, entry_id: str) -> bool:
        """Delete an entry of the current project and reload."""
        project = self.projects.current()
        if not project:
            return False
        deleted = self.log_store.delete_entry(project, entry_id)
        self.load()
        return deleted


@dataclass
class PageRouter:
    """Tracks the active page and routes events to it."""

    bridge: HostBridge
    capture: CaptureSessionService
    logs: LogBrowser
    current_page: Page = Page.WELCOME

    def attach(self) -> None:
        """Register the router as the default inbound host handler."""
        self.bridge.slot.install(self.on_host_message)

    async def load_page(self, page: Page) -> Page:
        """Switch pages, releasing or acquiring page resources."""
        if page == self.current_page:
            if page == Page.LOGS:
                self.logs.load()
            return page
        if self.current_page == Page.CAPTURE:
            await self.capture.close()
        self.current_page = page
        if page == Page.CAPTURE:
            await self.capture.start()
        elif page == Page.LOGS:
            self.logs.position = 0
            self.logs.load()
        _logger.info("Loaded page %s", page)
        return page

    async def handle_hardware_event(self, event: HardwareEvent) -> bool:
        """Route a hardware event to the active page; return True if handled."""
        if event == HardwareEvent.LONG_PRESS_START:
            if self.current_page != Page.CAPTURE:
                return False
            await self.capture.start_log_entry()
            return True
        if self.current_page != Page.LOGS:
            return False
        if event == HardwareEvent.SCROLL_UP:
            self.logs.scroll_up()
        else:
            self.logs.scroll_down()
        return True

    def on_host_message(self, payload: InboundPayload) -> None:
        """Default handler for host messages nobody is waiting for."""
        _logger.info("Unsolicited host message on %s page", self.current_page)
        _logger.debug("Host message payload: %r", payload)
