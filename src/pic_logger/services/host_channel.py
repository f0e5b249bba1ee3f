"""Single inbound slot and outbound port for the host message channel.

The host delivers every inbound message through one process-wide callback and
carries no request ids. ``InboundSlot`` models that callback as an explicit
resource: a component takes it over with ``install`` and gives it back with
``restore``, which only succeeds while the slot still holds the handler that
was installed.
"""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Protocol

from pic_logger.domain.errors import ChannelUnavailable

_logger = logging.getLogger(__name__)

InboundPayload = Mapping[str, object] | str
InboundHandler = Callable[[InboundPayload], None]


class HostTransport(Protocol):
    """Outbound half of the host message channel."""

    def post_message(self, message: str) -> None:
        """Send one opaque request; raise HostSendError if it cannot be sent."""


@dataclass
class InboundSlot:
    """The one registered inbound callback."""

    handler: InboundHandler | None = None

    def install(self, handler: InboundHandler) -> InboundHandler | None:
        """Make ``handler`` current and return the handler it superseded."""
        previous = self.handler
        self.handler = handler
        return previous

    def restore(
        self, installed: InboundHandler, previous: InboundHandler | None
    ) -> bool:
        """Put ``previous`` back if ``installed`` still owns the slot."""
        if self.handler is not installed:
            _logger.warning("Inbound slot was taken over; leaving current handler")
            return False
        self.handler = previous
        return True


@dataclass
class HostBridge:
    """Connects host transports to the inbound slot."""

    slot: InboundSlot = field(default_factory=InboundSlot)
    transport: HostTransport | None = None

    @property
    def available(self) -> bool:
        return self.transport is not None

    def post_message(self, message: str) -> None:
        """Forward an outbound request to the configured transport."""
        if self.transport is None:
            raise ChannelUnavailable("No host integration present")
        self.transport.post_message(message)

    def deliver(self, payload: InboundPayload) -> None:
        """Dispatch an inbound message to whichever handler owns the slot."""
        handler = self.slot.handler
        if handler is None:
            _logger.info("Dropping host message with no inbound handler")
            return
        try:
            handler(payload)
        except Exception:
            _logger.exception("Inbound handler failed")
