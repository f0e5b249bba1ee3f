"""Host transport that forwards requests to an external host over HTTP.

Replies are not read from the HTTP response; the host posts them back to the
``/host/message`` endpoint, which feeds the bridge's inbound slot.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field

import httpx

from pic_logger.domain.errors import HostSendError
from pic_logger.services.host_channel import HostTransport

_logger = logging.getLogger(__name__)


@dataclass
class HttpxHostTransport(HostTransport):
    """Host transport implemented with httpx."""

    host_url: str
    http_client: httpx.AsyncClient
    _tasks: set[asyncio.Task[None]] = field(
        default_factory=set, init=False, repr=False
    )

    @classmethod
    def create(cls, host_url: str) -> "HttpxHostTransport":
        """Create a transport with a managed httpx session."""
        return cls(host_url=host_url, http_client=httpx.AsyncClient())

    def post_message(self, message: str) -> None:
        """Validate the request and schedule its delivery to the host."""
        try:
            payload = json.loads(message)
        except ValueError as exc:
            raise HostSendError("Host request is not valid JSON") from exc
        if self.http_client.is_closed:
            raise HostSendError("Host connection is closed")
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            raise HostSendError("No running event loop") from exc
        task = loop.create_task(self._send(payload))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _send(self, payload: object) -> None:
        try:
            response = await self.http_client.post(
                self.host_url, json=payload, timeout=10
            )
            response.raise_for_status()
        except httpx.HTTPError:
            _logger.exception("Host request to %s failed", self.host_url)

    async def close(self) -> None:
        """Close the underlying HTTP client session."""
        for task in list(self._tasks):
            task.cancel()
        await self.http_client.aclose()
