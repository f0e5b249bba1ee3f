"""Host transport that answers requests with the OpenAI Responses API."""

import asyncio
import json
import logging
from dataclasses import dataclass, field

from openai import AsyncOpenAI

from pic_logger.domain.errors import HostSendError
from pic_logger.services.host_channel import HostBridge, HostTransport

_logger = logging.getLogger(__name__)


@dataclass
class OpenAIHostTransport(HostTransport):
    """Posts host requests to an LLM and delivers replies through the bridge."""

    client: AsyncOpenAI
    bridge: HostBridge
    model: str
    _tasks: set[asyncio.Task[None]] = field(
        default_factory=set, init=False, repr=False
    )

    @classmethod
    def create(
        cls, api_key: str, bridge: HostBridge, model: str
    ) -> "OpenAIHostTransport":
        """Create a transport with its own OpenAI client."""
        return cls(client=AsyncOpenAI(api_key=api_key), bridge=bridge, model=model)

    def post_message(self, message: str) -> None:
        """Schedule the LLM round trip; fail fast on malformed requests."""
        try:
            request = json.loads(message)
        except ValueError as exc:
            raise HostSendError("Host request is not valid JSON") from exc
        prompt = request.get("message") if isinstance(request, dict) else None
        if not isinstance(prompt, str) or not prompt:
            raise HostSendError("Host request has no message")
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            raise HostSendError("No running event loop") from exc
        task = loop.create_task(self._round_trip(prompt))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _round_trip(self, prompt: str) -> None:
        try:
            response = await self.client.responses.create(
                model=self.model, input=prompt
            )
        except Exception:
            _logger.exception("Host LLM request failed")
            return
        output_text = response.output_text or ""
        self.bridge.deliver({"data": output_text})

    async def close(self) -> None:
        """Cancel outstanding round trips and close the client."""
        for task in list(self._tasks):
            task.cancel()
        await self.client.close()
