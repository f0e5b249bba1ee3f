"""Single-slot transcription protocol over the host message channel."""

import asyncio
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from uuid import uuid4

from pic_logger.domain.errors import ChannelBusy, HostSendError, RecognitionError
from pic_logger.domain.transcription import (
    COMPLETION_SENTINEL,
    NO_TRANSCRIPTION_SENTINEL,
    NOT_AVAILABLE_SENTINEL,
    SEND_FAILED_SENTINEL,
    TIMEOUT_SENTINEL,
    TRANSCRIPTION_INSTRUCTION,
    TranscriptionRequest,
)
from pic_logger.services.host_channel import HostBridge, InboundPayload
from pic_logger.services.reply_parsing import (
    extract_transcription,
    is_generic_completion,
)
from pic_logger.services.speech import SpeechRecognizer

_logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
ENHANCE_TIMEOUT_SECONDS = 10.0


class Outcome(StrEnum):
    """Which completion source resolved a request."""

    REPLY = "reply"
    EMPTY_REPLY = "empty_reply"
    TIMEOUT = "timeout"
    SEND_FAILED = "send_failed"


def build_host_request(message: str) -> str:
    """Encode an outbound host request."""
    return json.dumps({"message": message, "useLLM": True, "wantsR1Response": False})


@dataclass
class TranscriptionChannel:
    """Converts audio clips to text with at most one host request in flight."""

    bridge: HostBridge
    recognizer: SpeechRecognizer | None = None
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    enhance_timeout_seconds: float = ENHANCE_TIMEOUT_SECONDS
    _pending: TranscriptionRequest | None = field(
        default=None, init=False, repr=False
    )

    @property
    def pending(self) -> TranscriptionRequest | None:
        return self._pending

    async def transcribe(self, audio: bytes) -> str:
        """Return a transcription or sentinel text for ``audio``.

        Raises ChannelBusy when a request is already outstanding. Every other
        failure resolves to sentinel text.
        """
        if self._pending is not None:
            raise ChannelBusy("Transcription already in progress")
        if not self.bridge.available:
            _logger.info("Host channel unavailable; trying on-device recognizer")
            return await self._recognize_or(audio, NOT_AVAILABLE_SENTINEL)

        request = self._open_request(self.timeout_seconds)
        try:
            text, outcome = await self._exchange(
                request,
                build_host_request(TRANSCRIPTION_INSTRUCTION),
                _interpret_transcription,
                TIMEOUT_SENTINEL,
            )
            if outcome == Outcome.SEND_FAILED:
                return await self._recognize_or(audio, SEND_FAILED_SENTINEL)
            if outcome == Outcome.EMPTY_REPLY:
                return await self._recognize_or(audio, NO_TRANSCRIPTION_SENTINEL)
            return text
        finally:
            self._pending = None

    async def enhance(self, text: str) -> str:
        """Ask the host to clean up ``text``; return it unchanged on any failure."""
        if self._pending is not None:
            raise ChannelBusy("Transcription already in progress")
        if not self.bridge.available or not text.strip():
            return text

        def interpret(payload: InboundPayload) -> tuple[str, Outcome]:
            enhanced = extract_transcription(payload)
            if not enhanced or is_generic_completion(enhanced):
                return text, Outcome.EMPTY_REPLY
            return enhanced, Outcome.REPLY

        request = self._open_request(self.enhance_timeout_seconds)
        try:
            enhanced, _outcome = await self._exchange(
                request,
                build_host_request(
                    f'Clean up and correct this transcription: "{text}". '
                    "Return ONLY the corrected text, no JSON, "
                    "no additional commentary."
                ),
                interpret,
                text,
            )
            return enhanced if enhanced.strip() else text
        finally:
            self._pending = None

    def _open_request(self, timeout: float) -> TranscriptionRequest:
        loop = asyncio.get_running_loop()
        request = TranscriptionRequest(
            id=f"transcribe_{uuid4().hex}", deadline=loop.time() + timeout
        )
        self._pending = request
        return request

    async def _exchange(
        self,
        request: TranscriptionRequest,
        message: str,
        interpret: Callable[[InboundPayload], tuple[str, Outcome]],
        timeout_text: str,
    ) -> tuple[str, Outcome]:
        """Race the host reply against the deadline; first result wins."""
        loop = asyncio.get_running_loop()
        result: asyncio.Future[tuple[str, Outcome]] = loop.create_future()

        def settle(text: str, outcome: Outcome) -> None:
            if request.resolved:
                _logger.debug("Ignoring %s for resolved %s", outcome, request.id)
                return
            request.resolved = True
            if not result.done():
                result.set_result((text, outcome))
            _logger.info("Request %s resolved by %s", request.id, outcome)

        def on_reply(payload: InboundPayload) -> None:
            if request.resolved:
                _logger.debug("Ignoring stray reply for %s", request.id)
                return
            settle(*interpret(payload))

        previous = self.bridge.slot.install(on_reply)
        timer = loop.call_at(request.deadline, settle, timeout_text, Outcome.TIMEOUT)
        try:
            try:
                self.bridge.post_message(message)
            except HostSendError:
                _logger.warning("Host request %s could not be sent", request.id)
                settle(timeout_text, Outcome.SEND_FAILED)
            return await result
        finally:
            request.resolved = True
            timer.cancel()
            self.bridge.slot.restore(on_reply, previous)

    async def _recognize_or(self, audio: bytes, sentinel: str) -> str:
        if self.recognizer is None:
            return sentinel
        try:
            return await self.recognizer.recognize(audio)
        except RecognitionError as exc:
            _logger.info("On-device recognition failed: %s", exc)
            return sentinel


def _interpret_transcription(payload: InboundPayload) -> tuple[str, Outcome]:
    text = extract_transcription(payload)
    if not text:
        return NO_TRANSCRIPTION_SENTINEL, Outcome.EMPTY_REPLY
    if is_generic_completion(text):
        _logger.info("Host replied with a completion phrase instead of speech")
        return COMPLETION_SENTINEL, Outcome.REPLY
    return text, Outcome.REPLY
