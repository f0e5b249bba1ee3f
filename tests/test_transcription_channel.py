"""Tests for the single-slot transcription channel."""

import asyncio
import json

import pytest

from pic_logger.domain.errors import ChannelBusy
from pic_logger.domain.transcription import (
    COMPLETION_SENTINEL,
    NO_TRANSCRIPTION_SENTINEL,
    NOT_AVAILABLE_SENTINEL,
    SEND_FAILED_SENTINEL,
    TIMEOUT_SENTINEL,
)
from pic_logger.services.host_channel import HostBridge
from pic_logger.services.transcription import TranscriptionChannel, build_host_request
from tests.conftest import FakeHostTransport, FakeSpeechRecognizer

CLIP = b"RIFF\x24\x00\x00\x00WAVEclip"


def _channel(
    reply: object = None,
    *,
    fail: bool = False,
    recognizer: FakeSpeechRecognizer | None = None,
    timeout: float = 0.05,
) -> tuple[TranscriptionChannel, FakeHostTransport]:
    bridge = HostBridge()
    host = FakeHostTransport(bridge=bridge, reply=reply, fail=fail)
    bridge.transport = host
    channel = TranscriptionChannel(
        bridge=bridge,
        recognizer=recognizer,
        timeout_seconds=timeout,
        enhance_timeout_seconds=timeout,
    )
    return channel, host


def _default_handler(channel: TranscriptionChannel) -> list[object]:
    received: list[object] = []
    channel.bridge.slot.install(received.append)
    return received


def test_build_host_request_shape() -> None:
    assert json.loads(build_host_request("hi")) == {
        "message": "hi",
        "useLLM": True,
        "wantsR1Response": False,
    }


def test_reply_resolves_with_transcription() -> None:
    channel, host = _channel({"data": '{"transcription": "Crack in beam 3"}'})
    default = _default_handler(channel)
    handler_before = channel.bridge.slot.handler

    result = asyncio.run(channel.transcribe(CLIP))

    assert result == "Crack in beam 3"
    assert len(host.sent) == 1
    assert json.loads(host.sent[0])["useLLM"] is True
    assert channel.bridge.slot.handler is handler_before
    assert channel.pending is None
    assert default == []


def test_timeout_resolves_once_and_late_reply_is_inert() -> None:
    channel, _host = _channel(timeout=0.02)
    default = _default_handler(channel)

    async def scenario() -> str:
        result = await channel.transcribe(CLIP)
        channel.bridge.deliver({"data": "too late"})
        return result

    assert asyncio.run(scenario()) == TIMEOUT_SENTINEL
    assert default == [{"data": "too late"}]
    assert channel.pending is None


def test_second_request_while_pending_is_busy() -> None:
    channel, host = _channel(timeout=0.05)

    async def scenario() -> tuple[str, bool, int]:
        first = asyncio.create_task(channel.transcribe(CLIP))
        await asyncio.sleep(0)
        busy = False
        try:
            await channel.transcribe(CLIP)
        except ChannelBusy:
            busy = True
        sent_after_busy = len(host.sent)
        return await first, busy, sent_after_busy

    result, busy, sent_after_busy = asyncio.run(scenario())

    assert busy is True
    assert sent_after_busy == 1
    assert len(host.sent) == 1
    assert result == TIMEOUT_SENTINEL


def test_completion_phrase_maps_to_sentinel() -> None:
    channel, _host = _channel({"data": "The user's request has been completed."})

    assert asyncio.run(channel.transcribe(CLIP)) == COMPLETION_SENTINEL


def test_empty_reply_without_recognizer() -> None:
    channel, _host = _channel({"data": "   "})

    assert asyncio.run(channel.transcribe(CLIP)) == NO_TRANSCRIPTION_SENTINEL


def test_empty_reply_falls_back_to_recognizer() -> None:
    recognizer = FakeSpeechRecognizer(text="said on device")
    channel, _host = _channel({}, recognizer=recognizer)

    assert asyncio.run(channel.transcribe(CLIP)) == "said on device"
    assert recognizer.calls == [CLIP]


def test_send_failure_restores_handler() -> None:
    channel, _host = _channel(fail=True)
    default = _default_handler(channel)
    handler_before = channel.bridge.slot.handler

    result = asyncio.run(channel.transcribe(CLIP))

    assert result == SEND_FAILED_SENTINEL
    assert channel.bridge.slot.handler is handler_before
    assert default == []


def test_send_failure_uses_recognizer_when_present() -> None:
    recognizer = FakeSpeechRecognizer(fail=True)
    channel, _host = _channel(fail=True, recognizer=recognizer)

    assert asyncio.run(channel.transcribe(CLIP)) == SEND_FAILED_SENTINEL
    assert recognizer.calls == [CLIP]


def test_unavailable_bridge_without_recognizer() -> None:
    channel = TranscriptionChannel(bridge=HostBridge())

    assert asyncio.run(channel.transcribe(CLIP)) == NOT_AVAILABLE_SENTINEL


def test_unavailable_bridge_uses_recognizer() -> None:
    channel = TranscriptionChannel(
        bridge=HostBridge(), recognizer=FakeSpeechRecognizer(text="local words")
    )

    assert asyncio.run(channel.transcribe(CLIP)) == "local words"


def test_cancelled_transcription_restores_handler() -> None:
    channel, _host = _channel(timeout=5)
    default = _default_handler(channel)
    handler_before = channel.bridge.slot.handler

    async def scenario() -> None:
        task = asyncio.create_task(channel.transcribe(CLIP))
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())

    assert channel.bridge.slot.handler is handler_before
    assert channel.pending is None
    assert default == []


def test_enhance_returns_cleaned_text() -> None:
    channel, host = _channel({"data": "Crack in beam three."})

    result = asyncio.run(channel.enhance("crack in beam three"))

    assert result == "Crack in beam three."
    assert "crack in beam three" in json.loads(host.sent[0])["message"]


def test_enhance_keeps_original_on_timeout_or_completion() -> None:
    silent, _ = _channel(timeout=0.02)
    acknowledging, _ = _channel({"data": "Task completed"})

    assert asyncio.run(silent.enhance("raw words")) == "raw words"
    assert asyncio.run(acknowledging.enhance("raw words")) == "raw words"


def test_enhance_skips_blank_text() -> None:
    channel, host = _channel({"data": "anything"})

    assert asyncio.run(channel.enhance("  ")) == "  "
    assert host.sent == []
