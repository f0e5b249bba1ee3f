"""On-device speech recognition port."""

from typing import Protocol


class SpeechRecognizer(Protocol):
    """Interface for recognizers that run without the host channel."""

    async def recognize(self, audio: bytes) -> str:
        """Return recognized speech; raise RecognitionError if none is found."""
