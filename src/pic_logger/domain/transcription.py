"""Domain values for host-assisted transcription."""

from dataclasses import dataclass

TIMEOUT_SENTINEL = "Transcription timeout - please try again"
COMPLETION_SENTINEL = "Transcription unavailable - no speech content returned"
NO_TRANSCRIPTION_SENTINEL = "No transcription received"
SEND_FAILED_SENTINEL = "Transcription failed"
NOT_AVAILABLE_SENTINEL = "Transcription not available"
BUSY_SENTINEL = "Transcription in progress..."

SENTINELS = frozenset(
    {
        TIMEOUT_SENTINEL,
        COMPLETION_SENTINEL,
        NO_TRANSCRIPTION_SENTINEL,
        SEND_FAILED_SENTINEL,
        NOT_AVAILABLE_SENTINEL,
        BUSY_SENTINEL,
    }
)

TRANSCRIPTION_INSTRUCTION = (
    "I have recorded an audio memo. Please transcribe what was said. "
    "Return ONLY the transcription text, no JSON formatting, "
    "no additional commentary, just the spoken words."
)


@dataclass
class TranscriptionRequest:
    """The single outstanding request on the host channel."""

    id: str
    deadline: float
    resolved: bool = False
