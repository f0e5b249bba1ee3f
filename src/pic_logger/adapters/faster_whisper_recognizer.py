"""On-device speech recognizer using faster-whisper."""

import asyncio
import io
import logging
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import soundfile as sf

from pic_logger.domain.errors import RecognitionError
from pic_logger.services.speech import SpeechRecognizer

_logger = logging.getLogger(__name__)

WHISPER_SAMPLE_RATE = 16_000


@dataclass
class FasterWhisperRecognizer(SpeechRecognizer):
    """Transcribes WAV clips with a locally loaded Whisper model."""

    model_name: str = "base.en"
    device: str = "cpu"
    compute_type: str = "int8"
    language: str = "en"
    _model: Any = field(default=None, init=False, repr=False)

    async def recognize(self, audio: bytes) -> str:
        """Decode ``audio`` and run the model in a worker thread."""
        if not audio:
            raise RecognitionError("No speech detected")
        samples = _decode_wav(audio)
        text = await asyncio.to_thread(self._transcribe, samples)
        if not text:
            raise RecognitionError("No speech detected")
        return text

    def _transcribe(self, samples: np.ndarray) -> str:
        model = self._load()
        segments, _info = model.transcribe(
            samples, language=self.language, vad_filter=True
        )
        return " ".join(segment.text.strip() for segment in segments).strip()

    def _load(self) -> Any:
        if self._model is not None:
            return self._model
        try:
            from faster_whisper import WhisperModel
        except ImportError as exc:
            raise RecognitionError(
                "Speech recognition not available; install pic-logger[local-asr]"
            ) from exc
        _logger.info(
            "Loading Whisper model %s on %s (%s)",
            self.model_name,
            self.device,
            self.compute_type,
        )
        self._model = WhisperModel(
            self.model_name, device=self.device, compute_type=self.compute_type
        )
        return self._model


def _decode_wav(audio: bytes) -> np.ndarray:
    """Return mono float32 samples at Whisper's sample rate."""
    try:
        samples, sample_rate = sf.read(io.BytesIO(audio), dtype="float32")
    except RuntimeError as exc:
        raise RecognitionError("Audio clip could not be decoded") from exc
    if samples.ndim > 1:
        samples = samples.mean(axis=1)
    if sample_rate != WHISPER_SAMPLE_RATE and samples.size:
        duration = samples.size / sample_rate
        target = np.linspace(0.0, duration, int(duration * WHISPER_SAMPLE_RATE))
        source = np.linspace(0.0, duration, samples.size)
        samples = np.interp(target, source, samples).astype(np.float32)
    return samples
