"""Local speech-to-text integration backed by faster-whisper.

The Whisper model is expensive to load, so one instance is shared by every
request in the process. It is built on first use behind a lock (concurrent
cold starts wait for the first builder instead of loading a second copy) and
is only read afterwards, so concurrent inference calls need no locking.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional

import numpy as np
from faster_whisper import WhisperModel

from fieldvoice.config.settings import WhisperConfig, settings

logger = logging.getLogger(__name__)

ModelFactory = Callable[[WhisperConfig], Any]


@dataclass(frozen=True)
class TranscriptionResult:
    """Structured transcription outcome returned to the pipeline."""

    transcript: str


class TranscriptionError(RuntimeError):
    """Raised when the speech-to-text model fails to process audio."""


def _load_whisper_model(config: WhisperConfig) -> WhisperModel:
    return WhisperModel(
        config.model,
        device=config.device,
        compute_type=config.compute_type,
        download_root=config.cache_dir,
    )


class TranscribeService:
    """High-level facade over a lazily-loaded Whisper model."""

    def __init__(
        self,
        config: WhisperConfig,
        *,
        model_factory: ModelFactory = _load_whisper_model,
    ) -> None:
        self._config = config
        self._model_factory = model_factory
        self._model: Any | None = None
        self._model_lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    def transcribe(self, samples: np.ndarray) -> TranscriptionResult:
        """Transcribe mono float32 samples at 16 kHz. Blocking; run in a thread."""

        model = self._ensure_model()
        try:
            segments, _info = model.transcribe(
                samples,
                language=self._config.language,
                beam_size=self._config.beam_size,
                temperature=0.0,
                without_timestamps=True,
                task="transcribe",
            )
            # faster-whisper yields segments lazily; decoding happens here.
            text_parts = [
                (segment.text or "").strip()
                for segment in segments
                if (segment.text or "").strip()
            ]
        except (RuntimeError, ValueError) as exc:
            raise TranscriptionError(f"Whisper inference failed: {exc}") from exc

        transcript = " ".join(text_parts).strip()
        logger.debug("Whisper produced %d chars", len(transcript))
        return TranscriptionResult(transcript=transcript)

    def _ensure_model(self) -> Any:
        if self._model is None:
            with self._model_lock:
                if self._model is None:
                    logger.info(
                        "Loading Whisper model=%s device=%s compute_type=%s",
                        self._config.model,
                        self._config.device,
                        self._config.compute_type,
                    )
                    self._model = self._model_factory(self._config)
        return self._model


_DEFAULT_SERVICE: Optional[TranscribeService] = None
_DEFAULT_SERVICE_LOCK = threading.Lock()


def get_transcribe_service() -> TranscribeService:
    """Return the process-wide transcribe service, creating it on first use."""

    global _DEFAULT_SERVICE
    if _DEFAULT_SERVICE is None:
        with _DEFAULT_SERVICE_LOCK:
            if _DEFAULT_SERVICE is None:
                _DEFAULT_SERVICE = TranscribeService(settings.whisper)
    return _DEFAULT_SERVICE


__all__ = [
    "TranscribeService",
    "TranscriptionError",
    "TranscriptionResult",
    "get_transcribe_service",
]
