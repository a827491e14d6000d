"""Transcription stage (Stage 02) of the voice pipeline."""

from __future__ import annotations

import asyncio
import logging

from fieldvoice.config.settings import AudioConfig, WhisperConfig, settings
from fieldvoice.services import TranscribeService, TranscriptionError, get_transcribe_service

from .errors import (
    InaudibleAudioError,
    PipelineTimeoutError,
    VoicePipelineError,
    stage_error,
)
from .types import ErrorKind, NormalizedAudio, Ok, StageResult

logger = logging.getLogger("fieldvoice.pipeline")


class Transcriber:
    """Turn normalized samples into a transcript long enough to act on."""

    def __init__(
        self,
        service: TranscribeService | None = None,
        *,
        whisper_config: WhisperConfig | None = None,
        audio_config: AudioConfig | None = None,
    ) -> None:
        self._service = service
        self._whisper_config = whisper_config or settings.whisper
        self._audio_config = audio_config or settings.audio

    @property
    def service(self) -> TranscribeService:
        if self._service is None:
            self._service = get_transcribe_service()
        return self._service

    async def transcribe(self, audio: NormalizedAudio) -> StageResult[str]:
        try:
            transcript = await self._transcribe(audio)
        except VoicePipelineError as exc:
            return exc.to_err()
        except TranscriptionError as exc:
            logger.error("Transcription failed: %s", exc)
            return stage_error(ErrorKind.INTERNAL, str(exc))
        return Ok(transcript)

    async def _transcribe(self, audio: NormalizedAudio) -> str:
        if audio.peak <= self._audio_config.silence_threshold:
            raise InaudibleAudioError(
                f"Clip is silent (peak amplitude {audio.peak:.2e})."
            )

        try:
            result = await asyncio.wait_for(
                asyncio.to_thread(self.service.transcribe, audio.samples),
                timeout=self._whisper_config.timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise PipelineTimeoutError(
                f"Transcription exceeded {self._whisper_config.timeout_seconds:.1f}s"
            ) from exc

        transcript = result.transcript.strip()
        if len(transcript) < self._whisper_config.min_transcript_chars:
            raise InaudibleAudioError(
                f"Transcript too short ({len(transcript)} chars): {transcript!r}"
            )
        return transcript


__all__ = ["Transcriber"]
