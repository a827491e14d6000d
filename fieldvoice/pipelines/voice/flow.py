"""Orchestrator for the voice command pipeline.

Each run is its own state machine::

    Idle -> Ingesting -> Transcribing -> Extracting -> Parsing -> Succeeded
                 \\             \\              \\            \\
                  +-------------+--------------+------------+--> Failed

Stages return ``Ok``/``Err`` values; the first ``Err`` moves the run straight
to ``Failed`` so later (more expensive) stages are never reached. The staging
directory created for ingestion is scoped to the whole run and is removed
before :meth:`VoiceCommandPipeline.run` returns, whatever the outcome.

The only state shared between runs is the Whisper model behind
``fieldvoice.services.transcribe``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Iterable, List, Optional, TypeVar
from uuid import uuid4

from fieldvoice.config.settings import settings
from fieldvoice.services.response_contract import StructuredCommand
from fieldvoice.telemetry import observe_pipeline_stage, record_pipeline_outcome

from .errors import public_error, stage_error
from .extraction import IntentExtractor
from .ingestion import AudioNormalizer, staging_area
from .parsing import parse_command
from .transcription import Transcriber
from .types import (
    AudioClip,
    Err,
    ErrorKind,
    Ok,
    PipelineResult,
    PipelineState,
    StageResult,
)

logger = logging.getLogger("fieldvoice.pipeline")
transcript_logger = logging.getLogger("fieldvoice.logs.transcript")

T = TypeVar("T")
Parser = Callable[[str], StageResult[StructuredCommand]]

# Legal forward moves. Any non-terminal state may also move to FAILED.
_NEXT_STATE = {
    PipelineState.IDLE: PipelineState.INGESTING,
    PipelineState.INGESTING: PipelineState.TRANSCRIBING,
    PipelineState.TRANSCRIBING: PipelineState.EXTRACTING,
    PipelineState.EXTRACTING: PipelineState.PARSING,
    PipelineState.PARSING: PipelineState.SUCCEEDED,
}


@dataclass(frozen=True)
class PipelineStage:
    """Human-readable description of one stage in the voice pipeline."""

    order: int
    state: PipelineState
    module: str
    summary: str


_STAGES: List[PipelineStage] = [
    PipelineStage(
        1,
        PipelineState.INGESTING,
        "fieldvoice.pipelines.voice.ingestion",
        "Decode the compressed clip with ffmpeg into mono 16 kHz float samples.",
    ),
    PipelineStage(
        2,
        PipelineState.TRANSCRIBING,
        "fieldvoice.pipelines.voice.transcription",
        "Run the shared Whisper model; reject silent clips and short transcripts.",
    ),
    PipelineStage(
        3,
        PipelineState.EXTRACTING,
        "fieldvoice.pipelines.voice.extraction",
        "Ask the Bedrock model for an intent from the fixed catalogue.",
    ),
    PipelineStage(
        4,
        PipelineState.PARSING,
        "fieldvoice.pipelines.voice.parsing",
        "Extract the JSON object and coerce intent, data and message.",
    ),
]


def describe_stages() -> Iterable[PipelineStage]:
    """Expose the ordered list of stages for debugging and documentation."""

    return tuple(_STAGES)


def _truncate(value: str, max_length: int = 500) -> str:
    if len(value) <= max_length:
        return value
    return value[: max_length - 3] + "..."


class InvalidTransitionError(RuntimeError):
    """Raised when a run is asked to move along an edge the machine lacks."""


class PipelineRun:
    """Mutable bookkeeping for one run: current state, history, transcript."""

    def __init__(self, run_id: Optional[str] = None) -> None:
        self.run_id = run_id or uuid4().hex[:12]
        self.state = PipelineState.IDLE
        self.history: list[PipelineState] = [PipelineState.IDLE]
        self.transcript: Optional[str] = None

    def advance(self, target: PipelineState) -> None:
        if self.state.is_terminal:
            raise InvalidTransitionError(f"run {self.run_id} already {self.state.value}")
        if target is not PipelineState.FAILED and _NEXT_STATE.get(self.state) is not target:
            raise InvalidTransitionError(
                f"run {self.run_id} cannot move {self.state.value} -> {target.value}"
            )
        logger.info("run=%s %s -> %s", self.run_id, self.state.value, target.value)
        self.state = target
        self.history.append(target)

    def finish(self, outcome: StageResult[StructuredCommand]) -> PipelineResult:
        if isinstance(outcome, Ok):
            self.advance(PipelineState.SUCCEEDED)
            command = outcome.value
            return PipelineResult(
                success=True,
                message=command.message,
                run_id=self.run_id,
                command=command,
                transcript=self.transcript,
                history=tuple(self.history),
            )

        self.advance(PipelineState.FAILED)
        error, message = public_error(outcome.kind)
        return PipelineResult(
            success=False,
            message=outcome.message or message,
            run_id=self.run_id,
            transcript=self.transcript,
            error_kind=outcome.kind,
            error=error,
            history=tuple(self.history),
        )


class VoiceCommandPipeline:
    """Audio bytes in, :class:`PipelineResult` out. Never raises."""

    def __init__(
        self,
        *,
        normalizer: AudioNormalizer | None = None,
        transcriber: Transcriber | None = None,
        extractor: IntentExtractor | None = None,
        parser: Parser = parse_command,
        staging_dir: Optional[str] = None,
    ) -> None:
        self._normalizer = normalizer or AudioNormalizer()
        self._transcriber = transcriber or Transcriber()
        self._extractor = extractor or IntentExtractor()
        self._parser = parser
        self._staging_dir = staging_dir if staging_dir is not None else settings.audio.staging_dir

    async def run(self, clip: AudioClip, *, run_id: Optional[str] = None) -> PipelineResult:
        run = PipelineRun(run_id)
        logger.info(
            "run=%s received clip bytes=%d content_type=%s",
            run.run_id,
            clip.size,
            clip.content_type,
        )

        outcome: StageResult[StructuredCommand]
        try:
            with staging_area(self._staging_dir) as staging:
                outcome = await self._execute(run, clip, staging)
        except Exception as exc:
            logger.exception("run=%s failed in state %s", run.run_id, run.state.value)
            outcome = stage_error(ErrorKind.INTERNAL, repr(exc))

        result = run.finish(outcome)
        record_pipeline_outcome(
            result.success,
            result.error_kind.value if result.error_kind else None,
        )
        if isinstance(outcome, Err):
            logger.info(
                "run=%s failed kind=%s detail=%s",
                run.run_id,
                outcome.kind.value,
                _truncate(outcome.detail, 300),
            )
        else:
            logger.info(
                "run=%s succeeded intent=%s",
                run.run_id,
                outcome.value.intent.value,
            )
        return result

    async def _execute(
        self,
        run: PipelineRun,
        clip: AudioClip,
        staging: Path,
    ) -> StageResult[StructuredCommand]:
        run.advance(PipelineState.INGESTING)
        audio = await self._timed(run, "ingestion", self._normalizer.normalize(clip, staging))
        if isinstance(audio, Err):
            return audio
        logger.info(
            "run=%s decoded %.2fs of audio at %d Hz",
            run.run_id,
            audio.value.duration_seconds,
            audio.value.sample_rate,
        )

        run.advance(PipelineState.TRANSCRIBING)
        transcript = await self._timed(run, "transcription", self._transcriber.transcribe(audio.value))
        if isinstance(transcript, Err):
            return transcript
        run.transcript = transcript.value
        transcript_logger.info("run=%s | transcript=%s", run.run_id, transcript.value)

        run.advance(PipelineState.EXTRACTING)
        raw_response = await self._timed(run, "extraction", self._extractor.extract(transcript.value))
        if isinstance(raw_response, Err):
            return raw_response
        transcript_logger.info(
            "run=%s | model=%s",
            run.run_id,
            _truncate(raw_response.value),
        )

        run.advance(PipelineState.PARSING)
        started = time.perf_counter()
        command = self._parser(raw_response.value)
        observe_pipeline_stage("parsing", time.perf_counter() - started)
        return command

    async def _timed(self, run: PipelineRun, stage: str, awaitable: Awaitable[T]) -> T:
        started = time.perf_counter()
        try:
            return await awaitable
        finally:
            elapsed = time.perf_counter() - started
            observe_pipeline_stage(stage, elapsed)
            logger.debug("run=%s stage=%s took %.3fs", run.run_id, stage, elapsed)


__all__ = [
    "InvalidTransitionError",
    "PipelineRun",
    "PipelineStage",
    "VoiceCommandPipeline",
    "describe_stages",
]
