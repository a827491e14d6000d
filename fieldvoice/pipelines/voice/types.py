"""Typed containers shared across the voice command pipeline.

These dataclasses live in their own module so every stage (`ingestion`,
`transcription`, `extraction`, `parsing`, `flow`) can import them without
creating circular dependencies.

Stages never raise into the orchestrator. Each returns either ``Ok`` with
its output or ``Err`` describing the failure, and ``flow`` threads those
values through the state machine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, Optional, TypeVar, Union

import numpy as np

from fieldvoice.services.response_contract import StructuredCommand

T = TypeVar("T")


class PipelineState(str, Enum):
    IDLE = "idle"
    INGESTING = "ingesting"
    TRANSCRIBING = "transcribing"
    EXTRACTING = "extracting"
    PARSING = "parsing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (PipelineState.SUCCEEDED, PipelineState.FAILED)


class ErrorKind(str, Enum):
    OVERSIZED = "oversized"
    TRANSCODE = "transcode"
    EMPTY_AUDIO = "empty_audio"
    INAUDIBLE = "inaudible"
    EXTRACTION = "extraction"
    TIMEOUT = "timeout"
    MALFORMED_RESPONSE = "malformed_response"
    INTERNAL = "internal"


@dataclass(frozen=True)
class AudioClip:
    """Raw compressed upload owned by a single pipeline run."""

    data: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class NormalizedAudio:
    """Mono float32 samples at the transcription sample rate."""

    samples: np.ndarray
    sample_rate: int

    @property
    def duration_seconds(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return float(len(self.samples)) / float(self.sample_rate)

    @property
    def peak(self) -> float:
        if self.samples.size == 0:
            return 0.0
        return float(np.max(np.abs(self.samples)))


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    """Failure of one stage.

    ``message`` is safe to show to end users, ``detail`` is for logs only.
    """

    kind: ErrorKind
    message: str
    detail: str = ""


StageResult = Union[Ok[T], Err]


@dataclass(frozen=True)
class PipelineResult:
    """Terminal outcome of one run: either a command or an error kind."""

    success: bool
    message: str
    run_id: str
    command: Optional[StructuredCommand] = None
    transcript: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    error: Optional[str] = None
    history: tuple[PipelineState, ...] = field(default_factory=tuple)

    @property
    def state(self) -> PipelineState:
        return PipelineState.SUCCEEDED if self.success else PipelineState.FAILED

    def to_payload(self) -> dict[str, Any]:
        """Render the boundary shape consumed by the recording UI."""

        if self.success and self.command is not None:
            return {
                "success": True,
                "intent": self.command.intent.value,
                "data": dict(self.command.data),
                "message": self.command.message,
                "transcript": self.transcript or "",
                "run_id": self.run_id,
            }

        payload: dict[str, Any] = {
            "success": False,
            "error": self.error or "",
            "message": self.message,
            "run_id": self.run_id,
        }
        if self.transcript is not None:
            payload["transcript"] = self.transcript
        return payload


__all__ = [
    "AudioClip",
    "Err",
    "ErrorKind",
    "NormalizedAudio",
    "Ok",
    "PipelineResult",
    "PipelineState",
    "StageResult",
]
