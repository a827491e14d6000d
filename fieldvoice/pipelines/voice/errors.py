"""Error taxonomy for the voice command pipeline.

Every failure carries an :class:`ErrorKind` plus a fixed, user-safe
``error``/``message`` pair. The exception text itself is internal detail and
only ever reaches the logs.
"""

from __future__ import annotations

from typing import Mapping

from .types import Err, ErrorKind

GENERIC_FAILURE = "Failed to process voice command"
INAUDIBLE_FAILURE = "Could not understand audio"

_PUBLIC_ERRORS: Mapping[ErrorKind, tuple[str, str]] = {
    ErrorKind.OVERSIZED: (
        "Audio clip is too large",
        "That recording is too long. Please keep voice commands short.",
    ),
    ErrorKind.TRANSCODE: (
        "Unsupported audio format",
        "I couldn't read that recording. Please try again.",
    ),
    ErrorKind.EMPTY_AUDIO: (
        INAUDIBLE_FAILURE,
        "I didn't catch anything. Please speak a little louder and try again.",
    ),
    ErrorKind.INAUDIBLE: (
        INAUDIBLE_FAILURE,
        "I didn't catch anything. Please speak a little louder and try again.",
    ),
    ErrorKind.EXTRACTION: (
        GENERIC_FAILURE,
        "Something went wrong while processing your command. Please try again.",
    ),
    ErrorKind.TIMEOUT: (
        "Voice command processing timed out",
        "That took too long to process. Please try again.",
    ),
    ErrorKind.MALFORMED_RESPONSE: (
        "Failed to parse AI response",
        "I heard you, but I couldn't understand the structure.",
    ),
    ErrorKind.INTERNAL: (
        GENERIC_FAILURE,
        "Something went wrong while processing your command. Please try again.",
    ),
}


def public_error(kind: ErrorKind) -> tuple[str, str]:
    """Return the ``(error, message)`` pair surfaced for ``kind``."""

    return _PUBLIC_ERRORS.get(kind, _PUBLIC_ERRORS[ErrorKind.INTERNAL])


def stage_error(kind: ErrorKind, detail: str = "") -> Err:
    _, message = public_error(kind)
    return Err(kind=kind, message=message, detail=detail)


class VoicePipelineError(RuntimeError):
    """Base class for stage failures."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def to_err(self) -> Err:
        return stage_error(self.kind, str(self))


class OversizedAudioError(VoicePipelineError):
    """Raised when a clip exceeds the configured size or duration limit."""

    kind = ErrorKind.OVERSIZED


class TranscodeError(VoicePipelineError):
    """Raised when the audio container cannot be decoded."""

    kind = ErrorKind.TRANSCODE


class EmptyAudioError(VoicePipelineError):
    """Raised when decoding yields zero samples."""

    kind = ErrorKind.EMPTY_AUDIO


class InaudibleAudioError(VoicePipelineError):
    """Raised when the clip is silent or the transcript is too short."""

    kind = ErrorKind.INAUDIBLE


class ExtractionError(VoicePipelineError):
    """Raised when the text-generation call fails."""

    kind = ErrorKind.EXTRACTION


class PipelineTimeoutError(VoicePipelineError):
    """Raised when a suspension point exceeds its configured timeout."""

    kind = ErrorKind.TIMEOUT


__all__ = [
    "EmptyAudioError",
    "ExtractionError",
    "GENERIC_FAILURE",
    "INAUDIBLE_FAILURE",
    "InaudibleAudioError",
    "OversizedAudioError",
    "PipelineTimeoutError",
    "TranscodeError",
    "VoicePipelineError",
    "public_error",
    "stage_error",
]
