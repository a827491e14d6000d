"""Voice command pipeline package.

Modules are organised by the order in which a run executes:

1. `ingestion` – boundary checks, scoped staging, ffmpeg decode to mono 16 kHz.
2. `transcription` – shared Whisper model, silence and short-transcript gates.
3. `prompts` / `extraction` – fixed instruction template sent to Bedrock.
4. `parsing` – tolerant JSON extraction and field coercion.
5. `flow` – the per-run state machine tying the stages together.

The HTTP controller imports from here so contributors can jump straight to
the relevant stage.
"""

from .errors import (
    EmptyAudioError,
    ExtractionError,
    InaudibleAudioError,
    OversizedAudioError,
    PipelineTimeoutError,
    TranscodeError,
    VoicePipelineError,
)
from .extraction import IntentExtractor
from .flow import PipelineRun, PipelineStage, VoiceCommandPipeline, describe_stages
from .ingestion import (
    AudioNormalizer,
    read_audio_bytes,
    resolve_content_type,
    staging_area,
)
from .parsing import parse_command
from .prompts import build_extraction_prompt
from .transcription import Transcriber
from .types import (
    AudioClip,
    Err,
    ErrorKind,
    NormalizedAudio,
    Ok,
    PipelineResult,
    PipelineState,
)

__all__ = [
    "AudioClip",
    "AudioNormalizer",
    "EmptyAudioError",
    "Err",
    "ErrorKind",
    "ExtractionError",
    "InaudibleAudioError",
    "IntentExtractor",
    "NormalizedAudio",
    "Ok",
    "OversizedAudioError",
    "PipelineResult",
    "PipelineRun",
    "PipelineStage",
    "PipelineState",
    "PipelineTimeoutError",
    "Transcriber",
    "TranscodeError",
    "VoiceCommandPipeline",
    "VoicePipelineError",
    "build_extraction_prompt",
    "describe_stages",
    "parse_command",
    "read_audio_bytes",
    "resolve_content_type",
    "staging_area",
]
