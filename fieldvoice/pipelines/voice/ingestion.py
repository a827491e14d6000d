"""Request ingestion and audio normalization (Stage 01 of the voice pipeline).

Uploads arrive as compressed containers (typically ``audio/webm`` from the
browser recorder). They are decoded by ffmpeg into raw little-endian float32
samples, mono, 16 kHz: the exact input contract of the Whisper model.

Multi-channel input is reduced with ``pan=mono|c0=c0``, i.e. the first
channel is kept as-is. Channels are never averaged; down-mixing changes the
signal the speech model sees.
"""

from __future__ import annotations

import contextlib
import logging
import mimetypes
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Final, Iterator, Optional

import numpy as np
from fastapi import HTTPException, UploadFile, status
from fastapi.concurrency import run_in_threadpool

from fieldvoice.config.settings import AudioConfig, settings

from .errors import (
    EmptyAudioError,
    OversizedAudioError,
    PipelineTimeoutError,
    TranscodeError,
    VoicePipelineError,
)
from .types import AudioClip, NormalizedAudio, Ok, StageResult

logger = logging.getLogger("fieldvoice.pipeline")

DEFAULT_CONTENT_TYPE: Final[str] = "audio/webm"


@dataclass(frozen=True)
class ContainerFormat:
    suffix: str
    # Containers whose index may sit at the end of the file (mp4 ``moov``)
    # need a seekable input, so they are staged on disk instead of piped.
    seekable_input: bool = False


_CONTAINER_FORMATS: Final[dict[str, ContainerFormat]] = {
    "audio/webm": ContainerFormat(".webm"),
    "video/webm": ContainerFormat(".webm"),
    "audio/ogg": ContainerFormat(".ogg"),
    "audio/mpeg": ContainerFormat(".mp3"),
    "audio/mp3": ContainerFormat(".mp3"),
    "audio/wav": ContainerFormat(".wav"),
    "audio/x-wav": ContainerFormat(".wav"),
    "audio/wave": ContainerFormat(".wav"),
    "audio/mp4": ContainerFormat(".m4a", seekable_input=True),
    "audio/x-m4a": ContainerFormat(".m4a", seekable_input=True),
    "audio/m4a": ContainerFormat(".m4a", seekable_input=True),
}


def _base_content_type(value: str) -> str:
    # "audio/webm;codecs=opus" -> "audio/webm"
    return value.split(";", 1)[0].strip().lower()


def container_format(content_type: str) -> ContainerFormat:
    base = _base_content_type(content_type)
    try:
        return _CONTAINER_FORMATS[base]
    except KeyError:
        raise TranscodeError(f"Unsupported content type: {content_type!r}") from None


def resolve_content_type(audio_file: UploadFile) -> str:
    """Accept browser recordings and common containers, guessing from the filename if needed."""

    content_type = audio_file.content_type
    if content_type in (None, "", "application/octet-stream") and audio_file.filename:
        guessed_type, _ = mimetypes.guess_type(audio_file.filename)
        content_type = guessed_type or content_type

    if content_type in (None, "", "application/octet-stream"):
        content_type = DEFAULT_CONTENT_TYPE

    if _base_content_type(content_type) not in _CONTAINER_FORMATS:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail="Only WebM, Ogg, MP3, M4A or WAV audio is supported",
        )
    return content_type


async def read_audio_bytes(audio_file: UploadFile, *, max_bytes: int | None = None) -> bytes:
    """Load the upload into memory, rejecting empty and oversized payloads.

    At most ``max_bytes + 1`` bytes are read, so an oversized upload is
    refused without buffering all of it.
    """

    limit = max_bytes or settings.audio.max_bytes
    audio_bytes = await audio_file.read(limit + 1)
    await audio_file.close()

    if not audio_bytes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded audio file is empty",
        )
    if len(audio_bytes) > limit:
        raise HTTPException(
            status_code=413,
            detail=f"Audio file exceeds the {limit} byte limit",
        )
    return audio_bytes


def check_clip(clip: AudioClip, config: AudioConfig) -> None:
    """Boundary policy applied again before any transcoding work starts."""

    if clip.size == 0:
        raise EmptyAudioError("Audio clip is empty.")
    if clip.size > config.max_bytes:
        raise OversizedAudioError(
            f"Audio clip is {clip.size} bytes, limit is {config.max_bytes}."
        )


@contextlib.contextmanager
def staging_area(parent: Optional[str] = None) -> Iterator[Path]:
    """Scoped scratch directory, removed with its contents on every exit path."""

    with tempfile.TemporaryDirectory(prefix="fieldvoice-", dir=parent) as tmp_dir:
        yield Path(tmp_dir)


Runner = Callable[..., subprocess.CompletedProcess]


class AudioNormalizer:
    """Decode compressed clips into :class:`NormalizedAudio` via ffmpeg."""

    def __init__(self, config: AudioConfig | None = None, *, runner: Runner = subprocess.run) -> None:
        self._config = config or settings.audio
        self._runner = runner

    @property
    def config(self) -> AudioConfig:
        return self._config

    async def normalize(self, clip: AudioClip, staging: Path) -> StageResult[NormalizedAudio]:
        try:
            check_clip(clip, self._config)
            audio = await run_in_threadpool(self._normalize_sync, clip, staging)
        except VoicePipelineError as exc:
            return exc.to_err()
        return Ok(audio)

    def _normalize_sync(self, clip: AudioClip, staging: Path) -> NormalizedAudio:
        fmt = container_format(clip.content_type)
        if fmt.seekable_input:
            staged_path = staging / f"clip{fmt.suffix}"
            staged_path.write_bytes(clip.data)
            pcm = self._run_ffmpeg(str(staged_path), stdin_data=None)
        else:
            pcm = self._run_ffmpeg("pipe:0", stdin_data=clip.data)

        if len(pcm) % 4:
            raise TranscodeError(f"ffmpeg returned a partial frame ({len(pcm)} bytes).")
        samples = np.frombuffer(pcm, dtype="<f4").astype(np.float32)
        if samples.size == 0:
            raise EmptyAudioError("Decoded audio contains no samples.")

        audio = NormalizedAudio(samples=samples, sample_rate=self._config.sample_rate)
        if audio.duration_seconds > self._config.max_duration_seconds:
            raise OversizedAudioError(
                f"Audio clip is {audio.duration_seconds:.1f}s, "
                f"limit is {self._config.max_duration_seconds:.1f}s."
            )
        return audio

    def _ffmpeg_command(self, source: str) -> list[str]:
        return [
            self._config.ffmpeg_binary,
            "-nostdin",
            "-hide_banner",
            "-loglevel", "error",
            "-i", source,
            "-vn",
            "-af", "pan=mono|c0=c0",
            "-ar", str(self._config.sample_rate),
            "-acodec", "pcm_f32le",
            "-f", "f32le",
            "pipe:1",
        ]

    def _run_ffmpeg(self, source: str, *, stdin_data: bytes | None) -> bytes:
        command = self._ffmpeg_command(source)
        try:
            process = self._runner(
                command,
                input=stdin_data,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                check=True,
                timeout=self._config.transcode_timeout_seconds,
            )
        except subprocess.TimeoutExpired as exc:
            raise PipelineTimeoutError(
                f"ffmpeg exceeded {self._config.transcode_timeout_seconds:.1f}s"
            ) from exc
        except subprocess.CalledProcessError as exc:
            error_msg = exc.stderr.decode("utf-8", errors="replace") if exc.stderr else "No stderr"
            logger.error("ffmpeg failed. stderr: %s", error_msg.strip())
            raise TranscodeError(f"ffmpeg could not decode audio: {error_msg.strip()}") from exc
        except OSError as exc:
            raise TranscodeError(f"ffmpeg could not be started: {exc}") from exc

        if not process.stdout:
            logger.warning(
                "ffmpeg produced empty output. stderr: %s",
                (process.stderr or b"").decode("utf-8", errors="replace"),
            )
        return process.stdout or b""


__all__ = [
    "AudioNormalizer",
    "ContainerFormat",
    "DEFAULT_CONTENT_TYPE",
    "check_clip",
    "container_format",
    "read_audio_bytes",
    "resolve_content_type",
    "staging_area",
]
