"""Audio ingestion: boundary checks, ffmpeg decode contract and staging cleanup."""

from __future__ import annotations

import io

import numpy as np
import pytest
from fastapi import HTTPException, UploadFile
from starlette.datastructures import Headers

from fakes import FakeFfmpeg, speech_samples
from fieldvoice.pipelines.voice import (
    AudioClip,
    AudioNormalizer,
    Err,
    ErrorKind,
    Ok,
    read_audio_bytes,
    resolve_content_type,
    staging_area,
)


def _upload(data: bytes, content_type: str | None, filename: str = "clip.webm") -> UploadFile:
    headers = Headers({"content-type": content_type}) if content_type else Headers({})
    return UploadFile(file=io.BytesIO(data), filename=filename, headers=headers)


@pytest.mark.asyncio
async def test_streamable_container_is_piped_without_staging(audio_config, staging_root):
    ffmpeg = FakeFfmpeg()
    normalizer = AudioNormalizer(audio_config, runner=ffmpeg)

    with staging_area(str(staging_root)) as staging:
        outcome = await normalizer.normalize(AudioClip(b"webm-bytes", "audio/webm;codecs=opus"), staging)
        assert list(staging.iterdir()) == []

    assert isinstance(outcome, Ok)
    call = ffmpeg.calls[0]
    assert call["input"] == b"webm-bytes"
    assert "pipe:0" in call["command"]


@pytest.mark.asyncio
async def test_decode_targets_first_channel_mono_16k_float(audio_config, staging_root):
    ffmpeg = FakeFfmpeg()
    normalizer = AudioNormalizer(audio_config, runner=ffmpeg)

    with staging_area(str(staging_root)) as staging:
        outcome = await normalizer.normalize(AudioClip(b"x", "audio/ogg"), staging)

    command = ffmpeg.calls[0]["command"]
    assert command[command.index("-af") + 1] == "pan=mono|c0=c0"
    assert command[command.index("-ar") + 1] == "16000"
    assert command[command.index("-f") + 1] == "f32le"
    assert "-ac" not in command
    assert ffmpeg.calls[0]["timeout"] == audio_config.transcode_timeout_seconds

    audio = outcome.value
    assert audio.sample_rate == 16000
    assert audio.samples.dtype == np.float32
    assert audio.samples.ndim == 1
    assert audio.duration_seconds == pytest.approx(3.0)


@pytest.mark.asyncio
async def test_seekable_container_is_staged_and_removed(audio_config, staging_root):
    ffmpeg = FakeFfmpeg()
    normalizer = AudioNormalizer(audio_config, runner=ffmpeg)

    with staging_area(str(staging_root)) as staging:
        outcome = await normalizer.normalize(AudioClip(b"m4a-bytes", "audio/x-m4a"), staging)

    assert isinstance(outcome, Ok)
    staged = ffmpeg.staged_files_seen[0]
    assert staged.suffix == ".m4a"
    assert ffmpeg.calls[0]["input"] is None
    assert "-nostdin" in ffmpeg.calls[0]["command"]
    assert not staged.exists()
    assert list(staging_root.iterdir()) == []


@pytest.mark.asyncio
async def test_ffmpeg_failure_maps_to_transcode_error(audio_config, staging_root):
    ffmpeg = FakeFfmpeg(returncode=1, stderr=b"Invalid data found when processing input")
    normalizer = AudioNormalizer(audio_config, runner=ffmpeg)

    with staging_area(str(staging_root)) as staging:
        outcome = await normalizer.normalize(AudioClip(b"garbage", "audio/mp4"), staging)

    assert isinstance(outcome, Err)
    assert outcome.kind is ErrorKind.TRANSCODE
    assert "Invalid data" in outcome.detail
    assert "Invalid data" not in outcome.message
    assert list(staging_root.iterdir()) == []


@pytest.mark.asyncio
async def test_ffmpeg_timeout_maps_to_timeout(audio_config, staging_root):
    normalizer = AudioNormalizer(audio_config, runner=FakeFfmpeg(timeout=True))

    with staging_area(str(staging_root)) as staging:
        outcome = await normalizer.normalize(AudioClip(b"x", "audio/webm"), staging)

    assert outcome.kind is ErrorKind.TIMEOUT


@pytest.mark.asyncio
async def test_zero_samples_is_empty_audio(audio_config, staging_root):
    normalizer = AudioNormalizer(audio_config, runner=FakeFfmpeg(raw_stdout=b""))

    with staging_area(str(staging_root)) as staging:
        outcome = await normalizer.normalize(AudioClip(b"x", "audio/webm"), staging)

    assert outcome.kind is ErrorKind.EMPTY_AUDIO


@pytest.mark.asyncio
async def test_partial_frame_is_not_accepted_silently(audio_config, staging_root):
    normalizer = AudioNormalizer(audio_config, runner=FakeFfmpeg(raw_stdout=b"\x00\x00\x80"))

    with staging_area(str(staging_root)) as staging:
        outcome = await normalizer.normalize(AudioClip(b"x", "audio/webm"), staging)

    assert outcome.kind is ErrorKind.TRANSCODE


@pytest.mark.asyncio
async def test_overlong_clip_is_rejected(audio_config, staging_root):
    ffmpeg = FakeFfmpeg(samples=speech_samples(seconds=audio_config.max_duration_seconds + 1))
    normalizer = AudioNormalizer(audio_config, runner=ffmpeg)

    with staging_area(str(staging_root)) as staging:
        outcome = await normalizer.normalize(AudioClip(b"x", "audio/webm"), staging)

    assert outcome.kind is ErrorKind.OVERSIZED


@pytest.mark.asyncio
async def test_oversized_clip_is_rejected_before_transcoding(audio_config, staging_root):
    ffmpeg = FakeFfmpeg()
    normalizer = AudioNormalizer(audio_config, runner=ffmpeg)
    clip = AudioClip(b"\x00" * (audio_config.max_bytes + 1), "audio/webm")

    with staging_area(str(staging_root)) as staging:
        outcome = await normalizer.normalize(clip, staging)

    assert outcome.kind is ErrorKind.OVERSIZED
    assert ffmpeg.calls == []


@pytest.mark.asyncio
async def test_unknown_container_is_transcode_error(audio_config, staging_root):
    ffmpeg = FakeFfmpeg()
    normalizer = AudioNormalizer(audio_config, runner=ffmpeg)

    with staging_area(str(staging_root)) as staging:
        outcome = await normalizer.normalize(AudioClip(b"x", "application/pdf"), staging)

    assert outcome.kind is ErrorKind.TRANSCODE
    assert ffmpeg.calls == []


def test_staging_area_is_removed_when_block_raises(staging_root):
    with pytest.raises(RuntimeError):
        with staging_area(str(staging_root)) as staging:
            (staging / "clip.m4a").write_bytes(b"data")
            raise RuntimeError("boom")

    assert list(staging_root.iterdir()) == []


def test_resolve_content_type_defaults_to_webm():
    assert resolve_content_type(_upload(b"x", None, filename="blob")) == "audio/webm"


def test_resolve_content_type_guesses_from_filename():
    assert resolve_content_type(_upload(b"x", "application/octet-stream", filename="note.mp3")) == "audio/mpeg"


def test_resolve_content_type_rejects_unsupported():
    with pytest.raises(HTTPException) as exc_info:
        resolve_content_type(_upload(b"x", "image/png"))

    assert exc_info.value.status_code == 415


@pytest.mark.asyncio
async def test_read_audio_bytes_rejects_oversized_upload():
    with pytest.raises(HTTPException) as exc_info:
        await read_audio_bytes(_upload(b"\x01" * 11, "audio/webm"), max_bytes=10)

    assert exc_info.value.status_code == 413


@pytest.mark.asyncio
async def test_read_audio_bytes_rejects_empty_upload():
    with pytest.raises(HTTPException) as exc_info:
        await read_audio_bytes(_upload(b"", "audio/webm"), max_bytes=10)

    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_read_audio_bytes_accepts_clip_at_limit():
    assert await read_audio_bytes(_upload(b"\x01" * 10, "audio/webm"), max_bytes=10) == b"\x01" * 10
