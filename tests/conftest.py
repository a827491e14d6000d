"""Pytest fixtures assembling real pipeline stages around fake collaborators."""

from __future__ import annotations

from pathlib import Path
import sys
from types import SimpleNamespace

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))
sys.path.insert(0, str(Path(__file__).resolve().parent))

from fakes import FakeBedrockRuntime, FakeFfmpeg, FakeWhisperModel  # noqa: E402
from fieldvoice.config.settings import AudioConfig, WhisperConfig  # noqa: E402
from fieldvoice.pipelines.voice import (  # noqa: E402
    AudioNormalizer,
    IntentExtractor,
    Transcriber,
    VoiceCommandPipeline,
)
from fieldvoice.services.llm_client import BedrockLlmClient  # noqa: E402
from fieldvoice.services.transcribe import TranscribeService  # noqa: E402


@pytest.fixture
def audio_config(tmp_path: Path) -> AudioConfig:
    return AudioConfig(
        max_bytes=1024 * 1024,
        max_duration_seconds=10.0,
        staging_dir=str(tmp_path),
    )


@pytest.fixture
def whisper_config() -> WhisperConfig:
    return WhisperConfig(min_transcript_chars=2, timeout_seconds=5.0)


@pytest.fixture
def staging_root(audio_config: AudioConfig) -> Path:
    return Path(audio_config.staging_dir)


@pytest.fixture
def build_pipeline(audio_config: AudioConfig, whisper_config: WhisperConfig):
    """Factory assembling a real pipeline around fake collaborators."""

    def _build(
        *,
        ffmpeg: FakeFfmpeg | None = None,
        transcript: str = "add fifty dollars for food",
        bedrock: FakeBedrockRuntime | None = None,
        llm_timeout: float = 5.0,
    ) -> SimpleNamespace:
        ffmpeg = ffmpeg or FakeFfmpeg()
        model = FakeWhisperModel(transcript)
        bedrock = bedrock or FakeBedrockRuntime()
        pipeline = VoiceCommandPipeline(
            normalizer=AudioNormalizer(audio_config, runner=ffmpeg),
            transcriber=Transcriber(
                TranscribeService(whisper_config, model_factory=lambda _cfg: model),
                whisper_config=whisper_config,
                audio_config=audio_config,
            ),
            extractor=IntentExtractor(
                BedrockLlmClient(client=bedrock, timeout_seconds=llm_timeout),
            ),
            staging_dir=audio_config.staging_dir,
        )
        return SimpleNamespace(pipeline=pipeline, ffmpeg=ffmpeg, model=model, bedrock=bedrock)

    return _build
