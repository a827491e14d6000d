from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class AudioConfig(BaseSettings):
    """Audio ingestion and normalization configuration"""

    max_bytes: int = Field(default=10 * 1024 * 1024, ge=1)
    max_duration_seconds: float = Field(default=60.0, gt=0)
    sample_rate: int = 16000
    ffmpeg_binary: str = "ffmpeg"
    transcode_timeout_seconds: float = Field(default=30.0, gt=0)
    staging_dir: Optional[str] = Field(
        default=None,
        description="Parent directory for scoped staging files. Defaults to the system temp dir.",
    )
    silence_threshold: float = Field(default=1e-4, ge=0.0)

    model_config = SettingsConfigDict(
        env_prefix="AUDIO_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class WhisperConfig(BaseSettings):
    """Local speech-to-text (faster-whisper) configuration."""

    model: str = "base.en"
    device: str = "auto"
    compute_type: str = "int8"
    beam_size: int = Field(default=1, ge=1)
    language: Optional[str] = "en"
    cache_dir: Optional[str] = None
    min_transcript_chars: int = Field(default=2, ge=1)
    timeout_seconds: float = Field(default=60.0, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="WHISPER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class BedrockConfig(BaseSettings):
    """Amazon Bedrock configuration."""

    region: str = Field(
        default="us-east-1",
        validation_alias="BEDROCK_REGION",
    )
    model_id: str = Field(
        default="amazon.nova-micro-v1:0",
        validation_alias="BEDROCK_MODEL_ID",
    )
    max_tokens: int = Field(
        default=512,
        validation_alias="BEDROCK_MAX_TOKENS",
        ge=1,
        le=4096,
    )
    temperature: float = Field(
        default=0.0,
        validation_alias="BEDROCK_TEMPERATURE",
        ge=0.0,
        le=1.0,
    )
    top_p: float = Field(
        default=0.9,
        validation_alias="BEDROCK_TOP_P",
        ge=0.0,
        le=1.0,
    )
    api_key: SecretStr | None = Field(
        default=None,
        validation_alias="BEDROCK_API_KEY",
    )
    timeout_seconds: float = Field(
        default=20.0,
        validation_alias="BEDROCK_TIMEOUT_SECONDS",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class Settings(BaseSettings):
    """Application settings"""

    app_name: str = "FieldVoice Command Service"
    app_version: str = "1.0.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000
    log_file: str = "logs/app.log"
    audio_log_file: str = "logs/voice_pipeline.log"
    transcript_log_file: str = "logs/transcripts.log"

    # Audio
    audio: AudioConfig = Field(default_factory=AudioConfig)

    # Whisper
    whisper: WhisperConfig = Field(default_factory=WhisperConfig)

    # Bedrock
    bedrock: BedrockConfig = Field(default_factory=BedrockConfig)

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
