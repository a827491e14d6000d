"""Service layer helpers for external integrations."""

from .llm_client import BedrockLlmClient, LlmInvocationError, LlmTimeoutError
from .response_contract import (
    CommandIntent,
    MalformedResponseError,
    StructuredCommand,
)
from .transcribe import (
    TranscribeService,
    TranscriptionError,
    TranscriptionResult,
    get_transcribe_service,
)

__all__ = [
    "BedrockLlmClient",
    "LlmInvocationError",
    "LlmTimeoutError",
    "CommandIntent",
    "MalformedResponseError",
    "StructuredCommand",
    "TranscribeService",
    "TranscriptionError",
    "TranscriptionResult",
    "get_transcribe_service",
]
