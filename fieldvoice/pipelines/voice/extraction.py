"""Intent-extraction stage (Stage 03) of the voice pipeline.

Returns the model's raw text. Nothing here parses or trusts it; that is the
job of ``parsing``. Failures are not retried: callers re-run the whole
pipeline if they want another attempt.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable

from fieldvoice.services.llm_client import (
    BedrockLlmClient,
    LlmInvocationError,
    LlmTimeoutError,
)

from .errors import ExtractionError, PipelineTimeoutError
from .prompts import build_extraction_prompt
from .types import Ok, StageResult

logger = logging.getLogger("fieldvoice.pipeline")


class IntentExtractor:
    """Send the transcript and the instruction template to the text model."""

    def __init__(
        self,
        client: BedrockLlmClient | None = None,
        *,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self._client = client
        self._clock = clock

    @property
    def client(self) -> BedrockLlmClient:
        if self._client is None:
            self._client = BedrockLlmClient()
        return self._client

    async def extract(self, transcript: str) -> StageResult[str]:
        prompt = build_extraction_prompt(transcript, today=self._clock())
        try:
            raw_response = await self.client.invoke(
                system_prompt=prompt.system_prompt,
                user_prompt=prompt.user_prompt,
            )
        except LlmTimeoutError as exc:
            logger.warning("Extraction timed out: %s", exc)
            return PipelineTimeoutError(str(exc)).to_err()
        except LlmInvocationError as exc:
            logger.warning("Extraction call failed: %s", exc)
            return ExtractionError(str(exc)).to_err()
        return Ok(raw_response or "")


__all__ = ["IntentExtractor"]
