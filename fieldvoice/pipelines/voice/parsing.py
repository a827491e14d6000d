"""Response parsing stage (Stage 04) of the voice pipeline."""

from __future__ import annotations

import logging

from fieldvoice.services.response_contract import (
    MalformedResponseError,
    StructuredCommand,
)

from .errors import stage_error
from .types import ErrorKind, Ok, StageResult

logger = logging.getLogger("fieldvoice.pipeline")


def parse_command(raw_response: str) -> StageResult[StructuredCommand]:
    """Turn untrusted model text into a validated command.

    Out-of-catalogue intents and wrongly typed fields are coerced, not
    rejected. Only text without a JSON object in it is a failure.
    """

    try:
        command = StructuredCommand.from_json(raw_response)
    except MalformedResponseError as exc:
        logger.warning("Model response could not be parsed: %s", exc)
        return stage_error(ErrorKind.MALFORMED_RESPONSE, str(exc))

    if command.unexpected_fields:
        logger.info(
            "Intent %s carried unexpected data fields: %s",
            command.intent.value,
            ", ".join(command.unexpected_fields),
        )
    return Ok(command)


__all__ = ["parse_command"]
