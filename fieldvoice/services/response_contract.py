"""Pydantic models for validating the extraction model's JSON output.

The model is asked for a fixed shape, but its text is untrusted: it may wrap
the object in prose or Markdown fences, return the wrong types, or invent
intents. Parsing happens in two steps. First the text is reduced to an untyped
JSON tree, then each field is coerced independently with a named default so
downstream code always receives a well-formed :class:`StructuredCommand`.
"""

from __future__ import annotations

import json
import logging
import re
from enum import Enum
from typing import Any, Dict, Mapping

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

DEFAULT_MESSAGE = "Processed."

_FENCE_PATTERN = re.compile(r"```[A-Za-z0-9_-]*")
_DECODER = json.JSONDecoder()


class CommandIntent(str, Enum):
    ADD_WORKLOG = "ADD_WORKLOG"
    ADD_EXPENSE = "ADD_EXPENSE"
    VIEW_MATERIALS = "VIEW_MATERIALS"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def coerce(cls, value: Any) -> "CommandIntent":
        if isinstance(value, cls):
            return value
        if isinstance(value, str) and value in cls._value2member_map_:
            return cls(value)
        return cls.UNKNOWN


# Field names the prompt asks for, per intent. Used for the prompt and for
# soft checks only; ``data`` is never rejected for carrying other keys.
INTENT_FIELDS: Mapping[CommandIntent, tuple[str, ...]] = {
    CommandIntent.ADD_WORKLOG: ("description", "date", "hours", "project_name"),
    CommandIntent.ADD_EXPENSE: ("amount", "category", "description", "merchant"),
    CommandIntent.VIEW_MATERIALS: ("project_name", "filter"),
}


class MalformedResponseError(ValueError):
    """Raised when the model text does not contain a JSON object."""


class StructuredCommand(BaseModel):
    intent: CommandIntent = CommandIntent.UNKNOWN
    data: Dict[str, Any] = Field(default_factory=dict)
    message: str = DEFAULT_MESSAGE

    model_config = {"extra": "ignore", "frozen": True}

    @field_validator("intent", mode="before")
    @classmethod
    def coerce_intent(cls, value: Any) -> CommandIntent:
        intent = CommandIntent.coerce(value)
        if intent is CommandIntent.UNKNOWN and value not in (None, CommandIntent.UNKNOWN.value):
            logger.warning("Intent outside the catalogue coerced to UNKNOWN: %r", value)
        return intent

    @field_validator("data", mode="before")
    @classmethod
    def coerce_data(cls, value: Any) -> Dict[str, Any]:
        if isinstance(value, Mapping):
            return {str(key): item for key, item in value.items()}
        return {}

    @field_validator("message", mode="before")
    @classmethod
    def coerce_message(cls, value: Any) -> str:
        if isinstance(value, str) and value.strip():
            return value.strip()
        return DEFAULT_MESSAGE

    @property
    def unexpected_fields(self) -> tuple[str, ...]:
        expected = INTENT_FIELDS.get(self.intent)
        if not expected:
            return ()
        return tuple(key for key in self.data if key not in expected)

    @classmethod
    def from_json(cls, payload: str) -> "StructuredCommand":
        tree = parse_json_object(payload)
        # Validators above accept any input, so this cannot fail on shape.
        return cls.model_validate(
            {
                "intent": tree.get("intent"),
                "data": tree.get("data"),
                "message": tree.get("message"),
            }
        )


def parse_json_object(payload: str) -> Dict[str, Any]:
    """Extract the JSON object embedded in ``payload`` as an untyped tree."""

    cleaned = _clean_json_payload(payload)
    if not cleaned:
        raise MalformedResponseError("Model returned an empty response.")
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        # Prose around the object may contain braces; take the first decodable object.
        data = _decode_leading_object(cleaned)
        if data is None:
            raise MalformedResponseError(f"Model response is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise MalformedResponseError(
            f"Model response is a JSON {type(data).__name__}, expected an object."
        )
    return data


def _clean_json_payload(payload: str | None) -> str:
    """Strip Markdown code fences and find the first/last brace to extract JSON."""
    if not payload:
        return ""

    cleaned = _FENCE_PATTERN.sub("", payload).strip()

    start = cleaned.find("{")
    end = cleaned.rfind("}")

    if start != -1 and end != -1 and end > start:
        cleaned = cleaned[start : end + 1]

    return cleaned


def _decode_leading_object(text: str) -> Any:
    """Return the first JSON object starting at any ``{`` in ``text``."""

    start = text.find("{")
    while start != -1:
        try:
            data, _ = _DECODER.raw_decode(text, start)
        except json.JSONDecodeError:
            data = None
        if isinstance(data, dict):
            return data
        start = text.find("{", start + 1)
    return None


__all__ = [
    "CommandIntent",
    "DEFAULT_MESSAGE",
    "INTENT_FIELDS",
    "MalformedResponseError",
    "StructuredCommand",
    "parse_json_object",
]
