"""Prompt construction for the intent-extraction stage (Stage 03).

The model is only ever offered the fixed intent catalogue and its field
names. It is never asked to invent an intent, which is what keeps the
parser in Stage 04 small.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import date

from fieldvoice.services.response_contract import INTENT_FIELDS, CommandIntent

_SYSTEM_PROMPT = (
    "You are an AI assistant for a construction management app. "
    "DO NOT HALLUCINATE. Only use information present in the user's transcript. "
    "Always answer with a single valid JSON object and nothing else."
)

_EXAMPLE = {
    "intent": "ADD_EXPENSE",
    "data": {"amount": 50, "category": "Food"},
    "message": "Added 50 for food.",
}


@dataclass(frozen=True)
class ExtractionPrompt:
    system_prompt: str
    user_prompt: str


def _intent_catalogue() -> str:
    lines = [
        f"- {intent.value}: Fields: {', '.join(fields)}."
        for intent, fields in INTENT_FIELDS.items()
    ]
    lines.append(f"- {CommandIntent.UNKNOWN.value}: anything else. Use an empty data object.")
    return "\n".join(lines)


def build_extraction_prompt(transcript: str, *, today: date | None = None) -> ExtractionPrompt:
    """Assemble the fixed instruction template followed by the transcript."""

    current_date = (today or date.today()).isoformat()
    allowed = " | ".join(f'"{intent.value}"' for intent in CommandIntent)
    user_prompt = (
        "Extract the structured intent from this voice command.\n\n"
        f"Current Date: {current_date}\n\n"
        "Return a JSON object with:\n"
        f"- intent: {allowed}\n"
        "- data: object with the extracted fields\n"
        "- message: string (confirmation or follow-up question for the user)\n\n"
        "Intents:\n"
        f"{_intent_catalogue()}\n\n"
        "Example JSON:\n"
        f"{json.dumps(_EXAMPLE)}\n\n"
        "Transcript:\n"
        f"{transcript.strip()}"
    )
    return ExtractionPrompt(system_prompt=_SYSTEM_PROMPT, user_prompt=user_prompt)


__all__ = ["ExtractionPrompt", "build_extraction_prompt"]
