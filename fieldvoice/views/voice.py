"""Schemas for the voice command endpoint."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class VoiceCommandResponse(BaseModel):
    success: bool
    message: str
    run_id: str
    intent: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    transcript: Optional[str] = None
    error: Optional[str] = None

    model_config = {"json_schema_extra": {"examples": [
        {
            "success": True,
            "intent": "ADD_EXPENSE",
            "data": {"amount": 50, "category": "Food"},
            "message": "Added 50 for food.",
            "transcript": "add fifty dollars for food",
            "run_id": "3f1c2a9b8d7e",
        },
        {
            "success": False,
            "error": "Could not understand audio",
            "message": "I didn't catch anything. Please speak a little louder and try again.",
            "run_id": "9a0b1c2d3e4f",
        },
    ]}}


class PipelineStageView(BaseModel):
    order: int
    state: str
    module: str
    summary: str = Field(default="")
